"""Referral code registry: one durable code per user."""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from naikkelas.auth.models import User
from naikkelas.errors import RegistryError
from naikkelas.ids import generate_id, random_token
from naikkelas.logging_config import get_logger
from naikkelas.referral.models import ReferralCode
from naikkelas.storage.db import Database, db
from naikkelas.storage.upsert import insert_ignore

CODE_PREFIX = "REF_"
CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 10


def generate_referral_code() -> str:
    """Generate a candidate code, e.g. ``REF_a8Kd02Qz``."""
    return f"{CODE_PREFIX}{random_token(CODE_LENGTH)}"


@dataclass(frozen=True)
class ReferrerInfo:
    """Public view of a code's owner, for the signup form."""
    user_id: str
    first_name: str | None


class ReferralCodeRegistry:
    """Maps users to referral codes and codes back to users."""

    def __init__(self, database: Database | None = None, logger=None, code_factory=generate_referral_code):
        """Initialize the registry.

        Args:
            database: Database to use (defaults to the global instance)
            logger: Bound logger (defaults to this module's logger)
            code_factory: Candidate code generator
        """
        self.db = database or db
        self.logger = logger or get_logger(__name__)
        self.code_factory = code_factory

    def get_or_create_code(self, user_id: str, session: Session | None = None) -> str:
        """Get the user's referral code, creating it on first request.

        The unique constraint on ``user_id`` serialises concurrent callers: a
        losing writer reads back the winner's code. A no-op insert with no row
        for the user means the generated code collided and a new one is tried.

        Args:
            user_id: User ID
            session: Optional session to join

        Returns:
            The user's referral code

        Raises:
            RegistryError: If no free code was found in MAX_CODE_ATTEMPTS tries
        """
        with self.db.scope(session) as s:
            existing = self._code_for_user(s, user_id)
            if existing:
                return existing

            for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
                code = self.code_factory()
                inserted = insert_ignore(s, ReferralCode, {
                    "id": generate_id("refcode"),
                    "user_id": user_id,
                    "code": code,
                })
                if inserted:
                    self.logger.info("referral_code_created", user_id=user_id, code=code)
                    return code

                winner = self._code_for_user(s, user_id)
                if winner:
                    self.logger.info("referral_code_race_lost", user_id=user_id)
                    return winner

                self.logger.warning("referral_code_collision", user_id=user_id, attempt=attempt)

        raise RegistryError(f"Could not allocate a referral code after {MAX_CODE_ATTEMPTS} attempts")

    def resolve(self, code: str | None, session: Session | None = None) -> str | None:
        """Resolve a referral code to its owner's user ID.

        Args:
            code: Referral code as shared (surrounding whitespace ignored)
            session: Optional session to join

        Returns:
            Owner's user ID, or None if the code is unknown
        """
        if not code or not code.strip():
            return None

        with self.db.scope(session) as s:
            return s.scalar(
                select(ReferralCode.user_id).where(ReferralCode.code == code.strip())
            )

    def describe_referrer(self, code: str | None) -> ReferrerInfo | None:
        """Resolve a code and return the owner's first name (privacy: first name only)."""
        with self.db.session() as s:
            user_id = self.resolve(code, session=s)
            if not user_id:
                return None

            name = s.scalar(select(User.name).where(User.id == user_id))
            first_name = name.split()[0] if name and name.strip() else None
            return ReferrerInfo(user_id=user_id, first_name=first_name)

    @staticmethod
    def _code_for_user(session: Session, user_id: str) -> str | None:
        return session.scalar(
            select(ReferralCode.code).where(ReferralCode.user_id == user_id)
        )
