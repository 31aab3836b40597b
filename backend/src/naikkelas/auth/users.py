"""User mirror and the first sign-in flow."""

from dataclasses import dataclass

from sqlalchemy import select

from naikkelas.auth.models import Identity, User
from naikkelas.credits.meter import CreditMeter
from naikkelas.errors import NotFoundError, ValidationError
from naikkelas.logging_config import get_logger
from naikkelas.referral.registry import ReferralCodeRegistry
from naikkelas.referral.service import AttributionResult, ReferralService
from naikkelas.storage.db import Database, db
from naikkelas.storage.models import utcnow
from naikkelas.storage.upsert import insert_ignore


class UserService:
    """Keeps the local users table in step with the identity provider."""

    def __init__(self, database: Database | None = None, logger=None):
        self.db = database or db
        self.logger = logger or get_logger(__name__)

    def sync_user(self, identity: Identity) -> tuple[User, bool]:
        """Mirror the caller on first sign-in.

        Args:
            identity: Authenticated caller

        Returns:
            (user, created) where created is True only for the request that
            inserted the row

        Raises:
            ValidationError: If the email already belongs to another user
        """
        with self.db.session() as s:
            created = insert_ignore(s, User, {
                "id": identity.user_id,
                "email": identity.email,
                "name": identity.name,
            })
            user = s.get(User, identity.user_id)
            if user is None:
                self.logger.warning("user_email_conflict", user_id=identity.user_id)
                raise ValidationError("Email already registered")

        if created:
            self.logger.info("user_created", user_id=user.id)
        return user, created

    def find_user(self, user_id: str) -> User | None:
        with self.db.session() as s:
            return s.get(User, user_id)

    def get_user(self, user_id: str) -> User:
        """Get a mirrored user.

        Raises:
            NotFoundError: If the user never signed in
        """
        user = self.find_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def update_name(self, user_id: str, name: str) -> User:
        """Set the display name collected during onboarding.

        Raises:
            ValidationError: If the name is blank
            NotFoundError: If the user never signed in
        """
        if not name or not name.strip():
            raise ValidationError("Name is required")

        with self.db.session() as s:
            user = s.scalar(select(User).where(User.id == user_id))
            if user is None:
                raise NotFoundError("User not found")
            user.name = name.strip()
            user.updated_at = utcnow()

        self.logger.info("user_name_updated", user_id=user_id)
        return user


@dataclass(frozen=True)
class SignupResult:
    user: User
    created: bool
    credits: int
    referral_code: str
    attribution: AttributionResult | None = None


class SignupService:
    """First sign-in: starting credits, referral attribution, own referral code."""

    def __init__(
        self,
        database: Database | None = None,
        users: UserService | None = None,
        meter: CreditMeter | None = None,
        registry: ReferralCodeRegistry | None = None,
        referrals: ReferralService | None = None,
        logger=None,
    ):
        self.db = database or db
        self.users = users or UserService(self.db)
        self.meter = meter or CreditMeter(self.db)
        self.registry = registry or ReferralCodeRegistry(self.db)
        self.referrals = referrals or ReferralService(self.db, registry=self.registry)
        self.logger = logger or get_logger(__name__)

    def complete_signup(self, identity: Identity, referral_code: str | None = None) -> SignupResult:
        """Sync the caller and, on first sign-in, set up their ledger state.

        Attribution problems never fail the sign-in: they are logged and the
        user continues unattributed.

        Args:
            identity: Authenticated caller
            referral_code: Code the user arrived with, if any

        Returns:
            SignupResult
        """
        user, created = self.users.sync_user(identity)

        attribution = None
        if created:
            self.meter.get_or_create_balance(user.id)

            if referral_code:
                try:
                    attribution = self.referrals.attribute(user.id, referral_code)
                except Exception as e:
                    self.logger.error(
                        "referral_attribution_failed",
                        user_id=user.id,
                        error=str(e),
                        exc_info=True,
                    )

        code = self.registry.get_or_create_code(user.id)
        credits = self.meter.get_or_create_balance(user.id)

        if created:
            self.logger.info(
                "signup_completed",
                user_id=user.id,
                referred=bool(attribution and attribution.attributed),
            )

        return SignupResult(
            user=user,
            created=created,
            credits=credits,
            referral_code=code,
            attribution=attribution,
        )
