"""Token credit metering for AI usage."""

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from naikkelas.credits.models import UserCredits
from naikkelas.errors import InsufficientBalanceError
from naikkelas.ids import generate_id
from naikkelas.logging_config import get_logger
from naikkelas.settings import settings
from naikkelas.storage.db import Database, db
from naikkelas.storage.models import utcnow
from naikkelas.storage.upsert import insert_ignore


class CreditMeter:
    """Service for managing token credits.

    Operations:
    - Lazy starting allotment on first read
    - Minimum-balance gate before paid actions
    - Debit actual usage after an AI interaction
    - Credit successful top-ups
    """

    def __init__(self, database: Database | None = None, logger=None, starting_credits: int | None = None):
        """Initialize credit meter.

        Args:
            database: Database to use (defaults to the global instance)
            logger: Bound logger (defaults to this module's logger)
            starting_credits: Allotment for a new balance (defaults to settings)
        """
        self.db = database or db
        self.logger = logger or get_logger(__name__)
        self.starting_credits = (
            settings.starting_credits if starting_credits is None else starting_credits
        )

    def get_or_create_balance(self, user_id: str, session: Session | None = None) -> int:
        """Get user's credit balance, creating the starting allotment if absent.

        Args:
            user_id: User ID
            session: Optional session to join

        Returns:
            Credit balance
        """
        with self.db.scope(session) as s:
            self._ensure_row(s, user_id)
            return s.scalar(select(UserCredits.credits).where(UserCredits.user_id == user_id))

    def require_minimum(self, user_id: str, threshold: int) -> bool:
        """Check if user holds at least `threshold` credits.

        A user with no balance row yet is given the starting allotment first,
        so the check also initialises the row.
        """
        return self.get_or_create_balance(user_id) >= threshold

    def ensure_minimum(self, user_id: str, threshold: int | None = None) -> int:
        """Raise unless user holds at least `threshold` credits.

        Args:
            user_id: User ID
            threshold: Required minimum (defaults to settings)

        Returns:
            Current balance

        Raises:
            InsufficientBalanceError: If balance is below threshold
        """
        if threshold is None:
            threshold = settings.minimum_credits_threshold

        balance = self.get_or_create_balance(user_id)
        if balance < threshold:
            self.logger.info("credits_below_minimum", user_id=user_id, balance=balance, required=threshold)
            raise InsufficientBalanceError(required=threshold, available=balance)
        return balance

    def debit(self, user_id: str, token_count: int, session: Session | None = None) -> None:
        """Subtract actual usage after an AI interaction.

        Non-positive counts are ignored. The balance may go below zero when
        usage exceeds what is left; the next gate check then blocks the user.
        """
        if token_count <= 0:
            return

        with self.db.scope(session) as s:
            self._ensure_row(s, user_id)
            s.execute(
                update(UserCredits)
                .where(UserCredits.user_id == user_id)
                .values(credits=UserCredits.credits - token_count, updated_at=utcnow())
            )

        self.logger.info("credits_debited", user_id=user_id, amount=token_count)

    def credit(self, user_id: str, token_count: int, session: Session | None = None) -> None:
        """Add purchased credits.

        Args:
            user_id: User ID
            token_count: Credits to add (positive)
            session: Optional session to join (the top-up callback transaction)
        """
        if token_count <= 0:
            raise ValueError("token_count must be positive")

        with self.db.scope(session) as s:
            self._ensure_row(s, user_id)
            s.execute(
                update(UserCredits)
                .where(UserCredits.user_id == user_id)
                .values(credits=UserCredits.credits + token_count, updated_at=utcnow())
            )

        self.logger.info("credits_added", user_id=user_id, amount=token_count)

    def _ensure_row(self, session: Session, user_id: str) -> None:
        created = insert_ignore(session, UserCredits, {
            "id": generate_id("credits"),
            "user_id": user_id,
            "credits": self.starting_credits,
        })
        if created:
            self.logger.info("credits_initialized", user_id=user_id, credits=self.starting_credits)
