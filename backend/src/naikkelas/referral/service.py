"""Referral attribution and two-level rewards."""

from dataclasses import dataclass
from enum import Enum

from sqlalchemy import select

from naikkelas.ids import generate_id
from naikkelas.logging_config import get_logger
from naikkelas.referral.models import Referral
from naikkelas.referral.registry import ReferralCodeRegistry
from naikkelas.rewards.ledger import RewardLedger
from naikkelas.rewards.models import RewardType
from naikkelas.storage.db import Database, db
from naikkelas.storage.upsert import insert_ignore

# Rewards in IDR, paid into the reward balance (not token credits)
REWARD_LEVEL_1 = 75000  # Direct inviter
REWARD_LEVEL_2 = 25000  # Inviter's inviter


class AttributionOutcome(str, Enum):
    ATTRIBUTED = "attributed"
    INVALID_CODE = "invalid_code"
    SELF_REFERRAL = "self_referral"
    ALREADY_ATTRIBUTED = "already_attributed"


@dataclass(frozen=True)
class AttributionResult:
    outcome: AttributionOutcome
    referral_id: str | None = None
    referrer_level1_id: str | None = None
    referrer_level2_id: str | None = None

    @property
    def attributed(self) -> bool:
        return self.outcome is AttributionOutcome.ATTRIBUTED


class ReferralService:
    """Service for attributing new users to their referrers.

    A new user is attributed at most once. Attribution records the direct
    referrer (level 1) and that referrer's own referrer (level 2), and pays
    both from the reward ledger in the same transaction.
    """

    def __init__(
        self,
        database: Database | None = None,
        registry: ReferralCodeRegistry | None = None,
        ledger: RewardLedger | None = None,
        logger=None,
    ):
        self.db = database or db
        self.registry = registry or ReferralCodeRegistry(self.db)
        self.ledger = ledger or RewardLedger(self.db)
        self.logger = logger or get_logger(__name__)

    def attribute(self, new_user_id: str, code: str | None) -> AttributionResult:
        """Attribute a new user to the owner of `code`.

        Invalid codes, self-referrals and repeat attributions are logged and
        returned as outcomes, never raised.

        Args:
            new_user_id: ID of the user who just signed up
            code: Referral code they arrived with

        Returns:
            AttributionResult describing what happened
        """
        with self.db.session() as s:
            level1_id = self.registry.resolve(code, session=s)
            if not level1_id:
                self.logger.warning("referral_invalid_code", user_id=new_user_id, code=code)
                return AttributionResult(AttributionOutcome.INVALID_CODE)

            if level1_id == new_user_id:
                self.logger.warning("referral_self_referral", user_id=new_user_id)
                return AttributionResult(AttributionOutcome.SELF_REFERRAL)

            if self._referral_for(s, new_user_id) is not None:
                self.logger.info("referral_already_attributed", user_id=new_user_id)
                return AttributionResult(AttributionOutcome.ALREADY_ATTRIBUTED)

            level1_referral = self._referral_for(s, level1_id)
            level2_id = level1_referral.referrer_level1_id if level1_referral else None

            referral_id = generate_id("referral")
            inserted = insert_ignore(s, Referral, {
                "id": referral_id,
                "referred_user_id": new_user_id,
                "referrer_level1_id": level1_id,
                "referrer_level2_id": level2_id,
            })
            if not inserted:
                # A concurrent signup for the same user got there first
                self.logger.info("referral_already_attributed", user_id=new_user_id, race=True)
                return AttributionResult(AttributionOutcome.ALREADY_ATTRIBUTED)

            self.ledger.credit(
                user_id=level1_id,
                amount=REWARD_LEVEL_1,
                type=RewardType.REFERRAL_LEVEL1,
                referral_id=referral_id,
                description="Referral reward - level 1",
                session=s,
            )
            if level2_id:
                self.ledger.credit(
                    user_id=level2_id,
                    amount=REWARD_LEVEL_2,
                    type=RewardType.REFERRAL_LEVEL2,
                    referral_id=referral_id,
                    description="Referral reward - level 2",
                    session=s,
                )

        self.logger.info(
            "referral_attributed",
            referred_user_id=new_user_id,
            referrer_level1_id=level1_id,
            referrer_level2_id=level2_id,
        )
        return AttributionResult(
            AttributionOutcome.ATTRIBUTED,
            referral_id=referral_id,
            referrer_level1_id=level1_id,
            referrer_level2_id=level2_id,
        )

    def get_referrer(self, user_id: str) -> str | None:
        """Get the direct (level 1) referrer ID for a user, if any."""
        with self.db.session() as s:
            referral = self._referral_for(s, user_id)
            return referral.referrer_level1_id if referral else None

    @staticmethod
    def _referral_for(session, user_id: str) -> Referral | None:
        return session.scalar(
            select(Referral).where(Referral.referred_user_id == user_id)
        )
