"""Reward ledger: the only writer of reward balances."""

from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from naikkelas.ids import generate_id
from naikkelas.logging_config import get_logger
from naikkelas.referral.models import Referral
from naikkelas.rewards.models import RewardTransaction, RewardType, UserReward
from naikkelas.storage.db import Database, db
from naikkelas.storage.models import utcnow
from naikkelas.storage.upsert import insert_ignore


@dataclass(frozen=True)
class ReferralStats:
    total_referrals: int
    level1_count: int
    level2_count: int
    total_rewards_earned: int


@dataclass(frozen=True)
class BalanceDrift:
    """A user whose materialized balance disagrees with the transaction log."""
    user_id: str
    balance: int
    transactions_total: int


class RewardLedger:
    """Append-only reward transactions plus a running balance per user.

    Operations:
    - Credit (referral rewards, later redemptions as negative amounts)
    - Balance, history and referral statistics
    - Balance drift check for operators
    """

    def __init__(self, database: Database | None = None, logger=None):
        """Initialize reward ledger.

        Args:
            database: Database to use (defaults to the global instance)
            logger: Bound logger (defaults to this module's logger)
        """
        self.db = database or db
        self.logger = logger or get_logger(__name__)

    def credit(
        self,
        user_id: str,
        amount: int,
        type: RewardType,
        referral_id: str | None = None,
        description: str | None = None,
        session: Session | None = None,
    ) -> RewardTransaction:
        """Move `amount` into a user's reward balance.

        The balance increment and the transaction row are written in the same
        database transaction: either both persist or neither does. The
        increment is a single SQL expression so concurrent credits for the
        same user cannot lose updates.

        Args:
            user_id: User ID
            amount: Signed amount in currency units
            type: Transaction type
            referral_id: Referral that caused the credit, if any
            description: Optional description
            session: Optional session to join (e.g. the attribution transaction)

        Returns:
            The appended transaction
        """
        with self.db.scope(session) as s:
            insert_ignore(s, UserReward, {
                "id": generate_id("reward"),
                "user_id": user_id,
                "balance": 0,
            })

            s.execute(
                update(UserReward)
                .where(UserReward.user_id == user_id)
                .values(balance=UserReward.balance + amount, updated_at=utcnow())
            )

            transaction = RewardTransaction(
                id=generate_id("rewardtx"),
                user_id=user_id,
                amount=amount,
                type=type,
                referral_id=referral_id,
                description=description,
            )
            s.add(transaction)
            s.flush()

        self.logger.info(
            "reward_credited",
            user_id=user_id,
            amount=amount,
            type=type.value,
            referral_id=referral_id,
        )
        return transaction

    def get_balance(self, user_id: str) -> int:
        """Current reward balance; 0 when the user has never been credited."""
        with self.db.session() as s:
            balance = s.scalar(
                select(UserReward.balance).where(UserReward.user_id == user_id)
            )
            return balance or 0

    def get_stats(self, user_id: str) -> ReferralStats:
        """Get referral statistics for a user.

        Args:
            user_id: User ID

        Returns:
            Level-1/level-2 referral counts and total positive rewards earned
            (not the balance, which drops once redemptions exist)
        """
        with self.db.session() as s:
            level1_count = s.scalar(
                select(func.count(Referral.id)).where(Referral.referrer_level1_id == user_id)
            ) or 0
            level2_count = s.scalar(
                select(func.count(Referral.id)).where(Referral.referrer_level2_id == user_id)
            ) or 0
            earned = s.scalar(
                select(func.coalesce(func.sum(RewardTransaction.amount), 0)).where(
                    RewardTransaction.user_id == user_id,
                    RewardTransaction.amount > 0,
                )
            ) or 0

        return ReferralStats(
            total_referrals=level1_count + level2_count,
            level1_count=level1_count,
            level2_count=level2_count,
            total_rewards_earned=int(earned),
        )

    def get_history(self, user_id: str, limit: int = 50, offset: int = 0) -> list[RewardTransaction]:
        """Get user's reward transactions, newest first."""
        with self.db.session() as s:
            return list(s.scalars(
                select(RewardTransaction)
                .where(RewardTransaction.user_id == user_id)
                .order_by(RewardTransaction.created_at.desc(), RewardTransaction.id.desc())
                .offset(offset)
                .limit(limit)
            ))

    def verify_balances(self) -> list[BalanceDrift]:
        """Compare every materialized balance with its transaction sum."""
        totals = (
            select(
                RewardTransaction.user_id.label("user_id"),
                func.sum(RewardTransaction.amount).label("total"),
            )
            .group_by(RewardTransaction.user_id)
            .subquery()
        )

        with self.db.session() as s:
            rows = s.execute(
                select(UserReward.user_id, UserReward.balance, func.coalesce(totals.c.total, 0))
                .outerjoin(totals, totals.c.user_id == UserReward.user_id)
            ).all()

        drift = [
            BalanceDrift(user_id=user_id, balance=balance, transactions_total=int(total))
            for user_id, balance, total in rows
            if balance != int(total)
        ]
        if drift:
            self.logger.error("reward_balance_drift", users=len(drift))
        return drift
