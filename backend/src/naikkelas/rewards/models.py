"""Reward ledger database models."""

from enum import Enum

from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String

from naikkelas.storage.models import Base, utcnow


class RewardType(str, Enum):
    """Reward transaction types."""
    REFERRAL_LEVEL1 = "REFERRAL_LEVEL1"  # Direct inviter
    REFERRAL_LEVEL2 = "REFERRAL_LEVEL2"  # Inviter's inviter
    REDEMPTION = "REDEMPTION"  # Payout, negative amount


class UserReward(Base):
    """Materialized reward balance per user.

    Always equal to the sum of the user's RewardTransaction amounts.
    Denominated in currency units (IDR), not token credits.
    """
    __tablename__ = "user_rewards"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, unique=True)
    balance = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<UserReward(user={self.user_id}, balance={self.balance})>"


class RewardTransaction(Base):
    """Append-only reward transaction."""
    __tablename__ = "reward_transactions"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)

    amount = Column(Integer, nullable=False)  # Positive = credit, Negative = redemption
    type = Column(SQLEnum(RewardType, name="reward_type"), nullable=False)
    referral_id = Column(String(64), ForeignKey("referrals.id"), nullable=True, index=True)
    description = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<RewardTransaction(id={self.id}, user={self.user_id}, amount={self.amount})>"
