"""Referral system database models."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String

from naikkelas.storage.models import Base, utcnow


class ReferralCode(Base):
    """Unique referral code for each user.

    Each user gets at most one code, created lazily and never changed.
    """
    __tablename__ = "referral_codes"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, unique=True)
    code = Column(String(20), unique=True, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<ReferralCode(code={self.code}, user={self.user_id})>"


class Referral(Base):
    """Attribution of one referred user to its referrer chain.

    One row per referred user, written once. Level 2 is the level-1
    referrer's own level-1 referrer.
    """
    __tablename__ = "referrals"
    __table_args__ = (
        CheckConstraint("referrer_level1_id <> referred_user_id", name="ck_referrals_no_self_referral"),
    )

    id = Column(String(64), primary_key=True)
    referred_user_id = Column(String(64), ForeignKey("users.id"), nullable=False, unique=True)
    referrer_level1_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    referrer_level2_id = Column(String(64), ForeignKey("users.id"), nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return (
            f"<Referral(referred={self.referred_user_id}, "
            f"l1={self.referrer_level1_id}, l2={self.referrer_level2_id})>"
        )
