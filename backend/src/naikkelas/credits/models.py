"""Token credit balance model."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from naikkelas.storage.models import Base, utcnow


class UserCredits(Base):
    """Spendable token balance, separate from the reward balance.

    Debited per AI interaction, credited by successful top-ups. May go
    negative when actual usage exceeds the remaining balance.
    """
    __tablename__ = "user_credits"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, unique=True)
    credits = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<UserCredits(user={self.user_id}, credits={self.credits})>"
