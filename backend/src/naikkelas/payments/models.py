"""Top-up transaction model."""

from enum import Enum

from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String

from naikkelas.storage.models import Base, utcnow


class TopupStatus(str, Enum):
    """Top-up payment status. Everything except PENDING is terminal."""
    PENDING = "PENDING"
    SUCCESSFUL = "SUCCESSFUL"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not TopupStatus.PENDING


class TopupTransaction(Base):
    """One payment attempt to buy credits through a provider bill."""
    __tablename__ = "topup_transactions"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)

    # Provider bill
    provider_bill_id = Column(String(64), unique=True, nullable=False, index=True)
    provider_bill_link = Column(String(500), nullable=True)

    amount = Column(Integer, nullable=False)  # IDR
    credits = Column(Integer, nullable=False)
    status = Column(
        SQLEnum(TopupStatus, name="topup_status"),
        nullable=False,
        default=TopupStatus.PENDING,
    )
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<TopupTransaction(id={self.id}, bill={self.provider_bill_id}, status={self.status})>"
