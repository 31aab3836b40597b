"""User accounts mirrored from the identity provider."""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Column, DateTime, String

from naikkelas.storage.models import Base, utcnow


class User(Base):
    """Local mirror of an identity-provider user.

    The id is the provider's subject and never changes. Created on the first
    session sync, never deleted.
    """
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)  # Set during onboarding

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as reported by the identity provider."""
    user_id: str
    email: str
    name: str | None = None


# Pydantic models for API


class UserResponse(BaseModel):
    """User data for API responses."""
    id: str
    email: str
    name: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SessionSyncRequest(BaseModel):
    """First sign-in / session sync request."""
    referral_code: str | None = Field(default=None, max_length=64)


class SessionSyncResponse(BaseModel):
    """Result of a session sync."""
    user: UserResponse
    created: bool
    credits: int
    referral_code: str


class UpdateProfileRequest(BaseModel):
    """Onboarding profile update."""
    name: str = Field(..., max_length=255)
