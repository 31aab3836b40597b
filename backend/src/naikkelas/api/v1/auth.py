"""Auth API v1 endpoints."""

from fastapi import APIRouter, Depends

from naikkelas.api.deps import get_signup_service, get_user_service
from naikkelas.auth.middleware import require_auth
from naikkelas.auth.models import (
    Identity,
    SessionSyncRequest,
    SessionSyncResponse,
    UpdateProfileRequest,
    UserResponse,
)
from naikkelas.auth.users import SignupService, UserService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/session", response_model=SessionSyncResponse)
def sync_session(
    body: SessionSyncRequest | None = None,
    identity: Identity = Depends(require_auth),
    signup: SignupService = Depends(get_signup_service),
):
    """Sync the signed-in user.

    Called by the frontend after every sign-in. The first call for a user
    grants the starting credits and applies the referral code it carries.
    """
    result = signup.complete_signup(identity, body.referral_code if body else None)

    return SessionSyncResponse(
        user=UserResponse.model_validate(result.user),
        created=result.created,
        credits=result.credits,
        referral_code=result.referral_code,
    )


@router.get("/me", response_model=UserResponse)
def get_me(
    identity: Identity = Depends(require_auth),
    users: UserService = Depends(get_user_service),
):
    """Get current user profile."""
    return UserResponse.model_validate(users.get_user(identity.user_id))


@router.post("/profile", response_model=UserResponse)
def update_profile(
    body: UpdateProfileRequest,
    identity: Identity = Depends(require_auth),
    users: UserService = Depends(get_user_service),
):
    """Set display name (onboarding)."""
    return UserResponse.model_validate(users.update_name(identity.user_id, body.name))
