"""Referral API v1 endpoints."""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from naikkelas.api.deps import get_ledger, get_registry
from naikkelas.api.rate_limit import VALIDATE_CODE_LIMIT, limiter
from naikkelas.auth.middleware import require_auth
from naikkelas.auth.models import Identity
from naikkelas.referral.registry import ReferralCodeRegistry
from naikkelas.rewards.ledger import RewardLedger
from naikkelas.settings import settings

router = APIRouter(prefix="/referral", tags=["referral"])


# ==================== MODELS ====================


class ReferralCodeResponse(BaseModel):
    """Response with user's referral code."""
    code: str
    referral_link: str


class ReferralStatsResponse(BaseModel):
    """Response with referral statistics."""
    total_referrals: int
    level1_count: int
    level2_count: int
    total_rewards_earned: int


class ValidateCodeRequest(BaseModel):
    """Request to validate a referral code."""
    code: str


class ValidateCodeResponse(BaseModel):
    """Response from code validation."""
    valid: bool
    referrer_name: str | None = None


# ==================== ENDPOINTS ====================


@router.get("/code", response_model=ReferralCodeResponse)
def get_referral_code(
    identity: Identity = Depends(require_auth),
    registry: ReferralCodeRegistry = Depends(get_registry),
):
    """Get current user's referral code.

    Creates a new code if user doesn't have one.
    """
    code = registry.get_or_create_code(identity.user_id)
    return ReferralCodeResponse(code=code, referral_link=f"{settings.site_url}?ref={code}")


@router.get("/stats", response_model=ReferralStatsResponse)
def get_referral_stats(
    identity: Identity = Depends(require_auth),
    ledger: RewardLedger = Depends(get_ledger),
):
    """Get referral statistics for current user.

    Includes:
    - Direct (level 1) and indirect (level 2) referral counts
    - Total rewards earned from referrals
    """
    stats = ledger.get_stats(identity.user_id)
    return ReferralStatsResponse(
        total_referrals=stats.total_referrals,
        level1_count=stats.level1_count,
        level2_count=stats.level2_count,
        total_rewards_earned=stats.total_rewards_earned,
    )


@router.post("/validate", response_model=ValidateCodeResponse)
@limiter.limit(VALIDATE_CODE_LIMIT)
def validate_referral_code(
    request: Request,
    body: ValidateCodeRequest,
    registry: ReferralCodeRegistry = Depends(get_registry),
):
    """Validate a referral code.

    Used during sign-up to check a code and show the referrer's first name.
    """
    referrer = registry.describe_referrer(body.code)
    if referrer is None:
        return ValidateCodeResponse(valid=False)

    return ValidateCodeResponse(valid=True, referrer_name=referrer.first_name)
