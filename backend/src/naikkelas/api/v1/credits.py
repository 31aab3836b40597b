"""Credits API v1 endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from naikkelas.api.deps import get_meter
from naikkelas.auth.middleware import require_auth
from naikkelas.auth.models import Identity
from naikkelas.credits.meter import CreditMeter

router = APIRouter(prefix="/credits", tags=["credits"])


class CreditsResponse(BaseModel):
    user_id: str
    credits: int


@router.get("", response_model=CreditsResponse)
def get_credits(
    identity: Identity = Depends(require_auth),
    meter: CreditMeter = Depends(get_meter),
):
    """Get current user's token credits, granting the starting allotment on first call."""
    return CreditsResponse(user_id=identity.user_id, credits=meter.get_or_create_balance(identity.user_id))
