"""Top-up API v1 endpoints, including the Flip payment callback."""

from datetime import datetime

from fastapi import APIRouter, Depends, Form, Request
from pydantic import BaseModel, ConfigDict

from naikkelas.api.deps import get_topup_service, get_user_service
from naikkelas.api.rate_limit import CREATE_TOPUP_LIMIT, limiter
from naikkelas.auth.middleware import require_auth
from naikkelas.auth.models import Identity
from naikkelas.auth.users import UserService
from naikkelas.payments.models import TopupStatus
from naikkelas.payments.packages import list_packages
from naikkelas.payments.topup import TopupService

router = APIRouter(prefix="/topup", tags=["topup"])


# ==================== MODELS ====================


class PackageResponse(BaseModel):
    id: str
    name: str
    credits: int
    amount: int


class CreateTopupRequest(BaseModel):
    package_id: str | None = None


class CreateTopupResponse(BaseModel):
    transaction_id: str
    bill_link: str
    bill_id: str
    amount: int
    credits: int


class TopupTransactionResponse(BaseModel):
    id: str
    amount: int
    credits: int
    status: TopupStatus
    provider_bill_link: str | None
    paid_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== ENDPOINTS ====================


@router.get("/packages", response_model=list[PackageResponse])
def get_packages():
    """List credit packages."""
    return [PackageResponse(id=p.id, name=p.name, credits=p.credits, amount=p.amount) for p in list_packages()]


@router.post("/create", response_model=CreateTopupResponse)
@limiter.limit(CREATE_TOPUP_LIMIT)
def create_topup(
    request: Request,
    body: CreateTopupRequest,
    identity: Identity = Depends(require_auth),
    topups: TopupService = Depends(get_topup_service),
    users: UserService = Depends(get_user_service),
):
    """Create a payment link for a credit package."""
    user = users.find_user(identity.user_id)
    name = (user.name if user else None) or identity.name

    created = topups.create_topup(identity.user_id, identity.email, name, body.package_id)
    return CreateTopupResponse(
        transaction_id=created.transaction_id,
        bill_link=created.bill_link,
        bill_id=created.bill_id,
        amount=created.amount,
        credits=created.credits,
    )


@router.get("/history", response_model=list[TopupTransactionResponse])
def get_topup_history(
    identity: Identity = Depends(require_auth),
    topups: TopupService = Depends(get_topup_service),
):
    """Get current user's top-ups, newest first."""
    return [TopupTransactionResponse.model_validate(t) for t in topups.get_history(identity.user_id)]


@router.post("/callback")
def flip_callback(
    token: str | None = Form(default=None),
    data: str | None = Form(default=None),
    topups: TopupService = Depends(get_topup_service),
):
    """Handle Flip payment callbacks.

    Flip posts form fields ``token`` and ``data`` (JSON) and retries until it
    gets a 2xx, so repeated deliveries answer success without side effects.
    """
    result = topups.handle_callback(token, data)

    if result.replay:
        return {"success": True, "message": "Already processed", "status": result.status.value}
    return {"success": True, "status": result.status.value}
