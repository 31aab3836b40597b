"""Rewards API v1 endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from naikkelas.api.deps import get_ledger
from naikkelas.auth.middleware import require_auth
from naikkelas.auth.models import Identity
from naikkelas.rewards.ledger import RewardLedger
from naikkelas.rewards.models import RewardType

router = APIRouter(prefix="/rewards", tags=["rewards"])


class RewardBalanceResponse(BaseModel):
    user_id: str
    balance: int


class RewardTransactionResponse(BaseModel):
    id: str
    amount: int
    type: RewardType
    referral_id: str | None
    description: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


@router.get("", response_model=RewardBalanceResponse)
def get_rewards(
    identity: Identity = Depends(require_auth),
    ledger: RewardLedger = Depends(get_ledger),
):
    """Get current user's reward balance (IDR)."""
    return RewardBalanceResponse(user_id=identity.user_id, balance=ledger.get_balance(identity.user_id))


@router.get("/history", response_model=list[RewardTransactionResponse])
def get_reward_history(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    identity: Identity = Depends(require_auth),
    ledger: RewardLedger = Depends(get_ledger),
):
    """Get current user's reward transactions, newest first."""
    return [
        RewardTransactionResponse.model_validate(t)
        for t in ledger.get_history(identity.user_id, limit=limit, offset=offset)
    ]
