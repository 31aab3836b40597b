"""Service providers for route dependencies.

Routes never build services themselves; tests swap these out through
``app.dependency_overrides``.
"""

from fastapi import Depends

from naikkelas.auth.users import SignupService, UserService
from naikkelas.chat.service import ChatService
from naikkelas.credits.meter import CreditMeter
from naikkelas.generation.provider import GeminiProvider, GenerationProvider
from naikkelas.payments.flip import FlipClient
from naikkelas.payments.topup import TopupService
from naikkelas.referral.registry import ReferralCodeRegistry
from naikkelas.referral.service import ReferralService
from naikkelas.rewards.ledger import RewardLedger
from naikkelas.storage.db import Database, db


def get_database() -> Database:
    return db


def get_flip_client() -> FlipClient:
    return FlipClient()


def get_generation_provider() -> GenerationProvider:
    return GeminiProvider()


def get_registry(database: Database = Depends(get_database)) -> ReferralCodeRegistry:
    return ReferralCodeRegistry(database)


def get_ledger(database: Database = Depends(get_database)) -> RewardLedger:
    return RewardLedger(database)


def get_meter(database: Database = Depends(get_database)) -> CreditMeter:
    return CreditMeter(database)


def get_user_service(database: Database = Depends(get_database)) -> UserService:
    return UserService(database)


def get_signup_service(
    database: Database = Depends(get_database),
    registry: ReferralCodeRegistry = Depends(get_registry),
    ledger: RewardLedger = Depends(get_ledger),
    meter: CreditMeter = Depends(get_meter),
) -> SignupService:
    return SignupService(
        database,
        meter=meter,
        registry=registry,
        referrals=ReferralService(database, registry=registry, ledger=ledger),
    )


def get_topup_service(
    database: Database = Depends(get_database),
    flip: FlipClient = Depends(get_flip_client),
    meter: CreditMeter = Depends(get_meter),
) -> TopupService:
    return TopupService(database, flip=flip, meter=meter)


def get_chat_service(
    database: Database = Depends(get_database),
    provider: GenerationProvider = Depends(get_generation_provider),
    meter: CreditMeter = Depends(get_meter),
) -> ChatService:
    return ChatService(provider, database, meter=meter)
