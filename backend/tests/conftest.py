"""Shared fixtures: in-memory database, services and an API client with fakes."""

import itertools

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from naikkelas.api import deps
from naikkelas.api.main import create_app
from naikkelas.auth.models import Identity, User
from naikkelas.auth.tokens import JWT_ALGORITHM
from naikkelas.auth.users import SignupService, UserService
from naikkelas.credits.meter import CreditMeter
from naikkelas.errors import ExternalProviderError
from naikkelas.generation.provider import GenerationResult
from naikkelas.payments.flip import FlipBill
from naikkelas.referral.registry import ReferralCodeRegistry
from naikkelas.referral.service import ReferralService
from naikkelas.rewards.ledger import RewardLedger
from naikkelas.settings import settings
from naikkelas.storage.db import Database

CALLBACK_TOKEN = "$2y$10$test-callback-token"


class FakeFlipClient:
    """Stands in for the Flip bill API."""

    def __init__(self):
        self.bills = []
        self.fail_with = None
        self._ids = itertools.count(1001)

    def create_bill(self, title, amount, sender_name, sender_email, redirect_url, expired_date=None):
        if self.fail_with:
            raise self.fail_with
        link_id = str(next(self._ids))
        self.bills.append({
            "link_id": link_id,
            "title": title,
            "amount": amount,
            "sender_name": sender_name,
            "sender_email": sender_email,
            "redirect_url": redirect_url,
        })
        return FlipBill(link_id=link_id, link_url=f"flip.id/pwf/{link_id}")


class FakeProvider:
    """Generation provider returning canned replies."""

    def __init__(self, text="Hello from the model", tokens_used=120):
        self.text = text
        self.tokens_used = tokens_used
        self.calls = []
        self.fail = False

    def generate(self, prompt, history):
        self.calls.append((prompt, list(history)))
        if self.fail:
            raise ExternalProviderError("Generation failed: 500", provider="fake", upstream_status=500)
        return GenerationResult(text=self.text, tokens_used=self.tokens_used)


@pytest.fixture
def database():
    database = Database("sqlite://", echo=False)
    database.create_tables()
    yield database
    database.engine.dispose()


@pytest.fixture
def make_user(database):
    """Insert a mirrored user directly."""

    def _make_user(user_id, name=None, email=None):
        with database.session() as s:
            s.add(User(id=user_id, email=email or f"{user_id}@example.com", name=name))
        return user_id

    return _make_user


@pytest.fixture
def registry(database):
    return ReferralCodeRegistry(database)


@pytest.fixture
def ledger(database):
    return RewardLedger(database)


@pytest.fixture
def meter(database):
    return CreditMeter(database, starting_credits=3000)


@pytest.fixture
def referral_service(database, registry, ledger):
    return ReferralService(database, registry=registry, ledger=ledger)


@pytest.fixture
def signup_service(database, registry, ledger, meter):
    return SignupService(
        database,
        users=UserService(database),
        meter=meter,
        registry=registry,
        referrals=ReferralService(database, registry=registry, ledger=ledger),
    )


@pytest.fixture
def callback_token(monkeypatch):
    monkeypatch.setattr(settings, "flip_validation_token", CALLBACK_TOKEN)
    return CALLBACK_TOKEN


@pytest.fixture
def flip():
    return FakeFlipClient()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(database, flip, provider):
    app = create_app()
    app.dependency_overrides[deps.get_database] = lambda: database
    app.dependency_overrides[deps.get_flip_client] = lambda: flip
    app.dependency_overrides[deps.get_generation_provider] = lambda: provider
    return TestClient(app)


def bearer(user_id, email=None, name=None):
    """Authorization header carrying a session token for `user_id`."""
    claims = {"sub": user_id, "email": email or f"{user_id}@example.com"}
    if name:
        claims["user_metadata"] = {"name": name}
    token = jwt.encode(claims, settings.jwt_secret_key, algorithm=JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


def identity(user_id, name=None):
    return Identity(user_id=user_id, email=f"{user_id}@example.com", name=name)
