"""Tests for the Flip bill client and callback helpers."""

import base64
from datetime import datetime, timezone
from urllib.parse import parse_qs

import httpx
import pytest

from naikkelas.errors import AuthError, ExternalProviderError, ProviderNotConfiguredError
from naikkelas.payments.flip import (
    FlipCallbackPayload,
    FlipClient,
    format_expired_date,
    validate_callback_token,
)


def _client(handler, secret_key="flip-secret"):
    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return FlipClient(secret_key=secret_key, base_url="https://flip.test/v2", http_client=http_client)


def test_create_bill_sends_form_with_basic_auth():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"link_id": 4242, "link_url": "flip.id/pwf/abc", "status": "ACTIVE"})

    bill = _client(handler).create_bill(
        title="Naikkelas Credit Topup - Basic (25000 credits)",
        amount=25000,
        sender_name="Budi",
        sender_email="budi@example.com",
        redirect_url="http://localhost:3000?topup=success",
        expired_date="2026-10-20 10:00",
    )

    assert bill.link_id == "4242"
    assert bill.link_url == "https://flip.id/pwf/abc"
    assert seen["url"] == "https://flip.test/v2/pwf/bill"
    assert seen["auth"] == "Basic " + base64.b64encode(b"flip-secret:").decode()
    form = seen["form"]
    assert form["amount"] == ["25000"]
    assert form["type"] == ["SINGLE"]
    assert form["step"] == ["2"]
    assert form["expired_date"] == ["2026-10-20 10:00"]
    assert form["sender_email"] == ["budi@example.com"]


def test_create_bill_keeps_https_link():
    def handler(request):
        return httpx.Response(200, json={"link_id": 1, "link_url": "https://flip.id/pwf/x"})

    bill = _client(handler).create_bill("t", 10000, "n", "e@example.com", "http://x")

    assert bill.link_url == "https://flip.id/pwf/x"


def test_create_bill_upstream_error():
    def handler(request):
        return httpx.Response(422, json={"errors": [{"message": "invalid amount"}]})

    with pytest.raises(ExternalProviderError) as exc_info:
        _client(handler).create_bill("t", 1, "n", "e@example.com", "http://x")

    assert exc_info.value.upstream_status == 422
    assert exc_info.value.provider == "flip"


def test_create_bill_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExternalProviderError):
        _client(handler).create_bill("t", 1, "n", "e@example.com", "http://x")


def test_create_bill_requires_secret_key(monkeypatch):
    from naikkelas.settings import settings

    monkeypatch.setattr(settings, "flip_secret_key", None)
    client = FlipClient(base_url="https://flip.test/v2")

    with pytest.raises(ProviderNotConfiguredError):
        client.create_bill("t", 1, "n", "e@example.com", "http://x")


def test_format_expired_date():
    now = datetime(2026, 1, 31, 23, 30, tzinfo=timezone.utc)

    assert format_expired_date(24, now=now) == "2026-02-01 23:30"


def test_validate_callback_token():
    validate_callback_token("$2y$10$abc", expected="$2y$10$abc")

    with pytest.raises(AuthError):
        validate_callback_token("$2y$10$abd", expected="$2y$10$abc")
    with pytest.raises(AuthError):
        validate_callback_token(None, expected="$2y$10$abc")


def test_escaped_dollar_in_configured_token():
    from naikkelas.settings import Settings

    configured = Settings(flip_validation_token="\\$2y\\$10\\$abc")

    assert configured.flip_validation_token == "$2y$10$abc"


def test_callback_payload_accepts_numeric_bill_id():
    payload = FlipCallbackPayload.model_validate(
        {"id": "FT1", "bill_link_id": 4242, "status": "SUCCESSFUL", "amount": 25000, "sender_bank": "bca"}
    )

    assert payload.bill_link_id == "4242"
    assert payload.amount == 25000
