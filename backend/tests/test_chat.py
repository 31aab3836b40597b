"""Tests for credit-gated chat."""

import httpx
import pytest
from sqlalchemy import select

from naikkelas.chat.models import Message
from naikkelas.chat.service import ChatService
from naikkelas.errors import ExternalProviderError, InsufficientBalanceError, NotFoundError, ValidationError
from naikkelas.generation.provider import GeminiProvider, HistoryMessage


@pytest.fixture
def chats(database, meter, provider):
    return ChatService(provider, database, meter=meter)


def test_reply_is_debited_by_usage(make_user, meter, provider, chats):
    make_user("u1")

    reply = chats.send_message("u1", "Halo!")

    assert reply.text == provider.text
    assert reply.tokens_used == 120
    assert meter.get_or_create_balance("u1") == 3000 - 120


def test_below_minimum_never_reaches_provider(make_user, meter, provider, chats):
    make_user("u1")
    meter.debit("u1", 2500)

    with pytest.raises(InsufficientBalanceError):
        chats.send_message("u1", "Halo!")

    assert provider.calls == []
    assert meter.get_or_create_balance("u1") == 500


def test_failed_generation_is_not_debited(make_user, meter, provider, chats):
    make_user("u1")
    provider.fail = True

    with pytest.raises(ExternalProviderError):
        chats.send_message("u1", "Halo!")

    assert meter.get_or_create_balance("u1") == 3000


def test_zero_usage_is_free(make_user, meter, provider, chats):
    make_user("u1")
    provider.tokens_used = 0

    chats.send_message("u1", "Halo!")

    assert meter.get_or_create_balance("u1") == 3000


def test_continuing_chat_sends_history(database, make_user, provider, chats):
    make_user("u1")
    first = chats.send_message("u1", "First question")

    chats.send_message("u1", "Second question", chat_id=first.chat_id)

    prompt, history = provider.calls[-1]
    assert prompt == "Second question"
    assert [m.role for m in history] == ["user", "ai"]
    with database.session() as s:
        count = len(s.scalars(select(Message).where(Message.chat_id == first.chat_id)).all())
    assert count == 4


def test_unknown_chat(make_user, chats):
    make_user("u1")

    with pytest.raises(NotFoundError):
        chats.send_message("u1", "Halo!", chat_id="chat_missing")


def test_other_users_chat_is_not_found(make_user, chats):
    make_user("u1")
    make_user("u2")
    reply = chats.send_message("u1", "Private")

    with pytest.raises(NotFoundError):
        chats.send_message("u2", "Peek", chat_id=reply.chat_id)


def test_blank_message_rejected(chats):
    with pytest.raises(ValidationError):
        chats.send_message("u1", "   ")


def test_gemini_provider_reads_usage():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.read()
        return httpx.Response(200, json={
            "candidates": [{"content": {"parts": [{"text": "Jawaban"}], "role": "model"}}],
            "usageMetadata": {"promptTokenCount": 40, "candidatesTokenCount": 17},
        })

    provider = GeminiProvider(
        api_key="key",
        model="gemini-test",
        base_url="https://gemini.test/v1beta",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )

    result = provider.generate("Halo", [HistoryMessage(role="ai", content="Hi")])

    assert result.text == "Jawaban"
    assert result.tokens_used == 17
    assert seen["url"].startswith("https://gemini.test/v1beta/models/gemini-test:generateContent")
    assert b'"role":"model"' in seen["body"].replace(b" ", b"")


def test_gemini_provider_http_error():
    provider = GeminiProvider(
        api_key="key",
        base_url="https://gemini.test/v1beta",
        http_client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(503, text="overloaded"))),
    )

    with pytest.raises(ExternalProviderError) as exc_info:
        provider.generate("Halo", [])

    assert exc_info.value.upstream_status == 503


def test_gemini_provider_non_json_response():
    provider = GeminiProvider(
        api_key="key",
        base_url="https://gemini.test/v1beta",
        http_client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>"))),
    )

    with pytest.raises(ExternalProviderError):
        provider.generate("Halo", [])
