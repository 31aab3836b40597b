"""API tests through FastAPI's TestClient with fake providers."""

import json

from conftest import bearer


def _sign_in(client, user_id, referral_code=None, name=None):
    response = client.post(
        "/api/v1/auth/session",
        json={"referral_code": referral_code},
        headers=bearer(user_id, name=name),
    )
    assert response.status_code == 200
    return response.json()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "Cache-Control" not in response.headers


def test_api_responses_are_not_cached(client):
    response = client.get("/api/v1/topup/packages")

    assert response.headers["Cache-Control"] == "no-store"
    assert response.headers["Content-Security-Policy"].startswith("default-src 'none'")


def test_requires_bearer_token(client):
    response = client.get("/api/v1/credits")

    assert response.status_code == 401
    assert response.json() == {"detail": "Not authenticated"}


def test_rejects_token_with_wrong_signature(client):
    from jose import jwt

    token = jwt.encode({"sub": "u1", "email": "u1@example.com"}, "not-the-secret", algorithm="HS256")

    response = client.get("/api/v1/credits", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_session_sync_and_profile(client):
    body = _sign_in(client, "u1", name="Rina Wijaya")

    assert body["created"] is True
    assert body["credits"] == 3000
    assert body["user"]["name"] == "Rina Wijaya"
    assert body["referral_code"].startswith("REF_")

    again = _sign_in(client, "u1")
    assert again["created"] is False

    response = client.post("/api/v1/auth/profile", json={"name": "Rina"}, headers=bearer("u1"))
    assert response.status_code == 200
    assert client.get("/api/v1/auth/me", headers=bearer("u1")).json()["name"] == "Rina"


def test_blank_profile_name(client):
    _sign_in(client, "u1")

    response = client.post("/api/v1/auth/profile", json={"name": "  "}, headers=bearer("u1"))

    assert response.status_code == 400


def test_referral_flow(client):
    u1 = _sign_in(client, "u1", name="Agus Santoso")

    code_response = client.get("/api/v1/referral/code", headers=bearer("u1")).json()
    assert code_response["code"] == u1["referral_code"]
    assert code_response["referral_link"].endswith(f"?ref={u1['referral_code']}")

    validate = client.post("/api/v1/referral/validate", json={"code": u1["referral_code"]})
    assert validate.json() == {"valid": True, "referrer_name": "Agus"}

    u2 = _sign_in(client, "u2", referral_code=u1["referral_code"])
    _sign_in(client, "u3", referral_code=u2["referral_code"])

    stats = client.get("/api/v1/referral/stats", headers=bearer("u1")).json()
    assert stats == {
        "total_referrals": 2,
        "level1_count": 1,
        "level2_count": 1,
        "total_rewards_earned": 100000,
    }

    rewards = client.get("/api/v1/rewards", headers=bearer("u1")).json()
    assert rewards == {"user_id": "u1", "balance": 100000}

    history = client.get("/api/v1/rewards/history", headers=bearer("u1")).json()
    assert sorted(t["type"] for t in history) == ["REFERRAL_LEVEL1", "REFERRAL_LEVEL2"]


def test_validate_unknown_code(client):
    response = client.post("/api/v1/referral/validate", json={"code": "REF_nothing0"})

    assert response.json() == {"valid": False, "referrer_name": None}


def test_self_referral_at_sign_up_earns_nothing(client):
    # The code is created for u1 before u1's own first session sync
    code = client.get("/api/v1/referral/code", headers=bearer("u1")).json()["code"]

    _sign_in(client, "u1", referral_code=code)

    assert client.get("/api/v1/rewards", headers=bearer("u1")).json()["balance"] == 0


def test_packages_are_public(client):
    response = client.get("/api/v1/topup/packages")

    assert [p["id"] for p in response.json()] == ["starter", "basic", "pro", "premium"]
    assert response.json()[1] == {"id": "basic", "name": "Basic", "credits": 25000, "amount": 25000}


def test_topup_and_callback(client, flip, callback_token):
    _sign_in(client, "u1", name="Wayan")

    created = client.post("/api/v1/topup/create", json={"package_id": "basic"}, headers=bearer("u1"))
    assert created.status_code == 200
    bill_id = created.json()["bill_id"]
    assert flip.bills[0]["sender_name"] == "Wayan"

    data = json.dumps({"bill_link_id": int(bill_id), "status": "SUCCESSFUL", "amount": 25000})
    for _ in range(2):
        callback = client.post("/api/v1/topup/callback", data={"token": callback_token, "data": data})
        assert callback.status_code == 200
        assert callback.json()["status"] == "SUCCESSFUL"

    assert client.get("/api/v1/credits", headers=bearer("u1")).json()["credits"] == 3000 + 25000

    history = client.get("/api/v1/topup/history", headers=bearer("u1")).json()
    assert history[0]["status"] == "SUCCESSFUL"
    assert history[0]["paid_at"] is not None


def test_topup_requires_package(client):
    _sign_in(client, "u1")

    response = client.post("/api/v1/topup/create", json={}, headers=bearer("u1"))

    assert response.status_code == 400
    assert response.json() == {"detail": "Package ID is required"}


def test_callback_with_bad_token(client, callback_token):
    response = client.post("/api/v1/topup/callback", data={"token": "nope", "data": "{}"})

    assert response.status_code == 401


def test_callback_for_unknown_bill(client, callback_token):
    data = json.dumps({"bill_link_id": 1, "status": "SUCCESSFUL", "amount": 1})

    response = client.post("/api/v1/topup/callback", data={"token": callback_token, "data": data})

    assert response.status_code == 404


def test_chat_gate(client, provider, meter):
    _sign_in(client, "u1")
    meter.debit("u1", 2500)

    response = client.post("/api/v1/chat", json={"message": "Halo"}, headers=bearer("u1"))

    assert response.status_code == 403
    assert "1,000" in response.json()["detail"]
    assert provider.calls == []


def test_chat_reply(client, provider):
    _sign_in(client, "u1")

    response = client.post("/api/v1/chat", json={"message": "Halo"}, headers=bearer("u1"))

    assert response.status_code == 200
    assert response.json()["tokens_used"] == provider.tokens_used
    assert client.get("/api/v1/credits", headers=bearer("u1")).json()["credits"] == 3000 - provider.tokens_used


def test_chat_unknown_chat(client):
    _sign_in(client, "u1")

    response = client.post(
        "/api/v1/chat",
        json={"message": "Halo", "chat_id": "chat_missing"},
        headers=bearer("u1"),
    )

    assert response.status_code == 404
