"""Tests for two-level referral attribution."""

import pytest
from sqlalchemy import func, select

from naikkelas.referral.models import Referral
from naikkelas.referral.service import REWARD_LEVEL_1, REWARD_LEVEL_2, AttributionOutcome, ReferralService
from naikkelas.rewards.models import RewardTransaction, RewardType


def _referral(database, user_id):
    with database.session() as s:
        return s.scalar(select(Referral).where(Referral.referred_user_id == user_id))


def test_reward_amounts():
    assert REWARD_LEVEL_1 == 75000
    assert REWARD_LEVEL_2 == 25000


def test_direct_referral_pays_level_one(database, make_user, registry, ledger, referral_service):
    make_user("u1")
    make_user("u2")
    code = registry.get_or_create_code("u1")

    result = referral_service.attribute("u2", code)

    assert result.outcome is AttributionOutcome.ATTRIBUTED
    assert result.referrer_level1_id == "u1"
    assert result.referrer_level2_id is None

    referral = _referral(database, "u2")
    assert referral.referrer_level1_id == "u1"
    assert referral.referrer_level2_id is None

    assert ledger.get_balance("u1") == REWARD_LEVEL_1
    assert ledger.get_balance("u2") == 0
    assert registry.get_or_create_code("u2") != code


def test_second_level_referral_pays_both(database, make_user, registry, ledger, referral_service):
    for user_id in ("u1", "u2", "u3"):
        make_user(user_id)
    referral_service.attribute("u2", registry.get_or_create_code("u1"))

    result = referral_service.attribute("u3", registry.get_or_create_code("u2"))

    assert result.attributed
    referral = _referral(database, "u3")
    assert referral.referrer_level1_id == "u2"
    assert referral.referrer_level2_id == "u1"

    assert ledger.get_balance("u2") == REWARD_LEVEL_1
    assert ledger.get_balance("u1") == REWARD_LEVEL_1 + REWARD_LEVEL_2

    with database.session() as s:
        types = s.scalars(
            select(RewardTransaction.type).where(RewardTransaction.referral_id == referral.id)
        ).all()
    assert sorted(t.value for t in types) == [RewardType.REFERRAL_LEVEL1.value, RewardType.REFERRAL_LEVEL2.value]


def test_chain_stops_at_two_levels(make_user, registry, ledger, referral_service):
    for user_id in ("u1", "u2", "u3", "u4"):
        make_user(user_id)
    referral_service.attribute("u2", registry.get_or_create_code("u1"))
    referral_service.attribute("u3", registry.get_or_create_code("u2"))

    referral_service.attribute("u4", registry.get_or_create_code("u3"))

    assert ledger.get_balance("u3") == REWARD_LEVEL_1
    assert ledger.get_balance("u2") == REWARD_LEVEL_1 + REWARD_LEVEL_2
    # u1 is three levels up from u4 and earns nothing for it
    assert ledger.get_balance("u1") == REWARD_LEVEL_1 + REWARD_LEVEL_2


def test_invalid_code_is_a_no_op(database, make_user, ledger, referral_service):
    make_user("u2")

    result = referral_service.attribute("u2", "REF_doesnot1")

    assert result.outcome is AttributionOutcome.INVALID_CODE
    assert _referral(database, "u2") is None


def test_self_referral_rejected(database, make_user, registry, ledger, referral_service):
    make_user("u1")
    code = registry.get_or_create_code("u1")

    result = referral_service.attribute("u1", code)

    assert result.outcome is AttributionOutcome.SELF_REFERRAL
    assert _referral(database, "u1") is None
    assert ledger.get_balance("u1") == 0


def test_attribution_happens_once(database, make_user, registry, ledger, referral_service):
    for user_id in ("u1", "u2", "u3"):
        make_user(user_id)
    referral_service.attribute("u3", registry.get_or_create_code("u1"))

    result = referral_service.attribute("u3", registry.get_or_create_code("u2"))

    assert result.outcome is AttributionOutcome.ALREADY_ATTRIBUTED
    assert _referral(database, "u3").referrer_level1_id == "u1"
    assert ledger.get_balance("u1") == REWARD_LEVEL_1
    assert ledger.get_balance("u2") == 0

    with database.session() as s:
        assert s.scalar(select(func.count(Referral.id))) == 1


def test_get_referrer(make_user, registry, referral_service):
    make_user("u1")
    make_user("u2")
    referral_service.attribute("u2", registry.get_or_create_code("u1"))

    assert referral_service.get_referrer("u2") == "u1"
    assert referral_service.get_referrer("u1") is None


def test_failed_credit_rolls_back_referral(database, make_user, registry, referral_service, monkeypatch):
    make_user("u1")
    make_user("u2")
    code = registry.get_or_create_code("u1")

    def broken_credit(*args, **kwargs):
        raise RuntimeError("ledger unavailable")

    monkeypatch.setattr(referral_service.ledger, "credit", broken_credit)

    with pytest.raises(RuntimeError):
        referral_service.attribute("u2", code)

    assert _referral(database, "u2") is None


def test_concurrent_attribution_pays_nothing_twice(database, make_user, registry, ledger, referral_service, monkeypatch):
    for user_id in ("u1", "u2", "u3"):
        make_user(user_id)
    code = registry.get_or_create_code("u1")
    original = ReferralService._referral_for

    def referral_for(session, user_id):
        if user_id == "u3" and _referral_count(session) == 0:
            # A parallel signup for u3 attributes it to u2 after our existence check
            session.add(Referral(id="referral_winner", referred_user_id="u3", referrer_level1_id="u2"))
            session.flush()
            return None
        return original(session, user_id)

    monkeypatch.setattr(ReferralService, "_referral_for", staticmethod(referral_for))

    result = referral_service.attribute("u3", code)

    assert result.outcome is AttributionOutcome.ALREADY_ATTRIBUTED
    assert _referral(database, "u3").referrer_level1_id == "u2"
    assert ledger.get_balance("u1") == 0

    with database.session() as s:
        assert _referral_count(s) == 1
        assert s.scalar(select(func.count(RewardTransaction.id))) == 0


def _referral_count(session):
    return session.scalar(select(func.count(Referral.id)))
