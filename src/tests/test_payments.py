from __future__ import annotations

from datetime import timedelta

import pytest
from a2a.types import AgentCapabilities, AgentCard

from credit_payments import (
    AgentMismatchError,
    CreditLedger,
    InsufficientCreditsError,
    InvalidAccessTokenError,
    MissingAccessTokenError,
    PaymentsConfig,
    PaymentsService,
    PlanNotFoundError,
    build_payment_agent_card,
    get_payment_extension,
)
from credit_payments.tokens import create_access_token, decode_access_token, extract_token_from_header


def test_access_token_round_trip(subscriber) -> None:
    access = subscriber.get_agent_access_token("plan-test", "agent-test")
    claims = decode_access_token(access.access_token, "test-secret")

    assert claims.subscriber_id == subscriber.subscriber_id
    assert claims.plan_id == "plan-test"
    assert claims.agent_id == "agent-test"
    assert claims.exp is not None


def test_subscriber_id_does_not_leak_the_api_key(subscriber) -> None:
    assert subscriber.subscriber_id.startswith("sub-")
    assert "subscriber-key" not in subscriber.subscriber_id


@pytest.mark.parametrize("token", ["undefined", "null", "fake.token.here", "not-a-jwt-token"])
def test_garbage_tokens_are_invalid(token: str) -> None:
    with pytest.raises(InvalidAccessTokenError):
        decode_access_token(token, "test-secret")


def test_expired_and_foreign_tokens_are_invalid() -> None:
    expired = create_access_token("sub-1", "plan-test", "agent-test", "test-secret", expires_delta=timedelta(seconds=-5))
    with pytest.raises(InvalidAccessTokenError, match="expired"):
        decode_access_token(expired, "test-secret")

    foreign = create_access_token("sub-1", "plan-test", "agent-test", "other-secret")
    with pytest.raises(InvalidAccessTokenError):
        decode_access_token(foreign, "test-secret")


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc", "abc"),
        ("bearer abc", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_token_from_header(header, expected) -> None:
    assert extract_token_from_header(header) == expected


def test_validate_request_maps_each_failure(payments, subscriber, access_token) -> None:
    with pytest.raises(MissingAccessTokenError) as missing:
        payments.validate_request(None, agent_id="agent-test", plan_id="plan-test")
    assert missing.value.status_code == 401

    with pytest.raises(AgentMismatchError) as mismatch:
        payments.validate_request(access_token, agent_id="other-agent", plan_id="plan-test")
    assert mismatch.value.status_code == 403

    with pytest.raises(PlanNotFoundError) as wrong_plan:
        payments.validate_request(access_token, agent_id="agent-test", plan_id="other-plan")
    assert wrong_plan.value.status_code == 404

    claims = payments.validate_request(access_token, agent_id="agent-test", plan_id="plan-test")
    assert claims.subscriber_id == subscriber.subscriber_id


def test_validate_request_requires_credits(subscriber, access_token) -> None:
    broke = PaymentsService(
        PaymentsConfig(nvm_api_key="publisher-key", jwt_secret="test-secret"),
        ledger=CreditLedger(initial_credits=0),
    )
    with pytest.raises(InsufficientCreditsError) as exc:
        broke.validate_request(access_token, agent_id="agent-test", plan_id="plan-test")
    assert exc.value.status_code == 402
    assert exc.value.balance == 0


def test_redeem_credits_debits_the_plan(payments, access_token) -> None:
    claims = payments.validate_request(access_token, agent_id="agent-test", plan_id="plan-test")

    assert payments.redeem_credits(claims, 4) == 96
    assert payments.redeem_credits(claims, 1) == 95
    with pytest.raises(InsufficientCreditsError):
        payments.redeem_credits(claims, 96)


def test_ledger_accounts() -> None:
    ledger = CreditLedger(initial_credits=10, plans={"plan-a"})

    assert ledger.balance("sub-1", "plan-a") == 10
    assert ledger.top_up("sub-1", "plan-a", 5) == 15
    assert ledger.burn("sub-1", "plan-a", 15) == 0
    assert ledger.balance("sub-2", "plan-a") == 10
    with pytest.raises(PlanNotFoundError):
        ledger.balance("sub-1", "plan-b")
    with pytest.raises(ValueError):
        ledger.burn("sub-1", "plan-a", 0)


def test_service_requires_an_api_key() -> None:
    with pytest.raises(ValueError):
        PaymentsService(PaymentsConfig(nvm_api_key=""))


def test_payment_extension_on_agent_card() -> None:
    base = AgentCard(
        name="AI Assistant",
        description="test",
        url="http://localhost:41243/a2a/",
        version="2.0.0",
        capabilities=AgentCapabilities(streaming=True),
        default_input_modes=["text/plain"],
        default_output_modes=["text/plain"],
        skills=[],
    )
    card = build_payment_agent_card(base, plan_id="plan-test", agent_id="agent-test", cost_description="varies")
    again = build_payment_agent_card(card, plan_id="plan-test", agent_id="agent-test", credits=2)

    assert get_payment_extension(base) is None
    extension = get_payment_extension(card)
    assert extension.required is True
    assert extension.params == {
        "paymentType": "dynamic",
        "credits": 1,
        "costDescription": "varies",
        "planId": "plan-test",
        "agentId": "agent-test",
    }
    assert len(again.capabilities.extensions) == 1
    assert get_payment_extension(again).params["credits"] == 2
