from __future__ import annotations

import dataclasses

import httpx
import pytest

from assistant_agent.a2a_app import create_app, rpc_path_for
from assistant_common.jsonrpc import RequestFormatJSONRPC
from credit_payments.ledger import CreditLedger
from credit_payments.service import PaymentsConfig, PaymentsService

BASE = "http://testserver"


def _message_send(text: str, *, method: str = "message/send") -> dict:
    params = {
        "message": {
            "kind": "message",
            "messageId": "msg-1",
            "role": "user",
            "parts": [{"kind": "text", "text": text}],
        },
        "configuration": {"acceptedOutputModes": ["text/plain"], "blocking": True},
    }
    return RequestFormatJSONRPC(method=method, params=params, id="req-1").to_dict()


def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE)


def test_rpc_path_for() -> None:
    assert rpc_path_for("/a2a/") == "/a2a/"
    assert rpc_path_for("a2a") == "/a2a/"
    assert rpc_path_for("/") == "/"


@pytest.mark.asyncio
async def test_agent_card_advertises_skills_and_payment(settings, payments) -> None:
    app = create_app(settings, payments=payments)

    async with _client(app) as client:
        response = await client.get("/a2a/.well-known/agent-card.json")

    assert response.status_code == 200
    card = response.json()
    assert card["name"] == "AI Assistant"
    assert card["version"] == "2.0.0"
    assert card["capabilities"]["streaming"] is True
    assert not card["capabilities"].get("pushNotifications")
    assert {skill["id"] for skill in card["skills"]} == {
        "greeting", "calculation", "weather", "translation", "streaming",
    }
    (extension,) = card["capabilities"]["extensions"]
    assert extension["uri"] == "urn:nevermined:payment"
    assert extension["params"]["planId"] == settings.plan_id
    assert extension["params"]["agentId"] == settings.agent_id


@pytest.mark.asyncio
async def test_paid_request_without_token_is_rejected(settings, payments) -> None:
    app = create_app(settings, payments=payments)

    async with _client(app) as client:
        response = await client.post("/a2a/", json=_message_send("Hello"))

    assert response.status_code == 401
    body = response.json()
    assert body["id"] == "req-1"
    assert body["error"]["code"] == -32001
    assert body["error"]["message"] == "Missing bearer token"


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["undefined", "null", "fake.token.here", "not-a-jwt-token"])
async def test_invalid_tokens_are_rejected(settings, payments, token) -> None:
    app = create_app(settings, payments=payments)

    async with _client(app) as client:
        response = await client.post(
            "/a2a/", json=_message_send("Calculate 2+2"), headers={"Authorization": f"Bearer {token}"}
        )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_for_another_agent_is_forbidden(settings, payments, subscriber) -> None:
    token = subscriber.get_agent_access_token(settings.plan_id, "someone-else").access_token
    app = create_app(settings, payments=payments)

    async with _client(app) as client:
        response = await client.post(
            "/a2a/", json=_message_send("Hello"), headers={"Authorization": f"Bearer {token}"}
        )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == -32003


@pytest.mark.asyncio
async def test_empty_plan_gets_payment_required(settings, access_token) -> None:
    payments = PaymentsService(
        PaymentsConfig(nvm_api_key="publisher-key", jwt_secret="test-secret"),
        ledger=CreditLedger(initial_credits=0),
    )
    app = create_app(settings, payments=payments)

    async with _client(app) as client:
        response = await client.post(
            "/a2a/", json=_message_send("Hello"), headers={"Authorization": f"Bearer {access_token}"}
        )

    assert response.status_code == 402
    assert response.json()["error"]["code"] == -32002


@pytest.mark.asyncio
async def test_paid_request_completes_and_burns_credits(settings, payments, subscriber, access_token) -> None:
    app = create_app(settings, payments=payments)

    async with _client(app) as client:
        response = await client.post(
            "/a2a/", json=_message_send("Hello there!"), headers={"Authorization": f"Bearer {access_token}"}
        )
        task = response.json()["result"]
        fetched = await client.post(
            "/a2a/",
            json=RequestFormatJSONRPC(method="tasks/get", params={"id": task["id"]}).to_dict(),
        )

    assert response.status_code == 200
    assert task["status"]["state"] == "completed"
    assert task["status"]["message"]["parts"][0]["text"].startswith("Hello! ")
    assert payments.ledger.balance(subscriber.subscriber_id, settings.plan_id) == 99

    assert fetched.status_code == 200
    assert fetched.json()["result"]["id"] == task["id"]


@pytest.mark.asyncio
async def test_push_notification_config_can_be_registered(settings, payments, access_token) -> None:
    pushed = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    app = create_app(dataclasses.replace(settings, async_execution=True), payments=payments, httpx_client=pushed)
    headers = {"Authorization": f"Bearer {access_token}"}

    async with _client(app) as client:
        card = (await client.get("/a2a/.well-known/agent-card.json")).json()
        response = await client.post("/a2a/", json=_message_send("Calculate 1 + 1"), headers=headers)
        task_id = response.json()["result"]["id"]
        registered = await client.post(
            "/a2a/",
            json=RequestFormatJSONRPC(
                method="tasks/pushNotificationConfig/set",
                params={"taskId": task_id, "pushNotificationConfig": {"url": "http://localhost:4000/webhook"}},
            ).to_dict(),
            headers=headers,
        )
    await pushed.aclose()

    assert card["capabilities"]["pushNotifications"] is True
    body = registered.json()
    assert "error" not in body
    assert body["result"]["taskId"] == task_id
    assert await app.state.push_config_store.get_info(task_id)


@pytest.mark.asyncio
async def test_tasks_get_never_returns_the_callers_token(settings, payments, access_token) -> None:
    app = create_app(settings, payments=payments)

    async with _client(app) as client:
        response = await client.post(
            "/a2a/", json=_message_send("Calculate 2 + 3"), headers={"Authorization": f"Bearer {access_token}"}
        )
        task_id = response.json()["result"]["id"]
        fetched = await client.post(
            "/a2a/",
            json=RequestFormatJSONRPC(method="tasks/get", params={"id": task_id}).to_dict(),
        )

    assert fetched.status_code == 200
    task = fetched.json()["result"]
    assert "bearerToken" not in (task.get("metadata") or {})
    assert access_token not in fetched.text
