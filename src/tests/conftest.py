"""Pytest plugin to execute asyncio marked tests without external dependencies, plus shared fixtures."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, List, Optional

import pytest

from assistant_agent.task_handler import AgentSettings
from credit_payments.ledger import CreditLedger
from credit_payments.service import PaymentsConfig, PaymentsService

TEST_AGENT_ID = "agent-test"
TEST_PLAN_ID = "plan-test"
TEST_JWT_SECRET = "test-secret"


@pytest.hookimpl
def pytest_configure(config: pytest.Config) -> None:  # pragma: no cover - pytest hook
    config.addinivalue_line(
        "markers",
        "asyncio: mark test to run inside an event loop",
    )


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> Optional[bool]:  # pragma: no cover - pytest hook
    # firstresult hook: None hands the call back to pytest.
    if "asyncio" not in pyfuncitem.keywords:
        return None

    test_function = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_function):
        return None

    kwargs = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(test_function(**kwargs))
    finally:
        loop.close()
    return True


class RecordingQueue:
    """Stands in for the SDK event queue and keeps every enqueued event."""

    def __init__(self) -> None:
        self.events: List[Any] = []

    async def enqueue_event(self, event: Any) -> None:
        self.events.append(event)

    @property
    def final_events(self) -> List[Any]:
        return [event for event in self.events if getattr(event, "final", False)]


@pytest.fixture
def settings() -> AgentSettings:
    return AgentSettings(
        agent_id=TEST_AGENT_ID,
        plan_id=TEST_PLAN_ID,
        stream_message_count=3,
        stream_interval=0.0,
        push_config_wait=0.05,
        handler_timeout=5.0,
        async_execution=False,
    )


@pytest.fixture
def queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def ledger() -> CreditLedger:
    return CreditLedger(initial_credits=100)


@pytest.fixture
def payments(ledger: CreditLedger) -> PaymentsService:
    """The agent side: validates tokens and burns credits."""
    return PaymentsService(
        PaymentsConfig(nvm_api_key="publisher-key", jwt_secret=TEST_JWT_SECRET),
        ledger=ledger,
    )


@pytest.fixture
def subscriber() -> PaymentsService:
    """The client side: issues access tokens for the test agent."""
    return PaymentsService(PaymentsConfig(nvm_api_key="subscriber-key", jwt_secret=TEST_JWT_SECRET))


@pytest.fixture
def access_token(subscriber: PaymentsService) -> str:
    return subscriber.get_agent_access_token(TEST_PLAN_ID, TEST_AGENT_ID).access_token
