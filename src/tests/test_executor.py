from __future__ import annotations

import asyncio
import dataclasses

import pytest
from a2a.server.agent_execution import RequestContext
from a2a.server.context import ServerCallContext
from a2a.types import Message, MessageSendParams, Part, Role, Task, TaskState, TaskStatusUpdateEvent, TextPart

from assistant_agent.executor import AssistantAgentExecutor
from assistant_agent.task_runs import TaskAlreadyRunningError
from credit_payments.ledger import CreditLedger
from credit_payments.middleware import ACCESS_CLAIMS_STATE, BEARER_TOKEN_STATE
from credit_payments.service import PaymentsConfig, PaymentsService


def _context(
    text: str, *, state: dict | None = None, task_id: str = "task-1", metadata: dict | None = None
) -> RequestContext:
    message = Message(
        message_id=f"msg-{task_id}", role=Role.user, parts=[Part(root=TextPart(text=text))], metadata=metadata
    )
    return RequestContext(
        request=MessageSendParams(message=message),
        task_id=task_id,
        context_id="ctx-1",
        call_context=ServerCallContext(state=state or {}),
    )


def _text(event: TaskStatusUpdateEvent) -> str:
    return event.status.message.parts[0].root.text


class _ExplodingHandler:
    async def handle_task(self, user_text, publisher, *, spawn_followup):
        raise RuntimeError("boom")


class _SlowHandler:
    async def handle_task(self, user_text, publisher, *, spawn_followup):
        await asyncio.sleep(5)


class _TaskRejectingQueue:
    def __init__(self) -> None:
        self.events = []

    async def enqueue_event(self, event) -> None:
        if isinstance(event, Task):
            raise RuntimeError("queue closed")
        self.events.append(event)


@pytest.mark.asyncio
async def test_greeting_publishes_submitted_then_completed(settings, queue) -> None:
    executor = AssistantAgentExecutor(settings)

    await executor.execute(_context("Hello there!"), queue)

    submitted, final = queue.events
    assert isinstance(submitted, Task)
    assert submitted.status.state is TaskState.submitted
    assert submitted.history[0].parts[0].root.text == "Hello there!"
    assert final.final is True
    assert final.status.state is TaskState.completed
    assert _text(final).startswith("Hello! ")
    assert final.metadata["creditsUsed"] == 1
    assert "task-1" not in executor.runs


@pytest.mark.asyncio
async def test_calculation_burns_credits_of_the_caller(settings, queue, payments, access_token) -> None:
    claims = payments.validate_request(access_token, agent_id=settings.agent_id, plan_id=settings.plan_id)
    state = {BEARER_TOKEN_STATE: access_token, ACCESS_CLAIMS_STATE: claims}
    executor = AssistantAgentExecutor(settings, payments=payments)

    await executor.execute(_context("Calculate 15 * 7", state=state), queue)

    submitted, final = queue.events
    assert "bearerToken" not in (submitted.metadata or {})
    assert _text(final) == "📊 Calculation Result:\n15 * 7 = 105"
    assert final.metadata["creditsRedeemed"] == 2
    assert final.metadata["remainingCredits"] == 98
    assert payments.ledger.balance(claims.subscriber_id, claims.plan_id) == 98


@pytest.mark.asyncio
async def test_submitted_task_keeps_message_metadata_but_not_the_token(settings, queue, access_token) -> None:
    executor = AssistantAgentExecutor(settings)
    context = _context(
        "Hello",
        state={BEARER_TOKEN_STATE: access_token},
        metadata={"source": "cli", "bearerToken": access_token},
    )

    await executor.execute(context, queue)

    submitted = queue.events[0]
    assert submitted.metadata == {"source": "cli"}


@pytest.mark.asyncio
async def test_failed_redemption_still_publishes_final(settings, queue, access_token) -> None:
    payments = PaymentsService(
        PaymentsConfig(nvm_api_key="publisher-key", jwt_secret="test-secret"),
        ledger=CreditLedger(initial_credits=1),
    )
    claims = payments.validate_request(access_token, agent_id=settings.agent_id, plan_id=settings.plan_id)
    executor = AssistantAgentExecutor(settings, payments=payments)

    await executor.execute(_context("Start streaming", state={ACCESS_CLAIMS_STATE: claims}), queue)

    final = queue.events[-1]
    assert final.final is True
    assert final.status.state is TaskState.completed
    assert final.metadata["creditsRedeemed"] == 0
    assert payments.ledger.balance(claims.subscriber_id, claims.plan_id) == 1


@pytest.mark.asyncio
async def test_streaming_publishes_progress_before_final(settings, queue) -> None:
    executor = AssistantAgentExecutor(settings)

    await executor.execute(_context("Start streaming"), queue)

    assert len(queue.events) == 6
    progress = queue.events[1:-1]
    assert [_text(event) for event in progress] == [
        "Streaming message 1/3",
        "Streaming message 2/3",
        "Streaming message 3/3",
        "Streaming finished!",
    ]
    final = queue.events[-1]
    assert queue.final_events == [final]
    assert final.status.state is TaskState.completed
    assert final.metadata["creditsUsed"] == 5


@pytest.mark.asyncio
async def test_push_notification_is_finished_by_the_followup(settings, queue) -> None:
    executor = AssistantAgentExecutor(settings)

    await executor.execute(_context("Testing push notification!"), queue)

    submitted, ack, final = queue.events
    assert ack.status.state is TaskState.working
    assert ack.final is False
    assert final.final is True
    assert final.metadata["completed"] is True
    assert final.metadata["creditsUsed"] == 5
    assert "task-1" not in executor.runs


@pytest.mark.asyncio
async def test_handler_exception_becomes_processing_error(settings, queue) -> None:
    executor = AssistantAgentExecutor(settings, task_handler=_ExplodingHandler())

    await executor.execute(_context("anything"), queue)

    final = queue.events[-1]
    assert final.status.state is TaskState.failed
    assert _text(final) == "Error: boom"
    assert final.metadata["errorType"] == "processing_error"
    assert final.metadata["creditsUsed"] == 1
    assert final.metadata["planId"] == settings.plan_id


@pytest.mark.asyncio
async def test_handler_timeout_fails_the_task(settings, queue) -> None:
    executor = AssistantAgentExecutor(
        dataclasses.replace(settings, handler_timeout=0.01),
        task_handler=_SlowHandler(),
    )

    await executor.execute(_context("anything"), queue)

    final = queue.events[-1]
    assert final.status.state is TaskState.failed
    assert _text(final) == "Error: Task timed out after 0.01 seconds"
    assert final.metadata["errorType"] == "processing_error"


@pytest.mark.asyncio
async def test_unexpected_failure_becomes_agent_error(settings) -> None:
    queue = _TaskRejectingQueue()
    executor = AssistantAgentExecutor(settings)

    await executor.execute(_context("Hello"), queue)

    (final,) = queue.events
    assert final.final is True
    assert final.status.state is TaskState.failed
    assert _text(final) == "Agent error: queue closed"
    assert final.metadata == {"errorType": "agent_error", "creditsUsed": 1}


@pytest.mark.asyncio
async def test_cancel_aborts_streaming(settings, queue) -> None:
    executor = AssistantAgentExecutor(
        dataclasses.replace(settings, stream_message_count=100, stream_interval=0.01)
    )
    context = _context("Start streaming")

    execution = asyncio.create_task(executor.execute(context, queue))
    while len(queue.events) < 3:
        await asyncio.sleep(0.005)
    await executor.cancel(context, queue)
    await asyncio.wait_for(execution, timeout=1.0)

    finals = queue.final_events
    assert len(finals) == 1
    assert finals[0].status.state is TaskState.canceled
    assert queue.events[-1] is finals[0]
    assert len(queue.events) < 100
    assert "task-1" not in executor.runs


@pytest.mark.asyncio
async def test_cancel_of_unknown_task_publishes_canceled(settings, queue) -> None:
    executor = AssistantAgentExecutor(settings)

    await executor.cancel(_context("Hello", task_id="task-x"), queue)

    (event,) = queue.events
    assert event.final is True
    assert event.status.state is TaskState.canceled
    assert _text(event) == "Task canceled"


@pytest.mark.asyncio
async def test_second_execute_of_a_running_task_is_refused(settings, queue) -> None:
    executor = AssistantAgentExecutor(dataclasses.replace(settings, stream_interval=0.01))
    first = asyncio.create_task(executor.execute(_context("Start streaming"), queue))
    while len(queue.events) < 2:
        await asyncio.sleep(0.005)

    with pytest.raises(TaskAlreadyRunningError):
        await executor.execute(_context("Start streaming"), queue)
    assert "task-1" in executor.runs

    await asyncio.wait_for(first, timeout=1.0)

    assert len(queue.final_events) == 1
    assert queue.final_events[0].status.state is TaskState.completed
    assert "task-1" not in executor.runs
