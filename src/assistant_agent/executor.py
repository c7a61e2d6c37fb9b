from __future__ import annotations

import asyncio
from functools import partial
from typing import Any, Optional

from a2a.server.agent_execution import AgentExecutor, RequestContext
from a2a.server.events import EventQueue
from a2a.server.tasks import PushNotificationConfigStore
from a2a.types import Message, TaskState, TaskStatusUpdateEvent, TextPart

from assistant_agent import a2a_agent_logger as logger
from assistant_agent.events import FinalEventHook, TaskEventPublisher, build_submitted_task
from assistant_agent.handlers import ERROR_CREDITS
from assistant_agent.results import HandledTask, TaskHandlerResult
from assistant_agent.task_handler import AgentSettings, AssistantTaskHandler
from assistant_agent.task_runs import TaskRun, TaskRunRegistry
from assistant_common.constants import (
    AGENT_ERROR,
    BEARER_TOKEN_KEY,
    CREDITS_USED_KEY,
    ERROR_TYPE_KEY,
    PLAN_ID_KEY,
    PROCESSING_ERROR,
)
from credit_payments.errors import PaymentError
from credit_payments.middleware import ACCESS_CLAIMS_STATE
from credit_payments.service import PaymentsService
from credit_payments.tokens import AccessTokenClaims


def _first_text(message: Optional[Message]) -> str:
    if message is None or not message.parts:
        return ""
    first = message.parts[0].root
    return first.text if isinstance(first, TextPart) else ""


def _call_state(context: RequestContext, key: str) -> Any:
    call_context = context.call_context
    if call_context is None:
        return None
    return call_context.state.get(key)


class AssistantAgentExecutor(AgentExecutor):
    """Runs the intent pipeline for each inbound task and publishes its events.

    Per task: ``Received -> Submitted -> Executing -> Completed | Failed |
    AwaitingMore``. Exactly one final status event is published per task; for
    push notification tasks it comes from the background follow-up instead of
    from ``execute`` itself.
    """

    def __init__(
        self,
        settings: AgentSettings | None = None,
        *,
        task_handler: AssistantTaskHandler | None = None,
        payments: PaymentsService | None = None,
        push_config_store: PushNotificationConfigStore | None = None,
        runs: TaskRunRegistry | None = None,
    ) -> None:
        self._settings = settings or AgentSettings()
        self._task_handler = task_handler or AssistantTaskHandler(
            self._settings, push_config_store=push_config_store
        )
        self._payments = payments
        self._runs = runs or TaskRunRegistry()

    @property
    def runs(self) -> TaskRunRegistry:
        return self._runs

    async def execute(self, context: RequestContext, event_queue: EventQueue) -> None:
        task_id = context.task_id
        context_id = context.context_id
        claims = _call_state(context, ACCESS_CLAIMS_STATE)
        publisher = TaskEventPublisher(
            event_queue,
            task_id,
            context_id,
            on_final=self._credit_burner(claims),
        )
        run = self._runs.start(task_id, publisher)
        logger.info("Task %s received (context=%s)", task_id, context_id)

        try:
            task = context.current_task
            if task is None:
                task = build_submitted_task(
                    context.message,
                    task_id=task_id,
                    context_id=context_id,
                    metadata=self._task_metadata(context),
                )
            await publisher.publish(task)

            handled = await self._run_handler(context, run)
            if handled is None:
                return

            if handled.expects_more_updates:
                logger.info("Task %s awaiting background updates", task_id)
                await self._await_followup(run)
                return

            if publisher.closed:
                logger.info("Task %s was closed while its handler ran", task_id)
                return

            result = handled.result
            await publisher.publish_status(
                result.state,
                parts=result.parts,
                final=True,
                metadata=result.metadata,
            )
            logger.info("Task %s finished (state=%s, credits=%s)", task_id, result.state.value, result.credits_used)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Agent error on task %s", task_id)
            await publisher.publish_status(
                TaskState.failed,
                f"Agent error: {exc}",
                final=True,
                metadata={ERROR_TYPE_KEY: AGENT_ERROR, CREDITS_USED_KEY: ERROR_CREDITS},
            )
        finally:
            self._runs.finish(run)

    async def cancel(self, context: RequestContext, event_queue: EventQueue) -> None:
        task_id = context.task_id
        logger.info("Cancelling task: %s", task_id)
        run = self._runs.get(task_id)
        already_final = run is not None and run.publisher.closed
        if run is not None:
            self._runs.cancel(task_id)
        if already_final:
            logger.info("Task %s already published its final event", task_id)
            return

        publisher = TaskEventPublisher(event_queue, task_id, context.context_id)
        await publisher.publish_status(TaskState.canceled, "Task canceled", final=True)

    def _task_metadata(self, context: RequestContext) -> dict:
        # Stored tasks are readable without a token; the caller's token stays on the call context.
        metadata = dict(context.message.metadata or {}) if context.message else {}
        metadata.pop(BEARER_TOKEN_KEY, None)
        return metadata

    def _processing_error(self, message: str) -> TaskHandlerResult:
        return TaskHandlerResult.from_text(
            f"Error: {message or 'Unknown error occurred'}",
            state=TaskState.failed,
            metadata={
                CREDITS_USED_KEY: ERROR_CREDITS,
                PLAN_ID_KEY: self._settings.plan_id,
                ERROR_TYPE_KEY: PROCESSING_ERROR,
            },
        )

    async def _run_handler(self, context: RequestContext, run: TaskRun) -> HandledTask | None:
        """Run classifier + handler as a cancellable task; ``None`` means it was cancelled."""
        user_text = _first_text(context.message)
        logger.info("[A2A] Received message: %s", user_text)
        handler_task = self._runs.run_handler(
            run.task_id,
            self._task_handler.handle_task(
                user_text,
                run.publisher,
                spawn_followup=partial(self._runs.spawn_followup, run.task_id),
            ),
        )
        timeout = self._settings.handler_timeout
        try:
            return await asyncio.wait_for(handler_task, timeout=timeout)
        except asyncio.CancelledError:
            if run.cancel_requested:
                logger.info("Handler of task %s cancelled", run.task_id)
                return None
            raise
        except asyncio.TimeoutError:
            logger.warning("Handler of task %s timed out after %gs", run.task_id, timeout)
            return HandledTask(self._processing_error(f"Task timed out after {timeout:g} seconds"))
        except Exception as exc:
            logger.exception("Error processing task %s", run.task_id)
            return HandledTask(self._processing_error(str(exc)))

    async def _await_followup(self, run: TaskRun) -> None:
        # The SDK closes the event queue once execute returns, so stay until
        # the follow-up has published the final event.
        followup = run.followup_task
        if followup is None:
            raise RuntimeError(f"Task {run.task_id} expects more updates but scheduled none")
        timeout = self._settings.handler_timeout
        try:
            await asyncio.wait_for(followup, timeout=timeout)
        except asyncio.CancelledError:
            if run.cancel_requested:
                logger.info("Follow-up of task %s cancelled", run.task_id)
                return
            raise
        except asyncio.TimeoutError:
            logger.warning("Follow-up of task %s timed out after %gs", run.task_id, timeout)
            result = self._processing_error(f"Task timed out after {timeout:g} seconds")
            await run.publisher.publish_status(
                result.state, parts=result.parts, final=True, metadata=result.metadata
            )

    def _credit_burner(self, claims: Optional[AccessTokenClaims]) -> FinalEventHook | None:
        """Hook that debits the final event's ``creditsUsed`` from the caller's plan."""
        if self._payments is None or claims is None:
            return None
        payments = self._payments

        async def burn(event: TaskStatusUpdateEvent) -> None:
            if event.metadata is None:
                return
            credits = event.metadata.get(CREDITS_USED_KEY)
            if not isinstance(credits, int) or credits < 1:
                return
            try:
                remaining = payments.redeem_credits(claims, credits)
            except PaymentError as exc:
                logger.warning("Could not redeem %s credits for task %s: %s", credits, event.task_id, exc.message)
                event.metadata["creditsRedeemed"] = 0
                return
            event.metadata["creditsRedeemed"] = credits
            event.metadata["remainingCredits"] = remaining

        return burn
