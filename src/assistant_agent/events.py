"""Builders for A2A task events and the publisher that guards a task's terminal event."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
from uuid import uuid4

from a2a.server.events import EventQueue
from a2a.types import (
    Message,
    Part,
    Role,
    Task,
    TaskState,
    TaskStatus,
    TaskStatusUpdateEvent,
    TextPart,
)

from assistant_agent import a2a_agent_logger as logger

FinalEventHook = Callable[[TaskStatusUpdateEvent], Awaitable[None]]
TaskEvent = Union[Task, TaskStatusUpdateEvent]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_agent_message(parts: List[Part], *, task_id: str, context_id: str) -> Message:
    return Message(
        message_id=str(uuid4()),
        role=Role.agent,
        parts=parts,
        task_id=task_id,
        context_id=context_id,
    )


def build_submitted_task(
    message: Message,
    *,
    task_id: str,
    context_id: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> Task:
    """New task in ``submitted`` state whose history starts with the inbound message."""
    return Task(
        id=task_id,
        context_id=context_id,
        status=TaskStatus(state=TaskState.submitted, timestamp=_now()),
        history=[message],
        metadata=metadata or None,
    )


def build_status_event(
    *,
    task_id: str,
    context_id: str,
    state: TaskState,
    parts: Optional[List[Part]] = None,
    final: bool = False,
    metadata: Optional[Dict[str, Any]] = None,
) -> TaskStatusUpdateEvent:
    message = build_agent_message(parts, task_id=task_id, context_id=context_id) if parts else None
    return TaskStatusUpdateEvent(
        task_id=task_id,
        context_id=context_id,
        status=TaskStatus(state=state, message=message, timestamp=_now()),
        final=final,
        metadata=metadata,
    )


def text_parts(text: str) -> List[Part]:
    return [Part(root=TextPart(text=text))]


class TaskEventPublisher:
    """Publishes one task's events onto the SDK event queue.

    Exactly one ``final=True`` event goes out per task and it is always the
    last one: once it has been published, or the publisher has been closed,
    further events are dropped.
    """

    def __init__(
        self,
        event_queue: EventQueue,
        task_id: str,
        context_id: str,
        *,
        on_final: FinalEventHook | None = None,
    ) -> None:
        self._queue = event_queue
        self.task_id = task_id
        self.context_id = context_id
        self._on_final = on_final
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    async def publish(self, event: TaskEvent) -> bool:
        if self._closed:
            logger.warning(
                "Dropping %s for task %s: final event already published",
                type(event).__name__, self.task_id,
            )
            return False
        if isinstance(event, TaskStatusUpdateEvent) and event.final:
            self._closed = True
            if self._on_final is not None:
                try:
                    await self._on_final(event)
                except Exception:
                    # The terminal event must still go out.
                    logger.exception("Final event hook failed for task %s", self.task_id)
        await self._queue.enqueue_event(event)
        logger.debug(
            "Published %s (task=%s, state=%s)",
            type(event).__name__, self.task_id, event.status.state.value,
        )
        return True

    async def publish_status(
        self,
        state: TaskState,
        text: str | None = None,
        *,
        parts: Optional[List[Part]] = None,
        final: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        if parts is None and text is not None:
            parts = text_parts(text)
        event = build_status_event(
            task_id=self.task_id,
            context_id=self.context_id,
            state=state,
            parts=parts,
            final=final,
            metadata=metadata,
        )
        return await self.publish(event)
