"""Handlers that keep publishing after they start: the streaming demo and push notifications."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Coroutine, Optional

from a2a.server.tasks import PushNotificationConfigStore
from a2a.types import TaskState

from assistant_agent import a2a_agent_logger as logger
from assistant_agent.events import TaskEventPublisher
from assistant_agent.handlers import PUSH_NOTIFICATION_CREDITS, STREAMING_CREDITS
from assistant_agent.results import TaskHandlerResult
from assistant_common.config import PUSH_CONFIG_WAIT_SECONDS, STREAM_INTERVAL_SECONDS, STREAM_MESSAGE_COUNT
from assistant_common.constants import CREDITS_USED_KEY, PLAN_ID_KEY

PUSH_ACK_TEXT = "Push notification request received. Waiting for pushNotificationConfig..."
STREAM_FINISHED_TEXT = "Streaming finished!"

SpawnFollowup = Callable[[Coroutine], asyncio.Task]
WaitCondition = Callable[[], Awaitable[object]]


async def stream_progress(
    publisher: TaskEventPublisher,
    *,
    plan_id: str,
    total: int = STREAM_MESSAGE_COUNT,
    interval: float = STREAM_INTERVAL_SECONDS,
) -> TaskHandlerResult:
    """Publish ``total`` progress events, one per ``interval``, then a closing one.

    None of these events is final; the executor publishes the terminal event
    from the returned result. Cancelling the coroutine aborts the current
    sleep, and a closed publisher ends it before the next tick without the
    closing event.
    """
    sent = 0
    while sent < total and not publisher.closed:
        sent += 1
        await publisher.publish_status(TaskState.working, f"Streaming message {sent}/{total}")
        await asyncio.sleep(interval)

    if publisher.closed:
        logger.info("Streaming for task %s stopped at %d/%d", publisher.task_id, sent, total)
    else:
        await publisher.publish_status(TaskState.working, STREAM_FINISHED_TEXT)
    return _streaming_result(plan_id, total, interval)


def _streaming_result(plan_id: str, total: int, interval: float) -> TaskHandlerResult:
    return TaskHandlerResult.from_text(
        f"🚀 Streaming started! You will receive {total} messages via SSE "
        f"(one every {interval:g} seconds).\nCheck your /message/stream subscription.",
        metadata={
            CREDITS_USED_KEY: STREAMING_CREDITS,
            PLAN_ID_KEY: plan_id,
            "costDescription": "Streaming response",
            "operationType": "streaming",
            "streamingType": "text",
        },
    )


async def wait_for_push_config(
    store: Optional[PushNotificationConfigStore],
    task_id: str,
    *,
    timeout: float = PUSH_CONFIG_WAIT_SECONDS,
    poll_interval: float = 0.5,
) -> bool:
    """Wait until a push notification config is registered for ``task_id``.

    Returns ``True`` when one showed up before ``timeout`` seconds, ``False``
    otherwise. Without a store there is nothing to watch, so it just waits.
    """
    if store is None:
        await asyncio.sleep(timeout)
        return False

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        if await store.get_info(task_id):
            logger.debug("Push notification config found for task %s", task_id)
            return True
        remaining = deadline - loop.time()
        if remaining <= 0:
            logger.info("No push notification config for task %s after %.1fs", task_id, timeout)
            return False
        await asyncio.sleep(min(poll_interval, remaining))


async def finalize_push_notification(
    publisher: TaskEventPublisher,
    *,
    plan_id: str,
    wait: WaitCondition,
) -> None:
    await wait()
    await publisher.publish_status(
        TaskState.completed,
        "Push notification task completed!",
        final=True,
        metadata={
            "completed": True,
            CREDITS_USED_KEY: PUSH_NOTIFICATION_CREDITS,
            PLAN_ID_KEY: plan_id,
            "costDescription": "Push notification task completed",
            "operationType": "push_notification",
        },
    )


async def acknowledge_push_notification(
    publisher: TaskEventPublisher,
    *,
    plan_id: str,
    spawn_followup: SpawnFollowup,
    wait: WaitCondition,
) -> TaskHandlerResult:
    """Publish the intermediate state and leave finalisation to a background task."""
    await publisher.publish_status(TaskState.working, PUSH_ACK_TEXT)
    spawn_followup(finalize_push_notification(publisher, plan_id=plan_id, wait=wait))
    return TaskHandlerResult.from_text(PUSH_ACK_TEXT, state=TaskState.working)
