from __future__ import annotations

import random
from dataclasses import dataclass
from functools import partial
from typing import Optional

from a2a.server.tasks import PushNotificationConfigStore

from assistant_agent import a2a_agent_logger as logger
from assistant_agent import handlers
from assistant_agent.events import TaskEventPublisher
from assistant_agent.intents import Intent, classify
from assistant_agent.results import HandledTask
from assistant_agent.streaming import (
    SpawnFollowup,
    acknowledge_push_notification,
    stream_progress,
    wait_for_push_config,
)
from assistant_common import config


@dataclass(frozen=True)
class AgentSettings:
    """Runtime settings of the agent, defaulting to the environment configuration."""

    agent_id: str = config.AGENT_ID
    plan_id: str = config.PLAN_ID
    stream_message_count: int = config.STREAM_MESSAGE_COUNT
    stream_interval: float = config.STREAM_INTERVAL_SECONDS
    push_config_wait: float = config.PUSH_CONFIG_WAIT_SECONDS
    handler_timeout: float = config.HANDLER_TIMEOUT_SECONDS
    async_execution: bool = config.ASYNC_EXECUTION


class AssistantTaskHandler:
    """Route the user's text to the handler of its intent."""

    def __init__(
        self,
        settings: AgentSettings,
        *,
        push_config_store: Optional[PushNotificationConfigStore] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._settings = settings
        self._push_config_store = push_config_store
        self._rng = rng

    async def handle_task(
        self,
        user_text: str,
        publisher: TaskEventPublisher,
        *,
        spawn_followup: SpawnFollowup,
    ) -> HandledTask:
        intent = classify(user_text)
        plan_id = self._settings.plan_id
        logger.info("Dispatching task %s (intent=%s)", publisher.task_id, intent.value)

        if intent is Intent.GREETING:
            return HandledTask(handlers.handle_greeting(user_text, plan_id=plan_id))
        if intent is Intent.CALCULATION:
            return HandledTask(handlers.handle_calculation(user_text, plan_id=plan_id))
        if intent is Intent.WEATHER:
            return HandledTask(handlers.handle_weather(user_text, plan_id=plan_id, rng=self._rng))
        if intent is Intent.TRANSLATION:
            return HandledTask(handlers.handle_translation(user_text, plan_id=plan_id))
        if intent is Intent.STREAMING:
            result = await stream_progress(
                publisher,
                plan_id=plan_id,
                total=self._settings.stream_message_count,
                interval=self._settings.stream_interval,
            )
            return HandledTask(result)
        if intent is Intent.PUSH_NOTIFICATION:
            wait = partial(
                wait_for_push_config,
                self._push_config_store,
                publisher.task_id,
                timeout=self._settings.push_config_wait,
            )
            result = await acknowledge_push_notification(
                publisher,
                plan_id=plan_id,
                spawn_followup=spawn_followup,
                wait=wait,
            )
            return HandledTask(result, expects_more_updates=True)

        return HandledTask(handlers.handle_general(user_text, plan_id=plan_id))
