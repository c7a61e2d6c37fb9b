"""Bookkeeping of the asyncio tasks running on behalf of each A2A task."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Coroutine, Dict, Optional

from assistant_agent import a2a_agent_logger as logger
from assistant_agent.events import TaskEventPublisher


class TaskAlreadyRunningError(RuntimeError):
    pass


@dataclass
class TaskRun:
    task_id: str
    publisher: TaskEventPublisher
    handler_task: Optional[asyncio.Task] = None
    followup_task: Optional[asyncio.Task] = None
    cancel_requested: bool = False

    def active_tasks(self) -> list:
        return [t for t in (self.handler_task, self.followup_task) if t is not None and not t.done()]


class TaskRunRegistry:
    """Keeps the cancellation handles of every in-flight run, keyed by task id."""

    def __init__(self) -> None:
        self._runs: Dict[str, TaskRun] = {}

    def __contains__(self, task_id: str) -> bool:
        return task_id in self._runs

    def get(self, task_id: str) -> Optional[TaskRun]:
        return self._runs.get(task_id)

    def start(self, task_id: str, publisher: TaskEventPublisher) -> TaskRun:
        """Register a new run; a task id can only have one run in flight."""
        if task_id in self._runs:
            raise TaskAlreadyRunningError(f"Task {task_id} is already running")
        run = TaskRun(task_id=task_id, publisher=publisher)
        self._runs[task_id] = run
        return run

    def run_handler(self, task_id: str, coro: Coroutine) -> asyncio.Task:
        run = self._runs[task_id]
        run.handler_task = asyncio.create_task(coro, name=f"handler-{task_id}")
        return run.handler_task

    def spawn_followup(self, task_id: str, coro: Coroutine) -> asyncio.Task:
        """Start background work that will finish the task after the handler returned."""
        run = self._runs[task_id]
        if run.followup_task is not None and not run.followup_task.done():
            coro.close()
            raise RuntimeError(f"Task {task_id} already has a pending follow-up")
        run.followup_task = asyncio.create_task(coro, name=f"followup-{task_id}")
        logger.debug("Follow-up scheduled for task %s", task_id)
        return run.followup_task

    def cancel(self, task_id: str) -> Optional[TaskRun]:
        """Abort everything in flight for ``task_id`` and close its publisher."""
        run = self._runs.get(task_id)
        if run is None:
            return None
        run.cancel_requested = True
        run.publisher.close()
        for task in run.active_tasks():
            task.cancel()
        logger.info("Cancelled run of task %s", task_id)
        return run

    def finish(self, run: TaskRun) -> None:
        if self._runs.get(run.task_id) is run:
            del self._runs[run.task_id]
