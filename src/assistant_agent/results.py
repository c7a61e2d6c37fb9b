from __future__ import annotations

from typing import Any, Dict, List, NamedTuple

from a2a.types import Part, TaskState, TextPart
from pydantic import BaseModel, Field, field_validator, model_validator

from assistant_common.constants import CREDITS_USED_KEY

RESULT_STATES = {TaskState.completed, TaskState.failed, TaskState.working}


class TaskHandlerResult(BaseModel):
    """What a handler produced: the reply parts, billing metadata and the task state."""

    parts: List[Part]
    metadata: Dict[str, Any] = Field(default_factory=dict)
    state: TaskState = TaskState.completed

    @field_validator("state")
    @classmethod
    def _check_state(cls, value: TaskState) -> TaskState:
        if value not in RESULT_STATES:
            raise ValueError(f"Unsupported result state: {value}")
        return value

    @model_validator(mode="after")
    def _check_credits(self) -> "TaskHandlerResult":
        # Terminal results are billed, so they must say how much.
        if self.state is TaskState.working:
            return self
        credits = self.metadata.get(CREDITS_USED_KEY)
        if not isinstance(credits, int) or isinstance(credits, bool) or credits < 1:
            raise ValueError(f"{CREDITS_USED_KEY} must be an integer >= 1 for a {self.state.value} result")
        return self

    @classmethod
    def from_text(
        cls,
        text: str,
        *,
        state: TaskState = TaskState.completed,
        metadata: Dict[str, Any] | None = None,
    ) -> "TaskHandlerResult":
        return cls(parts=[Part(root=TextPart(text=text))], metadata=metadata or {}, state=state)

    @property
    def text(self) -> str:
        for part in self.parts:
            if isinstance(part.root, TextPart):
                return part.root.text
        return ""

    @property
    def credits_used(self) -> int | None:
        return self.metadata.get(CREDITS_USED_KEY)


class HandledTask(NamedTuple):
    result: TaskHandlerResult
    expects_more_updates: bool = False
