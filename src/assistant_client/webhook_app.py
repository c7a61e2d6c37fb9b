from __future__ import annotations

import json
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.middleware.base import BaseHTTPMiddleware

from assistant_client import webhook_logger as logger
from assistant_client.a2a_client import AssistantA2AClient
from assistant_common.constants import NOTIFICATION_TOKEN_HEADER
from assistant_common.logger import AppLogger, set_app_context


class AppContextMiddleware(BaseHTTPMiddleware):
    """Middleware to set app logger context for all requests."""

    async def dispatch(self, request, call_next):
        with set_app_context(AppLogger.WEBHOOK):
            response = await call_next(request)
        return response


class PushNotificationPayload(BaseModel):
    """Body pushed by the agent: either ``{"taskId": ...}`` or the task itself."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    task_id: Optional[str] = Field(default=None, alias="taskId")
    id: Optional[str] = None

    @property
    def resolved_task_id(self) -> Optional[str]:
        return self.task_id or self.id


def create_webhook_app(client: AssistantA2AClient, expected_token: Optional[str] = None) -> FastAPI:
    app = FastAPI(
        title="Push Notification Webhook",
        description="Receives task push notifications from the A2A assistant agent",
        version="1.0.0",
    )
    app.add_middleware(AppContextMiddleware)
    app.state.client = client

    @app.post("/webhook", response_class=PlainTextResponse)
    async def receive_notification(
        payload: PushNotificationPayload,
        notification_token: Optional[str] = Header(default=None, alias=NOTIFICATION_TOKEN_HEADER),
    ) -> str:
        if expected_token is not None and notification_token != expected_token:
            logger.warning("[Webhook] Rejected notification with invalid token")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid notification token")

        task_id = payload.resolved_task_id
        logger.info("[Webhook] Notification received: %s", payload.model_dump(by_alias=True, exclude_none=True))
        if not task_id:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Notification does not carry a task id",
            )

        task = await client.get_task(task_id)
        logger.info("[Webhook] Task: %s", json.dumps(task, indent=2, ensure_ascii=False))
        return "OK"

    return app
