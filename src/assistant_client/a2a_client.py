from __future__ import annotations

import logging
import uuid
from typing import Any, AsyncIterator, Dict, Optional

import httpx
from a2a.types import (
    Message,
    MessageSendConfiguration,
    MessageSendParams,
    Part,
    PushNotificationConfig,
    Role,
    TextPart,
)

from assistant_client import a2a_client_logger
from assistant_client.sse import iter_sse_events
from assistant_common.config import A2A_BASE_URL, AGENT_ID, PLAN_ID
from assistant_common.constants import (
    AGENT_CARD_PATH,
    JSON_MEDIA_TYPE,
    METHOD_MESSAGE_SEND,
    METHOD_MESSAGE_STREAM,
    METHOD_SET_PUSH_CONFIG,
    METHOD_TASKS_GET,
    TEXT_MEDIA_TYPE,
)
from assistant_common.jsonrpc import RequestFormatJSONRPC
from credit_payments.errors import PaymentError
from credit_payments.service import PaymentsService


def build_user_message(text: str, *, metadata: Optional[Dict[str, Any]] = None) -> Message:
    return Message(
        message_id=str(uuid.uuid4()),
        role=Role.user,
        parts=[Part(root=TextPart(text=text))],
        metadata=metadata,
    )


def is_final_frame(frame: Any) -> bool:
    """True when a ``message/stream`` frame ends the stream."""
    if not isinstance(frame, dict):
        return False
    if frame.get("error"):
        return True
    result = frame.get("result")
    if not isinstance(result, dict):
        return False
    if result.get("final") is True:
        return True
    status = result.get("status")
    return isinstance(status, dict) and status.get("final") is True


class AssistantA2AClient:
    """JSON-RPC client for the assistant agent with optional bearer token auth.

    Failures never raise: HTTP and transport errors are logged and reported as
    ``None`` (or ``False``), JSON-RPC ``error`` envelopes are logged and returned
    unchanged so callers can inspect them.
    """

    def __init__(
        self,
        base_url: str = A2A_BASE_URL,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        payments: PaymentsService | None = None,
        plan_id: str = PLAN_ID,
        agent_id: str = AGENT_ID,
        logger: logging.Logger = a2a_client_logger,
    ) -> None:
        self.logger = logger

        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self._payments = payments
        self._plan_id = plan_id
        self._agent_id = agent_id

        if client is None:
            self._client = httpx.AsyncClient(timeout=timeout)
            self._owns_client = True
        else:
            self._client = client
            self._owns_client = False

        self.logger.info("A2A client initialised (base_url=%s, owns_client=%s)",
                         self._base_url, self._owns_client)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            self.logger.debug("Closing owned HTTP client")
            await self._client.aclose()

    async def __aenter__(self) -> "AssistantA2AClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _headers(self, bearer_token: Optional[str] = None) -> Dict[str, str]:
        headers = {"Content-Type": JSON_MEDIA_TYPE}
        if bearer_token:
            headers["Authorization"] = f"Bearer {bearer_token}"
        return headers

    async def get_access_token(self) -> Optional[str]:
        if self._payments is None:
            self.logger.error("No payments service configured; cannot request an access token")
            return None
        if not self._plan_id or not self._agent_id:
            self.logger.error("Missing PLAN_ID or AGENT_ID in environment variables")
            return None
        try:
            access = self._payments.get_agent_access_token(self._plan_id, self._agent_id)
        except (PaymentError, ValueError) as exc:
            self.logger.error("Failed to get access token: %s", exc)
            return None
        return access.access_token

    async def fetch_agent_card(self) -> Optional[Dict[str, Any]]:
        url = f"{self._base_url}{AGENT_CARD_PATH}"
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            self.logger.error("Failed to fetch agent card: %s", exc)
            return None
        if response.is_error:
            self.logger.error("HTTP %s fetching agent card from %s", response.status_code, url)
            return None
        try:
            card = response.json()
        except ValueError:
            self.logger.error("Agent card at %s is not JSON", url)
            return None
        self.logger.info("Agent Card: %s (version=%s)", card.get("name"), card.get("version"))
        return card

    async def _call(
        self,
        method: str,
        params: Dict[str, Any],
        bearer_token: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        request = RequestFormatJSONRPC(method=method, params=params)
        self.logger.info("POST %s (id=%s) -> %s", method, request.id, self._base_url)
        try:
            response = await self._client.post(
                self._base_url,
                json=request.to_dict(),
                headers=self._headers(bearer_token),
            )
        except httpx.HTTPError as exc:
            self.logger.error("Request failed (%s, id=%s): %s", method, request.id, exc)
            return None

        if response.is_error:
            self.logger.error("HTTP Error %s for %s (id=%s): %s",
                              response.status_code, method, request.id, response.text)
            return None

        try:
            body = response.json()
        except ValueError:
            self.logger.warning("Non-JSON response for %s (status=%s, id=%s)",
                                method, response.status_code, request.id)
            return None

        if isinstance(body, dict) and body.get("error"):
            self.logger.error("Error from agent (%s): %s", method, body["error"])
        else:
            self.logger.debug("Agent response (%s): %s", method, body)
        return body

    async def send_message(
        self,
        text: str,
        bearer_token: Optional[str] = None,
        *,
        blocking: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Send ``text`` with ``message/send``; the result is the task as known so far."""
        params = MessageSendParams(
            message=build_user_message(text, metadata=metadata),
            configuration=MessageSendConfiguration(
                accepted_output_modes=[TEXT_MEDIA_TYPE],
                blocking=blocking,
            ),
        )
        return await self._call(
            METHOD_MESSAGE_SEND,
            params.model_dump(mode="json", by_alias=True, exclude_none=True),
            bearer_token,
        )

    async def stream_message(
        self,
        text: str,
        bearer_token: Optional[str] = None,
        *,
        push_notification: PushNotificationConfig | Dict[str, Any] | None = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        """Send ``text`` with ``message/stream`` and yield each SSE frame.

        Stops after the frame carrying the final status or when the server
        closes the stream.
        """
        if isinstance(push_notification, dict):
            push_notification = PushNotificationConfig.model_validate(push_notification)
        params = MessageSendParams(
            message=build_user_message(text),
            configuration=MessageSendConfiguration(
                accepted_output_modes=[TEXT_MEDIA_TYPE],
                push_notification_config=push_notification,
            ),
        )
        request = RequestFormatJSONRPC(
            method=METHOD_MESSAGE_STREAM,
            params=params.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        headers = self._headers(bearer_token)
        headers["Accept"] = "text/event-stream"

        self.logger.info("POST %s (id=%s) -> %s", METHOD_MESSAGE_STREAM, request.id, self._base_url)
        try:
            async with self._client.stream(
                "POST", self._base_url, json=request.to_dict(), headers=headers
            ) as response:
                if response.is_error:
                    await response.aread()
                    self.logger.error("Failed to initiate streaming: HTTP %s %s",
                                      response.status_code, response.text)
                    return
                self.logger.info("Streaming request sent. Processing SSE events...")
                async for frame in iter_sse_events(response.aiter_lines()):
                    self.logger.info("[Streaming Event] %s", frame)
                    yield frame
                    if is_final_frame(frame):
                        self.logger.info("[Streaming Event] Final event received. Closing stream.")
                        return
                self.logger.info("SSE stream closed by server.")
        except httpx.HTTPError as exc:
            self.logger.error("SSE stream error: %s", exc)

    async def get_task(
        self,
        task_id: str,
        bearer_token: Optional[str] = None,
        *,
        history_length: Optional[int] = None,
    ) -> Optional[Dict[str, Any]]:
        params: Dict[str, Any] = {"id": task_id}
        if history_length is not None:
            params["historyLength"] = history_length
        return await self._call(METHOD_TASKS_GET, params, bearer_token)

    async def set_push_notification_config(
        self,
        task_id: str,
        config: PushNotificationConfig | Dict[str, Any],
        bearer_token: Optional[str] = None,
    ) -> bool:
        if isinstance(config, PushNotificationConfig):
            config = config.model_dump(mode="json", by_alias=True, exclude_none=True)
        body = await self._call(
            METHOD_SET_PUSH_CONFIG,
            {"taskId": task_id, "pushNotificationConfig": config},
            bearer_token,
        )
        if body is None or body.get("error"):
            return False
        self.logger.info("Push notification config set for taskId: %s", task_id)
        return True
