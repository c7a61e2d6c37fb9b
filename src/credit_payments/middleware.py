"""
Bearer-token gate in front of the agent's JSON-RPC endpoint.

``PaymentsMiddleware`` rejects paid requests (``message/send``,
``message/stream``) that carry no valid access token or whose plan cannot
pay, and ``BearerCallContextBuilder`` forwards the validated token into the
A2A ``ServerCallContext`` so the executor can attach it to the task.
"""
from __future__ import annotations

import json

from a2a.server.apps.jsonrpc.jsonrpc_app import CallContextBuilder
from a2a.server.context import ServerCallContext
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from assistant_common.constants import PAID_METHODS
from assistant_common.jsonrpc import ErrorFormatJSONRPC
from assistant_common.logger import get_current_logger
from credit_payments.errors import PaymentError
from credit_payments.service import PaymentsService
from credit_payments.tokens import extract_token_from_header

BEARER_TOKEN_STATE = "bearer_token"
ACCESS_CLAIMS_STATE = "access_claims"


def _normalise_path(path: str) -> str:
    return "/" + path.strip("/")


class PaymentsMiddleware(BaseHTTPMiddleware):
    """Validate bearer tokens and credit balance for paid JSON-RPC methods."""

    def __init__(self, app, *, payments: PaymentsService, agent_id: str, plan_id: str, rpc_path: str = "/") -> None:
        super().__init__(app)
        self._payments = payments
        self._agent_id = agent_id
        self._plan_id = plan_id
        self._rpc_path = _normalise_path(rpc_path)

    async def dispatch(self, request, call_next):
        if request.method != "POST" or _normalise_path(request.url.path) != self._rpc_path:
            return await call_next(request)

        logger = get_current_logger()
        try:
            payload = json.loads(await request.body())
        except (json.JSONDecodeError, UnicodeDecodeError):
            # Let the JSON-RPC layer answer the parse error
            return await call_next(request)
        if not isinstance(payload, dict):
            return await call_next(request)

        method = payload.get("method")
        token = extract_token_from_header(request.headers.get("authorization"))
        setattr(request.state, BEARER_TOKEN_STATE, token)

        if method not in PAID_METHODS:
            return await call_next(request)

        try:
            claims = self._payments.validate_request(
                token,
                agent_id=self._agent_id,
                plan_id=self._plan_id,
            )
        except PaymentError as exc:
            logger.warning(
                "Rejected %s (id=%s, status=%d): %s",
                method, payload.get("id"), exc.status_code, exc.message,
            )
            return ErrorFormatJSONRPC(
                code=exc.rpc_code,
                message=exc.message,
                id=payload.get("id"),
                http_status=exc.status_code,
            ).to_response()

        setattr(request.state, ACCESS_CLAIMS_STATE, claims)
        logger.debug("Accepted %s (id=%s, subscriber=%s)", method, payload.get("id"), claims.subscriber_id)
        return await call_next(request)


class BearerCallContextBuilder(CallContextBuilder):
    """Copy request headers and the validated bearer token into the call context."""

    def build(self, request: Request) -> ServerCallContext:
        state = {
            "headers": dict(request.headers),
            BEARER_TOKEN_STATE: getattr(request.state, BEARER_TOKEN_STATE, None)
            or extract_token_from_header(request.headers.get("authorization")),
            ACCESS_CLAIMS_STATE: getattr(request.state, ACCESS_CLAIMS_STATE, None),
        }
        return ServerCallContext(state=state)
