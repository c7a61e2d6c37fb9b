from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from a2a.server.apps import A2AStarletteApplication
from a2a.server.request_handlers import DefaultRequestHandler
from a2a.server.tasks import (
    BasePushNotificationSender,
    InMemoryPushNotificationConfigStore,
    InMemoryTaskStore,
)
from a2a.types import AgentCapabilities, AgentCard, AgentProvider
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware

from assistant_agent import a2a_agent_logger as logger
from assistant_agent.executor import AssistantAgentExecutor
from assistant_agent.skills import ALL_SKILLS, COST_DESCRIPTION
from assistant_agent.task_handler import AgentSettings
from assistant_common.config import A2A_BASE_PATH, A2A_HOST, A2A_PORT, PUBLISHER_API_KEY
from assistant_common.constants import (
    AGENT_CARD_PATH,
    AGENT_NAME,
    AGENT_VERSION,
    PROVIDER_ORGANIZATION,
    PROVIDER_URL,
    TEXT_MEDIA_TYPE,
)
from assistant_common.logger import AppLogger, set_app_context
from credit_payments.agent_card import build_payment_agent_card
from credit_payments.middleware import BearerCallContextBuilder, PaymentsMiddleware
from credit_payments.service import PaymentsConfig, PaymentsService


class AppContextMiddleware(BaseHTTPMiddleware):
    """Middleware to set app logger context for all requests."""

    async def dispatch(self, request, call_next):
        with set_app_context(AppLogger.A2A_AGENT):
            response = await call_next(request)
        return response


def rpc_path_for(base_path: str) -> str:
    stripped = base_path.strip("/")
    return f"/{stripped}/" if stripped else "/"


def build_agent_card(settings: AgentSettings, base_url: str) -> AgentCard:
    """Describe the assistant, including the payment extension, with the SDK models."""
    capabilities = AgentCapabilities(
        streaming=True,
        push_notifications=settings.async_execution,
        state_transition_history=True,
    )
    logger.debug("Building agent card (base_url=%s)", base_url)
    card = AgentCard(
        name=AGENT_NAME,
        description=(
            "An AI assistant with multiple capabilities including calculations, weather, "
            "translations, and more. Each operation has different credit costs based on complexity."
        ),
        url=base_url,
        provider=AgentProvider(organization=PROVIDER_ORGANIZATION, url=PROVIDER_URL),
        version=AGENT_VERSION,
        capabilities=capabilities,
        default_input_modes=[TEXT_MEDIA_TYPE],
        default_output_modes=[TEXT_MEDIA_TYPE],
        skills=ALL_SKILLS,
        supports_authenticated_extended_card=False,
    )
    return build_payment_agent_card(
        card,
        plan_id=settings.plan_id,
        agent_id=settings.agent_id,
        credits=1,
        cost_description=COST_DESCRIPTION,
    )


def create_app(
    settings: AgentSettings | None = None,
    *,
    payments: PaymentsService | None = None,
    base_path: str = A2A_BASE_PATH,
    base_url: Optional[str] = None,
    httpx_client: httpx.AsyncClient | None = None,
) -> Starlette:
    """Wire executor, SDK request handler, payments gate and agent card into one ASGI app."""
    settings = settings or AgentSettings()
    payments = payments or PaymentsService(PaymentsConfig(nvm_api_key=PUBLISHER_API_KEY))
    rpc_path = rpc_path_for(base_path)
    base_url = base_url or f"http://{A2A_HOST}:{A2A_PORT}{rpc_path}"

    task_store = InMemoryTaskStore()
    push_config_store = InMemoryPushNotificationConfigStore()
    owned_client: httpx.AsyncClient | None = None
    push_sender = None
    if settings.async_execution:
        if httpx_client is None:
            owned_client = httpx_client = httpx.AsyncClient(timeout=30.0)
        push_sender = BasePushNotificationSender(httpx_client, config_store=push_config_store)

    executor = AssistantAgentExecutor(settings, payments=payments, push_config_store=push_config_store)
    request_handler = DefaultRequestHandler(
        agent_executor=executor,
        task_store=task_store,
        push_config_store=push_config_store,
        push_sender=push_sender,
    )
    agent_card = build_agent_card(settings, base_url)

    @asynccontextmanager
    async def lifespan(_: Starlette):
        logger.info("A2A Payments Agent starting on %s", base_url)
        logger.info("Agent Card: %s%s", base_url, AGENT_CARD_PATH)
        yield
        logger.info("A2A Payments Agent shutting down...")
        if owned_client is not None:
            await owned_client.aclose()

    middleware = [
        Middleware(AppContextMiddleware),
        Middleware(
            PaymentsMiddleware,
            payments=payments,
            agent_id=settings.agent_id,
            plan_id=settings.plan_id,
            rpc_path=rpc_path,
        ),
    ]

    app = A2AStarletteApplication(
        agent_card=agent_card,
        http_handler=request_handler,
        context_builder=BearerCallContextBuilder(),
    ).build(
        agent_card_url=f"{rpc_path}{AGENT_CARD_PATH}",
        rpc_url=rpc_path,
        middleware=middleware,
        lifespan=lifespan,
    )
    app.state.executor = executor
    app.state.payments = payments
    app.state.task_store = task_store
    app.state.push_config_store = push_config_store
    app.state.agent_card = agent_card
    return app


if __name__ == "__main__":
    import uvicorn

    logger.info("Test with these examples:")
    for example in (
        "Hello (1 credit)",
        "Calculate 15 * 7 (2 credits)",
        "Weather in London (3 credits)",
        'Translate "hello" to Spanish (4 credits)',
        "Start streaming (5 credits)",
    ):
        logger.info("- %s", example)
    uvicorn.run(create_app(), host="0.0.0.0", port=A2A_PORT)
