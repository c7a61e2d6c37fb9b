"""Replay client flows against a running assistant agent.

Usage:
    python -m assistant_client.scenarios bearer invalid mixed
    python -m assistant_client.scenarios all --base-url http://localhost:41243/a2a/
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

import uvicorn

from assistant_client import a2a_client_logger as logger
from assistant_client.a2a_client import AssistantA2AClient
from assistant_client.webhook_app import create_webhook_app
from assistant_common import config
from assistant_common.logger import AppLogger, set_app_context
from credit_payments.service import PaymentsConfig, PaymentsService


async def run_bearer_token_flow(client: AssistantA2AClient) -> None:
    logger.info("🧪 Testing A2A Payments Bearer Token Flow")
    if not await client.fetch_agent_card():
        return
    token = await client.get_access_token()
    if not token:
        return
    for text in ("Hello there!", "Calculate 15 * 7", "Weather in London", 'Translate "hello" to Spanish'):
        await client.send_message(text, token)
    logger.info("🎉 Bearer token flow test completed!")


async def run_invalid_tokens(client: AssistantA2AClient) -> None:
    logger.info("🧪 Testing Invalid Bearer Token Handling")
    cases = [
        ("Calculate 2+2", "undefined"),
        ("Weather in Tokyo", "null"),
        ('Translate "goodbye" to French', "fake.token.here"),
        ("Start streaming", "not-a-jwt-token"),
        ("Hello", None),
        ("What is (25 + 15) * 2 / 4?", ""),
    ]
    for text, token in cases:
        response = await client.send_message(text, token)
        logger.info("Rejected as expected: %s", response is None)
    logger.info("🎉 Invalid bearer token tests completed!")


async def run_mixed_tokens(client: AssistantA2AClient) -> None:
    logger.info("🧪 Testing Mixed Token Scenarios")
    token = await client.get_access_token()
    if not token:
        return
    cases = [
        ("Hello", token),
        ("Calculate 5+5", "invalid-token"),
        ("Weather in Paris", "invalid-token"),
        ("Weather in Paris", token),
        ("Hello", token),
        ("Calculate 10 * 3", token),
        ("Weather in Berlin", token),
        ('Translate "thank you" to German', token),
    ]
    for text, bearer in cases:
        await client.send_message(text, bearer)
    logger.info("🎉 Mixed token scenarios completed!")


async def run_streaming(client: AssistantA2AClient) -> None:
    logger.info("🧪 Testing Streaming SSE")
    token = await client.get_access_token()
    if not token:
        logger.error("No access token for streaming test")
        return
    count = 0
    async for _ in client.stream_message("Start streaming", token):
        count += 1
    logger.info("✅ Streaming SSE test completed (%d events)", count)


async def run_push_notification(client: AssistantA2AClient, *, wait_seconds: float = 30.0) -> None:
    if not config.ASYNC_EXECUTION:
        logger.warning("🚨 Async execution is disabled. Push notification test will fail.")
    token = await client.get_access_token()
    if not token:
        return

    webhook = create_webhook_app(client, expected_token=config.WEBHOOK_TOKEN)
    server = uvicorn.Server(
        uvicorn.Config(webhook, host=config.WEBHOOK_HOST, port=config.WEBHOOK_PORT, log_level="warning")
    )
    serve_task = asyncio.create_task(server.serve())
    logger.info("[Webhook] Listening for push notifications on %s", config.WEBHOOK_URL)

    try:
        logger.info("🧪 Testing push notification support")
        response = await client.send_message("Testing push notification!", token)
        task_id = ((response or {}).get("result") or {}).get("id")
        if not task_id:
            logger.error("No taskId found in response: %s", response)
            return

        push_config = {
            "url": config.WEBHOOK_URL,
            "token": config.WEBHOOK_TOKEN,
            "authentication": {"schemes": ["bearer"], "credentials": config.WEBHOOK_TOKEN},
        }
        if not await client.set_push_notification_config(task_id, push_config, token):
            logger.error("Failed to set push notification config")
            return
        logger.info("✅ Push notification config set. Waiting %.0fs for the webhook...", wait_seconds)
        await asyncio.sleep(wait_seconds)
    finally:
        server.should_exit = True
        await serve_task


SCENARIOS: Dict[str, Callable[[AssistantA2AClient], Awaitable[None]]] = {
    "bearer": run_bearer_token_flow,
    "invalid": run_invalid_tokens,
    "mixed": run_mixed_tokens,
    "streaming": run_streaming,
    "push": run_push_notification,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Exercise the A2A assistant agent with paid requests.")
    parser.add_argument(
        "scenarios",
        nargs="*",
        default=["all"],
        help=f"Scenarios to run, in order: {', '.join(SCENARIOS)} or all (default: all)",
    )
    parser.add_argument("--base-url", default=config.A2A_BASE_URL, help="Agent JSON-RPC endpoint")
    return parser


async def run(scenarios: List[str], base_url: str, api_key: Optional[str] = None) -> None:
    api_key = api_key or config.SUBSCRIBER_API_KEY
    if not api_key or not config.PLAN_ID or not config.AGENT_ID:
        raise SystemExit("Missing required environment variables: SUBSCRIBER_API_KEY, PLAN_ID, AGENT_ID")
    payments = PaymentsService(PaymentsConfig(nvm_api_key=api_key))

    names = list(SCENARIOS) if "all" in scenarios else scenarios
    with set_app_context(AppLogger.A2A_CLIENT):
        async with AssistantA2AClient(base_url, payments=payments) as client:
            for name in names:
                await SCENARIOS[name](client)


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    unknown = [name for name in args.scenarios if name != "all" and name not in SCENARIOS]
    if unknown:
        parser.error(f"unknown scenario(s): {', '.join(unknown)}")
    asyncio.run(run(args.scenarios, args.base_url))


if __name__ == "__main__":
    main()
