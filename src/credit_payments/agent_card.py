from __future__ import annotations

from typing import Any, Dict, Literal

from a2a.types import AgentCard, AgentExtension

from assistant_common.constants import PAYMENT_EXTENSION_URI


def build_payment_agent_card(
    base_card: AgentCard,
    *,
    plan_id: str,
    agent_id: str,
    credits: int = 1,
    cost_description: str = "",
    payment_type: Literal["fixed", "dynamic"] = "dynamic",
) -> AgentCard:
    """Return a copy of ``base_card`` advertising how the agent charges credits."""
    params: Dict[str, Any] = {
        "paymentType": payment_type,
        "credits": credits,
        "costDescription": cost_description,
        "planId": plan_id,
        "agentId": agent_id,
    }
    extension = AgentExtension(
        uri=PAYMENT_EXTENSION_URI,
        description="Requests are paid with plan credits",
        params=params,
        required=True,
    )
    existing = [
        ext for ext in (base_card.capabilities.extensions or []) if ext.uri != PAYMENT_EXTENSION_URI
    ]
    capabilities = base_card.capabilities.model_copy(update={"extensions": [*existing, extension]})
    return base_card.model_copy(update={"capabilities": capabilities})


def get_payment_extension(card: AgentCard) -> AgentExtension | None:
    for ext in card.capabilities.extensions or []:
        if ext.uri == PAYMENT_EXTENSION_URI:
            return ext
    return None
