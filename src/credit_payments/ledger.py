from __future__ import annotations

from typing import Dict, Tuple

from assistant_common.config import PLAN_INITIAL_CREDITS
from assistant_common.logger import get_current_logger
from credit_payments.errors import InsufficientCreditsError, PlanNotFoundError


class CreditLedger:
    """In-memory credit balances keyed by ``(subscriber_id, plan_id)``.

    A subscriber seen for the first time on a known plan is granted the plan's
    initial credits, which stands in for the plan purchase.
    """

    def __init__(
        self,
        *,
        initial_credits: int = PLAN_INITIAL_CREDITS,
        plans: set[str] | None = None,
    ) -> None:
        self._initial_credits = initial_credits
        self._plans = set(plans) if plans is not None else None
        self._balances: Dict[Tuple[str, str], int] = {}

    def _ensure_account(self, subscriber_id: str, plan_id: str) -> Tuple[str, str]:
        if self._plans is not None and plan_id not in self._plans:
            raise PlanNotFoundError(f"Unknown plan: {plan_id}")
        key = (subscriber_id, plan_id)
        if key not in self._balances:
            self._balances[key] = self._initial_credits
            get_current_logger().info(
                "Granted %d credits (subscriber=%s, plan=%s)", self._initial_credits, subscriber_id, plan_id
            )
        return key

    def balance(self, subscriber_id: str, plan_id: str) -> int:
        return self._balances[self._ensure_account(subscriber_id, plan_id)]

    def top_up(self, subscriber_id: str, plan_id: str, credits: int) -> int:
        if credits <= 0:
            raise ValueError("credits must be positive")
        key = self._ensure_account(subscriber_id, plan_id)
        self._balances[key] += credits
        return self._balances[key]

    def burn(self, subscriber_id: str, plan_id: str, credits: int) -> int:
        """Debit ``credits`` and return the remaining balance."""
        if credits <= 0:
            raise ValueError("credits must be positive")
        key = self._ensure_account(subscriber_id, plan_id)
        balance = self._balances[key]
        if balance < credits:
            raise InsufficientCreditsError(balance=balance, required=credits)
        self._balances[key] = balance - credits
        get_current_logger().debug(
            "Burned %d credits (subscriber=%s, plan=%s, remaining=%d)",
            credits, subscriber_id, plan_id, self._balances[key],
        )
        return self._balances[key]
