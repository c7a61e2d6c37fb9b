"""Payments facade used by the agent (token validation, credit burning) and its clients (token issuance)."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from assistant_common.config import (
    NVM_ENVIRONMENT,
    PAYMENTS_JWT_ALGORITHM,
    PAYMENTS_JWT_SECRET,
)
from assistant_common.logger import get_current_logger
from credit_payments.errors import (
    AgentMismatchError,
    InsufficientCreditsError,
    MissingAccessTokenError,
    PlanNotFoundError,
)
from credit_payments.ledger import CreditLedger
from credit_payments.tokens import AccessTokenClaims, create_access_token, decode_access_token


@dataclass(frozen=True)
class PaymentsConfig:
    nvm_api_key: str
    environment: str = NVM_ENVIRONMENT
    jwt_secret: str = PAYMENTS_JWT_SECRET
    jwt_algorithm: str = PAYMENTS_JWT_ALGORITHM


@dataclass(frozen=True)
class AgentAccessParams:
    access_token: str
    plan_id: str
    agent_id: str


class PaymentsService:
    """Explicitly constructed payments client; pass it to whoever needs it."""

    def __init__(self, config: PaymentsConfig, *, ledger: CreditLedger | None = None) -> None:
        if not config.nvm_api_key:
            raise ValueError("nvm_api_key is required")
        self._config = config
        self._ledger = ledger or CreditLedger()

    @property
    def environment(self) -> str:
        return self._config.environment

    @property
    def ledger(self) -> CreditLedger:
        return self._ledger

    @property
    def subscriber_id(self) -> str:
        """Stable identity derived from the API key, never the key itself."""
        digest = hashlib.sha256(self._config.nvm_api_key.encode("utf-8")).hexdigest()
        return f"sub-{digest[:16]}"

    def get_agent_access_token(
        self,
        plan_id: str,
        agent_id: str,
        *,
        expires_delta: Optional[timedelta] = None,
    ) -> AgentAccessParams:
        if not plan_id or not agent_id:
            raise ValueError("plan_id and agent_id are required")
        token = create_access_token(
            self.subscriber_id,
            plan_id,
            agent_id,
            self._config.jwt_secret,
            algorithm=self._config.jwt_algorithm,
            expires_delta=expires_delta,
        )
        get_current_logger().info("Issued access token (plan=%s, agent=%s)", plan_id, agent_id)
        return AgentAccessParams(access_token=token, plan_id=plan_id, agent_id=agent_id)

    def validate_request(
        self,
        token: Optional[str],
        *,
        agent_id: str,
        plan_id: str,
        min_credits: int = 1,
    ) -> AccessTokenClaims:
        """Check that ``token`` may call ``agent_id`` and that its plan can pay.

        Raises the ``PaymentError`` subclass matching the HTTP status to answer.
        """
        if not token:
            raise MissingAccessTokenError()
        claims = decode_access_token(token, self._config.jwt_secret, self._config.jwt_algorithm)
        if claims.agent_id != agent_id:
            raise AgentMismatchError(f"Token was issued for agent {claims.agent_id}")
        if claims.plan_id != plan_id:
            raise PlanNotFoundError(f"Plan {claims.plan_id} does not grant access to this agent")
        balance = self._ledger.balance(claims.subscriber_id, claims.plan_id)
        if balance < min_credits:
            raise InsufficientCreditsError(balance=balance, required=min_credits)
        get_current_logger().debug(
            "Access token validated (subscriber=%s, plan=%s, balance=%d)",
            claims.subscriber_id, claims.plan_id, balance,
        )
        return claims

    def redeem_credits(self, claims: AccessTokenClaims, credits: int) -> int:
        """Burn ``credits`` from the claims' plan and return the remaining balance."""
        remaining = self._ledger.burn(claims.subscriber_id, claims.plan_id, credits)
        get_current_logger().info(
            "Redeemed %d credits (subscriber=%s, plan=%s, remaining=%d)",
            credits, claims.subscriber_id, claims.plan_id, remaining,
        )
        return remaining
