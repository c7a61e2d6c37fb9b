"""Local payments layer: access tokens, credit ledger and the bearer-token gate."""

from credit_payments.agent_card import build_payment_agent_card, get_payment_extension
from credit_payments.errors import (
    AgentMismatchError,
    InsufficientCreditsError,
    InvalidAccessTokenError,
    MissingAccessTokenError,
    PaymentError,
    PlanNotFoundError,
)
from credit_payments.ledger import CreditLedger
from credit_payments.service import AgentAccessParams, PaymentsConfig, PaymentsService
from credit_payments.tokens import AccessTokenClaims

__all__ = [
    "AccessTokenClaims",
    "AgentAccessParams",
    "AgentMismatchError",
    "CreditLedger",
    "InsufficientCreditsError",
    "InvalidAccessTokenError",
    "MissingAccessTokenError",
    "PaymentError",
    "PaymentsConfig",
    "PaymentsService",
    "PlanNotFoundError",
    "build_payment_agent_card",
    "get_payment_extension",
]
