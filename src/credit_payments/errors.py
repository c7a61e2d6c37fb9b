"""Errors raised by the payments layer, each tied to the HTTP status it maps to."""

from __future__ import annotations


class PaymentError(Exception):
    """Base error of the payments layer."""

    status_code = 400
    # JSON-RPC error code used when the error is answered on the agent endpoint
    rpc_code = -32001

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingAccessTokenError(PaymentError):
    status_code = 401

    def __init__(self, message: str = "Missing bearer token") -> None:
        super().__init__(message)


class InvalidAccessTokenError(PaymentError):
    status_code = 401


class InsufficientCreditsError(PaymentError):
    status_code = 402
    rpc_code = -32002

    def __init__(self, balance: int, required: int) -> None:
        super().__init__(f"Insufficient credits: balance {balance}, required {required}")
        self.balance = balance
        self.required = required


class AgentMismatchError(PaymentError):
    status_code = 403
    rpc_code = -32003


class PlanNotFoundError(PaymentError):
    status_code = 404
    rpc_code = -32004
