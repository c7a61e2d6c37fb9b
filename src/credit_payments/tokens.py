"""
Access token helpers for the agent's subscribers.

Provides functions to create and decode the JWT bearer tokens that a
subscriber presents to the agent.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from pydantic import BaseModel

from assistant_common.config import ACCESS_TOKEN_EXPIRE_MINUTES, PAYMENTS_JWT_ALGORITHM
from credit_payments.errors import InvalidAccessTokenError


class AccessTokenClaims(BaseModel):
    """Access token payload schema."""
    subscriber_id: str
    plan_id: str
    agent_id: str
    exp: Optional[datetime] = None


def create_access_token(
    subscriber_id: str,
    plan_id: str,
    agent_id: str,
    secret: str,
    algorithm: str = PAYMENTS_JWT_ALGORITHM,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token granting a subscriber access to an agent.

    Args:
        subscriber_id: Identity of the subscriber that owns the plan
        plan_id: The plan whose credits pay for the requests
        agent_id: The agent the token is valid for
        secret: Signing secret shared with the agent
        algorithm: JWT signing algorithm
        expires_delta: Optional expiration time delta. Defaults to ACCESS_TOKEN_EXPIRE_MINUTES.

    Returns:
        Encoded JWT token string
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        "sub": subscriber_id,
        "plan_id": plan_id,
        "agent_id": agent_id,
        "exp": expire
    }

    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = PAYMENTS_JWT_ALGORITHM) -> AccessTokenClaims:
    """
    Decode a JWT access token and return its claims.

    Raises:
        InvalidAccessTokenError: If the token is expired, malformed or incomplete
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise InvalidAccessTokenError("Access token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidAccessTokenError(f"Invalid access token: {exc}") from exc

    missing = [key for key in ("sub", "plan_id", "agent_id") if not payload.get(key)]
    if missing:
        raise InvalidAccessTokenError(f"Access token is missing claims: {missing}")

    return AccessTokenClaims(
        subscriber_id=payload["sub"],
        plan_id=payload["plan_id"],
        agent_id=payload["agent_id"],
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc) if payload.get("exp") else None
    )


def extract_token_from_header(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the bearer token from an Authorization header.

    Args:
        authorization: Authorization header value (e.g., "Bearer <token>")

    Returns:
        Token string if valid Bearer format, None otherwise
    """
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]
