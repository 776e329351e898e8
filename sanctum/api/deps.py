"""
sanctum.api.deps — FastAPI dependency injection
================================================
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated, TypeVar

import jwt
from fastapi import Header, HTTPException, Request, status
from jwt.exceptions import InvalidTokenError

from sanctum.config import SanctumConfig, load_config
from sanctum.engine.outcomes import Outcome, RejectionKind
from sanctum.services.registry import SanctumServices

T = TypeVar("T")

_WEAK_SECRETS = frozenset({
    "sanctum-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"

REJECTION_STATUS: dict[RejectionKind, int] = {
    RejectionKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionKind.INELIGIBLE: status.HTTP_403_FORBIDDEN,
    RejectionKind.INVALID_STATE: status.HTTP_409_CONFLICT,
    RejectionKind.EXTERNAL_FAILURE: status.HTTP_502_BAD_GATEWAY,
}


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_config() -> SanctumConfig:
    return load_config(os.getenv("SANCTUM_CONFIG", "config.yaml"))


def get_services(request: Request) -> SanctumServices:
    """The service container built by the lifespan (or installed by tests)."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Services not ready")
    return services


def get_current_admin(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate JWT and return admin user payload. Raises 401 if invalid."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    if not payload.get("is_admin"):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return payload


def unwrap(outcome: Outcome[T]) -> T:
    """Return the outcome's value or raise the matching HTTP error."""
    if outcome.success:
        return outcome.value
    code = REJECTION_STATUS.get(outcome.kind, status.HTTP_400_BAD_REQUEST)
    raise HTTPException(code, outcome.reason)
