"""FastAPI dependencies for authentication, rate limiting and services.

Collaborators are built once in the application lifespan and kept on
``app.state``; the getters below hand them to routes. Tests replace them
through ``app.dependency_overrides``.
"""

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from receipt_relay.config import Settings, get_settings
from receipt_relay.errors import api_error
from receipt_relay.services.auth import AuthenticationError, IdentityVerifier
from receipt_relay.services.error_log import ErrorLog
from receipt_relay.services.model_gateway import ModelGateway
from receipt_relay.services.pipeline import RequestPipeline
from receipt_relay.services.rate_limit import RateLimiter
from receipt_relay.services.usage_store import UsageStore

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """The caller identified by a verified bearer credential."""

    uid: str


def get_usage_store(request: Request) -> UsageStore:
    """Get the usage store."""
    return request.app.state.usage_store


def get_error_log(request: Request) -> ErrorLog:
    """Get the error log."""
    return request.app.state.error_log


def get_model_gateway(request: Request) -> ModelGateway:
    """Get the model gateway."""
    return request.app.state.model_gateway


def get_identity_verifier(request: Request) -> IdentityVerifier:
    """Get the identity verifier."""
    return request.app.state.identity_verifier


def get_rate_limiter(request: Request) -> RateLimiter:
    """Get the rate limiter."""
    return request.app.state.rate_limiter


def get_pipeline(
    settings: Annotated[Settings, Depends(get_settings)],
    usage_store: Annotated[UsageStore, Depends(get_usage_store)],
    error_log: Annotated[ErrorLog, Depends(get_error_log)],
    gateway: Annotated[ModelGateway, Depends(get_model_gateway)],
) -> RequestPipeline:
    """Get a request pipeline wired to the application's collaborators."""
    return RequestPipeline(settings, usage_store, error_log, gateway)


async def enforce_rate_limit(
    request: Request,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> None:
    """Reject clients that exceed the per-address request window."""
    key = request.client.host if request.client else "unknown"
    if not limiter.hit(key):
        retry_after = limiter.retry_after(key)
        logger.warning(f"Rate limit exceeded for {key}")
        raise api_error(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "RATE_LIMITED",
            "Too many requests from this IP, please try again later.",
            headers={"Retry-After": str(retry_after)},
            retryAfter=retry_after,
        )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    verifier: Annotated[IdentityVerifier, Depends(get_identity_verifier)],
    pipeline: Annotated[RequestPipeline, Depends(get_pipeline)],
) -> CurrentUser:
    """Get the current user from the bearer credential."""
    if credentials is None or not credentials.credentials:
        await pipeline.log_failure(None, "No authentication token provided", "authenticate", 0)
        raise api_error(
            status.HTTP_401_UNAUTHORIZED,
            "AUTH_REQUIRED",
            "No authentication token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        uid = await verifier.verify_token(credentials.credentials)
    except AuthenticationError as e:
        logger.warning(f"Token verification failed: {e}")
        await pipeline.log_failure(None, f"Invalid authentication token: {e}", "authenticate", 0)
        raise api_error(
            status.HTTP_401_UNAUTHORIZED,
            "AUTH_INVALID",
            "Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    return CurrentUser(uid=uid)
