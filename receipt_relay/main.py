"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import httpx
from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from receipt_relay.api import assistant, quota, receipts
from receipt_relay.api.dependencies import enforce_rate_limit
from receipt_relay.config import get_settings
from receipt_relay.errors import (
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from receipt_relay.services.auth import build_identity_verifier
from receipt_relay.services.error_log import build_error_log
from receipt_relay.services.model_gateway import build_model_gateway
from receipt_relay.services.rate_limit import RateLimiter
from receipt_relay.services.usage_store import build_usage_store

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build shared collaborators on startup and release them on shutdown."""
    http_client = httpx.AsyncClient(timeout=settings.llm_timeout_seconds)
    app.state.model_gateway = build_model_gateway(settings, http_client)
    app.state.usage_store = build_usage_store(
        settings.usage_store_backend, settings.firestore_project
    )
    app.state.error_log = build_error_log(
        settings.usage_store_backend, settings.firestore_project
    )
    app.state.identity_verifier = build_identity_verifier(
        settings.identity_backend,
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        project_id=settings.firebase_project_id,
    )
    app.state.rate_limiter = RateLimiter(
        settings.rate_limit_requests, settings.rate_limit_window_seconds
    )
    logger.info(
        f"{settings.service_name} {settings.service_version} starting "
        f"(environment={settings.environment}, llm_provider={settings.llm_provider})"
    )
    yield
    await app.state.model_gateway.aclose()
    await http_client.aclose()


app = FastAPI(
    title="Receipt Relay API",
    description="Authenticated relay from receipt text to structured receipts via an LLM",
    version=settings.service_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Register routers
rate_limited = [Depends(enforce_rate_limit)]
app.include_router(receipts.router, dependencies=rate_limited)
app.include_router(assistant.router, dependencies=rate_limited)
app.include_router(quota.router, dependencies=rate_limited)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment,
    }


@app.get("/")
async def root():
    """Describe the service and its endpoints."""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "status": "running",
        "endpoints": {
            "health": "GET /health",
            "processReceipt": "POST /api/process-receipt",
            "aiAssistant": "POST /api/ai-assistant",
            "userQuota": "GET /api/user/quota",
        },
    }
