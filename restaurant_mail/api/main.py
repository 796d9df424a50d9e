"""Restaurant Mail Service API.

FastAPI application exposing the delivery service:
- POST /emails: Send an email in the background (robust send or schedule)
- POST /emails/process: Run the stuck email sweeps
- GET /emails/status: Delivery health and backlog counters
- GET /health: Service health check

Security features:
- API key authentication
- Rate limiting
- Sanitized error responses

Version: 1.0.0
"""

from __future__ import annotations

import asyncio
import hashlib
import secrets
import threading
import time
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Annotated

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader

from restaurant_mail.api.schemas import (
    EmailResponse,
    EmailStatusResponse,
    ErrorResponse,
    HealthResponse,
    ProcessEmailsResponse,
    SendEmailRequest,
)
from restaurant_mail.config import EmailConfig
from restaurant_mail.core.logger import get_logger, setup_logging
from restaurant_mail.database.connection import PostgresDatabase
from restaurant_mail.models.email import EmailSendRequest
from restaurant_mail.service import build_email_service
from restaurant_mail.service.robust import RobustEmailService

logger = get_logger(__name__)


# =============================================================================
# Application State (Dependency Injection)
# =============================================================================
@dataclass
class AppState:
    """Application state container for dependency injection."""

    config: EmailConfig
    db: PostgresDatabase | None = None
    service: RobustEmailService | None = None


app_state: AppState | None = None


def get_config() -> EmailConfig:
    """Dependency: Get application configuration."""
    if not app_state or not app_state.config:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return app_state.config


def get_service() -> RobustEmailService:
    """Dependency: Get the delivery service."""
    if not app_state or not app_state.service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return app_state.service


def get_database() -> PostgresDatabase:
    """Dependency: Get the connection pool."""
    if not app_state or not app_state.db:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return app_state.db


# =============================================================================
# Rate Limiting
# =============================================================================
@dataclass
class RateLimiter:
    """Thread-safe in-memory rate limiter using sliding window."""

    requests_per_minute: int = 60
    requests_per_second: int = 10
    _requests: dict[str, list[float]] = field(default_factory=lambda: defaultdict(list))
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def _clean_old_requests(self, client_id: str, window_seconds: int) -> None:
        """Remove requests outside the time window."""
        now = time.time()
        self._requests[client_id] = [
            t for t in self._requests[client_id] if now - t < window_seconds
        ]
        if not self._requests[client_id]:
            del self._requests[client_id]

    def is_allowed(self, client_id: str) -> bool:
        """Check if request is allowed under rate limits (thread-safe)."""
        with self._lock:
            now = time.time()
            self._clean_old_requests(client_id, 60)

            recent_second = [t for t in self._requests.get(client_id, []) if now - t < 1]
            if len(recent_second) >= self.requests_per_second:
                return False

            if len(self._requests.get(client_id, [])) >= self.requests_per_minute:
                return False

            self._requests[client_id].append(now)
            return True

    def get_client_id(self, request: Request) -> str:
        """Get a hashed client identifier from the request."""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            client_ip = forwarded.split(",")[0].strip()
        else:
            client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"

        return hashlib.sha256(client_ip.encode()).hexdigest()[:16]


# =============================================================================
# Module-level Configuration
# =============================================================================
_config = EmailConfig()

rate_limiter = RateLimiter(
    requests_per_minute=_config.RATE_LIMIT_PER_MINUTE,
    requests_per_second=_config.RATE_LIMIT_PER_SECOND,
)


# =============================================================================
# API Key Authentication
# =============================================================================
API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    api_key: Annotated[str | None, Depends(API_KEY_HEADER)],
    config: Annotated[EmailConfig, Depends(get_config)],
) -> bool:
    """Verify API key if authentication is enabled.

    Returns True if API_KEY is not configured or matches the provided key.
    """
    configured_key = config.API_KEY
    if not configured_key:
        return True

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not secrets.compare_digest(api_key, configured_key):
        logger.warning("Invalid API key attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return True


async def check_rate_limit(request: Request) -> None:
    """Dependency: reject clients over the rate limit."""
    if request.url.path == "/health":
        return

    client_id = rate_limiter.get_client_id(request)
    if not rate_limiter.is_allowed(client_id):
        logger.warning(f"Rate limit exceeded for client: {client_id}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Please try again later.",
            headers={"Retry-After": "60"},
        )


# =============================================================================
# Lifespan Context Manager
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    global app_state

    app_state = AppState(config=_config)

    setup_logging(
        log_dir=_config.LOG_DIR,
        log_level=_config.LOG_LEVEL,
        enable_file=_config.LOG_TO_FILE,
        max_size_mb=_config.LOG_MAX_SIZE_MB,
        backup_count=_config.LOG_BACKUP_COUNT,
        settings=_config,
    )

    try:
        app_state.db = PostgresDatabase(_config)
        app_state.service = build_email_service(app_state.db, _config)
        logger.info(f"Database connected: schema {_config.SCHEMA_NAME}")
    except Exception as e:
        logger.error(f"Failed to start API: {e}")
        raise

    yield

    logger.info(f"Shutting down {_config.SERVICE_NAME}...")
    if app_state and app_state.service:
        await app_state.service.aclose()
    if app_state and app_state.db:
        app_state.db.close()
    logger.info(f"{_config.SERVICE_NAME} stopped")


# =============================================================================
# FastAPI Application
# =============================================================================
def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    return FastAPI(
        title=_config.SERVICE_NAME,
        description="Restaurant email delivery with retries, queue fallback and reconciliation",
        version=_config.SERVICE_VERSION,
        lifespan=lifespan,
    )


app = create_app()


# =============================================================================
# API Endpoints
# =============================================================================
@app.post(
    "/emails",
    response_model=EmailResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        422: {"model": ErrorResponse, "description": "Invalid request"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Server error"},
    },
    dependencies=[Depends(check_rate_limit)],
)
async def send_email(
    request: SendEmailRequest,
    background_tasks: BackgroundTasks,
    service: Annotated[RobustEmailService, Depends(get_service)],
    _auth: Annotated[bool, Depends(verify_api_key)],
) -> EmailResponse:
    """Accept an email for delivery.

    The send runs after the response is returned; its outcome is recorded
    in the delivery log or the retry queue.
    """
    try:
        send_request = EmailSendRequest(
            **request.model_dump(exclude={"idempotency_key"}),
            idempotency_key=request.idempotency_key or uuid.uuid4().hex,
        )
        background_tasks.add_task(service.send_email_robust, send_request)

        logger.info(
            f"Email accepted: {send_request.idempotency_key} "
            f"({send_request.template_key} to {send_request.recipient_email})"
        )
        return EmailResponse(
            status="accepted",
            message_id=send_request.idempotency_key,
            detail="Email accepted for delivery",
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to accept email: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process email request",
        ) from None


@app.post(
    "/emails/process",
    response_model=ProcessEmailsResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        500: {"model": ErrorResponse, "description": "Processing failed"},
    },
    dependencies=[Depends(check_rate_limit)],
)
async def process_emails_endpoint(
    service: Annotated[RobustEmailService, Depends(get_service)],
    _auth: Annotated[bool, Depends(verify_api_key)],
) -> ProcessEmailsResponse:
    """Run the stuck email sweeps once.

    Intended for an external scheduler where the worker daemon is not
    deployed. Callers must not run overlapping sweeps.
    """
    try:
        result = await service.process_stuck_emails()
        detail = (
            f"Processed {result.processed} emails: "
            f"{result.success} sent, {result.failed} failed"
        )
        logger.info(detail)
        return ProcessEmailsResponse(
            processed=result.processed,
            success=result.success,
            failed=result.failed,
            detail=detail,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Email processing error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process emails",
        ) from None


@app.get(
    "/emails/status",
    response_model=EmailStatusResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        500: {"model": ErrorResponse, "description": "Server error"},
    },
)
async def email_status_endpoint(
    service: Annotated[RobustEmailService, Depends(get_service)],
    _auth: Annotated[bool, Depends(verify_api_key)],
) -> EmailStatusResponse:
    """Delivery health and backlog counters."""
    try:
        report = await service.get_health_report()
        return EmailStatusResponse(
            status=report.status.value,
            stuck_pending=report.stuck_pending_count,
            queue_pending=report.queue_pending_count,
            queue_failed=report.queue_failed_count,
            sent_last_24h=report.sent_last_24h,
            failed_last_24h=report.failed_last_24h,
            success_rate=report.success_rate,
            recommendations=report.recommendations,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get email status: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve email status",
        ) from None


@app.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": ErrorResponse, "description": "Service unhealthy"}},
)
async def health_check(
    db: Annotated[PostgresDatabase, Depends(get_database)],
    service: Annotated[RobustEmailService, Depends(get_service)],
    config: Annotated[EmailConfig, Depends(get_config)],
) -> HealthResponse | JSONResponse:
    """Check service health.

    No authentication required - used by load balancers and monitoring.
    """
    db_status = "error"
    provider_status = "error"

    try:
        if await asyncio.to_thread(db.health_check):
            db_status = "ok"
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")

    try:
        settings = await asyncio.to_thread(service.settings_store.get_email_settings)
        has_key = bool((settings and settings.api_key_encrypted) or config.RESEND_API_KEY)
        has_sender = bool(settings and settings.sender_email)
        provider_status = "ok" if has_key and has_sender else "not_configured"
    except Exception as e:
        logger.warning(f"Provider settings check failed: {e}")

    overall_status = "ok" if db_status == "ok" else "degraded"

    response = HealthResponse(
        status=overall_status,
        db=db_status,
        email_provider=provider_status,
        version=config.SERVICE_VERSION,
    )

    if overall_status != "ok":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json"),
        )

    return response


# =============================================================================
# Entry Point
# =============================================================================
def run():
    """Run the API server."""
    import uvicorn

    logger.info(f"Starting {_config.SERVICE_NAME} on {_config.API_HOST}:{_config.API_PORT}")
    uvicorn.run(
        "restaurant_mail.api.main:app",
        host=_config.API_HOST,
        port=_config.API_PORT,
        reload=False,
    )


if __name__ == "__main__":
    run()
