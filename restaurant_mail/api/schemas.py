"""API request and response schemas.

Pydantic models for API validation and serialization.

Version: 1.0.0
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SendEmailRequest(BaseModel):
    """Request model for POST /emails endpoint."""

    template_key: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Template identifier, e.g. booking_confirmation",
    )
    recipient_email: EmailStr = Field(..., description="Recipient email address")
    recipient_name: str | None = Field(default=None, description="Recipient display name")
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Values for the template placeholders",
    )
    booking_id: str | None = Field(default=None, description="Related booking ID")
    contact_id: str | None = Field(default=None, description="Related contact submission ID")
    scheduled_for: datetime | None = Field(
        default=None,
        description="Defer delivery until this time (naive values are UTC)",
    )
    priority: int | None = Field(default=None, ge=0, le=10, description="Queue priority")
    idempotency_key: str | None = Field(
        default=None,
        max_length=256,
        description="Client key reused by every retry of this send",
    )

    @field_validator("scheduled_for")
    @classmethod
    def validate_scheduled_for(cls, v: datetime | None) -> datetime | None:
        """Treat naive times as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class EmailResponse(BaseModel):
    """Response model for POST /emails endpoint."""

    status: str = Field(description="Request status (accepted)")
    message_id: str = Field(description="Idempotency key of the send")
    detail: str = Field(description="Status message")
    timestamp: datetime = Field(default_factory=_now)


class ProcessEmailsResponse(BaseModel):
    """Response model for POST /emails/process endpoint."""

    processed: int = Field(description="Rows attempted")
    success: int = Field(description="Rows delivered")
    failed: int = Field(description="Rows that failed again")
    detail: str = Field(description="Processing summary")
    timestamp: datetime = Field(default_factory=_now)


class EmailStatusResponse(BaseModel):
    """Response model for GET /emails/status endpoint."""

    status: str = Field(description="healthy, warning or critical")
    stuck_pending: int = Field(description="Delivery log rows stuck in pending")
    queue_pending: int = Field(description="Retry queue rows waiting")
    queue_failed: int = Field(description="Retry queue rows that exhausted retries")
    sent_last_24h: int = Field(description="Emails sent in the last 24 hours")
    failed_last_24h: int = Field(description="Emails failed in the last 24 hours")
    success_rate: float = Field(description="Success rate (%) over the last 24 hours")
    recommendations: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=_now)


class HealthResponse(BaseModel):
    """Response model for GET /health endpoint."""

    status: str = Field(description="Overall service status")
    db: str = Field(description="Database connection status")
    email_provider: str = Field(description="Provider credential status")
    version: str = Field(description="Service version")
    timestamp: datetime = Field(default_factory=_now)


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(description="Error type")
    message: str = Field(description="Error description")
    code: str = Field(description="Error code")
    timestamp: datetime = Field(default_factory=_now)
