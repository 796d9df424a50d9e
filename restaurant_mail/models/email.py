"""Email delivery data models.

Defines status enums, the send request and result, delivery log rows, retry
queue rows and sweep counters.

Version: 1.0.0
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class DeliveryStatus(str, Enum):
    """Delivery log status enumeration.

    Only PENDING, SENT and FAILED are written by the delivery core; the
    remaining states are reserved for provider webhook integration.
    """

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    OPENED = "opened"
    CLICKED = "clicked"
    BOUNCED = "bounced"
    FAILED = "failed"
    SPAM = "spam"
    UNSUBSCRIBED = "unsubscribed"


class QueueStatus(str, Enum):
    """Retry queue status enumeration.

    Attributes:
        PENDING: Waiting for the next sweep.
        PROCESSING: Currently being attempted by a sweep.
        SENT: Delivered by a sweep.
        FAILED: Attempt ceiling reached, needs manual intervention.
        CANCELLED: Withdrawn by an operator.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"


class EmailSendRequest(BaseModel):
    """A single logical send, immutable once constructed.

    Attributes:
        template_key: Template identifier (e.g. "booking_confirmation").
        recipient_email: Recipient address.
        recipient_name: Recipient display name (optional).
        data: Values merged into the template placeholders.
        booking_id: Correlated booking (optional, not enforced).
        contact_id: Correlated contact form submission (optional).
        scheduled_for: Earliest send time; a future value defers to the queue.
        priority: Queue priority, higher is more urgent.
        idempotency_key: Provider idempotency key shared by all retries.
    """

    model_config = ConfigDict(frozen=True)

    template_key: str = Field(..., min_length=1, max_length=100)
    recipient_email: EmailStr
    recipient_name: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    booking_id: str | None = None
    contact_id: str | None = None
    scheduled_for: datetime | None = None
    priority: int | None = Field(default=None, ge=0, le=10)
    idempotency_key: str | None = Field(default=None, max_length=256)

    @field_validator("template_key")
    @classmethod
    def validate_template_key(cls, v: str) -> str:
        """Reject blank template keys."""
        if not v.strip():
            raise ValueError("template_key cannot be empty")
        return v.strip()

    @field_validator("scheduled_for")
    @classmethod
    def validate_scheduled_for(cls, v: datetime | None) -> datetime | None:
        """Treat naive times as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class EmailResult(BaseModel):
    """Outcome of a send or schedule call.

    ``log_id`` is the delivery log row on success and the retry queue row
    when the email was queued.
    """

    success: bool
    message_id: str | None = None
    error: str | None = None
    log_id: int | None = None


class DeliveryLogEntry(BaseModel):
    """Delivery log row (``email_logs``)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    template_key: str
    recipient_email: str
    recipient_name: str | None = None
    sender_email: str | None = None
    subject: str = ""
    status: DeliveryStatus = DeliveryStatus.PENDING
    provider_message_id: str | None = None
    error_message: str | None = None
    booking_id: str | None = None
    contact_id: str | None = None
    created_at: datetime
    sent_at: datetime | None = None


class QueuedEmail(BaseModel):
    """Retry queue row (``email_queue``).

    Attributes:
        current_attempts: Attempts already spent, including immediate ones.
        max_attempts: Hard ceiling recorded with the row.
        process_after: Next time the row is eligible for a sweep.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    template_key: str
    recipient_email: str
    recipient_name: str | None = None
    subject: str = ""
    email_data: dict[str, Any] = Field(default_factory=dict)
    booking_id: str | None = None
    contact_id: str | None = None
    scheduled_for: datetime
    priority: int = 5
    status: QueueStatus = QueueStatus.PENDING
    current_attempts: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=5, ge=1)
    error_message: str | None = None
    process_after: datetime | None = None
    last_attempt_at: datetime | None = None
    idempotency_key: str | None = None
    created_at: datetime

    def to_request(self) -> EmailSendRequest:
        """Rebuild the original send request from the stored copy."""
        return EmailSendRequest(
            template_key=self.template_key,
            recipient_email=self.recipient_email,
            recipient_name=self.recipient_name,
            data=self.email_data,
            booking_id=self.booking_id,
            contact_id=self.contact_id,
            idempotency_key=self.idempotency_key,
        )


class SweepResult(BaseModel):
    """Counters returned by a reconciliation sweep."""

    processed: int = 0
    success: int = 0
    failed: int = 0

    def __add__(self, other: SweepResult) -> SweepResult:
        return SweepResult(
            processed=self.processed + other.processed,
            success=self.success + other.success,
            failed=self.failed + other.failed,
        )
