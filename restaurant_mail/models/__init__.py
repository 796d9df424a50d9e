"""Models module for the restaurant mail service.

Defines Pydantic v2 data models for send requests, delivery log and queue
rows, tenant settings, provider messages and health statistics.

Version: 1.0.0
"""

from restaurant_mail.models.context import BookingDetails, ContactSubmission, CustomerDetails
from restaurant_mail.models.email import (
    DeliveryLogEntry,
    DeliveryStatus,
    EmailResult,
    EmailSendRequest,
    QueuedEmail,
    QueueStatus,
    SweepResult,
)
from restaurant_mail.models.policy import RetryPolicy
from restaurant_mail.models.settings import EmailSettings, EmailTemplate, LocaleSettings, QuotaState
from restaurant_mail.models.stats import EmailHealthReport, HealthLevel
from restaurant_mail.models.transport import OutgoingMessage, TransportResult

__all__ = [
    # Enums
    "DeliveryStatus",
    "QueueStatus",
    "HealthLevel",
    # Models
    "EmailSendRequest",
    "EmailResult",
    "DeliveryLogEntry",
    "QueuedEmail",
    "SweepResult",
    "RetryPolicy",
    "EmailSettings",
    "LocaleSettings",
    "QuotaState",
    "EmailTemplate",
    "EmailHealthReport",
    "OutgoingMessage",
    "TransportResult",
    # Context models
    "BookingDetails",
    "CustomerDetails",
    "ContactSubmission",
]
