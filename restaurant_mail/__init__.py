"""Restaurant Mail - Robust transactional email delivery for bookings.

Provides booking and contact notifications with:
- Resend HTTP API delivery
- Stored or bundled ``{{placeholder}}`` templates
- Immediate retries with exponential backoff and a send timeout
- Retry queue fallback with bounded lifetime attempts
- Daily quota enforcement (fail-open)
- Reconciliation sweeps for stuck and queued emails

Architecture:
    - PostgreSQL tables (email_settings, email_templates, email_logs, email_queue)
    - RobustEmailService (send, schedule, sweeps, health report)
    - Maintenance worker (runs the sweeps every N seconds)
    - FastAPI service for remote callers and schedulers

Modules:
    - core: Exceptions, logger
    - config: Pydantic v2 settings
    - models: Data models (requests, log and queue rows, policy, health)
    - clients: Provider transports (Resend)
    - database: Repositories (PostgreSQL)
    - templates: Placeholder rendering and default templates
    - service: Robust delivery and quota guard
    - notifications: Booking and contact helpers, background dispatch
    - worker: Sweep daemon

Usage:
    from restaurant_mail.database import PostgresDatabase
    from restaurant_mail.models import EmailSendRequest
    from restaurant_mail.service import build_email_service

    service = build_email_service(PostgresDatabase())
    result = await service.send_email_robust(
        EmailSendRequest(
            template_key="booking_confirmation",
            recipient_email="guest@example.com",
            recipient_name="Ana",
            data={"customerName": "Ana", "partySize": 4},
        )
    )

Version: 1.0.0
"""

__version__ = "1.0.0"

# Clients
from restaurant_mail.clients import EmailTransport, ResendClient

# Configuration
from restaurant_mail.config import EmailConfig

# Core utilities
from restaurant_mail.core import (
    EmailConfigError,
    EmailServiceError,
    EmailStoreError,
    PermanentSendError,
    QuotaExceededError,
    SendError,
    SendTimeoutError,
    TemplateRenderError,
    TransientSendError,
    get_logger,
)

# Database
from restaurant_mail.database import (
    DeliveryLogRepository,
    PostgresDatabase,
    RetryQueueRepository,
    SettingsRepository,
)

# Models
from restaurant_mail.models import (
    DeliveryStatus,
    EmailHealthReport,
    EmailResult,
    EmailSendRequest,
    QueuedEmail,
    QueueStatus,
    RetryPolicy,
    SweepResult,
)

# Notifications
from restaurant_mail.notifications import BackgroundDispatcher, BookingNotifier

# Service
from restaurant_mail.service import QuotaGuard, RobustEmailService, build_email_service

# Templates
from restaurant_mail.templates import TemplateRenderer, render_placeholders

__all__ = [
    # Version
    "__version__",
    # Core exceptions
    "EmailServiceError",
    "EmailConfigError",
    "EmailStoreError",
    "SendError",
    "TransientSendError",
    "SendTimeoutError",
    "PermanentSendError",
    "QuotaExceededError",
    "TemplateRenderError",
    "get_logger",
    # Configuration
    "EmailConfig",
    # Models
    "DeliveryStatus",
    "QueueStatus",
    "EmailSendRequest",
    "EmailResult",
    "QueuedEmail",
    "SweepResult",
    "RetryPolicy",
    "EmailHealthReport",
    # Clients
    "EmailTransport",
    "ResendClient",
    # Database
    "PostgresDatabase",
    "SettingsRepository",
    "DeliveryLogRepository",
    "RetryQueueRepository",
    # Templates
    "TemplateRenderer",
    "render_placeholders",
    # Service
    "RobustEmailService",
    "QuotaGuard",
    "build_email_service",
    # Notifications
    "BookingNotifier",
    "BackgroundDispatcher",
]
