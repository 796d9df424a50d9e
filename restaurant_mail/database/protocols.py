"""Store interfaces consumed by the delivery service.

The PostgreSQL repositories implement these; tests substitute in-memory
versions. All methods are synchronous and are called from worker threads.

Version: 1.0.0
"""

from datetime import date, datetime
from typing import Any, Protocol

from restaurant_mail.models.email import DeliveryLogEntry, DeliveryStatus, QueuedEmail
from restaurant_mail.models.settings import EmailSettings, EmailTemplate, LocaleSettings, QuotaState


class TemplateStore(Protocol):
    def get_template(self, template_key: str) -> EmailTemplate | None: ...


class SettingsStore(TemplateStore, Protocol):
    """Tenant settings, branding, templates and the daily quota counter."""

    def get_email_settings(self) -> EmailSettings | None: ...

    def get_locale_settings(self) -> LocaleSettings | None: ...

    def get_quota(self) -> QuotaState | None: ...

    def reset_daily_count(self, today: date) -> bool: ...

    def increment_daily_count(self, today: date) -> int: ...


class DeliveryLogStore(Protocol):
    """Delivery log (``email_logs``)."""

    def insert_log(
        self,
        *,
        template_key: str,
        recipient_email: str,
        recipient_name: str | None,
        sender_email: str | None,
        subject: str,
        booking_id: str | None,
        contact_id: str | None,
        created_at: datetime,
    ) -> int: ...

    def finalize_log(
        self,
        log_id: int,
        status: DeliveryStatus,
        provider_message_id: str | None = None,
        error_message: str | None = None,
        sent_at: datetime | None = None,
    ) -> bool: ...

    def get_stuck_pending(self, created_before: datetime, limit: int) -> list[DeliveryLogEntry]: ...

    def count_stuck_pending(self, created_before: datetime) -> int: ...

    def count_by_status(self, since: datetime) -> dict[str, int]: ...

    def count_sent_since(self, since: datetime) -> int: ...


class RetryQueueStore(Protocol):
    """Retry queue (``email_queue``)."""

    def enqueue(
        self,
        *,
        template_key: str,
        recipient_email: str,
        recipient_name: str | None,
        subject: str,
        email_data: dict[str, Any],
        booking_id: str | None,
        contact_id: str | None,
        scheduled_for: datetime,
        priority: int,
        current_attempts: int,
        max_attempts: int,
        error_message: str | None,
        idempotency_key: str | None,
    ) -> int: ...

    def get_due(self, now: datetime, limit: int) -> list[QueuedEmail]: ...

    def update(self, queue_id: int, **fields: Any) -> None: ...

    def count_by_status(self) -> dict[str, int]: ...
