"""Delivery service module for the restaurant mail service.

Wires the PostgreSQL repositories, the template stores and the Resend
transport into a RobustEmailService.
"""

from restaurant_mail.config import EmailConfig
from restaurant_mail.database.connection import PostgresDatabase
from restaurant_mail.database.delivery_log import DeliveryLogRepository
from restaurant_mail.database.retry_queue import RetryQueueRepository
from restaurant_mail.database.settings_store import SettingsRepository
from restaurant_mail.service.quota import QuotaGuard
from restaurant_mail.service.robust import RobustEmailService, resend_transport_factory
from restaurant_mail.templates.store import FileTemplateStore, LayeredTemplateStore


def build_email_service(db: PostgresDatabase, config: EmailConfig | None = None) -> RobustEmailService:
    """Create a service backed by PostgreSQL.

    Stored templates take precedence over the bundled file templates.

    Args:
        db: Open connection pool.
        config: Mail service configuration (uses the pool's if None).
    """
    config = config or db.config
    settings_store = SettingsRepository(db, tenant_id=config.TENANT_ID)
    return RobustEmailService(
        settings_store=settings_store,
        log_store=DeliveryLogRepository(db),
        queue_store=RetryQueueRepository(db),
        config=config,
        template_store=LayeredTemplateStore(settings_store, FileTemplateStore(config.TEMPLATE_DIR)),
    )


__all__ = [
    "RobustEmailService",
    "QuotaGuard",
    "build_email_service",
    "resend_transport_factory",
]
