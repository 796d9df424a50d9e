"""Database module for the restaurant mail service.

Contains the PostgreSQL connection pool and the settings, delivery log and
retry queue repositories.

Version: 1.0.0
"""

from restaurant_mail.database.connection import PostgresDatabase, with_db_retry
from restaurant_mail.database.delivery_log import DeliveryLogRepository
from restaurant_mail.database.protocols import (
    DeliveryLogStore,
    RetryQueueStore,
    SettingsStore,
    TemplateStore,
)
from restaurant_mail.database.retry_queue import RetryQueueRepository
from restaurant_mail.database.settings_store import SettingsRepository

__all__ = [
    "PostgresDatabase",
    "with_db_retry",
    "SettingsRepository",
    "DeliveryLogRepository",
    "RetryQueueRepository",
    "SettingsStore",
    "TemplateStore",
    "DeliveryLogStore",
    "RetryQueueStore",
]
