"""Core module for the restaurant mail service.

Provides the exception taxonomy and logging configuration.
"""

from restaurant_mail.core.exceptions import (
    EmailConfigError,
    EmailServiceError,
    EmailStoreError,
    PermanentSendError,
    QuotaExceededError,
    SendError,
    SendTimeoutError,
    TemplateRenderError,
    TransientSendError,
)
from restaurant_mail.core.logger import (
    get_logger,
    get_logs_directory,
    log_context,
    setup_logging,
)

__all__ = [
    # Exceptions
    "EmailServiceError",
    "EmailConfigError",
    "EmailStoreError",
    "SendError",
    "TransientSendError",
    "SendTimeoutError",
    "PermanentSendError",
    "QuotaExceededError",
    "TemplateRenderError",
    # Logging
    "get_logger",
    "setup_logging",
    "get_logs_directory",
    "log_context",
]
