"""Centralized logging configuration for the restaurant mail service.

Provides the logger factory with file rotation, multiple handlers and a
consistent format across the service, worker and API.

Features:
    - Dual output: console (stdout) + rotating file handlers
    - Separate error log file
    - Configurable log levels per module
    - Structured context strings for delivery attempts
    - Configuration summary at startup

Version: 1.1.0
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from restaurant_mail.config.settings import EmailConfig

# Global configuration
_ROOT_LOGGER: logging.Logger | None = None
_LOG_DIR = Path("./logs")
_LOG_FORMAT_DETAILED = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
)
_LOG_FORMAT_SIMPLE = "%(asctime)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Module-level logger configuration
_MODULE_LEVELS = {
    "restaurant_mail.service": logging.DEBUG,
    "restaurant_mail.clients": logging.DEBUG,
    "restaurant_mail.database": logging.DEBUG,
    "restaurant_mail.worker": logging.DEBUG,
    "restaurant_mail.templates": logging.INFO,
    "restaurant_mail.config": logging.INFO,
    "httpx": logging.WARNING,
}

COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "red": "\033[31m",
}


def _mask_secret(secret: str) -> str:
    """Mask a secret for display, showing only the first and last char.

    Args:
        secret: Value to mask.

    Returns:
        Masked string.
    """
    if not secret:
        return "(not set)"
    if len(secret) <= 2:
        return "***"
    return f"{secret[0]}{'*' * (len(secret) - 2)}{secret[-1]}"


def _mask_dsn(dsn: str) -> str:
    """Hide the password part of a PostgreSQL DSN."""
    if "@" not in dsn or "//" not in dsn:
        return dsn
    scheme, rest = dsn.split("//", 1)
    auth, host = rest.split("@", 1)
    if ":" not in auth:
        return dsn
    user = auth.split(":")[0]
    return f"{scheme}//{user}:***@{host}"


def print_config_summary(settings: "EmailConfig") -> None:
    """Print a formatted configuration summary organized by categories.

    Args:
        settings: EmailConfig instance with loaded configuration.
    """
    c = COLORS

    def _line(label: str, value: str, color: str = "cyan") -> None:
        print(f"  {c['dim']}│{c['reset']} {label:<26} {c[color]}{value}{c['reset']}")

    def _header(title: str, color: str) -> None:
        print(f"\n  {c[color]}▶ {title}{c['reset']}")
        print(f"  {c['dim']}├{'─' * 50}{c['reset']}")

    print(f"{c['dim']}{'─' * 72}{c['reset']}")
    print(f"{c['cyan']}{c['bold']}  {settings.SERVICE_NAME} v{settings.SERVICE_VERSION}{c['reset']}")

    _header("Database", "blue")
    dsn = _mask_dsn(settings.DATABASE_URL)
    _line("Database URL", dsn[:45] + "..." if len(dsn) > 45 else dsn)
    _line("Schema", settings.SCHEMA_NAME)
    _line("Tenant", settings.TENANT_ID)

    _header("Provider", "magenta")
    _line("Resend API", settings.RESEND_API_URL)
    _line(
        "Fallback API key",
        _mask_secret(settings.RESEND_API_KEY),
        "yellow" if not settings.RESEND_API_KEY else "cyan",
    )

    _header("Retry Policy", "green")
    _line("Immediate attempts", str(settings.EMAIL_RETRY_MAX_ATTEMPTS))
    _line("Base delay", f"{settings.EMAIL_RETRY_BASE_DELAY_SECONDS}s")
    _line("Send timeout", f"{settings.EMAIL_SEND_TIMEOUT_SECONDS}s")
    _line("Queue attempts", str(settings.EMAIL_QUEUE_MAX_ATTEMPTS))
    _line("Queue retry delay", f"{settings.EMAIL_QUEUE_RETRY_DELAY_SECONDS}s")
    _line(
        "Fail fast (permanent)",
        str(settings.EMAIL_FAIL_FAST_ON_PERMANENT).lower(),
        "green" if settings.EMAIL_FAIL_FAST_ON_PERMANENT else "yellow",
    )

    _header("Logging", "yellow")
    _line("Level", settings.LOG_LEVEL, "green")
    _line("Log to File", str(settings.LOG_TO_FILE).lower())
    _line("Directory", settings.LOG_DIR)

    print(f"\n{c['dim']}{'─' * 72}{c['reset']}\n")


def setup_logging(
    log_dir: Path | str | None = None,
    log_level: str = "INFO",
    file_level: str = "DEBUG",
    console_level: str = "INFO",
    enable_file: bool = True,
    max_size_mb: int = 10,
    backup_count: int = 5,
    settings: Optional["EmailConfig"] = None,
) -> None:
    """Configure root logger with file and console handlers.

    Should be called once at process startup (API lifespan or worker init).

    Args:
        log_dir: Directory for log files. Defaults to ./logs.
        log_level: Root logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file_level: File handler level.
        console_level: Console handler level.
        enable_file: Whether to write logs to files.
        max_size_mb: Size of a log file before rotation.
        backup_count: Number of rotated files to keep.
        settings: Optional EmailConfig for printing configuration summary.
    """
    global _ROOT_LOGGER, _LOG_DIR

    _LOG_DIR = Path(log_dir) if log_dir else Path("./logs")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, console_level.upper(), logging.INFO))
    console_handler.setFormatter(logging.Formatter(_LOG_FORMAT_SIMPLE, datefmt=_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if enable_file:
        _LOG_DIR.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            _LOG_DIR / "restaurant_mail.log",
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(getattr(logging, file_level.upper(), logging.DEBUG))
        file_handler.setFormatter(logging.Formatter(_LOG_FORMAT_DETAILED, datefmt=_DATE_FORMAT))
        root_logger.addHandler(file_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            _LOG_DIR / "restaurant_mail.error.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(logging.Formatter(_LOG_FORMAT_DETAILED, datefmt=_DATE_FORMAT))
        root_logger.addHandler(error_handler)

    for module_name, level in _MODULE_LEVELS.items():
        logging.getLogger(module_name).setLevel(level)

    _ROOT_LOGGER = root_logger

    if settings:
        print_config_summary(settings)


def get_logger(name: str, log_level: str | None = None) -> logging.Logger:
    """Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__ of calling module).
        log_level: Optional override for the logger level.

    Returns:
        Logger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("Queue sweep started")
    """
    logger = logging.getLogger(name)
    if log_level:
        logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    return logger


def get_logs_directory() -> Path:
    """Get the logs directory path."""
    return _LOG_DIR


def log_context(
    operation: str,
    record_id: int | None = None,
    recipient: str | None = None,
    **kwargs,
) -> str:
    """Format a log context string with metadata.

    Args:
        operation: Operation name (e.g., "send_attempt", "queue_retry").
        record_id: Log or queue row ID if applicable.
        recipient: Recipient email if applicable.
        **kwargs: Additional context key-value pairs.

    Returns:
        Formatted context string for logging.

    Example:
        msg = log_context("send_attempt", record_id=12, recipient="a@b.com", attempt=2)
        # -> "#12 | send_attempt | →a@b.com (attempt=2)"
    """
    context_parts = [operation]

    if record_id:
        context_parts.insert(0, f"#{record_id}")

    if recipient:
        context_parts.append(f"→{recipient}")

    context = " | ".join(context_parts)

    if kwargs:
        extra = ", ".join(f"{k}={v}" for k, v in kwargs.items())
        context = f"{context} ({extra})"

    return context
