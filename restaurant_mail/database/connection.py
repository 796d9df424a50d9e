"""PostgreSQL connection management.

Owns the psycopg2 connection pool shared by the settings, delivery log and
retry queue repositories.

Features:
- Thread-safe connection pooling with automatic validation
- Retry decorator for transient connection failures

Version: 1.0.0
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

from restaurant_mail.config import EmailConfig
from restaurant_mail.core.exceptions import EmailStoreError
from restaurant_mail.core.logger import get_logger

logger = get_logger(__name__)

# Type variable for generic return types
T = TypeVar("T")


# =============================================================================
# Retry Decorator
# =============================================================================
def with_db_retry(
    max_retries: int = 2,
    error_message: str = "Database operation failed",
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for repository methods with automatic retry on connection errors.

    The decorated method receives a pooled connection as its first argument
    after ``self``; the owning object must expose the pool as ``self.db``.

    Args:
        max_retries: Maximum retry attempts (default: 2).
        error_message: Base error message for failures.

    Returns:
        Decorated function with retry logic.

    Example:
        @with_db_retry(error_message="Failed to insert delivery log")
        def insert_log(self, conn, ...):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            last_error: Exception | None = None

            for attempt in range(max_retries):
                conn = self.db.get_connection()
                try:
                    result = func(self, conn, *args, **kwargs)
                    conn.commit()
                    return result
                except psycopg2.OperationalError as e:
                    conn.rollback()
                    last_error = e
                    if attempt < max_retries - 1:
                        logger.warning(
                            f"Connection error in {func.__name__}, "
                            f"retrying ({attempt + 1}/{max_retries})"
                        )
                        continue
                    logger.error(f"{error_message} after {max_retries} retries: {e}")
                except Exception as e:
                    conn.rollback()
                    logger.error(f"{error_message}: {e}")
                    raise EmailStoreError(f"{error_message}: {e}") from e
                finally:
                    self.db.return_connection(conn)

            raise EmailStoreError(f"{error_message}: {last_error}") from last_error

        return wrapper

    return decorator


def _validate_connection(conn: psycopg2.extensions.connection) -> bool:
    """Validate if a database connection is alive.

    Args:
        conn: PostgreSQL connection to validate

    Returns:
        True if connection is valid, False if dead/unusable
    """
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
        return True
    except (psycopg2.OperationalError, psycopg2.InterfaceError):
        return False


class PostgresDatabase:
    """PostgreSQL connection pool wrapper.

    Uses a threaded pool because repository calls run on worker threads
    via ``asyncio.to_thread``.
    """

    def __init__(self, config: EmailConfig | None = None) -> None:
        """Initialize connection pool.

        Args:
            config: Mail service configuration (uses global if None).

        Raises:
            EmailStoreError: If connection pool initialization fails.
        """
        self.config = config or EmailConfig()
        self._pool: pool.ThreadedConnectionPool | None = None

        try:
            self._init_pool()
            logger.info("PostgreSQL connection pool initialized")
        except Exception as e:
            logger.error(f"Failed to initialize database pool: {e}")
            self._cleanup_pool()
            raise EmailStoreError(f"Connection pool initialization failed: {e}") from e

    @property
    def schema(self) -> str:
        """Schema holding the mail tables."""
        return self.config.SCHEMA_NAME

    def _init_pool(self) -> None:
        """Initialize PostgreSQL connection pool with configurable size."""
        min_conn = self.config.DB_POOL_SIZE_MIN
        max_conn = self.config.DB_POOL_SIZE_MAX

        logger.debug(
            f"Initializing PostgreSQL connection pool (min={min_conn}, max={max_conn})..."
        )
        self._pool = pool.ThreadedConnectionPool(
            minconn=min_conn,
            maxconn=max_conn,
            dsn=self.config.DATABASE_URL,
            cursor_factory=RealDictCursor,
        )

    def _cleanup_pool(self) -> None:
        """Clean up connection pool and release all connections."""
        if self._pool:
            try:
                self._pool.closeall()
                logger.debug("Connection pool closed successfully")
            except Exception as e:
                logger.warning(f"Error closing connection pool: {e}")
            finally:
                self._pool = None

    def get_connection(self) -> psycopg2.extensions.connection:
        """Get connection from pool with automatic validation.

        Returns:
            Database connection from pool.

        Raises:
            EmailStoreError: If pool not initialized.
        """
        if not self._pool:
            raise EmailStoreError("Connection pool not initialized")

        conn = self._pool.getconn()

        if not _validate_connection(conn):
            self._pool.putconn(conn, close=True)
            logger.warning("Dead connection detected, retrieving fresh connection")
            conn = self._pool.getconn()

        return conn

    def return_connection(self, conn: psycopg2.extensions.connection) -> None:
        """Return connection to pool."""
        if self._pool:
            self._pool.putconn(conn)

    def health_check(self) -> bool:
        """Check database connectivity.

        Returns:
            True if database is accessible, False otherwise.
        """
        try:
            conn = self.get_connection()
            try:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
                    cur.fetchone()
                return True
            finally:
                self.return_connection(conn)
        except Exception as e:
            logger.warning(f"Health check failed: {e}")
            return False

    def close(self) -> None:
        """Close all connections in pool."""
        if self._pool:
            logger.info("Closing database connection pool...")
            self._cleanup_pool()
            logger.info("Connection pool closed")
