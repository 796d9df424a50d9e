"""Delivery log repository for PostgreSQL.

Stores one ``email_logs`` row per delivery attempt. Rows are created as
``pending`` and finalized exactly once; a finalized row is never rewritten.

Version: 1.0.0
"""

from __future__ import annotations

from datetime import datetime

import psycopg2

from restaurant_mail.core.logger import get_logger
from restaurant_mail.database.connection import PostgresDatabase, with_db_retry
from restaurant_mail.models.email import DeliveryLogEntry, DeliveryStatus

logger = get_logger(__name__)

_LOG_COLUMNS = """
    id, template_key, recipient_email, recipient_name, sender_email, subject,
    status, provider_message_id, error_message, booking_id, contact_id,
    created_at, sent_at
"""


class DeliveryLogRepository:
    """Delivery log operations."""

    def __init__(self, db: PostgresDatabase) -> None:
        self.db = db

    @property
    def _schema(self) -> str:
        return self.db.schema

    @with_db_retry(error_message="Failed to create delivery log")
    def insert_log(
        self,
        conn: psycopg2.extensions.connection,
        *,
        template_key: str,
        recipient_email: str,
        recipient_name: str | None,
        sender_email: str | None,
        subject: str,
        booking_id: str | None,
        contact_id: str | None,
        created_at: datetime,
    ) -> int:
        """Create a ``pending`` log row.

        Returns:
            ID of the created row.
        """
        with conn.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {self._schema}.email_logs (
                    template_key, recipient_email, recipient_name, sender_email,
                    subject, status, booking_id, contact_id, created_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    template_key,
                    recipient_email,
                    recipient_name,
                    sender_email,
                    subject,
                    DeliveryStatus.PENDING.value,
                    booking_id,
                    contact_id,
                    created_at,
                ),
            )
            row = cur.fetchone()

        log_id: int = row["id"]
        logger.debug(f"Delivery log #{log_id} created for {recipient_email}")
        return log_id

    @with_db_retry(error_message="Failed to update delivery log")
    def finalize_log(
        self,
        conn: psycopg2.extensions.connection,
        log_id: int,
        status: DeliveryStatus,
        provider_message_id: str | None = None,
        error_message: str | None = None,
        sent_at: datetime | None = None,
    ) -> bool:
        """Move a pending row to its terminal status.

        Rows that already left ``pending`` are left untouched.

        Returns:
            True if the row was updated.
        """
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE {self._schema}.email_logs
                SET status = %s,
                    provider_message_id = COALESCE(%s, provider_message_id),
                    error_message = %s,
                    sent_at = %s,
                    updated_at = NOW()
                WHERE id = %s AND status = %s
                """,
                (
                    status.value,
                    provider_message_id,
                    error_message,
                    sent_at,
                    log_id,
                    DeliveryStatus.PENDING.value,
                ),
            )
            updated = cur.rowcount > 0

        if updated:
            logger.debug(f"Delivery log #{log_id} finalized as {status.value}")
        else:
            logger.warning(f"Delivery log #{log_id} was not pending, left unchanged")
        return updated

    @with_db_retry(error_message="Failed to fetch stuck pending logs")
    def get_stuck_pending(
        self, conn: psycopg2.extensions.connection, created_before: datetime, limit: int
    ) -> list[DeliveryLogEntry]:
        """Pending rows created before ``created_before``, oldest first."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT {_LOG_COLUMNS}
                FROM {self._schema}.email_logs
                WHERE status = %s AND created_at < %s
                ORDER BY created_at ASC, id ASC
                LIMIT %s
                """,
                (DeliveryStatus.PENDING.value, created_before, limit),
            )
            rows = cur.fetchall()
        return [DeliveryLogEntry(**dict(row)) for row in rows]

    @with_db_retry(error_message="Failed to count stuck pending logs")
    def count_stuck_pending(
        self, conn: psycopg2.extensions.connection, created_before: datetime
    ) -> int:
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT COUNT(*) AS count
                FROM {self._schema}.email_logs
                WHERE status = %s AND created_at < %s
                """,
                (DeliveryStatus.PENDING.value, created_before),
            )
            row = cur.fetchone()
        return row["count"] if row else 0

    @with_db_retry(error_message="Failed to get delivery log stats")
    def count_by_status(
        self, conn: psycopg2.extensions.connection, since: datetime
    ) -> dict[str, int]:
        """Log row counts by status for rows created since ``since``."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT status, COUNT(*) AS count
                FROM {self._schema}.email_logs
                WHERE created_at >= %s
                GROUP BY status
                """,
                (since,),
            )
            rows = cur.fetchall()
        return {row["status"]: row["count"] for row in rows}

    @with_db_retry(error_message="Failed to count sent emails")
    def count_sent_since(self, conn: psycopg2.extensions.connection, since: datetime) -> int:
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT COUNT(*) AS count
                FROM {self._schema}.email_logs
                WHERE status = %s AND sent_at >= %s
                """,
                (DeliveryStatus.SENT.value, since),
            )
            row = cur.fetchone()
        return row["count"] if row else 0
