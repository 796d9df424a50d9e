"""Retry queue repository for PostgreSQL.

Persists sends that exhausted their immediate attempts or were deliberately
deferred, and serves them back to the reconciliation sweep.

Version: 1.0.0
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

import psycopg2
from psycopg2.extras import Json

from restaurant_mail.core.exceptions import EmailStoreError
from restaurant_mail.core.logger import get_logger
from restaurant_mail.database.connection import PostgresDatabase, with_db_retry
from restaurant_mail.models.email import QueuedEmail, QueueStatus

logger = get_logger(__name__)

# Columns a sweep may change on an existing row
UPDATABLE_COLUMNS = frozenset(
    {"status", "current_attempts", "error_message", "process_after", "last_attempt_at"}
)


def _row_to_queued(row: Any) -> QueuedEmail:
    row_dict = dict(row)
    email_data = row_dict.get("email_data")
    if isinstance(email_data, str):
        row_dict["email_data"] = json.loads(email_data)
    elif email_data is None:
        row_dict["email_data"] = {}
    return QueuedEmail(**row_dict)


class RetryQueueRepository:
    """Retry queue operations."""

    def __init__(self, db: PostgresDatabase) -> None:
        self.db = db

    @property
    def _schema(self) -> str:
        return self.db.schema

    @with_db_retry(error_message="Failed to enqueue email")
    def enqueue(
        self,
        conn: psycopg2.extensions.connection,
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
    ) -> int:
        """Insert a ``pending`` queue row.

        Returns:
            ID of the created row.
        """
        with conn.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {self._schema}.email_queue (
                    template_key, recipient_email, recipient_name, subject,
                    email_data, booking_id, contact_id, scheduled_for, priority,
                    status, current_attempts, max_attempts, error_message,
                    idempotency_key
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    template_key,
                    recipient_email,
                    recipient_name,
                    subject,
                    Json(email_data, dumps=lambda obj: json.dumps(obj, default=str)),
                    booking_id,
                    contact_id,
                    scheduled_for,
                    priority,
                    QueueStatus.PENDING.value,
                    current_attempts,
                    max_attempts,
                    error_message,
                    idempotency_key,
                ),
            )
            row = cur.fetchone()

        queue_id: int = row["id"]
        logger.info(f"Email #{queue_id} queued for {recipient_email} (priority={priority})")
        return queue_id

    @with_db_retry(error_message="Failed to retrieve queued emails")
    def get_due(
        self, conn: psycopg2.extensions.connection, now: datetime, limit: int
    ) -> list[QueuedEmail]:
        """Pending rows eligible at ``now``.

        Ordered by priority (highest first), then oldest first.

        Args:
            now: Current time.
            limit: Max rows to return (clamped to 1..1000).
        """
        limit = min(max(limit, 1), 1000)

        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT *
                FROM {self._schema}.email_queue
                WHERE status = %s
                  AND scheduled_for <= %s
                  AND (process_after IS NULL OR process_after <= %s)
                ORDER BY priority DESC, created_at ASC, id ASC
                LIMIT %s
                """,
                (QueueStatus.PENDING.value, now, now, limit),
            )
            rows = cur.fetchall()

        if not rows:
            logger.debug("No queued emails due")
            return []

        logger.info(f"Retrieved {len(rows)} queued emails")
        return [_row_to_queued(row) for row in rows]

    @with_db_retry(error_message="Failed to update queued email")
    def update(self, conn: psycopg2.extensions.connection, queue_id: int, **fields: Any) -> None:
        """Update columns of one queue row.

        Args:
            queue_id: Row to update.
            **fields: Column values; only sweep-owned columns are accepted.

        Raises:
            EmailStoreError: On unknown columns or database failure.
        """
        if not fields:
            return
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise EmailStoreError(
                f"Cannot update queue columns: {sorted(unknown)}", record_id=queue_id
            )

        values = [v.value if isinstance(v, QueueStatus) else v for v in fields.values()]
        assignments = ", ".join(f"{column} = %s" for column in fields)

        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE {self._schema}.email_queue
                SET {assignments}, updated_at = NOW()
                WHERE id = %s
                """,
                (*values, queue_id),
            )

        logger.debug(f"Queued email #{queue_id} updated: {', '.join(fields)}")

    @with_db_retry(error_message="Failed to get queue stats")
    def count_by_status(self, conn: psycopg2.extensions.connection) -> dict[str, int]:
        """Queue row counts by status."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT status, COUNT(*) AS count
                FROM {self._schema}.email_queue
                GROUP BY status
                """
            )
            rows = cur.fetchall()
        return {row["status"]: row["count"] for row in rows}
