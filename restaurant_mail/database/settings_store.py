"""Settings repository for PostgreSQL.

Reads tenant email settings, restaurant branding and active templates, and
owns the daily quota counter. The counter is reset and incremented with
single UPDATE statements so concurrent sends cannot lose updates.

Version: 1.0.0
"""

from __future__ import annotations

from datetime import date
from typing import Any

import psycopg2

from restaurant_mail.core.logger import get_logger
from restaurant_mail.database.connection import PostgresDatabase, with_db_retry
from restaurant_mail.models.settings import EmailSettings, EmailTemplate, LocaleSettings, QuotaState

logger = get_logger(__name__)


def _present(row: Any) -> dict[str, Any]:
    """Drop NULL columns so model defaults apply."""
    return {k: v for k, v in dict(row).items() if v is not None}


class SettingsRepository:
    """Tenant settings, branding, templates and quota counter."""

    def __init__(self, db: PostgresDatabase, tenant_id: str = "admin") -> None:
        self.db = db
        self.tenant_id = tenant_id

    @property
    def _schema(self) -> str:
        return self.db.schema

    @with_db_retry(error_message="Failed to load email settings")
    def get_email_settings(self, conn: psycopg2.extensions.connection) -> EmailSettings | None:
        """Load the tenant's ``email_settings`` row.

        Returns:
            EmailSettings or None if the tenant has no row.
        """
        with conn.cursor() as cur:
            cur.execute(
                f"SELECT * FROM {self._schema}.email_settings WHERE user_id = %s LIMIT 1",
                (self.tenant_id,),
            )
            row = cur.fetchone()

        if not row:
            logger.warning(f"No email settings found for tenant {self.tenant_id}")
            return None
        return EmailSettings(**_present(row))

    @with_db_retry(error_message="Failed to load locale settings")
    def get_locale_settings(self, conn: psycopg2.extensions.connection) -> LocaleSettings | None:
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT restaurant_name, restaurant_address, restaurant_city,
                       restaurant_postal_code, restaurant_phone
                FROM {self._schema}.locale_settings
                WHERE id = 1
                """
            )
            row = cur.fetchone()
        return LocaleSettings(**dict(row)) if row else None

    @with_db_retry(error_message="Failed to load email template")
    def get_template(
        self, conn: psycopg2.extensions.connection, template_key: str
    ) -> EmailTemplate | None:
        """Load an active template by key.

        Args:
            template_key: Template identifier.

        Returns:
            EmailTemplate or None if missing or inactive.
        """
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT template_key, subject, html_content, text_content, is_active
                FROM {self._schema}.email_templates
                WHERE template_key = %s AND is_active = TRUE
                LIMIT 1
                """,
                (template_key,),
            )
            row = cur.fetchone()
        return EmailTemplate(**_present(row)) if row else None

    @with_db_retry(error_message="Failed to read daily email count")
    def get_quota(self, conn: psycopg2.extensions.connection) -> QuotaState | None:
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT emails_sent_today, max_daily_emails, last_email_reset_date
                FROM {self._schema}.email_settings
                WHERE user_id = %s
                """,
                (self.tenant_id,),
            )
            row = cur.fetchone()

        if not row:
            return None
        return QuotaState(
            count=row["emails_sent_today"] or 0,
            limit=row["max_daily_emails"] if row["max_daily_emails"] is not None else 1000,
            last_reset_date=row["last_email_reset_date"],
        )

    @with_db_retry(error_message="Failed to reset daily email count")
    def reset_daily_count(self, conn: psycopg2.extensions.connection, today: date) -> bool:
        """Zero the counter if it was last reset before ``today``.

        Returns:
            True if a reset happened.
        """
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE {self._schema}.email_settings
                SET emails_sent_today = 0,
                    last_email_reset_date = %s,
                    updated_at = NOW()
                WHERE user_id = %s
                  AND last_email_reset_date IS DISTINCT FROM %s
                """,
                (today, self.tenant_id, today),
            )
            reset = cur.rowcount > 0

        if reset:
            logger.info(f"Daily email count reset for {today}")
        return reset

    @with_db_retry(error_message="Failed to update daily email count")
    def increment_daily_count(self, conn: psycopg2.extensions.connection, today: date) -> int:
        """Atomically add one send to today's counter.

        A counter last reset on another day restarts at 1.

        Returns:
            New counter value, 0 if the tenant has no row.
        """
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE {self._schema}.email_settings
                SET emails_sent_today = CASE
                        WHEN last_email_reset_date = %s THEN COALESCE(emails_sent_today, 0) + 1
                        ELSE 1
                    END,
                    last_email_reset_date = %s,
                    updated_at = NOW()
                WHERE user_id = %s
                RETURNING emails_sent_today
                """,
                (today, today, self.tenant_id),
            )
            row = cur.fetchone()

        count = row["emails_sent_today"] if row else 0
        logger.debug(f"Daily email count updated: {count}")
        return count
