"""Sending quota enforcement.

The daily counter is reset lazily on the first check of a new day and
incremented once per provider-confirmed send. Both the check and the
increment fail open: a quota store outage must not block all mail.

Version: 1.0.0
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta

from restaurant_mail.core.logger import get_logger
from restaurant_mail.database.protocols import DeliveryLogStore, SettingsStore
from restaurant_mail.models.settings import EmailSettings

logger = get_logger(__name__)


class QuotaGuard:
    """Daily and hourly send limits for one tenant."""

    def __init__(
        self,
        settings_store: SettingsStore,
        log_store: DeliveryLogStore | None,
        clock: Callable[[], datetime],
    ) -> None:
        self.settings_store = settings_store
        self.log_store = log_store
        self._clock = clock

    async def check_daily_limit(self, settings: EmailSettings | None = None) -> bool:
        """Whether another email may be sent now.

        Resets the counter first when it was last reset on another day, then
        compares it with the daily limit. When ``settings`` carries an hourly
        limit, sends logged in the last hour are compared with it too.

        Returns:
            False only when a limit is positively known to be reached.
        """
        try:
            now = self._clock()
            today = now.date()

            await asyncio.to_thread(self.settings_store.reset_daily_count, today)
            quota = await asyncio.to_thread(self.settings_store.get_quota)

            if quota is not None:
                used = quota.limit - quota.remaining(today)
                logger.debug(f"Daily email usage: {used}/{quota.limit}")
                if quota.remaining(today) <= 0:
                    logger.warning(f"Daily email limit reached: {used}/{quota.limit}")
                    return False

            hourly_limit = settings.rate_limit_per_hour if settings else 0
            if hourly_limit > 0 and self.log_store is not None:
                sent = await asyncio.to_thread(
                    self.log_store.count_sent_since, now - timedelta(hours=1)
                )
                if sent >= hourly_limit:
                    logger.warning(f"Hourly email limit reached: {sent}/{hourly_limit}")
                    return False

            return True
        except Exception as e:
            logger.error(f"Error checking email quota, allowing send: {e}")
            return True

    async def record_send(self) -> int | None:
        """Count one successful send against today's quota.

        Returns:
            New counter value, or None if the update failed.
        """
        try:
            count = await asyncio.to_thread(
                self.settings_store.increment_daily_count, self._clock().date()
            )
            logger.debug(f"Daily email count updated: {count}")
            return count
        except Exception as e:
            logger.error(f"Failed to update daily email count: {e}")
            return None
