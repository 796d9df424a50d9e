"""Fire-and-forget dispatch of notification sends.

Booking and contact handlers hand their sends to the dispatcher and return
immediately; delivery outcomes are only logged. Pending sends are awaited on
shutdown so they are not lost with the event loop.

Version: 1.0.0
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from restaurant_mail.core.logger import get_logger
from restaurant_mail.models.email import EmailResult

logger = get_logger(__name__)


class BackgroundDispatcher:
    """Runs send coroutines as tracked background tasks."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Coroutine[Any, Any, EmailResult], label: str = "email") -> asyncio.Task[Any]:
        """Schedule a send on the running loop.

        Args:
            coro: Coroutine returning an EmailResult.
            label: Name used in log messages.

        Returns:
            The created task.
        """
        task = asyncio.create_task(coro, name=f"notify:{label}")
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Notification {task.get_name()} was cancelled")
            return

        error = task.exception()
        if error is not None:
            logger.error(f"Notification {task.get_name()} raised: {error}", exc_info=error)
            return

        result = task.result()
        if isinstance(result, EmailResult) and not result.success:
            logger.warning(f"Notification {task.get_name()} not delivered: {result.error}")
        else:
            logger.debug(f"Notification {task.get_name()} completed")

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for outstanding sends.

        Args:
            timeout: Seconds to wait before cancelling what is left.
        """
        if not self._tasks:
            return

        logger.info(f"Waiting for {len(self._tasks)} pending notifications...")
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"Cancelled {len(pending)} notifications still running at shutdown")
