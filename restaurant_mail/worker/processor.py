"""Email maintenance worker - reconciliation sweep daemon.

Periodically runs the stuck-email sweeps (pending delivery log rows, then
the retry queue) and reports delivery health. Handles graceful shutdown.

Version: 1.0.0
"""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import Any

from restaurant_mail.config import EmailConfig
from restaurant_mail.core.exceptions import EmailServiceError
from restaurant_mail.core.logger import get_logger, setup_logging
from restaurant_mail.database.connection import PostgresDatabase
from restaurant_mail.models.stats import HealthLevel
from restaurant_mail.service import build_email_service
from restaurant_mail.service.robust import RobustEmailService

logger = get_logger(__name__)


class MaintenanceWorker:
    """Reconciliation sweep daemon.

    Runs ``process_stuck_emails`` every poll interval. Sweeps run one at a
    time, so a slow sweep delays the next cycle instead of overlapping it.
    """

    def __init__(
        self,
        config: EmailConfig | None = None,
        service: RobustEmailService | None = None,
        db: PostgresDatabase | None = None,
    ) -> None:
        """Initialize worker components.

        Args:
            config: Mail service configuration (loaded from env if None).
            service: Prebuilt delivery service (built on ``db`` if None).
            db: Connection pool (opened from ``config`` if None).

        Raises:
            EmailServiceError: If initialization fails.
        """
        self.config = config or EmailConfig()

        setup_logging(
            log_dir=self.config.LOG_DIR,
            log_level=self.config.LOG_LEVEL,
            file_level="DEBUG",
            console_level=self.config.LOG_LEVEL,
            enable_file=self.config.LOG_TO_FILE,
            max_size_mb=self.config.LOG_MAX_SIZE_MB,
            backup_count=self.config.LOG_BACKUP_COUNT,
            settings=self.config,
        )

        try:
            if service is None:
                self.db = db or PostgresDatabase(self.config)
                logger.debug("Database pool initialized")
                self.service = build_email_service(self.db, self.config)
            else:
                self.db = db
                self.service = service
            logger.debug("Delivery service initialized")

            self.running = True
            self.cycle_count = 0
            self.sent_count = 0
            self.failed_count = 0

            logger.info("Maintenance worker initialized successfully")
            logger.info("=" * 80)

        except Exception as e:
            logger.error(f"Failed to initialize worker: {e}", exc_info=True)
            raise EmailServiceError(f"Worker initialization failed: {e}") from e

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)

    def _handle_shutdown(self, signum: int, frame: Any) -> None:
        """Handle shutdown signals gracefully."""
        logger.info(f"Received shutdown signal ({signum}). Stopping gracefully...")
        self.running = False

    async def run(self) -> None:
        """Main worker loop."""
        logger.info("Starting maintenance worker loop...")
        logger.info(
            f"Worker Configuration: "
            f"poll_interval={self.config.EMAIL_WORKER_POLL_INTERVAL}s | "
            f"queue_batch={self.service.policy.queue_batch_size} | "
            f"pending_batch={self.service.policy.pending_batch_size} | "
            f"queue_max_attempts={self.service.policy.queue_max_attempts} | "
            f"queue_retry_delay={self.service.policy.queue_retry_delay}s"
        )

        try:
            while self.running:
                await self.run_once()
                await self._idle(self.config.EMAIL_WORKER_POLL_INTERVAL)
        finally:
            await self.shutdown()

    async def run_once(self) -> None:
        """Run one sweep cycle and a health check."""
        self.cycle_count += 1
        try:
            result = await self.service.process_stuck_emails()
            self.sent_count += result.success
            self.failed_count += result.failed
            if result.processed:
                logger.info(
                    f"Cycle #{self.cycle_count}: processed={result.processed} "
                    f"success={result.success} failed={result.failed}"
                )
            else:
                logger.debug(f"Cycle #{self.cycle_count}: nothing to reconcile")

            report = await self.service.get_health_report()
            if report.status is HealthLevel.CRITICAL:
                logger.critical(f"Email health CRITICAL: {'; '.join(report.recommendations)}")
            elif report.status is HealthLevel.WARNING:
                logger.warning(f"Email health warning: {'; '.join(report.recommendations)}")
        except Exception:
            logger.error(f"Cycle #{self.cycle_count}: Unexpected error in worker loop", exc_info=True)

    async def _idle(self, seconds: float) -> None:
        """Sleep in short steps so shutdown signals are noticed promptly."""
        remaining = float(seconds)
        while self.running and remaining > 0:
            step = min(1.0, remaining)
            await asyncio.sleep(step)
            remaining -= step

    async def shutdown(self) -> None:
        logger.info("Shutting down maintenance worker...")
        logger.info("=" * 80)
        self._print_stats()
        await self.service.aclose()
        if self.db is not None:
            self.db.close()
        logger.info("Maintenance worker stopped cleanly")
        logger.info("=" * 80)

    def _print_stats(self) -> None:
        """Print worker statistics on shutdown."""
        total = self.sent_count + self.failed_count
        success_rate = (self.sent_count / total * 100) if total > 0 else 0

        logger.info("Maintenance Worker Statistics:")
        logger.info(f"   Cycles run: {self.cycle_count}")
        logger.info(f"   Recovered and sent: {self.sent_count}")
        logger.info(f"   Failed attempts: {self.failed_count}")
        logger.info(f"   Success rate: {success_rate:.1f}%")


async def main() -> None:
    """Main entry point for worker process."""
    try:
        worker = MaintenanceWorker()
        worker.install_signal_handlers()
        await worker.run()
    except EmailServiceError as e:
        logger.error(f"Email Service Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
