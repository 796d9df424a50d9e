"""Robust email delivery service.

Coordinates immediate send attempts with exponential backoff, quota checks,
delivery logging and the retry queue fallback, and runs the reconciliation
sweeps that resolve queued and stuck sends.

Public operations never raise: every failure is converted into an
EmailResult or SweepResult and logged.

Version: 1.0.0
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from restaurant_mail.clients.protocol import EmailTransport
from restaurant_mail.clients.resend import ResendClient
from restaurant_mail.config import EmailConfig
from restaurant_mail.core.exceptions import (
    EmailConfigError,
    EmailStoreError,
    PermanentSendError,
    QuotaExceededError,
    SendError,
    SendTimeoutError,
    TemplateRenderError,
    TransientSendError,
)
from restaurant_mail.core.logger import get_logger, log_context
from restaurant_mail.database.protocols import (
    DeliveryLogStore,
    RetryQueueStore,
    SettingsStore,
    TemplateStore,
)
from restaurant_mail.models.email import (
    DeliveryLogEntry,
    DeliveryStatus,
    EmailResult,
    EmailSendRequest,
    QueuedEmail,
    QueueStatus,
    SweepResult,
)
from restaurant_mail.models.policy import RetryPolicy
from restaurant_mail.models.settings import EmailSettings, LocaleSettings
from restaurant_mail.models.stats import EmailHealthReport
from restaurant_mail.models.transport import OutgoingMessage
from restaurant_mail.service.quota import QuotaGuard
from restaurant_mail.templates.renderer import TemplateRenderer

logger = get_logger(__name__)

TransportFactory = Callable[[str, EmailConfig], EmailTransport]

# Priority of sends that exhausted their immediate attempts
FALLBACK_QUEUE_PRIORITY = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resend_transport_factory(api_key: str, config: EmailConfig) -> EmailTransport:
    """Build the production Resend transport."""
    return ResendClient(
        api_key=api_key,
        api_url=config.RESEND_API_URL,
        timeout=config.EMAIL_SEND_TIMEOUT_SECONDS,
    )


def _classify(error: Exception) -> SendError:
    """Map any attempt failure onto the send error taxonomy."""
    if isinstance(error, SendError):
        return error
    if isinstance(error, EmailConfigError):
        return PermanentSendError(str(error))
    if isinstance(error, EmailStoreError):
        return TransientSendError(str(error))
    return TransientSendError(str(error) or type(error).__name__)


def _format_sender(settings: EmailSettings) -> str:
    if settings.sender_name:
        return f"{settings.sender_name} <{settings.sender_email}>"
    return str(settings.sender_email)


class RobustEmailService:
    """Reliable email delivery for one tenant.

    Attributes:
        config: Mail service configuration.
        policy: Retry, timeout and batch settings.
        renderer: Template data assembly and placeholder rendering.
        quota: Daily and hourly limit guard.
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        log_store: DeliveryLogStore,
        queue_store: RetryQueueStore,
        config: EmailConfig | None = None,
        template_store: TemplateStore | None = None,
        renderer: TemplateRenderer | None = None,
        policy: RetryPolicy | None = None,
        transport_factory: TransportFactory = resend_transport_factory,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the delivery service.

        Args:
            settings_store: Tenant settings, branding and quota counter.
            log_store: Delivery log.
            queue_store: Retry queue.
            config: Mail service configuration (uses global if None).
            template_store: Template source (defaults to ``settings_store``).
            renderer: Template renderer (built from ``config`` if None).
            policy: Retry policy (built from ``config`` if None).
            transport_factory: Builds a transport from an API key.
            sleep: Awaitable used for backoff delays.
            clock: Returns the current timezone-aware time.
        """
        self.config = config or EmailConfig()
        self.policy = policy or self.config.get_retry_policy()
        self.settings_store = settings_store
        self.template_store = template_store or settings_store
        self.log_store = log_store
        self.queue_store = queue_store
        self.renderer = renderer or TemplateRenderer(self.config)
        self.quota = QuotaGuard(settings_store, log_store, clock)

        self._transport_factory = transport_factory
        self._transport: EmailTransport | None = None
        self._transport_key: str | None = None
        self._sleep = sleep
        self._clock = clock

    # =========================================================================
    # Public operations
    # =========================================================================
    async def send_email_robust(self, request: EmailSendRequest) -> EmailResult:
        """Send an email with immediate retries and queue fallback.

        Retryable failures are retried up to ``max_immediate_attempts`` times
        with exponential backoff. Non-retryable failures stop the loop when
        ``fail_fast_on_permanent`` is set. A send that does not succeed is
        persisted to the retry queue.

        Args:
            request: The logical send.

        Returns:
            EmailResult; on fallback ``log_id`` is the retry queue row.
        """
        try:
            if request.scheduled_for is not None and request.scheduled_for > self._clock():
                return await self.schedule_email(request)

            if request.idempotency_key is None:
                request = request.model_copy(update={"idempotency_key": uuid4().hex})

            max_attempts = self.policy.max_immediate_attempts
            last_error: SendError | None = None
            attempts = 0

            for attempt in range(1, max_attempts + 1):
                attempts = attempt
                try:
                    result = await self._attempt_send(request)
                except SendError as e:
                    last_error = e
                    context = log_context(
                        "send_attempt",
                        recipient=request.recipient_email,
                        template=request.template_key,
                        attempt=f"{attempt}/{max_attempts}",
                    )
                    logger.warning(f"{context} failed: {e}")
                    if not e.retryable and self.policy.fail_fast_on_permanent:
                        logger.warning(
                            f"Non-retryable error for {request.recipient_email}, "
                            f"skipping remaining attempts"
                        )
                        break
                    delay = self.policy.backoff_delay(attempt)
                    if delay > 0:
                        await self._sleep(delay)
                    continue

                context = log_context(
                    "send_email",
                    record_id=result.log_id,
                    recipient=request.recipient_email,
                    template=request.template_key,
                )
                logger.info(f"{context} sent on attempt {attempt}")
                return result

            return await self._queue_for_retry(request, attempts, last_error)

        except Exception as e:
            logger.error(f"Unexpected error sending email to {request.recipient_email}: {e}", exc_info=True)
            return EmailResult(success=False, error=str(e) or type(e).__name__)

    async def schedule_email(self, request: EmailSendRequest) -> EmailResult:
        """Defer a send to the retry queue without attempting it.

        Args:
            request: The send; ``scheduled_for`` defaults to now and
                ``priority`` to 0.

        Returns:
            EmailResult with the queue row id as ``log_id``.
        """
        try:
            queue_id = await asyncio.to_thread(
                self.queue_store.enqueue,
                template_key=request.template_key,
                recipient_email=request.recipient_email,
                recipient_name=request.recipient_name,
                subject=self._queue_subject(request),
                email_data=dict(request.data),
                booking_id=request.booking_id,
                contact_id=request.contact_id,
                scheduled_for=request.scheduled_for or self._clock(),
                priority=request.priority if request.priority is not None else 0,
                current_attempts=0,
                max_attempts=self.policy.queue_max_attempts,
                error_message=None,
                idempotency_key=request.idempotency_key or uuid4().hex,
            )
            logger.info(
                f"{log_context('schedule_email', record_id=queue_id, recipient=request.recipient_email)} "
                f"scheduled for {request.scheduled_for}"
            )
            return EmailResult(success=True, log_id=queue_id)
        except Exception as e:
            logger.error(f"Failed to schedule email to {request.recipient_email}: {e}")
            return EmailResult(success=False, error=str(e))

    async def process_email_queue(self) -> SweepResult:
        """Attempt each due retry queue row once.

        Rows are taken by priority (highest first) then age (oldest first),
        at most ``queue_batch_size`` per call.

        Returns:
            Sweep counters; all zero if the queue could not be read.
        """
        try:
            rows = await asyncio.to_thread(
                self.queue_store.get_due, self._clock(), self.policy.queue_batch_size
            )
        except Exception as e:
            logger.error(f"Email queue processing failed: {e}")
            return SweepResult()

        if not rows:
            return SweepResult()

        success = 0
        for row in rows:
            if await self._process_queued(row):
                success += 1

        result = SweepResult(processed=len(rows), success=success, failed=len(rows) - success)
        logger.info(
            f"Queue sweep complete: processed={result.processed} "
            f"success={result.success} failed={result.failed}"
        )
        return result

    async def process_pending_emails(self) -> SweepResult:
        """Re-attempt delivery log rows stuck in ``pending``.

        Only rows older than ``stuck_pending_age`` are taken, oldest first,
        at most ``pending_batch_size`` per call. The stored row carries no
        template data, so the resend only has ``customerName`` plus branding
        defaults. Each row is finalized in place.

        Returns:
            Sweep counters; all zero if the log could not be read.
        """
        try:
            cutoff = self._clock() - timedelta(seconds=self.policy.stuck_pending_age)
            entries = await asyncio.to_thread(
                self.log_store.get_stuck_pending, cutoff, self.policy.pending_batch_size
            )
        except Exception as e:
            logger.error(f"Pending email processing failed: {e}")
            return SweepResult()

        if not entries:
            return SweepResult()

        success = 0
        for entry in entries:
            if await self._process_stuck(entry):
                success += 1

        result = SweepResult(processed=len(entries), success=success, failed=len(entries) - success)
        logger.info(
            f"Pending sweep complete: processed={result.processed} "
            f"success={result.success} failed={result.failed}"
        )
        return result

    async def process_stuck_emails(self) -> SweepResult:
        """Run the pending-log sweep then the queue sweep and sum the counters."""
        pending = await self.process_pending_emails()
        queued = await self.process_email_queue()
        return pending + queued

    async def get_health_report(self) -> EmailHealthReport:
        """Build a delivery health snapshot.

        Raises:
            EmailStoreError: If the counters cannot be read.
        """
        now = self._clock()
        stuck = await asyncio.to_thread(
            self.log_store.count_stuck_pending,
            now - timedelta(seconds=self.policy.stuck_pending_age),
        )
        log_counts = await asyncio.to_thread(self.log_store.count_by_status, now - timedelta(hours=24))
        queue_counts = await asyncio.to_thread(self.queue_store.count_by_status)

        report = EmailHealthReport(
            stuck_pending_count=stuck,
            queue_pending_count=queue_counts.get(QueueStatus.PENDING.value, 0),
            queue_failed_count=queue_counts.get(QueueStatus.FAILED.value, 0),
            sent_last_24h=log_counts.get(DeliveryStatus.SENT.value, 0),
            failed_last_24h=log_counts.get(DeliveryStatus.FAILED.value, 0),
            generated_at=now,
        )
        report.assess()
        return report

    async def aclose(self) -> None:
        """Close the provider transport."""
        if self._transport is not None:
            await self._transport.aclose()
            self._transport = None
            self._transport_key = None

    # =========================================================================
    # Single attempt
    # =========================================================================
    async def _ensure_transport(self, settings: EmailSettings) -> EmailTransport:
        """Return the memoized transport, rebuilding it when the key changes.

        Raises:
            EmailConfigError: If no API key or sender address is configured.
        """
        api_key = settings.api_key_encrypted or self.config.RESEND_API_KEY
        if not api_key:
            raise EmailConfigError("Email service initialization failed: no API key configured")
        if not settings.sender_email:
            raise EmailConfigError("Email service initialization failed: no sender email configured")

        if self._transport is None or self._transport_key != api_key:
            if self._transport is not None:
                await self._transport.aclose()
            self._transport = self._transport_factory(api_key, self.config)
            self._transport_key = api_key
            logger.info("Email transport initialized")
        return self._transport

    async def _attempt_send(
        self, request: EmailSendRequest, log_id: int | None = None
    ) -> EmailResult:
        """Make exactly one delivery attempt.

        Creates a pending log row unless ``log_id`` is given, in which case
        that row is finalized instead.

        Raises:
            SendError: Tagged failure of this attempt.
        """
        try:
            settings = await asyncio.to_thread(self.settings_store.get_email_settings)
            if settings is None:
                raise EmailConfigError("Email settings not found")

            if not await self.quota.check_daily_limit(settings):
                raise QuotaExceededError("Daily email limit reached")

            transport = await self._ensure_transport(settings)

            template = await asyncio.to_thread(self.template_store.get_template, request.template_key)
            if template is None:
                raise TemplateRenderError(
                    f"Template {request.template_key} not found",
                    template_name=request.template_key,
                )

            locale = await self._load_locale()
            now = self._clock()
            data = self.renderer.prepare_template_data(request.data, settings, locale, now)
            rendered = self.renderer.render(template, data)

            if log_id is None:
                log_id = await self._create_log(request, settings, rendered.subject, now)

            message = OutgoingMessage(
                sender=_format_sender(settings),
                to=[request.recipient_email],
                subject=rendered.subject,
                html=rendered.html,
                text=rendered.text,
                reply_to=settings.reply_to_email,
                idempotency_key=request.idempotency_key,
            )

            try:
                outcome = await asyncio.wait_for(
                    transport.send(message), timeout=self.policy.send_timeout
                )
            except asyncio.TimeoutError as e:
                raise SendTimeoutError() from e

            if not outcome.success:
                error_text = outcome.error or "Unknown provider error"
                if outcome.retryable:
                    raise TransientSendError(error_text)
                raise PermanentSendError(error_text)

        except Exception as e:
            error = _classify(e)
            if log_id is not None:
                await self._finalize_log(log_id, DeliveryStatus.FAILED, error_message=str(error))
            if error is e:
                raise
            raise error from e

        if log_id is not None:
            await self._finalize_log(
                log_id,
                DeliveryStatus.SENT,
                provider_message_id=outcome.message_id,
                sent_at=self._clock(),
            )
        await self.quota.record_send()
        return EmailResult(success=True, message_id=outcome.message_id, log_id=log_id)

    async def _load_locale(self) -> LocaleSettings | None:
        try:
            return await asyncio.to_thread(self.settings_store.get_locale_settings)
        except EmailStoreError as e:
            logger.warning(f"Locale settings unavailable, using branding defaults: {e}")
            return None

    async def _create_log(
        self,
        request: EmailSendRequest,
        settings: EmailSettings,
        subject: str,
        created_at: datetime,
    ) -> int | None:
        try:
            return await asyncio.to_thread(
                self.log_store.insert_log,
                template_key=request.template_key,
                recipient_email=request.recipient_email,
                recipient_name=request.recipient_name,
                sender_email=settings.sender_email,
                subject=subject,
                booking_id=request.booking_id,
                contact_id=request.contact_id,
                created_at=created_at,
            )
        except EmailStoreError as e:
            logger.error(f"Failed to create email log for {request.recipient_email}: {e}")
            return None

    async def _finalize_log(
        self,
        log_id: int,
        status: DeliveryStatus,
        provider_message_id: str | None = None,
        error_message: str | None = None,
        sent_at: datetime | None = None,
    ) -> None:
        try:
            await asyncio.to_thread(
                self.log_store.finalize_log,
                log_id,
                status,
                provider_message_id,
                error_message,
                sent_at,
            )
        except EmailStoreError as e:
            logger.error(f"Failed to update email log #{log_id} to {status.value}: {e}")

    # =========================================================================
    # Queue fallback and sweeps
    # =========================================================================
    @staticmethod
    def _queue_subject(request: EmailSendRequest) -> str:
        return f"{request.template_key} for {request.recipient_name or request.recipient_email}"

    async def _queue_for_retry(
        self, request: EmailSendRequest, attempts: int, last_error: SendError | None
    ) -> EmailResult:
        attempts_text = f"{attempts} attempt" if attempts == 1 else f"{attempts} attempts"
        error_message = str(last_error) if last_error else "Unknown error"

        try:
            queue_id = await asyncio.to_thread(
                self.queue_store.enqueue,
                template_key=request.template_key,
                recipient_email=request.recipient_email,
                recipient_name=request.recipient_name,
                subject=self._queue_subject(request),
                email_data=dict(request.data),
                booking_id=request.booking_id,
                contact_id=request.contact_id,
                scheduled_for=self._clock(),
                priority=FALLBACK_QUEUE_PRIORITY,
                current_attempts=attempts,
                max_attempts=self.policy.queue_max_attempts,
                error_message=error_message,
                idempotency_key=request.idempotency_key,
            )
        except Exception as e:
            logger.error(
                f"Failed after {attempts_text} and could not queue email "
                f"to {request.recipient_email}: {e}"
            )
            return EmailResult(
                success=False,
                error=f"Failed after {attempts_text}: {error_message}. Queueing failed: {e}",
            )

        logger.warning(
            f"{log_context('queue_fallback', record_id=queue_id, recipient=request.recipient_email)} "
            f"failed after {attempts_text}: {error_message}"
        )
        return EmailResult(
            success=False,
            error=f"Failed after {attempts_text}. Queued for retry.",
            log_id=queue_id,
        )

    async def _process_queued(self, row: QueuedEmail) -> bool:
        """Attempt one queue row and record the outcome on it."""
        try:
            await asyncio.to_thread(
                self.queue_store.update,
                row.id,
                status=QueueStatus.PROCESSING,
                last_attempt_at=self._clock(),
            )
            await self._attempt_send(row.to_request())
        except Exception as e:
            await self._record_queue_failure(row, str(e) or type(e).__name__)
            return False

        try:
            await asyncio.to_thread(self.queue_store.update, row.id, status=QueueStatus.SENT)
        except Exception as e:
            logger.error(f"Email #{row.id} was sent but could not be marked sent: {e}")
        logger.info(f"{log_context('queue_retry', record_id=row.id, recipient=row.recipient_email)} sent")
        return True

    async def _record_queue_failure(self, row: QueuedEmail, error_message: str) -> None:
        attempts = row.current_attempts + 1
        try:
            if attempts >= row.max_attempts:
                await asyncio.to_thread(
                    self.queue_store.update,
                    row.id,
                    status=QueueStatus.FAILED,
                    current_attempts=attempts,
                    error_message=error_message,
                )
                logger.error(
                    f"{log_context('queue_retry', record_id=row.id, recipient=row.recipient_email)} "
                    f"permanently failed after {attempts} attempts: {error_message}"
                )
            else:
                process_after = self._clock() + timedelta(seconds=self.policy.queue_retry_delay)
                await asyncio.to_thread(
                    self.queue_store.update,
                    row.id,
                    status=QueueStatus.PENDING,
                    current_attempts=attempts,
                    error_message=error_message,
                    process_after=process_after,
                )
                logger.warning(
                    f"{log_context('queue_retry', record_id=row.id, recipient=row.recipient_email)} "
                    f"retry scheduled after {process_after.isoformat()}: {error_message}"
                )
        except Exception as e:
            logger.error(f"Failed to record failure for queued email #{row.id}: {e}")

    async def _process_stuck(self, entry: DeliveryLogEntry) -> bool:
        """Re-attempt one stuck log row, finalizing it in place."""
        try:
            request = EmailSendRequest(
                template_key=entry.template_key,
                recipient_email=entry.recipient_email,
                recipient_name=entry.recipient_name,
                data={"customerName": entry.recipient_name},
                booking_id=entry.booking_id,
                contact_id=entry.contact_id,
            )
        except ValueError as e:
            await self._finalize_log(
                entry.id, DeliveryStatus.FAILED, error_message=f"Invalid stored request: {e}"
            )
            return False

        try:
            await self._attempt_send(request, log_id=entry.id)
        except SendError as e:
            logger.error(
                f"{log_context('pending_retry', record_id=entry.id, recipient=entry.recipient_email)} "
                f"failed: {e}"
            )
            return False

        logger.info(f"{log_context('pending_retry', record_id=entry.id, recipient=entry.recipient_email)} sent")
        return True
