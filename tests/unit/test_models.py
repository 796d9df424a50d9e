"""Unit tests for data models and configuration.

Version: 1.0.0
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from restaurant_mail.config import EmailConfig
from restaurant_mail.core.exceptions import (
    PermanentSendError,
    QuotaExceededError,
    SendTimeoutError,
    TemplateRenderError,
    TransientSendError,
)
from restaurant_mail.models.email import EmailSendRequest, QueuedEmail, SweepResult
from restaurant_mail.models.policy import RetryPolicy
from restaurant_mail.models.settings import QuotaState
from restaurant_mail.models.stats import EmailHealthReport, HealthLevel

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_defaults(self):
        policy = RetryPolicy()

        assert policy.max_immediate_attempts == 3
        assert policy.send_timeout == 30.0
        assert policy.queue_max_attempts == 5
        assert policy.queue_retry_delay == 300
        assert policy.queue_batch_size == 20
        assert policy.pending_batch_size == 10

    def test_backoff_doubles(self):
        policy = RetryPolicy(max_immediate_attempts=5, base_delay=0.5)

        assert [policy.backoff_delay(n) for n in range(1, 6)] == [0.5, 1.0, 2.0, 4.0, 0.0]

    def test_frozen(self):
        with pytest.raises(ValidationError):
            RetryPolicy().max_immediate_attempts = 10

    def test_from_config(self):
        """Test the policy mirrors configuration values."""
        config = EmailConfig(EMAIL_RETRY_MAX_ATTEMPTS=4, EMAIL_QUEUE_BATCH_SIZE=50, LOG_TO_FILE=False)

        policy = config.get_retry_policy()

        assert policy.max_immediate_attempts == 4
        assert policy.queue_batch_size == 50


class TestSendErrors:
    """Tests for the tagged send error taxonomy."""

    def test_retryable_flags(self):
        assert TransientSendError("x").retryable is True
        assert SendTimeoutError().retryable is True
        assert PermanentSendError("x").retryable is False
        assert QuotaExceededError("x").retryable is False
        assert TemplateRenderError("x", template_name="t").retryable is False

    def test_timeout_message(self):
        assert str(SendTimeoutError()) == "Email sending timeout"

    def test_override(self):
        assert PermanentSendError("x", retryable=True).retryable is True


class TestEmailSendRequest:
    """Tests for EmailSendRequest validation."""

    def test_template_key_stripped(self):
        request = EmailSendRequest(template_key="  booking_confirmation ", recipient_email="a@example.com")

        assert request.template_key == "booking_confirmation"

    def test_blank_template_key_rejected(self):
        with pytest.raises(ValidationError):
            EmailSendRequest(template_key="   ", recipient_email="a@example.com")

    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            EmailSendRequest(template_key="booking_confirmation", recipient_email="nope")

    def test_priority_bounds(self):
        with pytest.raises(ValidationError):
            EmailSendRequest(template_key="k", recipient_email="a@example.com", priority=11)

    def test_naive_schedule_becomes_utc(self):
        request = EmailSendRequest(
            template_key="k",
            recipient_email="a@example.com",
            scheduled_for=datetime(2030, 1, 1, 12, 0),
        )

        assert request.scheduled_for == datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_aware_schedule_unchanged(self):
        request = EmailSendRequest(template_key="k", recipient_email="a@example.com", scheduled_for=NOW)

        assert request.scheduled_for == NOW


class TestQueuedEmail:
    """Tests for QueuedEmail."""

    def test_to_request_keeps_data_and_key(self):
        row = QueuedEmail(
            id=7,
            template_key="booking_cancellation",
            recipient_email="a@example.com",
            recipient_name="Ana",
            email_data={"bookingId": "BK-1"},
            booking_id="bk-1",
            scheduled_for=NOW,
            idempotency_key="key-7",
            created_at=NOW,
        )

        request = row.to_request()

        assert request.template_key == "booking_cancellation"
        assert request.data == {"bookingId": "BK-1"}
        assert request.booking_id == "bk-1"
        assert request.idempotency_key == "key-7"
        assert request.scheduled_for is None


class TestQuotaState:
    def test_remaining_today(self):
        quota = QuotaState(count=999, limit=1000, last_reset_date=date(2026, 10, 19))

        assert quota.remaining(date(2026, 10, 19)) == 1
        assert quota.remaining(date(2026, 10, 20)) == 1000

    def test_remaining_never_negative(self):
        quota = QuotaState(count=1200, limit=1000, last_reset_date=date(2026, 10, 19))

        assert quota.remaining(date(2026, 10, 19)) == 0


class TestSweepResult:
    def test_addition(self):
        total = SweepResult(processed=2, success=1, failed=1) + SweepResult(processed=3, success=3)

        assert (total.processed, total.success, total.failed) == (5, 4, 1)


class TestEmailHealthReport:
    """Tests for health assessment."""

    def test_low_success_rate_warns(self):
        report = EmailHealthReport(sent_last_24h=90, failed_last_24h=10, generated_at=NOW)

        report.assess()

        assert report.success_rate == 90.0
        assert report.status is HealthLevel.WARNING
        assert any("below 95.0%" in r for r in report.recommendations)

    def test_queue_backlog_critical(self):
        report = EmailHealthReport(queue_pending_count=11, sent_last_24h=50, generated_at=NOW)

        report.assess()

        assert report.status is HealthLevel.CRITICAL

    def test_small_queue_backlog_is_healthy(self):
        report = EmailHealthReport(queue_pending_count=2, generated_at=NOW)

        report.assess()

        assert report.status is HealthLevel.HEALTHY
        assert report.recommendations == ["2 emails waiting in the retry queue"]
