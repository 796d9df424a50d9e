"""Unit tests for booking notifications and background dispatch.

Version: 1.0.0
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from restaurant_mail.models.context import BookingDetails, ContactSubmission, CustomerDetails
from restaurant_mail.models.email import EmailResult
from restaurant_mail.notifications.booking import BookingNotifier
from restaurant_mail.notifications.dispatch import BackgroundDispatcher


@pytest.fixture
def robust_service(email_settings) -> MagicMock:
    service = MagicMock()
    service.send_email_robust = AsyncMock(return_value=EmailResult(success=True, message_id="m1", log_id=1))
    service.settings_store.get_email_settings.return_value = email_settings
    return service


@pytest.fixture
def notifier(robust_service) -> BookingNotifier:
    return BookingNotifier(robust_service)


@pytest.fixture
def booking() -> BookingDetails:
    return BookingDetails(
        id="0b6f-uuid",
        booking_reference="DT-1042",
        booking_date=date(2026, 10, 24),
        booking_time="19:30",
        party_size=1,
        special_requests="Window seat",
    )


@pytest.fixture
def customer() -> CustomerDetails:
    return CustomerDetails(
        email="guest@example.com",
        name="Ana",
        phone="07700 900000",
        customer_segment="vip",
        total_bookings=12,
    )


@pytest.fixture
def contact() -> ContactSubmission:
    return ContactSubmission(
        id="c-7",
        name="Ben",
        email="ben@example.com",
        subject="Private dining",
        message="Do you host parties of 20?",
        created_at=datetime(2026, 10, 19, 9, 15, 0, tzinfo=timezone.utc),
    )


def _sent_request(service: MagicMock):
    return service.send_email_robust.await_args.args[0]


class TestBookingNotifier:
    """Tests for booking notification helpers."""

    def test_confirmation(self, notifier, robust_service, booking, customer):
        result = asyncio.run(notifier.send_booking_confirmation(booking, customer))

        assert result.success is True
        request = _sent_request(robust_service)
        assert request.template_key == "booking_confirmation"
        assert request.recipient_email == "guest@example.com"
        assert request.booking_id == "0b6f-uuid"
        assert request.data["bookingId"] == "DT-1042"
        assert request.data["bookingDate"] == "24/10/2026"
        assert request.data["specialRequests"] == "Window seat"

    def test_staff_alert(self, notifier, robust_service, booking, customer):
        asyncio.run(notifier.send_staff_booking_alert(booking, customer, "staff@t.com"))

        request = _sent_request(robust_service)
        assert request.template_key == "staff_booking_alert"
        assert request.recipient_email == "staff@t.com"
        assert request.recipient_name == "Restaurant Staff"
        assert request.data["isVipCustomer"] is True
        assert request.data["totalBookings"] == 12
        assert request.data["bookingSource"] == "website"
        assert request.data["guestText"] == "guest"

    def test_cancellation_uses_id_without_reference(self, notifier, robust_service, booking, customer):
        no_ref = booking.model_copy(update={"booking_reference": None, "party_size": 3})

        asyncio.run(notifier.send_booking_cancellation(no_ref, customer))

        request = _sent_request(robust_service)
        assert request.template_key == "booking_cancellation"
        assert request.data["bookingId"] == "0b6f-uuid"
        assert request.data["guestText"] == "guests"

    def test_reconfirmation(self, notifier, robust_service, booking, customer):
        asyncio.run(
            notifier.send_booking_reconfirmation(
                booking,
                customer,
                reconfirmation_link="https://t.com/r/abc",
                confirm_link="https://t.com/r/abc/confirm",
                deadline_hours=6,
                is_urgent=True,
            )
        )

        request = _sent_request(robust_service)
        assert request.template_key == "booking_reconfirmation_reminder"
        assert request.data["bookingReference"] == "DT-1042"
        assert request.data["confirmLink"] == "https://t.com/r/abc/confirm"
        assert request.data["deadlineHours"] == 6
        assert request.data["isUrgent"] is True


class TestContactNotifications:
    """Tests for contact form notifications."""

    def test_staff_notification(self, notifier, robust_service, contact):
        asyncio.run(notifier.send_contact_notification(contact))

        request = _sent_request(robust_service)
        assert request.template_key == "staff_contact_notification"
        assert request.recipient_email == "staff@test-trattoria.com"
        assert request.contact_id == "c-7"
        assert request.data["submittedAt"] == "19/10/2026, 09:15:00"

    def test_staff_notification_disabled(self, notifier, robust_service, contact, email_settings):
        robust_service.settings_store.get_email_settings.return_value = email_settings.model_copy(
            update={"contact_staff_notification": False}
        )

        result = asyncio.run(notifier.send_contact_notification(contact))

        assert result.success is False
        assert result.error == "Contact alerts disabled or no email configured"
        robust_service.send_email_robust.assert_not_awaited()

    def test_auto_reply(self, notifier, robust_service, contact):
        asyncio.run(notifier.send_contact_auto_reply(contact))

        request = _sent_request(robust_service)
        assert request.template_key == "contact_auto_reply"
        assert request.recipient_email == "ben@example.com"

    def test_auto_reply_when_settings_unreadable(self, notifier, robust_service, contact):
        robust_service.settings_store.get_email_settings.side_effect = RuntimeError("db down")

        result = asyncio.run(notifier.send_contact_auto_reply(contact))

        assert result.error == "Auto-reply disabled"
        robust_service.send_email_robust.assert_not_awaited()


class TestBackgroundDispatcher:
    """Tests for fire-and-forget dispatch."""

    def test_submit_returns_before_send_completes(self):
        release = asyncio.Event()
        finished = []

        async def slow_send():
            await release.wait()
            finished.append(True)
            return EmailResult(success=True)

        async def scenario():
            dispatcher = BackgroundDispatcher()
            dispatcher.submit(slow_send(), label="booking_confirmation")
            assert dispatcher.pending == 1
            assert finished == []
            release.set()
            await dispatcher.drain(timeout=1)
            return dispatcher

        dispatcher = asyncio.run(scenario())

        assert finished == [True]
        assert dispatcher.pending == 0

    def test_failures_do_not_propagate(self):
        async def failing_send():
            raise RuntimeError("boom")

        async def unsuccessful_send():
            return EmailResult(success=False, error="Failed after 3 attempts. Queued for retry.")

        async def scenario():
            dispatcher = BackgroundDispatcher()
            dispatcher.submit(failing_send(), label="a")
            dispatcher.submit(unsuccessful_send(), label="b")
            await dispatcher.drain(timeout=1)
            return dispatcher.pending

        assert asyncio.run(scenario()) == 0

    def test_drain_cancels_stragglers(self):
        async def never_finishes():
            await asyncio.sleep(60)
            return EmailResult(success=True)

        async def scenario():
            dispatcher = BackgroundDispatcher()
            task = dispatcher.submit(never_finishes(), label="slow")
            await dispatcher.drain(timeout=0.01)
            await asyncio.gather(task, return_exceptions=True)
            return task

        task = asyncio.run(scenario())

        assert task.cancelled()

    def test_drain_with_nothing_pending(self):
        asyncio.run(BackgroundDispatcher().drain())
