"""Booking and contact notifications.

Translates booking and contact form events into template keys and data
bags for the robust email service.

Version: 1.0.0
"""

from __future__ import annotations

import asyncio

from restaurant_mail.core.logger import get_logger
from restaurant_mail.models.context import BookingDetails, ContactSubmission, CustomerDetails
from restaurant_mail.models.email import EmailResult, EmailSendRequest
from restaurant_mail.models.settings import EmailSettings
from restaurant_mail.service.robust import RobustEmailService

logger = get_logger(__name__)

# en-GB date and datetime formats
DATE_FORMAT = "%d/%m/%Y"
DATETIME_FORMAT = "%d/%m/%Y, %H:%M:%S"

STAFF_RECIPIENT_NAME = "Restaurant Staff"


def _guest_text(party_size: int) -> str:
    return "guest" if party_size == 1 else "guests"


class BookingNotifier:
    """Notification helpers on top of RobustEmailService."""

    def __init__(self, service: RobustEmailService) -> None:
        self.service = service

    async def send_booking_confirmation(
        self, booking: BookingDetails, customer: CustomerDetails
    ) -> EmailResult:
        """Confirmation to the guest (``booking_confirmation``)."""
        return await self.service.send_email_robust(
            EmailSendRequest(
                template_key="booking_confirmation",
                recipient_email=customer.email,
                recipient_name=customer.name,
                booking_id=booking.id,
                data={
                    "customerName": customer.name,
                    "bookingId": booking.display_reference,
                    "bookingDate": booking.booking_date.strftime(DATE_FORMAT),
                    "bookingTime": booking.booking_time,
                    "partySize": booking.party_size,
                    "specialRequests": booking.special_requests or "",
                },
            )
        )

    async def send_staff_booking_alert(
        self, booking: BookingDetails, customer: CustomerDetails, staff_email: str
    ) -> EmailResult:
        """New booking alert to staff (``staff_booking_alert``)."""
        segment = customer.customer_segment or "new"
        return await self.service.send_email_robust(
            EmailSendRequest(
                template_key="staff_booking_alert",
                recipient_email=staff_email,
                recipient_name=STAFF_RECIPIENT_NAME,
                booking_id=booking.id,
                data={
                    "customerName": customer.name,
                    "customerEmail": customer.email,
                    "customerPhone": customer.phone or "",
                    "bookingDate": booking.booking_date.strftime(DATE_FORMAT),
                    "bookingTime": booking.booking_time,
                    "partySize": booking.party_size,
                    "specialRequests": booking.special_requests or "",
                    "bookingId": booking.display_reference,
                    "customerSegment": segment,
                    "isVipCustomer": segment == "vip",
                    "totalBookings": customer.total_bookings,
                    "bookingSource": booking.source or "website",
                    "guestText": _guest_text(booking.party_size),
                },
            )
        )

    async def send_booking_cancellation(
        self, booking: BookingDetails, customer: CustomerDetails
    ) -> EmailResult:
        """Cancellation notice to the guest (``booking_cancellation``)."""
        return await self.service.send_email_robust(
            EmailSendRequest(
                template_key="booking_cancellation",
                recipient_email=customer.email,
                recipient_name=customer.name,
                booking_id=booking.id,
                data={
                    "customerName": customer.name,
                    "bookingDate": booking.booking_date.strftime(DATE_FORMAT),
                    "bookingTime": booking.booking_time,
                    "partySize": booking.party_size,
                    "bookingId": booking.display_reference,
                    "guestText": _guest_text(booking.party_size),
                },
            )
        )

    async def send_booking_reconfirmation(
        self,
        booking: BookingDetails,
        customer: CustomerDetails,
        reconfirmation_link: str,
        confirm_link: str,
        deadline_hours: int = 24,
        is_urgent: bool = False,
    ) -> EmailResult:
        """Ask the guest to reconfirm (``booking_reconfirmation_reminder``).

        Args:
            booking: Booking to reconfirm.
            customer: Guest receiving the reminder.
            reconfirmation_link: Page where the guest manages the booking.
            confirm_link: One-click confirmation link.
            deadline_hours: Hours left to reconfirm.
            is_urgent: Whether the deadline is close.
        """
        return await self.service.send_email_robust(
            EmailSendRequest(
                template_key="booking_reconfirmation_reminder",
                recipient_email=customer.email,
                recipient_name=customer.name,
                booking_id=booking.id,
                data={
                    "customerName": customer.name,
                    "bookingReference": booking.display_reference,
                    "bookingDate": booking.booking_date.strftime(DATE_FORMAT),
                    "bookingTime": booking.booking_time,
                    "partySize": booking.party_size,
                    "guestText": _guest_text(booking.party_size),
                    "reconfirmationLink": reconfirmation_link,
                    "confirmLink": confirm_link,
                    "isUrgent": is_urgent,
                    "deadlineHours": deadline_hours,
                },
            )
        )

    async def send_contact_notification(self, contact: ContactSubmission) -> EmailResult:
        """Contact form alert to the restaurant inbox (``staff_contact_notification``).

        Skipped unless staff notifications are enabled and a restaurant
        email is configured.
        """
        settings = await self._load_settings()
        if settings is None or not settings.contact_staff_notification or not settings.restaurant_email:
            return EmailResult(success=False, error="Contact alerts disabled or no email configured")

        return await self.service.send_email_robust(
            EmailSendRequest(
                template_key="staff_contact_notification",
                recipient_email=settings.restaurant_email,
                recipient_name=STAFF_RECIPIENT_NAME,
                contact_id=contact.id,
                data={
                    "customerName": contact.name,
                    "customerEmail": contact.email,
                    "customerPhone": contact.phone,
                    "subject": contact.subject,
                    "message": contact.message,
                    "submittedAt": contact.created_at.strftime(DATETIME_FORMAT),
                },
            )
        )

    async def send_contact_auto_reply(self, contact: ContactSubmission) -> EmailResult:
        """Acknowledgement to the sender (``contact_auto_reply``), when enabled."""
        settings = await self._load_settings()
        if settings is None or not settings.contact_auto_reply_enabled:
            return EmailResult(success=False, error="Auto-reply disabled")

        return await self.service.send_email_robust(
            EmailSendRequest(
                template_key="contact_auto_reply",
                recipient_email=contact.email,
                recipient_name=contact.name,
                contact_id=contact.id,
                data={
                    "customerName": contact.name,
                    "subject": contact.subject,
                    "message": contact.message,
                    "sentAt": contact.created_at.strftime(DATETIME_FORMAT),
                },
            )
        )

    async def _load_settings(self) -> EmailSettings | None:
        try:
            return await asyncio.to_thread(self.service.settings_store.get_email_settings)
        except Exception as e:
            logger.error(f"Failed to load email settings for contact notification: {e}")
            return None
