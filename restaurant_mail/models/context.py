"""Notification context models.

Typed views of the booking, customer and contact records that the
notification helpers turn into template data.

Version: 1.0.0
"""

from datetime import date, datetime

from pydantic import BaseModel, Field


class BookingDetails(BaseModel):
    """Booking fields used by booking notifications.

    Attributes:
        id: Booking primary key.
        booking_reference: Human facing reference; falls back to ``id``.
        booking_date: Reservation date.
        booking_time: Reservation time as entered (e.g. "19:30").
        party_size: Number of guests.
        special_requests: Free text from the guest.
        source: Channel the booking came from.
    """

    id: str = Field(..., description="Booking ID")
    booking_reference: str | None = Field(default=None, description="Booking reference")
    booking_date: date = Field(..., description="Reservation date")
    booking_time: str = Field(..., description="Reservation time")
    party_size: int = Field(..., ge=1, description="Number of guests")
    special_requests: str | None = Field(default=None, description="Special requests")
    source: str | None = Field(default=None, description="Booking source")

    @property
    def display_reference(self) -> str:
        return self.booking_reference or self.id


class CustomerDetails(BaseModel):
    """Customer fields used by booking notifications."""

    email: str = Field(..., description="Customer email")
    name: str = Field(..., description="Customer name")
    phone: str | None = Field(default=None, description="Customer phone")
    customer_segment: str | None = Field(default=None, description="Segment, e.g. new/regular/vip")
    total_bookings: int = Field(default=0, ge=0, description="Lifetime bookings")


class ContactSubmission(BaseModel):
    """Contact form submission."""

    id: str = Field(..., description="Contact submission ID")
    name: str
    email: str
    phone: str | None = None
    subject: str = ""
    message: str = ""
    created_at: datetime
