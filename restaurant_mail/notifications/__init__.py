"""Notifications module for the restaurant mail service.

Booking and contact notification helpers plus the background dispatcher
used to send them without blocking the calling request.
"""

from restaurant_mail.notifications.booking import BookingNotifier
from restaurant_mail.notifications.dispatch import BackgroundDispatcher

__all__ = ["BookingNotifier", "BackgroundDispatcher"]
