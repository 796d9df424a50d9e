"""Clients module for the restaurant mail service.

Contains the provider transport protocol and the Resend HTTP client.
"""

from restaurant_mail.clients.protocol import EmailTransport
from restaurant_mail.clients.resend import ResendClient

__all__ = ["EmailTransport", "ResendClient"]
