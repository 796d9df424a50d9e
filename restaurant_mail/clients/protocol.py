"""Email transport protocol.

Any object with an async ``send`` returning a TransportResult can deliver
mail for the service; the Resend client is the production implementation.

Version: 1.0.0
"""

from typing import Protocol

from restaurant_mail.models.transport import OutgoingMessage, TransportResult


class EmailTransport(Protocol):
    """Provider transport interface."""

    async def send(self, message: OutgoingMessage) -> TransportResult:
        """Send one rendered message.

        Returns:
            TransportResult; provider rejections come back as
            ``success=False`` with ``retryable`` set.

        Raises:
            TransientSendError: On network failures.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...
