"""Resend HTTP client for email delivery.

Sends rendered messages through the Resend REST API using a shared
``httpx.AsyncClient``.

Features:
- Bearer token authentication
- Idempotency-Key header so provider side retries deduplicate
- Retryable vs permanent classification of provider errors

Version: 1.0.0
"""

from __future__ import annotations

from typing import Any

import httpx

from restaurant_mail.core.exceptions import TransientSendError
from restaurant_mail.core.logger import get_logger
from restaurant_mail.models.transport import OutgoingMessage, TransportResult

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.resend.com/emails"

# Provider status codes worth an immediate retry
RETRYABLE_STATUS_CODES = frozenset({408, 409, 429})


class ResendClient:
    """Resend API delivery client.

    Attributes:
        api_url: Send endpoint.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize Resend client.

        Args:
            api_key: Resend API key.
            api_url: Send endpoint (default: public Resend API).
            timeout: Request timeout in seconds.
            http_client: Pre-built client, mainly for tests.

        Raises:
            ValueError: If the API key is empty.
        """
        if not api_key:
            raise ValueError("Resend API key is required")

        self.api_url = api_url
        self.timeout = timeout
        self._api_key = api_key
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

        logger.info(f"Resend client initialized: {api_url}")

    def _headers(self, message: OutgoingMessage) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if message.idempotency_key:
            headers["Idempotency-Key"] = message.idempotency_key
        return headers

    @staticmethod
    def build_payload(message: OutgoingMessage) -> dict[str, Any]:
        """Build the Resend JSON payload for a message."""
        payload: dict[str, Any] = {
            "from": message.sender,
            "to": list(message.to),
            "subject": message.subject,
            "html": message.html,
        }
        if message.text:
            payload["text"] = message.text
        if message.reply_to:
            payload["reply_to"] = message.reply_to
        return payload

    async def send(self, message: OutgoingMessage) -> TransportResult:
        """Send an email via Resend.

        Args:
            message: Rendered message.

        Returns:
            TransportResult with the provider message id on success.

        Raises:
            TransientSendError: If the request never got a response.
        """
        try:
            response = await self._client.post(
                self.api_url,
                headers=self._headers(message),
                json=self.build_payload(message),
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Resend request timed out for {message.to[0]}: {e}")
            raise TransientSendError(f"Provider request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.warning(f"Resend request failed for {message.to[0]}: {e}")
            raise TransientSendError(f"Provider request failed: {e}") from e

        if response.is_success:
            # Accepted even when the body is unreadable; never resend.
            try:
                data = response.json()
            except ValueError:
                data = None
            message_id = data.get("id") if isinstance(data, dict) else None
            logger.info(f"Email accepted by Resend: to={message.to[0]} id={message_id}")
            return TransportResult(success=True, message_id=str(message_id) if message_id else None)

        error = self._error_text(response)
        retryable = self._is_retryable_status(response.status_code)
        logger.error(
            f"Resend rejected email to {message.to[0]}: "
            f"status={response.status_code} retryable={retryable} error={error}"
        )
        return TransportResult(success=False, error=error, retryable=retryable)

    @staticmethod
    def _error_text(response: httpx.Response) -> str:
        """Extract the provider error message from a failed response."""
        try:
            body = response.json()
        except ValueError:
            return response.text[:500] or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if message:
                return str(message)
        return f"HTTP {response.status_code}"

    @staticmethod
    def _is_retryable_status(status_code: int) -> bool:
        """Server errors and throttling are retryable, other 4xx are not."""
        return status_code >= 500 or status_code in RETRYABLE_STATUS_CODES

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
        logger.debug("Resend client closed")

    async def __aenter__(self) -> ResendClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
