"""Provider transport models.

Version: 1.0.0
"""

from pydantic import BaseModel, ConfigDict, Field


class OutgoingMessage(BaseModel):
    """A fully rendered message handed to the provider."""

    model_config = ConfigDict(frozen=True)

    sender: str = Field(..., description='Formatted From header, e.g. "Name <addr>"')
    to: list[str] = Field(..., min_length=1)
    subject: str
    html: str
    text: str | None = None
    reply_to: str | None = None
    idempotency_key: str | None = None


class TransportResult(BaseModel):
    """Outcome of one provider call.

    Attributes:
        success: Provider accepted the message.
        message_id: Provider message id on success.
        error: Provider error text on failure.
        retryable: Whether an immediate retry may succeed.
    """

    success: bool
    message_id: str | None = None
    error: str | None = None
    retryable: bool = True
