"""Custom exceptions for the restaurant mail service.

Defines the error taxonomy used by the delivery pipeline. Send failures are
tagged as retryable or permanent so that only transient problems consume the
remaining immediate attempts.

Version: 1.0.0
"""


class EmailServiceError(Exception):
    """Base exception for all mail service errors.

    Example:
        try:
            await service.process_email_queue()
        except EmailServiceError as e:
            logger.error(f"Mail service error: {e}")
    """

    pass


class EmailConfigError(EmailServiceError):
    """Exception raised for configuration or initialization errors.

    Indicates a missing provider credential, a missing sender address or an
    absent settings row. Retrying immediately cannot fix it.

    Example:
        raise EmailConfigError("No API key configured")
    """

    pass


class EmailStoreError(EmailServiceError):
    """Exception raised for database operations.

    Indicates failures reading or writing settings, templates, the delivery
    log or the retry queue in PostgreSQL.

    Attributes:
        message (str): Description of the database error.
        record_id (int, optional): ID of the affected row.
    """

    def __init__(self, message: str, record_id: int | None = None):
        """Initialize store error.

        Args:
            message: Error description.
            record_id: Optional ID of the affected row.
        """
        super().__init__(message)
        self.record_id = record_id


class SendError(EmailServiceError):
    """Exception raised when a single delivery attempt fails.

    Attributes:
        message (str): Error text, stored verbatim in the log/queue row.
        retryable (bool): Whether another immediate attempt may succeed.
    """

    retryable_default = True

    def __init__(self, message: str, retryable: bool | None = None):
        """Initialize send error.

        Args:
            message: Error description.
            retryable: Overrides the class default when given.
        """
        super().__init__(message)
        self.retryable = self.retryable_default if retryable is None else retryable


class TransientSendError(SendError):
    """Attempt failure that may succeed on retry (network, 5xx, rate limit)."""

    retryable_default = True


class SendTimeoutError(TransientSendError):
    """The provider did not answer within the send timeout.

    The provider may still complete the send server-side.
    """

    def __init__(self, message: str = "Email sending timeout"):
        super().__init__(message)


class PermanentSendError(SendError):
    """Attempt failure that will not resolve by retrying immediately."""

    retryable_default = False


class QuotaExceededError(SendError):
    """The daily or hourly sending quota has been reached."""

    retryable_default = False


class TemplateRenderError(PermanentSendError):
    """Exception raised for template lookup or rendering failures.

    Attributes:
        message (str): Description of the template error.
        template_name (str, optional): Key of the template that failed.

    Example:
        raise TemplateRenderError(
            "Template booking_confirmation not found",
            template_name="booking_confirmation",
        )
    """

    def __init__(self, message: str, template_name: str | None = None):
        """Initialize template render error.

        Args:
            message: Error description.
            template_name: Optional key of the template that failed.
        """
        super().__init__(message)
        self.template_name = template_name
