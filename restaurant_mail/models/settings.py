"""Tenant settings and template models.

Mirrors the ``email_settings``, ``locale_settings`` and ``email_templates``
rows read by the delivery pipeline.

Version: 1.0.0
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class EmailSettings(BaseModel):
    """Per-tenant sender identity, credentials and quota limits.

    Attributes:
        user_id: Tenant key (``admin`` for the single restaurant).
        api_key_encrypted: Provider API key as stored.
        sender_email: From address; sending is impossible without it.
        sender_name: From display name.
        reply_to_email: Optional Reply-To address.
        max_daily_emails: Daily quota limit.
        rate_limit_per_hour: Hourly ceiling, 0 disables it.
        emails_sent_today: Counter reset on the first send of a new day.
        last_email_reset_date: Date the counter was last reset.
        brand_color: Template brand color.
        restaurant_email: Staff inbox for contact notifications.
        contact_auto_reply_enabled: Whether contact auto-replies are sent.
        contact_staff_notification: Whether staff get contact alerts.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: str = "admin"
    api_key_encrypted: str | None = None
    sender_email: str | None = None
    sender_name: str | None = None
    reply_to_email: str | None = None
    max_daily_emails: int = Field(default=1000, ge=0)
    rate_limit_per_hour: int = Field(default=0, ge=0)
    emails_sent_today: int = Field(default=0, ge=0)
    last_email_reset_date: date | None = None
    brand_color: str | None = None
    restaurant_email: str | None = None
    contact_auto_reply_enabled: bool = False
    contact_staff_notification: bool = False


class LocaleSettings(BaseModel):
    """Restaurant identity used for template branding (``locale_settings`` id 1)."""

    model_config = ConfigDict(from_attributes=True)

    restaurant_name: str | None = None
    restaurant_address: str | None = None
    restaurant_city: str | None = None
    restaurant_postal_code: str | None = None
    restaurant_phone: str | None = None


class QuotaState(BaseModel):
    """Daily counter snapshot.

    ``count`` is only meaningful for ``last_reset_date``; any other date reads
    as zero.
    """

    count: int = Field(default=0, ge=0)
    limit: int = Field(default=1000, ge=0)
    last_reset_date: date | None = None

    def remaining(self, today: date) -> int:
        """Sends left for ``today``."""
        used = self.count if self.last_reset_date == today else 0
        return max(self.limit - used, 0)


class EmailTemplate(BaseModel):
    """Stored email template (``email_templates``)."""

    model_config = ConfigDict(from_attributes=True)

    template_key: str
    subject: str
    html_content: str
    text_content: str | None = None
    is_active: bool = True
