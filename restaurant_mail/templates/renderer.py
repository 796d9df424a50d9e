"""Placeholder template renderer for the restaurant mail service.

Templates use ``{{name}}`` placeholders that are replaced by exact key match
from a data bag. Placeholders without a matching key are left in the output
unchanged; there are no nested paths, filters or control blocks.

Version: 1.0.0
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from restaurant_mail.config import EmailConfig
from restaurant_mail.core.exceptions import TemplateRenderError
from restaurant_mail.core.logger import get_logger
from restaurant_mail.models.settings import EmailSettings, EmailTemplate, LocaleSettings

logger = get_logger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")

# en-GB locale string, e.g. "19/10/2026, 14:05:09"
CREATED_AT_FORMAT = "%d/%m/%Y, %H:%M:%S"


class RenderedEmail(BaseModel):
    """Rendered subject and bodies."""

    subject: str
    html: str
    text: str | None = None


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_placeholders(template: str, data: Mapping[str, Any]) -> str:
    """Substitute ``{{key}}`` tokens from ``data``.

    Args:
        template: Template text.
        data: Values by placeholder name.

    Returns:
        Rendered text; unknown placeholders are kept verbatim.
    """

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in data:
            return _to_text(data[key])
        return match.group(0)

    return PLACEHOLDER_RE.sub(_replace, template)


def _guest_text(party_size: Any) -> str:
    try:
        return "guest" if float(party_size) == 1 else "guests"
    except (TypeError, ValueError):
        return "guests"


class TemplateRenderer:
    """Builds template data and renders stored templates.

    Branding values come from the tenant's settings and locale rows, falling
    back to the configured restaurant defaults.
    """

    def __init__(self, config: EmailConfig | None = None) -> None:
        """Initialize template renderer.

        Args:
            config: Mail service configuration (uses global if None).
        """
        self.config = config or EmailConfig()

    def _footer(self, locale: LocaleSettings | None) -> str:
        if locale is None:
            return f"{self.config.RESTAURANT_NAME} | {self.config.RESTAURANT_ADDRESS}"
        parts = [
            locale.restaurant_name or self.config.RESTAURANT_NAME,
            ", ".join(
                p
                for p in (
                    locale.restaurant_address,
                    " ".join(p for p in (locale.restaurant_city, locale.restaurant_postal_code) if p),
                )
                if p
            ),
            locale.restaurant_phone or "",
        ]
        return " | ".join(p for p in parts if p)

    def prepare_template_data(
        self,
        data: Mapping[str, Any],
        settings: EmailSettings | None,
        locale: LocaleSettings | None,
        now: datetime,
    ) -> dict[str, Any]:
        """Merge caller data over restaurant and branding defaults.

        Caller keys win over every computed field.

        Args:
            data: Caller supplied values.
            settings: Tenant email settings (may be None).
            locale: Restaurant identity row (may be None).
            now: Time used for ``createdAt``.

        Returns:
            Data bag for placeholder rendering.
        """
        cfg = self.config
        merged: dict[str, Any] = {
            "restaurantName": (locale and locale.restaurant_name) or cfg.RESTAURANT_NAME,
            "restaurantPhone": (locale and locale.restaurant_phone) or cfg.RESTAURANT_PHONE,
            "restaurantEmail": (
                (settings and (settings.restaurant_email or settings.reply_to_email))
                or cfg.RESTAURANT_EMAIL
            ),
            "restaurantAddress": (locale and locale.restaurant_address) or cfg.RESTAURANT_ADDRESS,
            "brandColor": (settings and settings.brand_color) or cfg.BRAND_COLOR,
            "customFooter": self._footer(locale),
            "websiteUrl": cfg.APP_URL,
            "guestText": _guest_text(data.get("partySize")),
            "createdAt": now.strftime(CREATED_AT_FORMAT),
        }
        merged.update(data)
        return merged

    def render(self, template: EmailTemplate, data: Mapping[str, Any]) -> RenderedEmail:
        """Render a stored template.

        Args:
            template: Template with subject and bodies.
            data: Prepared data bag.

        Returns:
            RenderedEmail with subject, HTML and optional text body.

        Raises:
            TemplateRenderError: If the template has no subject or HTML body.
        """
        if not template.subject or not template.html_content:
            raise TemplateRenderError(
                f"Template {template.template_key} has no subject or body",
                template_name=template.template_key,
            )

        rendered = RenderedEmail(
            subject=render_placeholders(template.subject, data).strip(),
            html=render_placeholders(template.html_content, data),
            text=render_placeholders(template.text_content, data) if template.text_content else None,
        )
        logger.debug(
            f"Template {template.template_key} rendered: {len(rendered.html)} bytes"
        )
        return rendered
