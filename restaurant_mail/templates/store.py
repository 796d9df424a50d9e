"""File-backed template store.

Serves the bundled default templates when a key has no active row in the
``email_templates`` table. A template ``<key>`` is made of:

    <key>.subject.txt   subject line (required)
    <key>.html          HTML body (required)
    <key>.txt           plain-text body (optional)

Version: 1.0.0
"""

from __future__ import annotations

from pathlib import Path

from restaurant_mail.core.exceptions import TemplateRenderError
from restaurant_mail.core.logger import get_logger
from restaurant_mail.database.protocols import TemplateStore
from restaurant_mail.models.settings import EmailTemplate

logger = get_logger(__name__)


class FileTemplateStore:
    """Loads templates from a directory."""

    def __init__(self, template_dir: str | Path) -> None:
        self.template_dir = Path(template_dir)
        if not self.template_dir.is_dir():
            logger.warning(f"Template directory does not exist: {self.template_dir}")

    def get_template(self, template_key: str) -> EmailTemplate | None:
        """Load a template by key.

        Returns:
            EmailTemplate or None if the subject or HTML file is missing.

        Raises:
            TemplateRenderError: If the key is not a plain name or a file is unreadable.
        """
        if not template_key.replace("_", "").replace("-", "").isalnum():
            raise TemplateRenderError(
                f"Invalid template key: {template_key}", template_name=template_key
            )

        subject_path = self.template_dir / f"{template_key}.subject.txt"
        html_path = self.template_dir / f"{template_key}.html"
        text_path = self.template_dir / f"{template_key}.txt"

        if not subject_path.is_file() or not html_path.is_file():
            logger.debug(f"No file template for {template_key}")
            return None

        try:
            return EmailTemplate(
                template_key=template_key,
                subject=subject_path.read_text(encoding="utf-8").strip(),
                html_content=html_path.read_text(encoding="utf-8"),
                text_content=(
                    text_path.read_text(encoding="utf-8") if text_path.is_file() else None
                ),
            )
        except OSError as e:
            raise TemplateRenderError(
                f"Failed to read template {template_key}: {e}", template_name=template_key
            ) from e


class LayeredTemplateStore:
    """Returns the first template found across several stores."""

    def __init__(self, *stores: TemplateStore) -> None:
        self.stores = stores

    def get_template(self, template_key: str) -> EmailTemplate | None:
        for store in self.stores:
            template = store.get_template(template_key)
            if template is not None:
                return template
        return None
