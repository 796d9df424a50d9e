"""Template rendering module for the restaurant mail service.

Provides ``{{placeholder}}`` rendering, branding data assembly and the
bundled default templates.
"""

from restaurant_mail.templates.renderer import (
    RenderedEmail,
    TemplateRenderer,
    render_placeholders,
)
from restaurant_mail.templates.store import FileTemplateStore, LayeredTemplateStore

__all__ = [
    "TemplateRenderer",
    "RenderedEmail",
    "render_placeholders",
    "FileTemplateStore",
    "LayeredTemplateStore",
]
