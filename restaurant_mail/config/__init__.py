"""Configuration module for the restaurant mail service.

Loads and validates settings from environment variables or .env file.
"""

from restaurant_mail.config.settings import EmailConfig

__all__ = ["EmailConfig"]

# Global settings instance
settings = EmailConfig()
