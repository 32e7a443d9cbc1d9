"""
Application configuration management.

This module handles configuration from environment variables using Pydantic Settings.
Settings are passed explicitly into build, serialize and send operations; the module
level ``settings`` instance only supplies the defaults for call sites that pass none.
"""

from typing import Any, Dict, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Composer configuration from environment variables.

    All settings can be overridden via environment variables prefixed with
    ``EML_COMPOSER_`` (e.g. ``EML_COMPOSER_QUIET=true``).
    """

    # Header rendering
    field_order: List[str] = []  # Lowercased field names emitted first, in this order
    fold_width: int = 78
    x_mailer: bool = True
    datestamp: bool = True

    # Advisory warnings
    quiet: bool = False

    # Delivery
    default_transport: str = "sendmail"
    transport_args: Dict[str, Any] = {}
    auto_cc: bool = True  # Cc/Bcc become envelope recipients

    # Automatic choices
    auto_content_type: bool = False  # Default Type becomes "AUTO" instead of "TEXT"
    auto_encode: bool = True  # Missing Encoding becomes "-SUGGEST" instead of "binary"
    auto_verify: bool = True  # Check Path sources right before printing

    # Use built-in codecs and media type table instead of binascii/mimetypes
    paranoid: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = SettingsConfigDict(
        env_prefix="EML_COMPOSER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("field_order")
    @classmethod
    def normalize_field_order(cls, v):
        """Field names compare case-insensitively."""
        return [name.lower() for name in v]

    @field_validator("fold_width")
    @classmethod
    def validate_fold_width(cls, v):
        """Folding below 20 columns would split every parameter."""
        if v < 20:
            raise ValueError("fold_width must be at least 20")
        return v


# Global settings instance
settings = Settings()


def resolve_settings(override: Optional[Settings] = None) -> Settings:
    """
    Pick the settings for one call.

    Args:
        override: Settings passed explicitly by the caller

    Returns:
        ``override`` when given, otherwise the module defaults
    """
    return override if override is not None else settings
