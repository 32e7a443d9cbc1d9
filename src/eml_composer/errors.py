"""
Exception hierarchy for message composition and delivery.

Construction and serialization errors are raised immediately; transport errors
are passed through to the caller untouched so retry policy stays with the caller.
"""

from typing import Optional


class MimeError(Exception):
    """Base class for every error raised by eml_composer."""


class ConfigError(MimeError):
    """Invalid or contradictory construction parameters."""


class UnsupportedEncodingError(ConfigError):
    """Content-Transfer-Encoding name not recognized."""

    def __init__(self, encoding: str):
        super().__init__(f"Unsupported encoding: {encoding!r}")
        self.encoding = encoding


class StateError(MimeError):
    """Illegal tree mutation (re-parenting, attaching to a non-multipart container)."""


class UnreadablePathError(MimeError):
    """An external body source cannot be opened or read."""

    def __init__(self, path: str, reason: Optional[str] = None):
        message = f"Unreadable path: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.path = path


class TransportError(MimeError):
    """Failure reported by a delivery backend. Never retried internally."""

    def __init__(self, message: str, backend: Optional[str] = None):
        super().__init__(message)
        self.backend = backend
