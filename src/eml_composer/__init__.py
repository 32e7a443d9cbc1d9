"""
eml_composer - build MIME message trees in memory and serialize them.

Example:
    from eml_composer import build

    msg = build({"From": "me@example.com", "To": "you@example.com",
                 "Subject": "Report", "Type": "TEXT", "Data": "See attached."})
    msg.attach(Type="AUTO", Path="report.pdf", Disposition="attachment")
    print(msg.as_string())
"""

from .config import Settings, settings
from .errors import (
    ConfigError,
    MimeError,
    StateError,
    TransportError,
    UnreadablePathError,
    UnsupportedEncodingError,
)
from .models import Entity, EntityConfig, build
from .transport import Transport, TransportRegistry, default_registry, send
from .version import __version__

__all__ = [
    "build",
    "Entity",
    "EntityConfig",
    "Settings",
    "settings",
    "send",
    "Transport",
    "TransportRegistry",
    "default_registry",
    "MimeError",
    "ConfigError",
    "StateError",
    "UnreadablePathError",
    "UnsupportedEncodingError",
    "TransportError",
    "__version__",
]
