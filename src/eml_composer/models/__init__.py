# Entity tree and construction records

from .body import BodySource, HandleSource, InlineSource, PathSource
from .entity import Entity, build
from .entity_config import KNOWN_FIELDS, EntityConfig

__all__ = [
    "Entity",
    "build",
    "EntityConfig",
    "KNOWN_FIELDS",
    "BodySource",
    "InlineSource",
    "PathSource",
    "HandleSource",
]
