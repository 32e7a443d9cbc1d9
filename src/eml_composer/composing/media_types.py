"""
Media type selection for "AUTO" and "TEXT" placeholders.

The ``mimetypes`` registry is consulted first; in paranoid mode only the
built-in extension table below is used.
"""

import mimetypes
from pathlib import PurePath
from typing import Optional

from ..config import Settings


AUTO = "AUTO"
TEXT = "TEXT"
BINARY = "BINARY"
DEFAULT_MEDIA_TYPE = "application/octet-stream"

BUILTIN_TYPES = {
    ".gif": "image/gif",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".bmp": "image/bmp",
    ".svg": "image/svg+xml",
    ".txt": "text/plain",
    ".text": "text/plain",
    ".csv": "text/csv",
    ".htm": "text/html",
    ".html": "text/html",
    ".xml": "text/xml",
    ".css": "text/css",
    ".pdf": "application/pdf",
    ".json": "application/json",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".doc": "application/msword",
    ".xls": "application/vnd.ms-excel",
    ".ps": "application/postscript",
    ".eml": "message/rfc822",
    ".wav": "audio/x-wav",
    ".mp3": "audio/mpeg",
    ".mpg": "video/mpeg",
    ".mpeg": "video/mpeg",
    ".mp4": "video/mp4",
}


def suggest_type(filename: Optional[str], config: Settings) -> str:
    """
    Guess a media type from a filename.

    Args:
        filename: Filename or path hint (may be None)
        config: Active settings (``paranoid`` skips the mimetypes registry)

    Returns:
        Canonical media type, ``application/octet-stream`` when nothing matches
    """
    if not filename:
        return DEFAULT_MEDIA_TYPE

    if not config.paranoid:
        guessed, _ = mimetypes.guess_type(str(filename), strict=False)
        if guessed:
            return guessed

    suffix = PurePath(str(filename)).suffix.lower()
    return BUILTIN_TYPES.get(suffix, DEFAULT_MEDIA_TYPE)


def resolve_media_type(media_type: str, filename: Optional[str], config: Settings) -> str:
    """
    Replace the AUTO/TEXT/BINARY placeholders with a real media type.

    Args:
        media_type: Declared type, possibly a placeholder
        filename: Filename hint used by AUTO
        config: Active settings

    Returns:
        Lowercased concrete media type
    """
    upper = media_type.upper()
    if upper == AUTO:
        return suggest_type(filename, config)
    if upper == TEXT:
        return "text/plain"
    if upper == BINARY:
        return DEFAULT_MEDIA_TYPE
    return media_type.lower()


def major_type(media_type: str) -> str:
    """Top-level type (``text`` for ``text/plain``)."""
    return media_type.split("/", 1)[0].lower()
