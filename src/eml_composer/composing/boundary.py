"""
Multipart boundary generation.

Boundaries combine a process-local counter with a coarse timestamp and the
process id. The counter alone makes them unique within one run; time and pid
only lower the chance of clashing with boundaries from other runs. Nothing
checks body text for the boundary string.
"""

import itertools
import os
import re
import time

from ..errors import ConfigError


BOUNDARY_PREFIX = "_----------=_"

# RFC 2046 bchars, without the trailing-space allowance
_BOUNDARY_CHARS = re.compile(r"^[0-9A-Za-z'()+_,\-./:=?]{1,70}$")

_counter = itertools.count()


def new_boundary() -> str:
    """
    Generate a fresh boundary string.

    Returns:
        Boundary such as ``_----------=_1760000000-4242-0``
    """
    return f"{BOUNDARY_PREFIX}{int(time.time())}-{os.getpid()}-{next(_counter)}"


def validate_boundary(boundary: str) -> str:
    """
    Check an explicit boundary override.

    Args:
        boundary: Caller-supplied boundary

    Returns:
        The boundary unchanged

    Raises:
        ConfigError: If it is empty, too long, or uses characters outside bchars
    """
    if not _BOUNDARY_CHARS.match(boundary):
        raise ConfigError(f"Invalid multipart boundary: {boundary!r}")
    return boundary
