"""
Non-fatal warning channel.

Advisory conditions (8-bit bytes under a 7bit encoding, unknown header names)
are logged as structlog warnings unless the settings ask for quiet operation.
"""

import structlog

from ..config import Settings


logger = structlog.get_logger(__name__)


def advise(config: Settings, event: str, **context) -> None:
    """
    Report an advisory condition.

    Args:
        config: Active settings (``quiet`` suppresses the warning)
        event: snake_case event name
        **context: Key/value details attached to the log entry
    """
    if config.quiet:
        return
    logger.warning(event, advisory=True, **context)
