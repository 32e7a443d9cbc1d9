"""
Version constants for the composer.

The X-Mailer header advertises the package version together with the codec
implementations in use, so messages built in paranoid mode can be told apart.
"""

__version__ = "1.0.0"

# Component versions (update these when implementations change)
SERIALIZER_VERSION = "serializer-1.0.0"
ENCODER_VERSION = "cte-1.0.0"
BUILTIN_ENCODER_VERSION = "cte-builtin-1.0.0"


def x_mailer_value(paranoid: bool = False) -> str:
    """
    Build the X-Mailer header value.

    Args:
        paranoid: Whether the built-in codecs are in use

    Returns:
        Header value such as ``eml-composer 1.0.0 (serializer-1.0.0; cte-1.0.0)``
    """
    encoder = BUILTIN_ENCODER_VERSION if paranoid else ENCODER_VERSION
    return f"eml-composer {__version__} ({SERIALIZER_VERSION}; {encoder})"
