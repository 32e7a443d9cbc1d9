# Header formatting, transfer encodings, boundaries and serialization

from .boundary import new_boundary, validate_boundary
from .encoding import (
    decode_base64,
    decode_quoted_printable,
    encode_base64,
    encode_quoted_printable,
    normalize_encoding,
    suggest_encoding,
)
from .headers import encode_word, fold_line, order_fields, quote_param
from .media_types import resolve_media_type, suggest_type

__all__ = [
    "new_boundary",
    "validate_boundary",
    "encode_base64",
    "decode_base64",
    "encode_quoted_printable",
    "decode_quoted_printable",
    "normalize_encoding",
    "suggest_encoding",
    "encode_word",
    "fold_line",
    "order_fields",
    "quote_param",
    "resolve_media_type",
    "suggest_type",
]
