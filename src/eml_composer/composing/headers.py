"""
Header and attribute formatting.

Turns an entity's explicit header pairs and its structured content attributes
(``Content-Type`` + parameters, ``Content-Disposition`` + parameters, ...) into
canonical header lines: field ordering, parameter quoting, RFC 2047 encoded-words
for non-ASCII text, and folding at the configured width.
"""

import base64
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


# Header lines are (name, value) pairs
Field = Tuple[str, str]

# RFC 2045 tspecials plus whitespace force quoting of a parameter value
_NEEDS_QUOTING = re.compile(r'[\s()<>@,;:\\"/\[\]?=]')
_NEWLINES = re.compile(r"\r?\n[ \t]*|\r")

# Encoded-words are limited to 75 characters; 45 raw bytes keep "=?UTF-8?B?...?=" under it
_ENCODED_WORD_BYTES = 45

# Canonical spelling of synthesized fields
CANONICAL_NAMES = {
    "mime-version": "MIME-Version",
    "content-type": "Content-Type",
    "content-transfer-encoding": "Content-Transfer-Encoding",
    "content-disposition": "Content-Disposition",
    "content-id": "Content-ID",
    "content-description": "Content-Description",
    "content-length": "Content-Length",
    "message-id": "Message-ID",
}

# Synthesized attribute fields are emitted in this order, unknown ones alphabetically
# before Content-Type, which always closes the block
ATTRIBUTE_ORDER = [
    "mime-version",
    "content-transfer-encoding",
    "content-disposition",
    "content-id",
    "content-description",
    "content-length",
]
LAST_ATTRIBUTE = "content-type"


def canonical_name(name: str) -> str:
    """
    Spell a field name the conventional way (``content-type`` -> ``Content-Type``).

    Args:
        name: Field name in any case

    Returns:
        Canonical spelling
    """
    lower = name.lower()
    if lower in CANONICAL_NAMES:
        return CANONICAL_NAMES[lower]
    return "-".join(part[:1].upper() + part[1:] for part in lower.split("-"))


def is_ascii(text: str) -> bool:
    return all(ord(ch) < 128 for ch in text)


def encode_word(text: str, charset: str = "UTF-8") -> str:
    """
    Encode text as one or more RFC 2047 "B" encoded-words.

    ASCII text is returned unchanged. Long text is split on character
    boundaries so no encoded-word exceeds 75 characters.

    Args:
        text: Text to encode
        charset: Charset label to declare

    Returns:
        Encoded-word string (words separated by a single space)
    """
    if is_ascii(text):
        return text

    words = []
    chunk = b""
    for ch in text:
        raw = ch.encode(charset)
        if len(chunk) + len(raw) > _ENCODED_WORD_BYTES:
            words.append(chunk)
            chunk = b""
        chunk += raw
    if chunk:
        words.append(chunk)

    return " ".join(
        f"=?{charset}?B?{base64.b64encode(word).decode('ascii')}?=" for word in words
    )


def encode_phrase(value: str) -> str:
    """
    Encode the non-ASCII runs of an unstructured header value.

    Consecutive non-ASCII words are encoded together so the spaces between them
    survive decoding; ASCII words (including addresses) stay as they are.
    """
    if is_ascii(value):
        return value

    out: List[str] = []
    run: List[str] = []
    for word in value.split(" "):
        if is_ascii(word):
            if run:
                out.append(encode_word(" ".join(run)))
                run = []
            out.append(word)
        else:
            run.append(word)
    if run:
        out.append(encode_word(" ".join(run)))
    return " ".join(out)


def quote_param(value: str) -> str:
    """
    Quote a parameter value when it contains whitespace, tspecials or non-ASCII.

    Line breaks are collapsed to spaces, non-ASCII values are turned into
    encoded-words, and embedded double quotes and backslashes are
    backslash-escaped.

    Args:
        value: Raw parameter value

    Returns:
        Value ready to follow ``name=``
    """
    value = clean_value(value)
    if not is_ascii(value):
        value = encode_word(value)
    if value and not _NEEDS_QUOTING.search(value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def render_structured(base: str, params: Dict[str, Optional[str]]) -> str:
    """
    Render a structured field value (``text/plain; charset=UTF-8``).

    Args:
        base: Base value (media type, disposition, ...)
        params: Parameter mapping in emission order; None values are skipped

    Returns:
        Field value string
    """
    pieces = [clean_value(base)]
    for name, value in params.items():
        if value is None:
            continue
        pieces.append(f"{name}={quote_param(value)}")
    return "; ".join(pieces)


def render_attributes(attributes: Dict[str, Dict[str, Optional[str]]]) -> List[Field]:
    """
    Synthesize header fields from structured attributes.

    Args:
        attributes: Field name -> {"" : base value, param: value, ...}

    Returns:
        Fields in :data:`ATTRIBUTE_ORDER`, then unknown attribute fields, then Content-Type
    """
    def rank(name: str) -> Tuple[int, str]:
        if name == LAST_ATTRIBUTE:
            return len(ATTRIBUTE_ORDER) + 1, ""
        if name in ATTRIBUTE_ORDER:
            return ATTRIBUTE_ORDER.index(name), ""
        return len(ATTRIBUTE_ORDER), name

    fields: List[Field] = []
    for name in sorted(attributes, key=rank):
        values = attributes[name]
        base = values.get("")
        if base is None:
            continue
        params = {key: value for key, value in values.items() if key}
        fields.append((canonical_name(name), render_structured(base, params)))
    return fields


def order_fields(fields: Sequence[Field], order: Iterable[str]) -> List[Field]:
    """
    Apply a preferred field order.

    Fields named in ``order`` come first, in that order; every other field keeps
    its original relative position after them. Names compare case-insensitively.

    Args:
        fields: Fields in insertion order
        order: Preferred field names

    Returns:
        Reordered list (stable)
    """
    rank = {name.lower(): i for i, name in enumerate(order)}
    if not rank:
        return list(fields)
    unranked = len(rank)
    return sorted(fields, key=lambda field: rank.get(field[0].lower(), unranked))


def clean_value(value: str) -> str:
    """Collapse embedded line breaks so a value cannot inject extra header lines."""
    return _NEWLINES.sub(" ", str(value)).strip()


def _split_structured(value: str) -> List[str]:
    """Split on "; " outside of quoted strings."""
    segments = []
    current = []
    in_quotes = False
    escaped = False
    i = 0
    while i < len(value):
        ch = value[i]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            in_quotes = not in_quotes
        elif ch == ";" and not in_quotes and value[i + 1:i + 2] == " ":
            segments.append("".join(current))
            current = []
            i += 2
            continue
        current.append(ch)
        i += 1
    segments.append("".join(current))
    return segments


def fold_line(name: str, value: str, width: int) -> str:
    """
    Render ``name: value`` folded to ``width`` columns where possible.

    ``Content-*`` values are folded after the ``;`` between parameters, other
    values at spaces. Continuation lines start with one space, so unfolding
    yields the original text. Unbreakable runs longer than ``width`` are left long.

    Args:
        name: Field name
        value: Field value (single line)
        width: Target line width

    Returns:
        Header text without a trailing newline
    """
    line = f"{name}: {value}"
    if len(line) <= width:
        return line

    if name.lower().startswith("content-"):
        segments = _split_structured(value)
        joiner, break_with = "; ", ";\n "
    else:
        segments = value.split(" ")
        joiner, break_with = " ", "\n "

    out = f"{name}: {segments[0]}"
    current = len(out)
    for segment in segments[1:]:
        if current + len(joiner) + len(segment) > width:
            out += break_with + segment
            current = 1 + len(segment)
        else:
            out += joiner + segment
            current += len(joiner) + len(segment)
    return out


def format_header_block(fields: Sequence[Field], width: int) -> bytes:
    """
    Render fields as header text terminated by the blank separator line.

    Args:
        fields: Ordered (name, value) pairs
        width: Fold width

    Returns:
        Header block bytes, LF line endings
    """
    lines = [fold_line(name, value, width) + "\n" for name, value in fields]
    return ("".join(lines) + "\n").encode("utf-8")
