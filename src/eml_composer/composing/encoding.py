"""
Content-Transfer-Encoding engine.

Provides one-shot codecs (``encode_base64``/``decode_base64``,
``encode_quoted_printable``/``decode_quoted_printable``), incremental encoders
used by the streaming serializer, and the deterministic "-SUGGEST" resolution.

The ``binascii`` module is used for the base64 and quoted-printable line codecs
unless ``paranoid`` is set, in which case the pure-Python implementations below
are used. Both produce output that decodes to the original bytes.
"""

import binascii
from typing import Iterable, Optional

from ..config import Settings
from ..errors import UnsupportedEncodingError
from .advisories import advise
from .media_types import major_type


SEVEN_BIT = "7bit"
EIGHT_BIT = "8bit"
BINARY = "binary"
BASE64 = "base64"
QUOTED_PRINTABLE = "quoted-printable"
NONE = "none"
SUGGEST = "-suggest"

KNOWN_ENCODINGS = (SEVEN_BIT, EIGHT_BIT, BINARY, BASE64, QUOTED_PRINTABLE, NONE, SUGGEST)

# Raw bytes per base64 line (57 bytes -> 76 characters)
BASE64_LINE_BYTES = 57
QP_LINE_LENGTH = 76

_B64_ALPHABET = b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_B64_REVERSE = {c: i for i, c in enumerate(_B64_ALPHABET)}
_HEX = b"0123456789ABCDEF"


def normalize_encoding(name: Optional[str]) -> Optional[str]:
    """
    Canonicalize an encoding name.

    Args:
        name: Encoding as given by the caller (any case), or None

    Returns:
        Lowercased known encoding, or None when ``name`` is None

    Raises:
        UnsupportedEncodingError: If the name is not a known encoding
    """
    if name is None:
        return None
    canonical = name.strip().lower()
    if canonical not in KNOWN_ENCODINGS:
        raise UnsupportedEncodingError(name)
    return canonical


# ============================================================================
# BASE64
# ============================================================================

def _b64_line_builtin(data: bytes) -> bytes:
    out = bytearray()
    for i in range(0, len(data), 3):
        group = data[i:i + 3]
        n = int.from_bytes(group.ljust(3, b"\x00"), "big")
        chars = [_B64_ALPHABET[(n >> shift) & 0x3F] for shift in (18, 12, 6, 0)]
        if len(group) < 3:
            chars[len(group) + 1:] = [ord("=")] * (3 - len(group))
        out.extend(chars)
    return bytes(out)


def _b64_line(data: bytes, paranoid: bool) -> bytes:
    if paranoid:
        return _b64_line_builtin(data)
    return binascii.b2a_base64(data, newline=False)


def encode_base64(data: bytes, paranoid: bool = False) -> bytes:
    """
    Base64-encode ``data`` wrapped at 76 characters per line.

    Args:
        data: Raw bytes
        paranoid: Use the pure-Python codec

    Returns:
        Encoded bytes, every line terminated by LF
    """
    lines = [
        _b64_line(data[i:i + BASE64_LINE_BYTES], paranoid) + b"\n"
        for i in range(0, len(data), BASE64_LINE_BYTES)
    ]
    return b"".join(lines)


def decode_base64(data: bytes, paranoid: bool = False) -> bytes:
    """
    Decode base64 text, ignoring line breaks and other non-alphabet bytes.

    Args:
        data: Encoded bytes
        paranoid: Use the pure-Python codec

    Returns:
        Decoded bytes
    """
    if not paranoid:
        return binascii.a2b_base64(data)

    out = bytearray()
    acc = 0
    bits = 0
    for c in data:
        if c == ord("="):
            break
        value = _B64_REVERSE.get(c)
        if value is None:
            continue
        acc = (acc << 6) | value
        bits += 6
        if bits >= 8:
            bits -= 8
            out.append((acc >> bits) & 0xFF)
    return bytes(out)


# ============================================================================
# QUOTED-PRINTABLE
# ============================================================================

def _qp_line_builtin(line: bytes) -> bytes:
    """Encode one line (no trailing newline) with soft breaks."""
    tokens = []
    for i, c in enumerate(line):
        literal = (33 <= c <= 126 and c != ord("=")) or c in (9, 32)
        if c in (9, 32) and i == len(line) - 1:
            literal = False
        if c == ord(".") and len(line) == 1:
            literal = False
        if literal:
            tokens.append(bytes((c,)))
        else:
            tokens.append(b"=" + bytes((_HEX[c >> 4], _HEX[c & 0x0F])))

    out = bytearray()
    current = 0
    for i, token in enumerate(tokens):
        last = i == len(tokens) - 1
        limit = QP_LINE_LENGTH if last else QP_LINE_LENGTH - 1
        if current + len(token) > limit:
            out.extend(b"=\n")
            current = 0
        out.extend(token)
        current += len(token)
    return bytes(out)


def _qp_line(line: bytes, paranoid: bool) -> bytes:
    if paranoid:
        return _qp_line_builtin(line)
    encoded = binascii.b2a_qp(line, quotetabs=False, istext=False, header=False)
    return encoded.replace(b"\r\n", b"\n")


def encode_quoted_printable(data: bytes, paranoid: bool = False) -> bytes:
    """
    Quoted-printable encode ``data``.

    LF bytes are kept as hard line breaks; every other control or 8-bit byte,
    including CR, is escaped as ``=XX``. Encoded lines never exceed 76 characters.

    Args:
        data: Raw bytes
        paranoid: Use the pure-Python codec

    Returns:
        Encoded bytes
    """
    return b"\n".join(_qp_line(line, paranoid) for line in data.split(b"\n"))


def decode_quoted_printable(data: bytes, paranoid: bool = False) -> bytes:
    """
    Decode quoted-printable text produced by :func:`encode_quoted_printable`.

    Args:
        data: Encoded bytes
        paranoid: Use the pure-Python codec

    Returns:
        Decoded bytes
    """
    if not paranoid:
        return binascii.a2b_qp(data)

    out = bytearray()
    i = 0
    n = len(data)
    while i < n:
        c = data[i]
        if c != ord("="):
            out.append(c)
            i += 1
            continue
        if data[i + 1:i + 2] == b"\n":
            i += 2
        elif data[i + 1:i + 3] == b"\r\n":
            i += 3
        else:
            pair = data[i + 1:i + 3]
            try:
                out.append(int(pair, 16))
                i += 3
            except ValueError:
                out.append(c)
                i += 1
    return bytes(out)


# ============================================================================
# INCREMENTAL ENCODERS
# ============================================================================

class StreamEncoder:
    """
    Incremental body encoder.

    ``feed`` accepts raw chunks of any size and returns whatever encoded output
    is complete; ``finish`` flushes the rest. Identity encoders pass bytes through.
    """

    def __init__(self, config: Settings):
        self.config = config

    def feed(self, chunk: bytes) -> bytes:
        return chunk

    def finish(self) -> bytes:
        return b""


class LineEndingEncoder(StreamEncoder):
    """7bit/8bit: CRLF and bare CR become LF. 7bit reports 8-bit bytes once."""

    def __init__(self, config: Settings, check_7bit: bool = False, label: str = ""):
        super().__init__(config)
        self.check_7bit = check_7bit
        self.label = label
        self._pending_cr = False
        self._warned = False

    def feed(self, chunk: bytes) -> bytes:
        if not chunk:
            return b""
        if self.check_7bit and not self._warned and any(c >= 0x80 for c in chunk):
            self._warned = True
            advise(self.config, "eight_bit_data_in_7bit_part", part=self.label)
        if self._pending_cr:
            chunk = b"\r" + chunk
            self._pending_cr = False
        if chunk.endswith(b"\r"):
            chunk = chunk[:-1]
            self._pending_cr = True
        return chunk.replace(b"\r\n", b"\n").replace(b"\r", b"\n")

    def finish(self) -> bytes:
        if self._pending_cr:
            self._pending_cr = False
            return b"\n"
        return b""


class Base64Encoder(StreamEncoder):
    """Buffers input to whole 57-byte groups so line breaks land every 76 chars."""

    def __init__(self, config: Settings):
        super().__init__(config)
        self._buffer = b""

    def feed(self, chunk: bytes) -> bytes:
        self._buffer += chunk
        whole = len(self._buffer) - len(self._buffer) % BASE64_LINE_BYTES
        ready, self._buffer = self._buffer[:whole], self._buffer[whole:]
        return encode_base64(ready, self.config.paranoid)

    def finish(self) -> bytes:
        rest, self._buffer = self._buffer, b""
        return encode_base64(rest, self.config.paranoid)


class QuotedPrintableEncoder(StreamEncoder):
    """Encodes complete lines as they arrive; the trailing partial line waits."""

    def __init__(self, config: Settings):
        super().__init__(config)
        self._buffer = b""

    def feed(self, chunk: bytes) -> bytes:
        self._buffer += chunk
        cut = self._buffer.rfind(b"\n")
        if cut < 0:
            return b""
        ready, self._buffer = self._buffer[:cut + 1], self._buffer[cut + 1:]
        # ready ends with LF, so the last split element is empty
        return encode_quoted_printable(ready[:-1], self.config.paranoid) + b"\n"

    def finish(self) -> bytes:
        rest, self._buffer = self._buffer, b""
        if not rest:
            return b""
        return encode_quoted_printable(rest, self.config.paranoid)


def get_encoder(encoding: str, config: Settings, label: str = "") -> StreamEncoder:
    """
    Build the incremental encoder for a resolved encoding.

    Args:
        encoding: Resolved encoding (not "-suggest")
        config: Active settings
        label: Part description used in advisory warnings

    Returns:
        StreamEncoder instance

    Raises:
        UnsupportedEncodingError: For unknown or unresolved encodings
    """
    encoding = normalize_encoding(encoding)
    if encoding in (BINARY, NONE):
        return StreamEncoder(config)
    if encoding == SEVEN_BIT:
        return LineEndingEncoder(config, check_7bit=True, label=label)
    if encoding == EIGHT_BIT:
        return LineEndingEncoder(config, label=label)
    if encoding == BASE64:
        return Base64Encoder(config)
    if encoding == QUOTED_PRINTABLE:
        return QuotedPrintableEncoder(config)
    raise UnsupportedEncodingError(encoding)


def encode_body(data: bytes, encoding: str, config: Settings, label: str = "") -> bytes:
    """One-shot version of :func:`get_encoder` for in-memory bodies."""
    encoder = get_encoder(encoding, config, label)
    return encoder.feed(data) + encoder.finish()


# ============================================================================
# "-SUGGEST" RESOLUTION
# ============================================================================

def _is_printable_7bit(c: int) -> bool:
    return 0x20 <= c <= 0x7E or c in (0x09, 0x0A, 0x0D)


def suggest_encoding(chunks: Iterable[bytes], media_type: str, config: Settings) -> str:
    """
    Pick an encoding by scanning body bytes.

    7bit when every byte is printable ASCII (tab, CR and LF allowed) and no line
    is longer than ``fold_width``; otherwise quoted-printable for text types and
    base64 for everything else. Deterministic for a given body and media type.

    The line limit is ``fold_width`` itself (78 by default, not counting the
    line ending), so with default settings a 79-column line is not sent as
    7bit. Raise ``fold_width`` to allow longer 7bit lines.

    Args:
        chunks: Body bytes in any chunking
        media_type: Resolved media type of the part
        config: Active settings

    Returns:
        Resolved encoding name
    """
    clean = True
    line_length = 0
    for chunk in chunks:
        for c in chunk:
            if not _is_printable_7bit(c):
                clean = False
                break
            if c == 0x0A:
                line_length = 0
            elif c != 0x0D:
                line_length += 1
                if line_length > config.fold_width:
                    clean = False
                    break
        if not clean:
            break

    if clean:
        return SEVEN_BIT
    if major_type(media_type) == "text":
        return QUOTED_PRINTABLE
    return BASE64


def default_encoding(config: Settings) -> str:
    """Encoding used when the caller gave none."""
    return SUGGEST if config.auto_encode else BINARY
