"""
Multipart serializer.

Walks an entity tree top-down writing headers, a blank line, then either the
encoded body (leaf) or the boundary-delimited parts (container). Everything is
written to a binary sink as it is produced, so attachments are never held in
memory as a whole; ``serialize`` without a sink collects the same bytes into a
buffer, so both forms are byte-identical.
"""

import io
from typing import TYPE_CHECKING, Optional, Sequence

import structlog

from ..config import Settings
from .encoding import BINARY, NONE, get_encoder
from .headers import format_header_block

if TYPE_CHECKING:
    from ..models.entity import Entity


logger = structlog.get_logger(__name__)

PREAMBLE = b"This is a multi-part message in MIME format.\n"


class CRLFSink:
    """Wraps a binary sink, turning LF line endings into CRLF."""

    def __init__(self, sink):
        self.sink = sink
        self._last = b""

    def write(self, data: bytes) -> int:
        if not data:
            return 0
        out = data.replace(b"\r\n", b"\n").replace(b"\n", b"\r\n")
        if self._last == b"\r" and data.startswith(b"\n"):
            # CR already written as part of a CRLF split across writes
            out = out[1:] if out.startswith(b"\r\n") else out
        self._last = data[-1:]
        self.sink.write(out)
        return len(data)

    def write_raw(self, data: bytes) -> int:
        """Write bytes through unchanged (binary bodies)."""
        if data:
            self._last = data[-1:]
            self.sink.write(data)
        return len(data)


def prepare(entity: "Entity", config: Settings) -> None:
    """
    Finalize the tree and, when ``auto_verify`` is set, check every Path source.

    Raises:
        ConfigError: If a container has no parts
        UnreadablePathError: If an attachment path cannot be read
    """
    entity.finalize(config)
    if config.auto_verify:
        entity.verify_data()


def write_header(entity: "Entity", sink, config: Settings, exclude: Sequence[str] = ()) -> None:
    """Write the header block (ending with the blank line)."""
    sink.write(format_header_block(entity.fields(config, exclude=exclude), config.fold_width))


def write_body(entity: "Entity", sink, config: Settings) -> None:
    """Write the encoded body, recursing into parts for containers."""
    if entity.is_multipart:
        delimiter = b"\n--" + entity.boundary.encode("ascii")
        sink.write(PREAMBLE)
        for part in entity.parts:
            sink.write(delimiter + b"\n")
            write_entity(part, sink, config)
        sink.write(delimiter + b"--\n")
        return

    charset = entity.get_attr("content-type.charset")
    encoder = get_encoder(entity.transfer_encoding, config, label=entity.content_type)
    write = sink.write
    if entity.transfer_encoding in (BINARY, NONE):
        # no line-ending normalization for verbatim bodies
        write = getattr(sink, "write_raw", sink.write)
    with entity.source.chunks(charset) as body:
        for chunk in body:
            encoded = encoder.feed(chunk)
            if encoded:
                write(encoded)
    tail = encoder.finish()
    if tail:
        write(tail)


def write_entity(entity: "Entity", sink, config: Settings, exclude: Sequence[str] = ()) -> None:
    """Write headers then body for one entity (no finalization)."""
    write_header(entity, sink, config, exclude=exclude)
    write_body(entity, sink, config)


def serialize(
    entity: "Entity",
    sink=None,
    *,
    settings: Optional[Settings] = None,
    crlf: bool = False,
    exclude: Sequence[str] = (),
) -> Optional[bytes]:
    """
    Serialize a complete message.

    Args:
        entity: Root entity
        sink: Binary file-like object; when None the output is returned
        settings: Settings overriding the entity's own
        crlf: Emit CRLF line endings instead of LF
        exclude: Lowercased top-level field names to omit (e.g. ``bcc``)

    Returns:
        The message bytes when no sink was given, otherwise None
    """
    config = settings or entity.settings
    prepare(entity, config)

    buffer = io.BytesIO() if sink is None else None
    target = buffer if buffer is not None else sink
    if crlf:
        target = CRLFSink(target)

    write_entity(entity, target, config, exclude=exclude)
    logger.debug("entity_serialized", media_type=entity.content_type, parts=len(entity.parts))

    if buffer is not None:
        return buffer.getvalue()
    return None


def print_header(entity: "Entity", sink, *, settings: Optional[Settings] = None) -> None:
    """Write only the header block of a finalized entity."""
    config = settings or entity.settings
    prepare(entity, config)
    write_header(entity, sink, config)


def print_body(entity: "Entity", sink, *, settings: Optional[Settings] = None) -> None:
    """Write only the encoded body."""
    config = settings or entity.settings
    prepare(entity, config)
    write_body(entity, sink, config)
