"""
MIME entity tree.

An :class:`Entity` is either a leaf (one body source, no parts) or a multipart
container (ordered child entities, no body). Entities are built from a
construction record with :func:`build`, combined with :meth:`Entity.attach`,
and rendered with the output methods, which delegate to
:mod:`eml_composer.composing.serializer`.

Placeholders ("AUTO"/"TEXT" media types, the "-suggest" encoding) are resolved
by :meth:`Entity.finalize`, which runs before the first output and caches its
results so repeated output is byte-identical. Any mutation of the type, body or
encoding clears the cache for that entity.

Trees are not synchronized: attaching to or serializing the same tree from
several threads at once is the caller's responsibility to prevent.
"""

import io
import weakref
from email.utils import formatdate
from pathlib import PurePath
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import charset_normalizer
import structlog
from pydantic import ValidationError

from ..composing import encoding as cte
from ..composing import serializer
from ..composing.advisories import advise
from ..composing.boundary import new_boundary, validate_boundary
from ..composing.headers import Field, clean_value, encode_phrase, order_fields, render_attributes
from ..composing.media_types import major_type, resolve_media_type
from ..config import Settings, resolve_settings
from ..errors import ConfigError, StateError
from ..version import x_mailer_value
from .body import BodySource, HandleSource, InlineSource, PathSource
from .entity_config import KNOWN_FIELDS, EntityConfig


logger = structlog.get_logger(__name__)

MULTIPART_DEFAULT = "multipart/mixed"

# Attribute fields the container keeps when a leaf is promoted; the rest move to the new first child
_CONTAINER_ATTRS = ("mime-version",)

# Encodings a multipart container may declare
_CONTAINER_ENCODINGS = (cte.SEVEN_BIT, cte.EIGHT_BIT, cte.BINARY)

# charset-normalizer codec names -> MIME charset labels
_MIME_CHARSETS = {
    "utf_8": "UTF-8",
    "ascii": "US-ASCII",
    "latin_1": "ISO-8859-1",
    "iso8859_15": "ISO-8859-15",
    "cp1252": "windows-1252",
    "cp1250": "windows-1250",
    "cp1251": "windows-1251",
    "utf_16": "UTF-16",
}


def _is_multipart_type(media_type: Optional[str]) -> bool:
    return bool(media_type) and media_type.lower().startswith("multipart/")


def _split_attr_name(name: str) -> Tuple[str, str]:
    """``content-type.charset`` -> (``content-type``, ``charset``)."""
    field, _, sub = name.lower().partition(".")
    return field, sub


class Entity:
    """
    One node of a MIME tree.

    Use :func:`build` (or ``attach`` with a config) rather than instantiating
    directly; a bare ``Entity()`` is an empty multipart/mixed container.
    """

    def __init__(self, media_type: str = MULTIPART_DEFAULT, settings: Optional[Settings] = None):
        self.settings = resolve_settings(settings)
        self._media_type = media_type
        self._encoding: Optional[str] = None
        self._source: Optional[BodySource] = None
        self._headers: List[List[str]] = []
        self._attrs: Dict[str, Dict[str, Optional[str]]] = {}
        self._parts: List["Entity"] = []
        self._parent: Optional[weakref.ReferenceType] = None
        self._boundary: Optional[str] = None
        self._field_order: List[str] = []

        # Finalize cache
        self._resolved_type: Optional[str] = None
        self._resolved_encoding: Optional[str] = None

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def media_type(self) -> str:
        """Declared media type (may still be a placeholder such as ``AUTO``)."""
        return self._media_type

    @property
    def content_type(self) -> str:
        """Concrete media type, resolving placeholders."""
        if self._resolved_type is None:
            self._resolved_type = resolve_media_type(
                self._media_type, self.filename_hint, self.settings
            )
        return self._resolved_type

    @property
    def encoding(self) -> Optional[str]:
        """Declared transfer encoding (``-suggest`` until finalized)."""
        return self._encoding

    @property
    def is_multipart(self) -> bool:
        return _is_multipart_type(self._media_type)

    @property
    def is_leaf(self) -> bool:
        return self._source is not None

    @property
    def source(self) -> Optional[BodySource]:
        return self._source

    @property
    def parent(self) -> Optional["Entity"]:
        return self._parent() if self._parent is not None else None

    @property
    def parts(self) -> Tuple["Entity", ...]:
        """Direct children, in order."""
        return tuple(self._parts)

    def parts_dfs(self) -> Iterator["Entity"]:
        """Depth-first traversal starting with this entity."""
        yield self
        for part in self._parts:
            yield from part.parts_dfs()

    @property
    def top_level(self) -> bool:
        return self._parent is None

    @property
    def boundary(self) -> Optional[str]:
        """Multipart boundary, generated on first use and then kept."""
        if not self.is_multipart:
            return None
        if self._boundary is None:
            self._boundary = new_boundary()
        return self._boundary

    @boundary.setter
    def boundary(self, value: str) -> None:
        self._boundary = validate_boundary(value)

    @property
    def filename_hint(self) -> Optional[str]:
        """Filename used for AUTO type lookup."""
        name = self.get_attr("content-disposition.filename") or self.get_attr("content-type.name")
        if name:
            return name
        if isinstance(self._source, PathSource):
            return self._source.path.name
        return None

    # ------------------------------------------------------------------
    # Body
    # ------------------------------------------------------------------

    def _set_source(self, source: BodySource) -> None:
        if self._parts:
            raise StateError("A multipart container with parts cannot take a body")
        if self.is_multipart:
            raise StateError(f"A {self._media_type} entity cannot take a body")
        self._source = source
        self._invalidate()

    def set_data(self, data: Union[bytes, str, Sequence[Union[bytes, str]]]) -> None:
        """Replace the body with inline data."""
        if isinstance(data, bytearray):
            data = bytes(data)
        elif not isinstance(data, (bytes, str)):
            data = list(data)
        self._set_source(InlineSource(data))

    def set_path(self, path) -> None:
        """Replace the body with a file read at output time."""
        self._set_source(PathSource(path))

    def set_fh(self, handle: Any) -> None:
        """Replace the body with an open binary handle."""
        self._set_source(HandleSource(handle))

    def read_now(self) -> None:
        """Read a Path or FH source into memory right away."""
        if self._source is None or isinstance(self._source, InlineSource):
            return
        data = self._source.read()
        self._set_source(InlineSource(data))

    def sign(self, data: Optional[Union[str, bytes]] = None, path=None) -> None:
        """
        Append a signature block ("-- " separator line) to the body.

        Args:
            data: Signature text
            path: File holding the signature (used when ``data`` is None)

        Raises:
            StateError: If the entity has no body
            ConfigError: If neither data nor path is given
        """
        if self._source is None:
            raise StateError("Only a leaf entity can be signed")
        if data is None and path is None:
            raise ConfigError("sign() needs data or path")
        if data is None:
            data = PathSource(path).read()

        source = self._source
        if isinstance(data, str) and isinstance(source, InlineSource) and isinstance(source.data, str):
            self._set_source(InlineSource(source.data + "\n-- \n" + data))
            return

        charset = self.get_attr("content-type.charset")
        if isinstance(data, str):
            data = data.encode(charset or "utf-8")
        self._set_source(InlineSource(source.read(charset) + b"\n-- \n" + data))

    def get_length(self) -> Optional[int]:
        """Raw (unencoded) body length, or None for handles and containers."""
        if self._source is None:
            return None
        return self._source.length(self.get_attr("content-type.charset"))

    def verify_data(self) -> None:
        """
        Check that every Path source in the tree is readable.

        Raises:
            UnreadablePathError: For the first unreadable path
        """
        for entity in self.parts_dfs():
            if entity._source is not None:
                entity._source.verify()

    # ------------------------------------------------------------------
    # Type and encoding
    # ------------------------------------------------------------------

    def set_type(self, media_type: str) -> None:
        """
        Change the declared media type.

        Raises:
            StateError: If a leaf would become multipart or a container non-multipart
        """
        if _is_multipart_type(media_type) and self._source is not None:
            raise StateError("A leaf with a body cannot become multipart")
        if not _is_multipart_type(media_type) and self._parts:
            raise StateError("A container with parts must keep a multipart type")
        self._media_type = media_type
        self._invalidate()

    def set_encoding(self, encoding: Optional[str]) -> None:
        """
        Change the declared transfer encoding.

        Raises:
            UnsupportedEncodingError: For unknown names
            ConfigError: If a container is given an encoding other than 7bit/8bit/binary
        """
        encoding = cte.normalize_encoding(encoding)
        if self.is_multipart and encoding not in (None,) + _CONTAINER_ENCODINGS:
            raise ConfigError(f"Multipart entities cannot use {encoding} encoding")
        self._encoding = encoding
        self._invalidate()

    def _invalidate(self) -> None:
        self._resolved_type = None
        self._resolved_encoding = None

    # ------------------------------------------------------------------
    # Attributes (structured content fields)
    # ------------------------------------------------------------------

    def attr(self, name: str, value: Optional[str]) -> None:
        """
        Set a structured attribute.

        ``attr("content-type.charset", "UTF-8")`` sets a parameter;
        ``attr("content-disposition", "attachment")`` sets a base value.
        ``content-type`` and ``content-transfer-encoding`` base values set the
        media type and encoding. A None value removes the attribute.

        Args:
            name: Field name with optional ``.parameter`` suffix
            value: New value or None
        """
        field, sub = _split_attr_name(name)
        if field == "content-type" and not sub:
            if value is not None:
                self.set_type(value)
            return
        if field == "content-transfer-encoding" and not sub:
            self.set_encoding(value)
            return

        if value is None:
            if sub:
                self._attrs.get(field, {}).pop(sub, None)
            else:
                self._attrs.pop(field, None)
        else:
            self._attrs.setdefault(field, {})[sub] = str(value)
        if field in ("content-type", "content-disposition"):
            self._invalidate()

    def get_attr(self, name: str) -> Optional[str]:
        """Read a structured attribute (see :meth:`attr`)."""
        field, sub = _split_attr_name(name)
        if field == "content-type" and not sub:
            return self._media_type
        if field == "content-transfer-encoding" and not sub:
            return self._encoding
        return self._attrs.get(field, {}).get(sub)

    @property
    def attributes(self) -> Dict[str, Dict[str, Optional[str]]]:
        """Copy of the attribute mapping."""
        return {field: dict(values) for field, values in self._attrs.items()}

    def scrub(self, names: Optional[Sequence[str]] = None) -> None:
        """
        Remove attribute fields from output.

        Args:
            names: Field names to drop; defaults to Content-Disposition and Content-Length
        """
        for name in names or ("content-disposition", "content-length"):
            self._attrs.pop(name.lower(), None)

    # ------------------------------------------------------------------
    # Headers
    # ------------------------------------------------------------------

    @property
    def headers(self) -> List[Tuple[str, str]]:
        """Explicit header pairs in insertion order."""
        return [(name, value) for name, value in self._headers]

    def add(self, name: str, value: Union[str, Sequence[str]]) -> None:
        """
        Append a header field (duplicates allowed). ``Content-*`` names set attributes.

        Args:
            name: Field name (case kept as given)
            value: Value or list of values, each added as its own field
        """
        if name.lower().startswith("content-"):
            self.attr(name, value if isinstance(value, str) else ", ".join(value))
            return
        values = [value] if isinstance(value, str) else list(value)
        for item in values:
            self._headers.append([name, str(item)])

    def get(self, name: str, index: int = 0) -> Optional[str]:
        """Value of the ``index``-th field called ``name`` (case-insensitive)."""
        if name.lower().startswith("content-") or name.lower() == "mime-version":
            return self.get_attr(name)
        values = self.get_all(name)
        return values[index] if index < len(values) else None

    def get_all(self, name: str) -> List[str]:
        lower = name.lower()
        return [value for field, value in self._headers if field.lower() == lower]

    def delete(self, name: str) -> None:
        """Remove every field called ``name``."""
        lower = name.lower()
        if lower.startswith("content-") or lower == "mime-version":
            self._attrs.pop(lower, None)
            return
        self._headers = [pair for pair in self._headers if pair[0].lower() != lower]

    def replace(self, name: str, value: Optional[Union[str, Sequence[str]]]) -> None:
        """Delete ``name`` then add ``value`` (None only deletes)."""
        self.delete(name)
        if value is not None:
            self.add(name, value)

    def field_order(self, *names: str) -> None:
        """Per-entity preferred field order, overriding ``settings.field_order``."""
        self._field_order = [name.lower() for name in names]

    def fields(self, settings: Optional[Settings] = None, exclude: Sequence[str] = ()) -> List[Field]:
        """
        The header fields as they will be rendered.

        Explicit headers come first in insertion order, then the synthesized
        MIME-Version/Content-* fields; a configured field order is then applied.

        Args:
            settings: Settings overriding the entity's own
            exclude: Lowercased field names to leave out (e.g. ``bcc``)

        Returns:
            Ordered (name, value) pairs
        """
        config = settings or self.settings
        explicit = [
            (name, encode_phrase(clean_value(value)))
            for name, value in self._headers
            if name.lower() not in exclude
        ]
        synthesized = render_attributes(self._rendered_attributes())
        order = self._field_order or config.field_order
        return order_fields(explicit + synthesized, order)

    def _rendered_attributes(self) -> Dict[str, Dict[str, Optional[str]]]:
        attrs = self.attributes
        params = attrs.pop("content-type", {})
        params.pop("", None)
        content_type: Dict[str, Optional[str]] = {"": self.content_type}
        if self.is_multipart:
            content_type["boundary"] = self.boundary
        content_type.update(params)
        attrs["content-type"] = content_type

        encoding = self._resolved_encoding or self._encoding
        if encoding and encoding not in (cte.NONE, cte.SUGGEST):
            attrs["content-transfer-encoding"] = {"": encoding}
        return attrs

    # ------------------------------------------------------------------
    # Tree mutation
    # ------------------------------------------------------------------

    def attach(
        self,
        part: Optional[Union["Entity", Mapping[str, Any], EntityConfig]] = None,
        *,
        container_type: Optional[str] = None,
        **fields: Any,
    ) -> "Entity":
        """
        Append a child entity.

        ``part`` may be an existing entity or a construction record; keyword
        fields are merged into the record (``msg.attach(Type="TEXT", Data="hi")``).
        Records default to ``Top=False``.

        A leaf with a body is promoted first: its type, encoding, body and
        content attributes move into a new first child and it becomes a
        ``container_type`` (default ``multipart/mixed``) container. The call either
        fully succeeds or leaves the tree untouched.

        Args:
            part: Child entity or construction record
            container_type: Multipart type used when promoting a leaf
            **fields: Construction keys for a new child

        Returns:
            The attached child

        Raises:
            StateError: If the child already has a parent, is this entity or one
                of its ancestors, or this entity is a non-multipart container
            ConfigError: If a new child's construction record is invalid
        """
        if isinstance(part, Entity):
            if fields:
                raise ConfigError("Keyword fields cannot be combined with an Entity part")
            child = part
        else:
            record = _record_items(part)
            record.update(fields)
            record.setdefault("Top", False)
            child = build(record, settings=self.settings)

        if child is self or any(child is ancestor for ancestor in self._ancestors()):
            raise StateError("Cannot attach an entity to itself or to one of its descendants")
        if child._parent is not None:
            raise StateError("Entity already has a parent; detach it first")
        if container_type is not None and not _is_multipart_type(container_type):
            raise StateError(f"Cannot promote to non-multipart type {container_type}")

        if self._source is not None:
            self._promote(container_type or MULTIPART_DEFAULT)
        elif not self.is_multipart:
            raise StateError(f"Cannot attach parts to a {self._media_type} entity")

        child._parent = weakref.ref(self)
        self._parts.append(child)
        logger.debug("part_attached", parent=self._media_type, child=child.media_type)
        return child

    def detach(self, part: "Entity") -> "Entity":
        """Remove a direct child and clear its parent link."""
        for i, existing in enumerate(self._parts):
            if existing is part:
                del self._parts[i]
                part._parent = None
                return part
        raise StateError("Entity is not a child of this container")

    def _ancestors(self) -> Iterator["Entity"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def _promote(self, container_type: str) -> None:
        """Move this leaf's body into a new first child and become a container."""
        first = Entity(self._media_type, settings=self.settings)
        first._encoding = self._encoding
        first._source = self._source
        first._attrs = {
            field: values for field, values in self._attrs.items() if field not in _CONTAINER_ATTRS
        }
        first._parent = weakref.ref(self)

        self._attrs = {
            field: values for field, values in self._attrs.items() if field in _CONTAINER_ATTRS
        }
        self._source = None
        self._encoding = None
        self._media_type = container_type
        self._parts = [first]
        self._invalidate()
        logger.debug("leaf_promoted", container_type=container_type, first_part=first.media_type)

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def finalize(self, settings: Optional[Settings] = None) -> "Entity":
        """
        Resolve placeholders throughout the tree and cache the results.

        Resolves AUTO/TEXT types, "-suggest" encodings, missing charsets of
        inline text parts, and container boundaries. Already-resolved entities
        are left as they are, so output stays identical between calls.

        Args:
            settings: Settings overriding the entity's own

        Returns:
            self

        Raises:
            ConfigError: If a multipart container has no parts
            UnreadablePathError: If a "-suggest" body cannot be read
        """
        config = settings or self.settings
        for entity in self.parts_dfs():
            entity._finalize_self(config)
        return self

    def _finalize_self(self, config: Settings) -> None:
        if self.is_multipart:
            if not self._parts:
                raise ConfigError(f"{self._media_type} entity has no parts")
            _ = self.boundary
            self._resolved_encoding = self._encoding
            return
        if self._source is None:
            raise ConfigError(f"{self._media_type} entity has no body")

        if self._resolved_type is None:
            self._resolved_type = resolve_media_type(self._media_type, self.filename_hint, config)

        if major_type(self.content_type) == "text" and self.get_attr("content-type.charset") is None:
            charset = self._detect_charset()
            if charset:
                self._attrs.setdefault("content-type", {})["charset"] = charset

        if self._resolved_encoding is None:
            encoding = self._encoding or cte.default_encoding(config)
            if encoding == cte.SUGGEST:
                charset = self.get_attr("content-type.charset")
                with self._source.chunks(charset) as body:
                    encoding = cte.suggest_encoding(body, self.content_type, config)
                logger.debug("encoding_suggested", media_type=self.content_type, encoding=encoding)
            self._resolved_encoding = encoding

    def _detect_charset(self) -> Optional[str]:
        """Charset for non-ASCII inline text without a declared one."""
        if not isinstance(self._source, InlineSource):
            return None
        if self._source.is_text():
            raw = self._source.read()
            return None if raw.isascii() else "UTF-8"
        raw = self._source.read()
        if raw.isascii():
            return None
        best = charset_normalizer.from_bytes(raw).best()
        if best is None:
            return None
        return _MIME_CHARSETS.get(best.encoding, best.encoding.replace("_", "-").upper())

    @property
    def transfer_encoding(self) -> Optional[str]:
        """Resolved encoding (after :meth:`finalize`)."""
        return self._resolved_encoding

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def as_bytes(self, settings: Optional[Settings] = None, crlf: bool = False) -> bytes:
        """Entire message (headers and body) as bytes."""
        return serializer.serialize(self, settings=settings, crlf=crlf)

    def as_string(self, settings: Optional[Settings] = None) -> str:
        """Entire message as text; undecodable 8-bit bytes are kept as surrogates."""
        return self.as_bytes(settings).decode("utf-8", errors="surrogateescape")

    def header_as_string(self, settings: Optional[Settings] = None) -> str:
        """Header block only, including the blank separator line."""
        sink = io.BytesIO()
        serializer.print_header(self, sink, settings=settings)
        return sink.getvalue().decode("utf-8", errors="surrogateescape")

    def body_as_string(self, settings: Optional[Settings] = None) -> str:
        """Encoded body only."""
        sink = io.BytesIO()
        serializer.print_body(self, sink, settings=settings)
        return sink.getvalue().decode("utf-8", errors="surrogateescape")

    def print_to(self, sink, settings: Optional[Settings] = None, crlf: bool = False) -> None:
        """Stream the entire message to a binary ``sink``."""
        serializer.serialize(self, sink, settings=settings, crlf=crlf)

    def print_header(self, sink, settings: Optional[Settings] = None) -> None:
        serializer.print_header(self, sink, settings=settings)

    def print_body(self, sink, settings: Optional[Settings] = None) -> None:
        serializer.print_body(self, sink, settings=settings)

    def __repr__(self) -> str:
        if self.is_multipart:
            return f"<Entity {self._media_type} parts={len(self._parts)}>"
        return f"<Entity {self._media_type} source={self._source!r}>"


# ============================================================================
# CONSTRUCTION
# ============================================================================

def _record_items(config: Union[Mapping[str, Any], EntityConfig, None]) -> Dict[str, Any]:
    """Plain mapping of construction keys (aliases for known fields)."""
    if config is None:
        return {}
    if not isinstance(config, EntityConfig):
        return dict(config)
    model_fields = type(config).model_fields
    record = {
        model_fields[name].alias or name: getattr(config, name)
        for name in config.model_fields_set
        if name in model_fields
    }
    record.update(config.model_extra or {})
    return record


def _parse_config(config: Union[Mapping[str, Any], EntityConfig, None], fields: Dict[str, Any]) -> EntityConfig:
    if isinstance(config, EntityConfig) and not fields:
        return config
    record = _record_items(config)
    record.update(fields)
    try:
        return EntityConfig.model_validate(record)
    except ValidationError as e:
        raise ConfigError(f"Invalid entity configuration: {e}") from e


def build(
    config: Union[Mapping[str, Any], EntityConfig, None] = None,
    *,
    settings: Optional[Settings] = None,
    **fields: Any,
) -> Entity:
    """
    Construct a leaf or container entity from a construction record.

    Args:
        config: Mapping with keys such as ``Type``, ``Data``, ``Path``, ``From``
        settings: Settings to build with (module defaults when omitted)
        **fields: Extra keys merged into ``config``

    Returns:
        New Entity

    Raises:
        ConfigError: For contradictory or missing body sources, invalid values,
            or a non-multipart type given with Parts
        UnsupportedEncodingError: For unknown encodings
    """
    config_values = resolve_settings(settings)
    record = _parse_config(config, fields)

    if record.source_count() > 1:
        raise ConfigError("Only one of Data, Path or FH may be given")
    if record.parts and record.source_count():
        raise ConfigError("A body source and Parts cannot both be given")

    media_type = record.media_type
    if media_type is None:
        if record.parts:
            media_type = MULTIPART_DEFAULT
        else:
            media_type = "AUTO" if config_values.auto_content_type else "TEXT"

    if _is_multipart_type(media_type):
        if record.source_count():
            raise ConfigError(f"A {media_type} entity cannot have a body source")
    else:
        if record.parts:
            raise ConfigError(f"Parts require a multipart type, not {media_type}")
        if not record.source_count():
            raise ConfigError(f"A {media_type} entity needs Data, Path or FH")

    entity = Entity(media_type, settings=config_values)
    entity.set_encoding(record.encoding)

    if record.data is not None:
        entity._source = InlineSource(record.data)
    elif record.path is not None:
        entity._source = PathSource(record.path)
    elif record.fh is not None:
        try:
            entity._source = HandleSource(record.fh)
        except TypeError as e:
            raise ConfigError(str(e)) from e

    if record.charset:
        entity.attr("content-type.charset", record.charset)

    filename = record.filename
    if filename is None and record.path is not None:
        filename = PurePath(record.path).name
    if filename:
        entity.attr("content-type.name", filename)
    disposition = record.disposition or ("inline" if filename else None)
    if disposition:
        entity.attr("content-disposition", disposition)
        if filename:
            entity.attr("content-disposition.filename", filename)

    if record.content_id:
        cid = record.content_id
        entity.attr("content-id", cid if cid.startswith("<") else f"<{cid}>")
    if record.description:
        entity.attr("content-description", record.description)
    if record.length is not None:
        entity.attr("content-length", str(record.length))
    if record.boundary:
        entity.boundary = record.boundary

    _add_header_items(entity, record.header_items, config_values)

    if record.top:
        _add_top_level_fields(entity, record, config_values)

    if record.read_now:
        entity.read_now()

    for part in record.parts or []:
        entity.attach(part)

    return entity


def _add_header_items(entity: Entity, items: List[Tuple[str, Any]], config: Settings) -> None:
    for key, value in items:
        if value is None:
            continue
        if key.endswith(":"):
            entity.add(key[:-1], value if isinstance(value, (list, tuple)) else str(value))
            continue
        lower = key.lower()
        if lower not in KNOWN_FIELDS and not lower.startswith("x-") and not lower.startswith("content-"):
            advise(config, "unknown_header_field", field=key)
        entity.add(key, value if isinstance(value, (list, tuple)) else str(value))


def _add_top_level_fields(entity: Entity, record: EntityConfig, config: Settings) -> None:
    entity.attr("mime-version", "1.0")
    datestamp = record.datestamp if record.datestamp is not None else config.datestamp
    if datestamp and not entity.get_all("Date"):
        entity.add("Date", formatdate(localtime=True))
    if config.x_mailer and not entity.get_all("X-Mailer"):
        entity.add("X-Mailer", x_mailer_value(config.paranoid))
