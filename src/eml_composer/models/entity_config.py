"""
Construction record for building entities.

Recognized keys use their conventional capitalized names (``Type``, ``Data``,
``Path``...). Every other key is a header field and is kept, in order, in
``model_extra``.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Known RFC 822 / MIME fields accepted as header keys without a warning
KNOWN_FIELDS = frozenset(
    [
        "approved",
        "bcc",
        "cc",
        "comments",
        "date",
        "encrypted",
        "from",
        "in-reply-to",
        "keywords",
        "message-id",
        "mime-version",
        "organization",
        "received",
        "references",
        "reply-to",
        "return-path",
        "sender",
        "subject",
        "to",
    ]
)


class EntityConfig(BaseModel):
    """
    Validated construction parameters for one MIME entity.

    Body sources (``Data``, ``Path``, ``FH``) are mutually exclusive and cannot be
    combined with ``Parts``; those cross-field rules are enforced by the builder
    so the error type stays ``ConfigError``.
    """

    media_type: Optional[str] = Field(None, alias="Type", description="Media type, AUTO or TEXT")
    encoding: Optional[str] = Field(None, alias="Encoding", description="Content-Transfer-Encoding")
    data: Optional[Union[bytes, str, List[Union[bytes, str]]]] = Field(
        None, alias="Data", description="Inline body: bytes, text or a sequence of lines"
    )
    path: Optional[Path] = Field(None, alias="Path", description="File read during serialization")
    fh: Optional[Any] = Field(None, alias="FH", description="Open binary handle")
    filename: Optional[str] = Field(None, alias="Filename", description="Recommended filename")
    disposition: Optional[str] = Field(None, alias="Disposition", description="inline or attachment")
    content_id: Optional[str] = Field(None, alias="Id", description="Content-ID for inline references")
    boundary: Optional[str] = Field(None, alias="Boundary", description="Explicit multipart boundary")
    parts: Optional[List[Any]] = Field(None, alias="Parts", description="Child entities or configs")
    charset: Optional[str] = Field(None, alias="Charset", description="Content-Type charset parameter")
    description: Optional[str] = Field(None, alias="Description", description="Content-Description")
    top: bool = Field(True, alias="Top", description="Add top-level MIME-Version/Date/X-Mailer")
    read_now: bool = Field(False, alias="ReadNow", description="Read Path into memory at build time")
    datestamp: Optional[bool] = Field(None, alias="Datestamp", description="Override settings.datestamp")
    length: Optional[int] = Field(None, alias="Length", ge=0, description="Content-Length value")

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    @field_validator("data", mode="before")
    @classmethod
    def accept_line_sequences(cls, v):
        """Tuples and other non-string sequences of lines become lists."""
        if isinstance(v, (bytes, bytearray, str)) or v is None:
            return bytes(v) if isinstance(v, bytearray) else v
        if isinstance(v, (list, tuple)):
            return list(v)
        raise ValueError("Data must be bytes, str or a sequence of lines")

    @property
    def header_items(self) -> List[Tuple[str, Any]]:
        """Header keys in the order they were given."""
        extra: Dict[str, Any] = self.model_extra or {}
        return list(extra.items())

    def source_count(self) -> int:
        """Number of body sources supplied."""
        return sum(value is not None for value in (self.data, self.path, self.fh))
