"""
Body sources for leaf entities.

A leaf holds exactly one source: inline data (bytes, text or lines), a path
opened during serialization, or a caller-owned open handle. Sources hand out
their bytes in chunks from a context manager so files are closed on every exit
path, including encoder or read errors part-way through.
"""

import os
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Union

from ..errors import UnreadablePathError


CHUNK_SIZE = 64 * 1024
DEFAULT_CHARSET = "utf-8"


class BodySource(ABC):
    """Where a leaf's raw (unencoded) body bytes come from."""

    @abstractmethod
    @contextmanager
    def chunks(self, charset: Optional[str] = None) -> Iterator[Iterator[bytes]]:
        """
        Yield an iterator over raw body chunks.

        Args:
            charset: Charset used to encode text data

        Yields:
            Iterator of bytes chunks
        """

    def read(self, charset: Optional[str] = None) -> bytes:
        """Read the whole body into memory."""
        with self.chunks(charset) as body:
            return b"".join(body)

    def verify(self) -> None:
        """Raise UnreadablePathError when the source cannot currently be read."""

    def length(self, charset: Optional[str] = None) -> Optional[int]:
        """Raw body length in bytes, or None when not knowable without reading."""
        return None


class InlineSource(BodySource):
    """Body held in memory as bytes, text, or a sequence of lines."""

    def __init__(self, data: Union[bytes, str, List[Union[bytes, str]]]):
        self.data = data

    def _as_bytes(self, charset: Optional[str]) -> bytes:
        charset = charset or DEFAULT_CHARSET
        if isinstance(self.data, bytes):
            return self.data
        if isinstance(self.data, str):
            return self.data.encode(charset)
        return b"".join(
            line if isinstance(line, bytes) else line.encode(charset) for line in self.data
        )

    @contextmanager
    def chunks(self, charset: Optional[str] = None) -> Iterator[Iterator[bytes]]:
        yield iter([self._as_bytes(charset)])

    def length(self, charset: Optional[str] = None) -> Optional[int]:
        return len(self._as_bytes(charset))

    def is_text(self) -> bool:
        """Whether the data was given as text (and so needs a charset)."""
        if isinstance(self.data, str):
            return True
        return isinstance(self.data, list) and any(isinstance(line, str) for line in self.data)

    def __repr__(self) -> str:
        return f"InlineSource({len(self._as_bytes(None))} bytes)"


class PathSource(BodySource):
    """Body read from a file each time the entity is serialized."""

    def __init__(self, path: Union[str, os.PathLike]):
        self.path = Path(path)

    @contextmanager
    def chunks(self, charset: Optional[str] = None) -> Iterator[Iterator[bytes]]:
        try:
            handle = open(self.path, "rb")
        except OSError as e:
            raise UnreadablePathError(str(self.path), e.strerror) from e

        def read_chunks():
            while True:
                try:
                    chunk = handle.read(CHUNK_SIZE)
                except OSError as e:
                    raise UnreadablePathError(str(self.path), e.strerror) from e
                if not chunk:
                    return
                yield chunk

        with handle:
            yield read_chunks()

    def verify(self) -> None:
        if not self.path.is_file() or not os.access(self.path, os.R_OK):
            raise UnreadablePathError(str(self.path), "not a readable file")

    def length(self, charset: Optional[str] = None) -> Optional[int]:
        try:
            return self.path.stat().st_size
        except OSError:
            return None

    def __repr__(self) -> str:
        return f"PathSource({str(self.path)!r})"


class HandleSource(BodySource):
    """
    Body read from a caller-owned open binary handle.

    The handle is rewound to its starting offset before every read when it is
    seekable, so repeated serialization produces the same output. A handle that
    cannot seek is read once into memory on first use and replayed from there,
    so encoding suggestion and serialization see the same bytes. It is never
    closed here.
    """

    def __init__(self, handle: Any):
        if not hasattr(handle, "read"):
            raise TypeError("FH must be a readable file-like object")
        self.handle = handle
        self._start: Optional[int] = None
        self._buffered: Optional[bytes] = None
        if self._seekable():
            self._start = handle.tell()

    def _seekable(self) -> bool:
        seekable = getattr(self.handle, "seekable", None)
        return bool(seekable and seekable())

    def _read_chunks(self, charset: Optional[str]) -> Iterator[bytes]:
        while True:
            chunk = self.handle.read(CHUNK_SIZE)
            if not chunk:
                return
            if isinstance(chunk, str):
                chunk = chunk.encode(charset or DEFAULT_CHARSET)
            yield chunk

    @contextmanager
    def chunks(self, charset: Optional[str] = None) -> Iterator[Iterator[bytes]]:
        if self._start is not None:
            self.handle.seek(self._start)
            yield self._read_chunks(charset)
            return

        if self._buffered is None:
            self._buffered = b"".join(self._read_chunks(charset))
        yield iter([self._buffered] if self._buffered else [])

    def __repr__(self) -> str:
        return f"HandleSource({self.handle!r})"
