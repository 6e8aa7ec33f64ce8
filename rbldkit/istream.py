"""Buffered line-oriented input streams with transparent gzip decompression."""

from __future__ import annotations

import zlib
from collections.abc import Callable, Iterator
from typing import BinaryIO

__all__ = [
    "ISTREAM_BUFSIZE",
    "StreamError",
    "InputStream",
    "open_stream",
]

ISTREAM_BUFSIZE = 65536
_HALF = ISTREAM_BUFSIZE // 2

_GZIP_MAGIC = b"\x1f\x8b"
_DEFLATED = 8
_HEAD_CRC = 0x02
_EXTRA_FIELD = 0x04
_ORIG_NAME = 0x08
_COMMENT = 0x10
_RESERVED = 0xE0

Reader = Callable[[int], bytes]


class StreamError(OSError):
    """Raised for malformed or truncated compressed input."""


class _GzipReader:
    """Inflates a raw deflate body and verifies the gzip trailer."""

    def __init__(self, pending: bytes, source: Reader) -> None:
        self._pending = bytes(pending)
        self._source = source
        self._inflater = zlib.decompressobj(-zlib.MAX_WBITS)
        self._crc = 0
        self._size = 0
        self._checked = False

    def __call__(self, size: int) -> bytes:
        out = bytearray()
        while len(out) < size and not self._inflater.eof:
            if not self._pending:
                chunk = self._source(_HALF)
                if not chunk:
                    if out:
                        break
                    raise StreamError("unexpected end of compressed data")
                self._pending = chunk
            try:
                data = self._inflater.decompress(self._pending, size - len(out))
            except zlib.error as exc:
                raise StreamError(f"corrupt compressed data: {exc}") from exc
            self._pending = self._inflater.unconsumed_tail
            out += data
        self._crc = zlib.crc32(out, self._crc)
        self._size += len(out)
        if self._inflater.eof and not self._checked:
            self._check_trailer()
        return bytes(out)

    def _check_trailer(self) -> None:
        trailer = bytearray(self._inflater.unused_data)
        while len(trailer) < 8:
            chunk = self._source(_HALF)
            if not chunk:
                raise StreamError("truncated gzip trailer")
            trailer += chunk
        crc = int.from_bytes(trailer[0:4], "little")
        size = int.from_bytes(trailer[4:8], "little")
        if crc != self._crc or size != (self._size & 0xFFFFFFFF):
            raise StreamError("gzip trailer does not match data")
        self._checked = True


class InputStream:
    """Reads lines from a binary file object through a fixed-size buffer.

    Lines longer than half the buffer are returned in pieces.
    """

    def __init__(self, raw: BinaryIO) -> None:
        self._raw = raw
        self._owned: BinaryIO | None = None
        self._reader: Reader = self._raw_read
        self._buf = bytearray()
        self._pos = 0

    def _raw_read(self, size: int) -> bytes:
        return self._raw.read(size) or b""

    @staticmethod
    def _closed_read(size: int) -> bytes:
        raise ValueError("I/O operation on closed stream")

    def _read_chunk(self) -> bytes:
        hint = ISTREAM_BUFSIZE if not self._buf else _HALF
        space = ISTREAM_BUFSIZE - len(self._buf)
        return self._reader(min(hint, space))

    def _find(self, delims: bytes, start: int) -> int:
        if len(delims) == 1:
            return self._buf.find(delims, start)
        hits = [i for i in (self._buf.find(d, start) for d in delims) if i >= 0]
        return min(hits, default=-1)

    def getline(self, delims: bytes = b"\n") -> bytes:
        """Return the next line including its delimiter; ``b""`` at end.

        Any byte of *delims* ends a line; an empty *delims* means NUL.
        """
        delims = bytes(delims) or b"\x00"
        start = self._pos
        scan = start
        while True:
            found = self._find(delims, scan)
            if found >= 0:
                self._pos = found + 1
                return bytes(self._buf[start : found + 1])
            scan = len(self._buf)
            if scan - start >= _HALF:
                self._pos = scan
                return bytes(self._buf[start:])
            if start:
                del self._buf[:start]
                scan -= start
                start = 0
            chunk = self._read_chunk()
            if not chunk:
                self._pos = len(self._buf)
                return bytes(self._buf[start:])
            self._buf += chunk

    def fill(self) -> int:
        """Read more data if less than half a buffer is pending.

        Returns the number of bytes pending, or 0 at end of input.
        """
        if len(self._buf) - self._pos < _HALF:
            if self._pos:
                del self._buf[: self._pos]
                self._pos = 0
            chunk = self._read_chunk()
            if not chunk:
                return 0
            self._buf += chunk
        return len(self._buf) - self._pos

    def ensure_bytes(self, nbytes: int) -> int:
        """Make at least *nbytes* (at most half a buffer) available.

        Returns the number ensured, or 0 if the input ends first.
        """
        nbytes = min(nbytes, _HALF)
        while len(self._buf) - self._pos < nbytes:
            if self.fill() <= 0:
                return 0
        return nbytes

    def compressed(self) -> bool:
        """Tell whether the pending input starts with the gzip magic."""
        if self.ensure_bytes(2) <= 0:
            return False
        return self._buf[self._pos : self._pos + 2] == _GZIP_MAGIC

    def _skip(self, count: int) -> None:
        while len(self._buf) - self._pos < count:
            count -= len(self._buf) - self._pos
            self._pos = len(self._buf)
            if self.fill() <= 0:
                raise StreamError("truncated gzip header")
        self._pos += count

    def uncompress_setup(self) -> bool:
        """Switch to decompressing if the input is gzip.

        Returns True if decompression was set up, False for plain input.
        """
        if not self.compressed():
            return False
        self._pos += 2
        if self.ensure_bytes(8) <= 0:
            raise StreamError("truncated gzip header")
        method = self._buf[self._pos]
        flags = self._buf[self._pos + 1]
        if method != _DEFLATED or flags & _RESERVED:
            raise StreamError("unsupported gzip header")
        self._pos += 8
        if flags & _EXTRA_FIELD:
            if self.ensure_bytes(2) <= 0:
                raise StreamError("truncated gzip header")
            extra = int.from_bytes(self._buf[self._pos : self._pos + 2], "little")
            self._pos += 2
            self._skip(extra)
        strings = bool(flags & _ORIG_NAME) + bool(flags & _COMMENT)
        for _ in range(strings):
            while True:
                piece = self.getline(b"\x00")
                if not piece:
                    raise StreamError("truncated gzip header")
                if piece.endswith(b"\x00"):
                    break
        if flags & _HEAD_CRC:
            if self.ensure_bytes(2) <= 0:
                raise StreamError("truncated gzip header")
            self._pos += 2

        self._reader = _GzipReader(bytes(self._buf[self._pos :]), self._reader)
        self._buf = bytearray()
        self._pos = 0
        return True

    def close(self) -> None:
        """Release the stream; a file opened by :func:`open_stream` is closed."""
        if self._owned is not None:
            self._owned.close()
            self._owned = None
        self._reader = self._closed_read
        self._buf = bytearray()
        self._pos = 0

    def __iter__(self) -> Iterator[bytes]:
        while line := self.getline():
            yield line

    def __enter__(self) -> InputStream:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_stream(path) -> InputStream:
    """Open a file for line reading, decompressing it if it is gzip."""
    raw = open(path, "rb")
    stream = InputStream(raw)
    stream._owned = raw
    try:
        stream.uncompress_setup()
    except BaseException:
        stream.close()
        raise
    return stream