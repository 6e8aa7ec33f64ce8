"""Domain names in DNS wire format: comparison, conversion and parsing.

A domain name is a sequence of length-prefixed labels terminated by a
zero byte, e.g. ``b"\\x03www\\x07example\\x03com\\x00"``.
"""

from __future__ import annotations

import string
from collections.abc import Iterator, Mapping
from typing import TypeVar

__all__ = [
    "DNS_MAXDN",
    "DNS_MAXLABEL",
    "DomainNameError",
    "dn_equal",
    "dn_labels",
    "dn_length",
    "dn_reverse",
    "dn_lower",
    "lowercase",
    "dn_to_text",
    "text_to_dn",
    "find_name",
]

DNS_MAXDN = 255
DNS_MAXLABEL = 63

_NAME_BUFSIZE = 60

_LOWER = bytes.maketrans(
    string.ascii_uppercase.encode("ascii"), string.ascii_lowercase.encode("ascii")
)
_UPPER = str.maketrans(string.ascii_lowercase, string.ascii_uppercase)

_SPECIAL = frozenset('".;\\@$')
_DOT = ord(".")
_BACKSLASH = ord("\\")

T = TypeVar("T")


class DomainNameError(ValueError):
    """Raised for malformed, oversized or unrepresentable domain names."""


def _iter_labels(dn: bytes) -> Iterator[bytes]:
    """Yield the labels of a wire-format name, stopping at the terminator."""
    dn = bytes(dn)
    pos = 0
    while True:
        if pos >= len(dn):
            raise DomainNameError("domain name is not terminated")
        size = dn[pos]
        if size == 0:
            return
        end = pos + 1 + size
        if end > len(dn):
            raise DomainNameError("domain name label is truncated")
        yield dn[pos + 1 : end]
        pos = end


def lowercase(data: bytes) -> bytes:
    """Return *data* with ASCII upper-case letters mapped to lower case."""
    return bytes(data).translate(_LOWER)


def dn_equal(dn1: bytes, dn2: bytes) -> bool:
    """Compare two wire-format names, ignoring ASCII letter case."""
    dn1, dn2 = bytes(dn1), bytes(dn2)
    pos = 0
    while True:
        if pos >= len(dn1) or pos >= len(dn2):
            raise DomainNameError("domain name is not terminated")
        size = dn1[pos]
        if size != dn2[pos]:
            return False
        if size == 0:
            return True
        end = pos + 1 + size
        if lowercase(dn1[pos + 1 : end]) != lowercase(dn2[pos + 1 : end]):
            return False
        pos = end


def dn_labels(dn: bytes) -> int:
    """Return the number of labels in a wire-format name."""
    return sum(1 for _ in _iter_labels(dn))


def dn_length(dn: bytes) -> int:
    """Return the length of a wire-format name including the zero byte."""
    return 1 + sum(len(label) + 1 for label in _iter_labels(dn))


def _join(labels: list[bytes]) -> bytes:
    return b"".join(bytes([len(label)]) + label for label in labels) + b"\x00"


def dn_reverse(dn: bytes) -> bytes:
    """Return the name with the order of its labels reversed."""
    labels = list(_iter_labels(dn))
    labels.reverse()
    return _join(labels)


def dn_lower(dn: bytes) -> bytes:
    """Return a lower-cased copy of a wire-format name."""
    return _join([lowercase(label) for label in _iter_labels(dn)])


def _escape_label(label: bytes) -> str:
    parts = []
    for c in label:
        ch = chr(c)
        if ch in _SPECIAL:
            parts.append("\\" + ch)
        elif c <= 0x20 or c >= 0x7F:
            parts.append(f"\\{c:03d}")
        else:
            parts.append(ch)
    return "".join(parts)


def dn_to_text(dn: bytes, max_size: int | None = None) -> str:
    """Render a wire-format name as dotted text with zone-file escapes.

    *max_size* is the size of the destination including a terminating
    zero; a result that would not fit raises :class:`DomainNameError`.
    """
    labels = list(_iter_labels(dn))
    text = ".".join(_escape_label(label) for label in labels) if labels else "."
    if max_size is not None and len(text) >= max_size:
        raise DomainNameError("domain name does not fit in the given size")
    return text


def _is_digit(c: int) -> bool:
    return 0x30 <= c <= 0x39


def text_to_dn(name: str | bytes, max_size: int = DNS_MAXDN) -> bytes:
    """Parse dotted text (with ``\\c`` and ``\\DDD`` escapes) into wire format."""
    if isinstance(name, str):
        try:
            data = name.encode("latin-1")
        except UnicodeEncodeError as exc:
            raise DomainNameError("domain name has non-byte characters") from exc
    else:
        data = bytes(name)
    data = data.split(b"\x00", 1)[0]

    out = bytearray(b"\x00")
    label = 1
    limit = min(max_size, DNS_MAXDN) - 1
    size = len(data)
    i = 0
    while i < size:
        c = data[i]
        i += 1
        if c == _DOT:
            length = len(out) - label
            if length:
                if length > DNS_MAXLABEL:
                    raise DomainNameError("domain name label too long")
                out[label - 1] = length
                out.append(0)
                label = len(out)
            continue
        if c == _BACKSLASH:
            if i >= size:
                break
            c = data[i]
            i += 1
            if _is_digit(c):
                c -= 0x30
                if i < size and _is_digit(data[i]):
                    c = c * 10 + data[i] - 0x30
                    i += 1
                    if i < size and _is_digit(data[i]):
                        c = c * 10 + data[i] - 0x30
                        i += 1
                        if c > 255:
                            raise DomainNameError("invalid decimal escape")
        if len(out) >= limit:
            raise DomainNameError("domain name too long")
        out.append(c)

    length = len(out) - label
    if length > DNS_MAXLABEL:
        raise DomainNameError("domain name label too long")
    out[label - 1] = length
    if length:
        out.append(0)
    return bytes(out)


def find_name(table: Mapping[str, T], name: str) -> T | None:
    """Look up *name* case-insensitively in a table keyed by upper-case names."""
    key = name.translate(_UPPER)
    if len(key) >= _NAME_BUFSIZE - 1:
        return None
    return table.get(key)