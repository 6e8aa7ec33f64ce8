"""IPv6 address parsing, masking and formatting.

Addresses are 16-byte ``bytes`` values in network order.
"""

from __future__ import annotations

import string
from dataclasses import dataclass

from rbldkit.ip4addr import AddressParseError

__all__ = [
    "IP6ADDR_FULL",
    "IP6ADDR_HALF",
    "Ip6Parsed",
    "ip6_prefix",
    "ip6_cidr",
    "ip6_mask",
    "ip6_atos",
]

IP6ADDR_FULL = 16
IP6ADDR_HALF = 8

_WORDS = IP6ADDR_FULL // 2
_HEX = {c: int(c, 16) for c in string.hexdigits}


@dataclass(frozen=True)
class Ip6Parsed:
    """A parsed address or prefix: 16 address bytes, bit count and end offset."""

    addr: bytes
    bits: int
    end: int

    @property
    def network(self) -> bytes:
        """The address with its host part cleared."""
        return ip6_mask(self.addr, self.bits)[0]


def _at(text: str, i: int, ch: str) -> bool:
    return i < len(text) and text[i] == ch


def _digit(text: str, i: int) -> int | None:
    if i < len(text) and "0" <= text[i] <= "9":
        return ord(text[i]) - 0x30
    return None


def _prefix(text: str) -> tuple[bytes, int, int]:
    """Parse colon-separated 16-bit fields; return (addr, bits or -1, end)."""
    addr = bytearray(IP6ADDR_FULL)
    filled = 0
    zstart = -1
    ret = -1
    i = 0
    size = len(text)

    if text.startswith("::"):
        zstart = 0
        i = 2

    while True:
        value = 0
        start = i
        while i < size and (nibble := _HEX.get(text[i])) is not None:
            value = (value << 4) + nibble
            if value > 0xFFFF:
                break
            i += 1
        if i == start or value > 0xFFFF:
            break
        addr[filled] = value >> 8
        addr[filled + 1] = value & 0xFF
        filled += 2
        if not _at(text, i, ":") or filled + 2 > IP6ADDR_FULL:
            ret = filled * 8
            break
        i += 1
        if zstart < 0 and _at(text, i, ":"):
            zstart = filled
            i += 1

    if zstart >= 0:
        nzeros = IP6ADDR_FULL - filled
        if nzeros == 0:
            ret = -1
        else:
            addr[zstart + nzeros :] = addr[zstart:filled]
            addr[zstart : zstart + nzeros] = bytes(nzeros)
            ret = 8 * IP6ADDR_FULL

    return bytes(addr), ret, i


def ip6_prefix(text: str, allow_tail: bool = False) -> Ip6Parsed:
    """Parse an address or prefix such as ``2001:db8`` or ``fe80::1``.

    ``bits`` is a multiple of 16, or 128 when ``::`` is used.
    """
    addr, bits, i = _prefix(text)
    if not allow_tail and i < len(text):
        bits = -1
    if bits < 0:
        raise AddressParseError("invalid IPv6 address", i)
    return Ip6Parsed(addr, bits, i)


def ip6_cidr(text: str, allow_tail: bool = False) -> Ip6Parsed:
    """Parse ``prefix[/bits]``; a bare single field is rejected.

    The host part of ``addr`` is kept as written.
    """
    addr, bits, i = _prefix(text)
    if bits >= 0 and _at(text, i, "/"):
        i += 1
        first = _digit(text, i)
        if first is None:
            bits = -1
        else:
            bits = first
            i += 1
            while (d := _digit(text, i)) is not None:
                i += 1
                bits = bits * 10 + d
                if bits > 128:
                    bits = -1
                    break
    elif bits == 16:
        bits = -1
    if not allow_tail and i < len(text):
        bits = -1
    if bits < 0:
        raise AddressParseError("invalid IPv6 CIDR", i)
    return Ip6Parsed(addr, bits, i)


def ip6_mask(addr: bytes, bits: int) -> tuple[bytes, bool]:
    """Apply a /*bits* mask to *addr*.

    Returns the masked address (same length as *addr*) and whether any
    host bit of *addr* was set.
    """
    if bits < 0:
        raise ValueError(f"mask length out of range: {bits}")
    addr = bytes(addr)
    size = len(addr)
    out = bytearray(addr)
    index, rem = divmod(bits, 8)
    host = False
    if index < size and rem:
        if addr[index] & (0xFF >> rem):
            host = True
        out[index] = addr[index] & (0xFF << (8 - rem)) & 0xFF
        index += 1
    if index < size:
        host = host or any(addr[index:])
        out[index:] = bytes(size - index)
    return bytes(out), host


def ip6_atos(addr: bytes) -> str:
    """Format an address (or its leading bytes) in compressed text form.

    Missing trailing words are taken as zero.
    """
    addr = bytes(addr)
    awords = min(len(addr) // 2, _WORDS)
    words = [(addr[2 * k] << 8) | addr[2 * k + 1] for k in range(awords)]

    nzeros = zstart = 0
    i = 0
    while i + nzeros < _WORDS:
        nz = 0
        while i + nz < awords and words[i + nz] == 0:
            nz += 1
        if i + nz == awords:
            nz += _WORDS - awords
        if nz > 1 and nz > nzeros:
            nzeros = nz
            zstart = i
        i += 1

    out = "".join(f":{w:x}" for w in words[:zstart])
    if nzeros:
        out += ":"
        if zstart == 0:
            out += ":"
        if zstart + nzeros == _WORDS:
            out += ":"
    rest = zstart + nzeros
    out += "".join(f":{w:x}" for w in words[rest:awords])
    out += ":0" * (_WORDS - max(rest, awords))
    return out[1:]