"""IPv4 address formatting, netmasks and parsing of prefixes, CIDRs and ranges.

Addresses are unsigned 32-bit integers in host order.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "AddressParseError",
    "Ip4Parsed",
    "Ip4Range",
    "ip4_atos",
    "ip4_mask",
    "ip4_prefix",
    "ip4_cidr",
    "ip4_range",
    "ip4_addr",
]

_ALL = 0xFFFFFFFF


class AddressParseError(ValueError):
    """Raised when an address cannot be parsed; ``position`` marks the spot."""

    def __init__(self, message: str, position: int) -> None:
        super().__init__(f"{message} at position {position}")
        self.position = position


@dataclass(frozen=True)
class Ip4Parsed:
    """A parsed address or prefix: value, significant bits and end offset."""

    addr: int
    bits: int
    end: int

    @property
    def network(self) -> int:
        """The address with its host part cleared."""
        return self.addr & ip4_mask(self.bits)


@dataclass(frozen=True)
class Ip4Range:
    """A parsed range from ``first`` to ``last`` inclusive."""

    first: int
    last: int
    bits: int
    end: int


def ip4_atos(addr: int) -> str:
    """Return the dotted-quad form of a 32-bit address."""
    return ".".join(str((addr >> shift) & 0xFF) for shift in (24, 16, 8, 0))


def ip4_mask(bits: int) -> int:
    """Return the netmask with *bits* leading one bits."""
    if not 0 <= bits <= 32:
        raise ValueError(f"netmask length out of range: {bits}")
    return (_ALL << (32 - bits)) & _ALL


def _digit(text: str, i: int) -> int | None:
    if i < len(text) and "0" <= text[i] <= "9":
        return ord(text[i]) - 0x30
    return None


def _number(text: str, i: int, limit: int, what: str) -> tuple[int, int]:
    value = _digit(text, i)
    if value is None:
        raise AddressParseError(f"expected {what}", i)
    i += 1
    while (d := _digit(text, i)) is not None:
        i += 1
        value = value * 10 + d
        if value > limit:
            raise AddressParseError(f"{what} out of range", i - 1)
    return value, i


def _prefix(text: str, i: int) -> tuple[int, int, int]:
    addr = 0
    for n, shift in enumerate((24, 16, 8, 0)):
        if n:
            if i < len(text) and text[i] == ".":
                i += 1
            else:
                return addr, 8 * n, i
        octet, i = _number(text, i, 255, "octet")
        addr |= octet << shift
    return addr, 32, i


def _mask_bits(text: str, slash: int) -> tuple[int, int]:
    if _digit(text, slash + 1) is None:
        raise AddressParseError("expected mask length", slash)
    return _number(text, slash + 1, 32, "mask length")


def _finish(text: str, i: int, allow_tail: bool) -> None:
    if not allow_tail and i < len(text):
        raise AddressParseError("unexpected trailing characters", i)


def _at(text: str, i: int, ch: str) -> bool:
    return i < len(text) and text[i] == ch


def ip4_prefix(text: str, allow_tail: bool = False) -> Ip4Parsed:
    """Parse 1 to 4 dotted octets; ``bits`` is 8, 16, 24 or 32."""
    addr, bits, i = _prefix(text, 0)
    _finish(text, i, allow_tail)
    return Ip4Parsed(addr, bits, i)


def ip4_cidr(text: str, allow_tail: bool = False) -> Ip4Parsed:
    """Parse ``prefix[/bits]``; a bare single number is rejected.

    The host part of ``addr`` is kept as written.
    """
    addr, bits, i = _prefix(text, 0)
    if _at(text, i, "/"):
        bits, i = _mask_bits(text, i)
    elif bits == 8:
        raise AddressParseError("bare number needs a mask length", i)
    _finish(text, i, allow_tail)
    return Ip4Parsed(addr, bits, i)


def ip4_range(text: str, allow_tail: bool = False) -> Ip4Range:
    """Parse ``a-b``, ``prefix/bits`` or a prefix into an inclusive range.

    A plain ``a-b`` range reports 32 bits; ``first`` may carry host bits.
    """
    first, bits, i = _prefix(text, 0)
    if _at(text, i, "-"):
        last, last_bits, i = _prefix(text, i + 1)
        if last_bits == 8:
            last = (last >> (bits - 8)) | (first & ip4_mask(bits - 8))
            last_bits = bits
        elif last_bits != bits:
            raise AddressParseError("range ends differ in length", i)
        if last_bits != 32:
            last |= ~ip4_mask(last_bits) & _ALL
        if first > last:
            raise AddressParseError("range start exceeds its end", i)
        _finish(text, i, allow_tail)
        return Ip4Range(first, last, 32, i)
    if _at(text, i, "/"):
        bits, i = _mask_bits(text, i)
    elif bits == 8:
        raise AddressParseError("bare number needs a mask length", i)
    last = first | (~ip4_mask(bits) & _ALL)
    _finish(text, i, allow_tail)
    return Ip4Range(first, last, bits, i)


def ip4_addr(text: str, allow_tail: bool = False) -> Ip4Parsed:
    """Parse an address the traditional way: ``127.1`` is ``127.0.0.1``."""
    parsed = ip4_prefix(text, allow_tail)
    addr = parsed.addr
    if parsed.bits == 8:
        addr >>= 24
    elif parsed.bits == 16:
        addr = (addr & 0xFF000000) | ((addr >> 16) & 0xFF)
    elif parsed.bits == 24:
        addr = (addr & 0xFFFF0000) | ((addr >> 8) & 0xFF)
    return Ip4Parsed(addr, parsed.bits, parsed.end)