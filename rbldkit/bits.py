"""Bit-level helpers for tree-bitmap tries.

Prefixes are byte strings read most-significant bit first.  Bitmaps are
``BITMAP_BITS`` wide with bit 0 the most significant bit.  Bytes past
the end of a prefix read as zero.
"""

from __future__ import annotations

__all__ = [
    "TBM_STRIDE",
    "TBM_FANOUT",
    "BITMAP_BITS",
    "BITMAP_MASK",
    "LC_BYTES_PER_NODE",
    "bit",
    "count_bits",
    "count_bits_before",
    "count_bits_from",
    "extract_bits",
    "extract_bit",
    "high_bits",
    "prefixes_equal",
    "common_prefix",
    "base_index",
]

TBM_STRIDE = 5
TBM_FANOUT = 1 << TBM_STRIDE
BITMAP_BITS = 1 << TBM_STRIDE
BITMAP_MASK = (1 << BITMAP_BITS) - 1
LC_BYTES_PER_NODE = 7


def _byte(prefix: bytes, index: int) -> int:
    return prefix[index] if index < len(prefix) else 0


def bit(b: int) -> int:
    """Return the bitmap with only bit *b* (0 = most significant) set."""
    if not 0 <= b < BITMAP_BITS:
        raise ValueError(f"bit index out of range: {b}")
    return 1 << (BITMAP_BITS - 1 - b)


def count_bits(v: int) -> int:
    """Return the number of set bits in a bitmap."""
    return bin(v & BITMAP_MASK).count("1")


def count_bits_before(bm: int, b: int) -> int:
    """Count the set bits of *bm* that come before bit *b*."""
    if not 0 <= b <= BITMAP_BITS:
        raise ValueError(f"bit index out of range: {b}")
    return count_bits((bm & BITMAP_MASK) >> (BITMAP_BITS - b)) if b else 0


def count_bits_from(bm: int, b: int) -> int:
    """Count the set bits of *bm* from bit *b* onwards."""
    if not 0 <= b <= BITMAP_BITS:
        raise ValueError(f"bit index out of range: {b}")
    return count_bits((bm << b) & BITMAP_MASK)


def extract_bits(prefix: bytes, pos: int, nbits: int) -> int:
    """Return *nbits* (at most 8) bits of *prefix* starting at bit *pos*."""
    if not 0 <= nbits <= 8:
        raise ValueError(f"can extract at most 8 bits, not {nbits}")
    if pos < 0:
        raise ValueError(f"negative bit position: {pos}")
    if nbits == 0:
        return 0
    index = pos // 8
    v = (_byte(prefix, index) << 8) | _byte(prefix, index + 1)
    return (v >> (16 - nbits - pos % 8)) & ((1 << nbits) - 1)


def extract_bit(prefix: bytes, pos: int) -> int:
    """Return the single bit of *prefix* at bit *pos*."""
    if pos < 0:
        raise ValueError(f"negative bit position: {pos}")
    return (_byte(prefix, pos // 8) >> (7 - pos % 8)) & 0x01


def high_bits(n: int) -> int:
    """Return a byte mask with the high *n* bits set."""
    if not 0 <= n <= 8:
        raise ValueError(f"mask width out of range: {n}")
    return -(1 << (8 - n)) & 0xFF


def prefixes_equal(pfx1: bytes, pfx2: bytes, length: int) -> bool:
    """Tell whether the first *length* bits of two prefixes agree."""
    whole, rest = divmod(length, 8)
    if bytes(pfx1[:whole]).ljust(whole, b"\x00") != bytes(pfx2[:whole]).ljust(
        whole, b"\x00"
    ):
        return False
    return ((_byte(pfx1, whole) ^ _byte(pfx2, whole)) & high_bits(rest)) == 0


def common_prefix(pfx1: bytes, pfx2: bytes, length: int) -> int:
    """Return how many leading bits (up to *length*) two prefixes share."""
    whole, rest = divmod(length, 8)
    for nb in range(whole):
        diff = _byte(pfx1, nb) ^ _byte(pfx2, nb)
        if diff:
            return 8 * nb + 8 - diff.bit_length()
    if rest:
        n = 8 - (_byte(pfx1, whole) ^ _byte(pfx2, whole)).bit_length()
        if n < rest:
            return 8 * whole + n
    return length


def base_index(pfx: int, plen: int) -> int:
    """Return the internal-bitmap index of prefix *pfx* of length *plen*."""
    if not 0 <= plen < TBM_STRIDE:
        raise ValueError(f"prefix length out of range: {plen}")
    if not 0 <= pfx < (1 << plen):
        raise ValueError(f"prefix {pfx} does not fit in {plen} bits")
    return pfx | (1 << plen)