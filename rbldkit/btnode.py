"""Nodes of a level-compressed tree-bitmap trie and their restructuring.

A trie is built from two kinds of node:

* :class:`TbmNode` holds ``TBM_STRIDE`` levels of a binary trie.
  Internal prefixes carry data keyed by their base index.  Extending
  paths are child nodes keyed by the ``TBM_STRIDE``-bit prefix below
  the node.
* :class:`LcNode` holds a chain of single-child binary nodes as a bit
  string.  The string is byte-aligned with the full prefix, so its
  first ``pos % 8`` bits repeat the path that leads to the node.  A
  terminal LC node carries data; any other LC node carries a child.

Positions (``pos``) are bit depths from the root of the trie.  Node
data is never ``None``, because ``None`` means "no data".
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Union

from rbldkit.bits import (
    LC_BYTES_PER_NODE,
    TBM_FANOUT,
    TBM_STRIDE,
    base_index,
    bit,
    extract_bit,
    extract_bits,
    high_bits,
)

__all__ = [
    "LC_MAX_BITS",
    "TrieCounters",
    "LcNode",
    "TbmNode",
    "Node",
    "init_terminal_node",
    "coalesce_lc_node",
    "shorten_lc_node",
    "split_lc_node",
    "convert_lc_node",
    "insert_lc_node",
    "next_pbyte",
    "init_tbm_node",
]

LC_MAX_BITS = 8 * LC_BYTES_PER_NODE


@dataclass
class TrieCounters:
    """Running totals of entries and nodes in a trie."""

    entries: int = 0
    tbm_nodes: int = 0
    lc_nodes: int = 0


@dataclass(eq=False)
class LcNode:
    """A level-compressed chain of ``length`` bits below its position."""

    prefix: bytes
    length: int
    terminal: bool
    child: "Node | None" = None
    data: Any = None


@dataclass(eq=False)
class TbmNode:
    """A tree-bitmap node covering ``TBM_STRIDE`` levels of the trie."""

    internal: dict[int, Any] = field(default_factory=dict)
    children: "dict[int, Node]" = field(default_factory=dict)

    @property
    def int_bm(self) -> int:
        """The internal bitmap: one bit per internal prefix holding data."""
        bm = 0
        for bi in self.internal:
            bm |= bit(bi)
        return bm

    @property
    def ext_bm(self) -> int:
        """The extending-path bitmap: one bit per child."""
        bm = 0
        for pfx in self.children:
            bm |= bit(pfx)
        return bm

    def is_empty(self) -> bool:
        """Tell whether the node has neither data nor children."""
        return not self.internal and not self.children

    def data_for(self, pfx: int, plen: int) -> Any:
        """Return the data of internal prefix *pfx*/*plen*, or None."""
        return self.internal.get(base_index(pfx, plen))

    def insert_data(self, pfx: int, plen: int, data: Any) -> None:
        """Attach *data* to internal prefix *pfx*/*plen*, which must be free."""
        if data is None:
            raise ValueError("node data must not be None")
        bi = base_index(pfx, plen)
        if bi in self.internal:
            raise ValueError(f"prefix {pfx}/{plen} already has data")
        self.internal[bi] = data

    def has_internal_data(self, pfx: int, plen: int) -> bool:
        """Tell whether *pfx*/*plen* or one of its ancestors has data."""
        bi = base_index(pfx, plen)
        while bi:
            if bi in self.internal:
                return True
            bi >>= 1
        return False

    def ext_path(self, pfx: int) -> "Node | None":
        """Return the child on extending path *pfx*, or None."""
        _check_ext(pfx)
        return self.children.get(pfx)

    def insert_ext_path(self, pfx: int, counters: TrieCounters) -> TbmNode:
        """Add an empty child on extending path *pfx* and return it."""
        _check_ext(pfx)
        if pfx in self.children:
            raise ValueError(f"extending path {pfx} already present")
        node = TbmNode()
        counters.tbm_nodes += 1
        self.children[pfx] = node
        return node


Node = Union[LcNode, TbmNode]


def _check_ext(pfx: int) -> None:
    if not 0 <= pfx < TBM_FANOUT:
        raise ValueError(f"extending path out of range: {pfx}")


def _octet(prefix: bytes, index: int) -> int:
    return prefix[index] if 0 <= index < len(prefix) else 0


def _fit(prefix: bytes, size: int) -> bytes:
    return bytes(prefix[: max(size, 0)]).ljust(max(size, 0), b"\x00")


def _lc_bits(node: LcNode, pos: int) -> int:
    return pos % 8 + node.length


def _lc_bytes(node: LcNode, pos: int) -> int:
    return (_lc_bits(node, pos) + 7) // 8


def init_terminal_node(
    counters: TrieCounters, pos: int, prefix: bytes, length: int, data: Any
) -> LcNode:
    """Build a terminal LC node for bits *pos* to *length* of *prefix*.

    A prefix too long for one node becomes a chain of LC nodes; the
    head of the chain is returned.
    """
    if data is None:
        raise ValueError("node data must not be None")
    if length < pos:
        raise ValueError(f"prefix length {length} is before position {pos}")
    prefix = bytes(prefix)
    nbytes = (length + 7) // 8
    head: LcNode | None = None
    last: LcNode | None = None

    def link(node: LcNode) -> None:
        nonlocal head, last
        if last is None:
            head = node
        else:
            last.child = node
        last = node

    while nbytes - pos // 8 > LC_BYTES_PER_NODE:
        node = LcNode(
            _fit(prefix[pos // 8 :], LC_BYTES_PER_NODE),
            LC_MAX_BITS - pos % 8,
            False,
        )
        counters.lc_nodes += 1
        link(node)
        pos += node.length

    shift = pos // 8
    link(LcNode(_fit(prefix[shift:], nbytes - shift), length - pos, True, data=data))
    counters.lc_nodes += 1
    assert head is not None
    return head


def coalesce_lc_node(counters: TrieCounters, node: LcNode, pos: int) -> None:
    """Merge a chain of LC nodes starting at *node* as far as they fit.

    Leading nodes of the chain are filled up to the maximum length.
    """
    while (
        not node.terminal
        and _lc_bits(node, pos) < LC_MAX_BITS
        and isinstance(node.child, LcNode)
    ):
        child = node.child
        spare = LC_MAX_BITS - _lc_bits(node, pos)
        end = pos + node.length
        shift = end // 8 - pos // 8
        if child.length <= spare:
            node.prefix = _fit(node.prefix, shift) + _fit(
                child.prefix, _lc_bytes(child, end)
            )
            node.length += child.length
            node.terminal = child.terminal
            node.child = child.child
            node.data = child.data
            counters.lc_nodes -= 1
        else:
            cshift = (end + spare) // 8 - end // 8
            child_bytes = _lc_bytes(child, end)
            node.prefix = _fit(node.prefix, shift) + _fit(
                child.prefix, LC_BYTES_PER_NODE - shift
            )
            node.length += spare
            if cshift:
                child.prefix = _fit(child.prefix, child_bytes)[cshift:]
            child.length -= spare
            pos += node.length
            node = child


def shorten_lc_node(
    counters: TrieCounters, pos: int, src: LcNode, orig_pos: int
) -> Node:
    """Return the part of LC node *src* (at *orig_pos*) that lies below *pos*.

    *src* itself is left unchanged.
    """
    if not orig_pos < pos <= orig_pos + src.length:
        raise ValueError(
            f"cannot shorten node of length {src.length} at {orig_pos} to {pos}"
        )
    if src.length == pos - orig_pos and not src.terminal:
        counters.lc_nodes -= 1
        assert src.child is not None
        return src.child

    shift = pos // 8 - orig_pos // 8
    node = LcNode(
        _fit(src.prefix, _lc_bytes(src, orig_pos))[shift:],
        src.length - (pos - orig_pos),
        src.terminal,
        src.child,
        src.data,
    )
    coalesce_lc_node(counters, node, pos)
    return node


def split_lc_node(counters: TrieCounters, node: LcNode, pos: int, length: int) -> None:
    """Cut LC node *node* at *pos* to *length* bits, moving the rest to a child."""
    if node.length < length:
        raise ValueError(f"node of length {node.length} is shorter than {length}")
    child = shorten_lc_node(counters, pos + length, node, pos)
    node.length = length
    node.terminal = False
    node.child = child
    node.data = None
    node.prefix = _fit(node.prefix, _lc_bytes(node, pos))
    counters.lc_nodes += 1


def _convert_lc_node_1(counters: TrieCounters, node: LcNode, pos: int) -> TbmNode:
    """Turn a non-terminal LC node of length one into a TBM node."""
    assert node.length == 1 and not node.terminal
    child = node.child
    if extract_bit(node.prefix, pos % 8):
        left, right = None, child
    else:
        left, right = child, None
    result = init_tbm_node(counters, pos, _octet(node.prefix, 0), None, left, right)
    counters.lc_nodes -= 1
    return result


def convert_lc_node(counters: TrieCounters, node: LcNode, pos: int) -> TbmNode:
    """Return a TBM node that replaces LC node *node* at *pos*."""
    length = node.length
    if length >= TBM_STRIDE:
        pfx = extract_bits(node.prefix, pos % 8, TBM_STRIDE)
        split_lc_node(counters, node, pos, TBM_STRIDE)
        assert node.child is not None
        result = TbmNode(children={pfx: node.child})
        counters.lc_nodes -= 1
        counters.tbm_nodes += 1
        return result
    if node.terminal:
        pfx = extract_bits(node.prefix, pos % 8, length)
        result = TbmNode()
        counters.tbm_nodes += 1
        result.insert_data(pfx, length, node.data)
        counters.lc_nodes -= 1
        return result
    if length <= 0:
        raise ValueError("cannot convert an empty non-terminal LC node")
    for size in range(length, 1, -1):
        split_lc_node(counters, node, pos, size - 1)
        assert isinstance(node.child, LcNode)
        node.child = _convert_lc_node_1(counters, node.child, pos + size - 1)
    return _convert_lc_node_1(counters, node, pos)


def insert_lc_node(
    counters: TrieCounters, pos: int, pbyte: int, last_bit: int, tail: Node
) -> LcNode:
    """Return an LC node for one bit (*last_bit*) at *pos* followed by *tail*.

    *pbyte* holds the prefix bits between the byte boundary and *pos*.
    """
    mask = 1 << (7 - pos % 8)
    bitval = mask if last_bit else 0

    if mask != 0x01 and isinstance(tail, LcNode):
        if (_octet(tail.prefix, 0) & mask) != bitval:
            raise ValueError("tail prefix disagrees with the inserted bit")
        return dataclasses.replace(tail, length=tail.length + 1)

    node = LcNode(bytes([(pbyte | bitval) & 0xFF]), 1, False, child=tail)
    counters.lc_nodes += 1
    if isinstance(tail, LcNode):
        coalesce_lc_node(counters, node, pos)
    return node


def next_pbyte(pbyte: int, pos: int, pfx: int) -> int:
    """Return the pad bits for position ``pos + TBM_STRIDE``.

    *pbyte* holds the bits before *pos* in its byte and *pfx* the next
    ``TBM_STRIDE`` bits.
    """
    end = pos + TBM_STRIDE
    if end % 8:
        nbyte = ((pfx & 0xFF) << (8 - end % 8)) & 0xFF
        if end % 8 > TBM_STRIDE:
            nbyte |= pbyte & high_bits(pos % 8)
        return nbyte
    return 0


def init_tbm_node(
    counters: TrieCounters,
    pos: int,
    pbyte: int,
    root_data: Any,
    left: Node | None,
    right: Node | None,
) -> TbmNode:
    """Build a TBM node at *pos* from its root data and two subtrees.

    *left* and *right* are the subtrees below the root prefix; they are
    consumed by the new node.
    """
    if isinstance(left, LcNode) and left.length < TBM_STRIDE:
        left = convert_lc_node(counters, left, pos + 1)
    if isinstance(right, LcNode) and right.length < TBM_STRIDE:
        right = convert_lc_node(counters, right, pos + 1)

    internal: dict[int, Any] = {}
    if root_data is not None:
        internal[base_index(0, 0)] = root_data
    for depth in range(TBM_STRIDE - 1):
        for child, offset in ((left, 0), (right, 1 << depth)):
            if isinstance(child, TbmNode) and child.internal:
                for i in range(1 << depth):
                    data = child.data_for(i, depth)
                    if data is not None:
                        internal[base_index(i + offset, depth + 1)] = data

    children: dict[int, Node] = {}
    for pfx_base, child in ((0, left), (TBM_FANOUT // 2, right)):
        if child is None:
            continue
        if isinstance(child, LcNode):
            pfx = pfx_base + extract_bits(child.prefix, (pos + 1) % 8, TBM_STRIDE - 1)
            children[pfx] = shorten_lc_node(counters, pos + TBM_STRIDE, child, pos + 1)
        elif not child.is_empty():
            for i in range(TBM_FANOUT // 2):
                data = child.data_for(i, TBM_STRIDE - 1)
                left_ext = child.ext_path(2 * i)
                right_ext = child.ext_path(2 * i + 1)
                if data is None and left_ext is None and right_ext is None:
                    continue
                pfx = pfx_base + i
                npbyte = next_pbyte(pbyte, pos, pfx)
                end = pos + TBM_STRIDE
                if left_ext is None and right_ext is None:
                    ext: Node = LcNode(bytes([npbyte]), 0, True, data=data)
                    counters.lc_nodes += 1
                elif data is not None or (left_ext is not None and right_ext is not None):
                    ext = init_tbm_node(counters, end, npbyte, data, left_ext, right_ext)
                elif left_ext is not None:
                    ext = insert_lc_node(counters, end, npbyte, 0, left_ext)
                else:
                    assert right_ext is not None
                    ext = insert_lc_node(counters, end, npbyte, 1, right_ext)
                children[pfx] = ext
            counters.tbm_nodes -= 1

    counters.tbm_nodes += 1
    return TbmNode(internal=internal, children=children)