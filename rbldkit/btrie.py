"""Longest-prefix-match table over bit strings.

The table is a level-compressed tree-bitmap trie built from the nodes
in :mod:`rbldkit.btnode`.  Prefixes are byte strings read most
significant bit first, with an explicit length in bits.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from typing import Any

from rbldkit.bits import TBM_STRIDE, common_prefix, extract_bits, prefixes_equal
from rbldkit.btnode import (
    LcNode,
    Node,
    TbmNode,
    TrieCounters,
    convert_lc_node,
    init_terminal_node,
    split_lc_node,
)

__all__ = ["AddResult", "Btrie"]


class AddResult(enum.IntEnum):
    """Outcome of :meth:`Btrie.add_prefix`."""

    OKAY = 0
    DUPLICATE_PREFIX = 1


def _check_prefix(prefix: bytes, length: int) -> bytes:
    prefix = bytes(prefix)
    if length < 0:
        raise ValueError(f"negative prefix length: {length}")
    if length > 8 * len(prefix):
        raise ValueError(
            f"prefix length {length} exceeds the {8 * len(prefix)} bits given"
        )
    return prefix


class Btrie:
    """A table mapping bit-string prefixes to data, with longest-match lookup."""

    def __init__(self) -> None:
        self._root: Node = TbmNode()
        self.counters = TrieCounters(tbm_nodes=1)

    @property
    def root(self) -> Node:
        """The root node of the trie."""
        return self._root

    def _set_root(self, node: Node) -> None:
        self._root = node

    def add_prefix(self, prefix: bytes, length: int, data: Any) -> AddResult:
        """Store *data* for the first *length* bits of *prefix*.

        An existing entry for the same prefix is reported as a duplicate;
        where it is held at the end of a compressed chain its data is
        replaced by *data*.
        """
        if data is None:
            raise ValueError("data must not be None")
        prefix = _check_prefix(prefix, length)
        counters = self.counters
        node: Node = self._root
        attach: Callable[[Node], None] = self._set_root
        pos = 0

        while True:
            if isinstance(node, LcNode):
                end = pos + node.length
                base = 8 * (pos // 8)
                cbits = common_prefix(
                    prefix[pos // 8 :], node.prefix, min(length, end) - base
                )
                clen = base + cbits
                if clen == end and not node.terminal:
                    parent = node
                    attach = lambda n, p=parent: setattr(p, "child", n)
                    assert node.child is not None
                    node = node.child
                    pos = end
                elif clen == end and length == end and node.terminal:
                    node.data = data
                    return AddResult.DUPLICATE_PREFIX
                else:
                    if clen > pos:
                        split_lc_node(counters, node, pos, clen - pos)
                        parent = node
                        attach = lambda n, p=parent: setattr(p, "child", n)
                        assert isinstance(node.child, LcNode)
                        node = node.child
                        pos = clen
                    assert isinstance(node, LcNode)
                    node = convert_lc_node(counters, node, pos)
                    attach(node)
            elif node.is_empty():
                attach(init_terminal_node(counters, pos, prefix, length, data))
                counters.entries += 1
                counters.tbm_nodes -= 1
                return AddResult.OKAY
            else:
                end = pos + TBM_STRIDE
                if length < end:
                    plen = length - pos
                    pfx = extract_bits(prefix, pos, plen)
                    if node.data_for(pfx, plen) is not None:
                        return AddResult.DUPLICATE_PREFIX
                    node.insert_data(pfx, plen, data)
                    counters.entries += 1
                    return AddResult.OKAY
                pfx = extract_bits(prefix, pos, TBM_STRIDE)
                child = node.ext_path(pfx)
                if child is None:
                    child = node.insert_ext_path(pfx, counters)
                tbm = node
                attach = lambda n, t=tbm, k=pfx: t.children.__setitem__(k, n)
                node = child
                pos = end

    def lookup(self, prefix: bytes, length: int) -> Any:
        """Return the data of the longest stored prefix of *prefix*, or None."""
        prefix = _check_prefix(prefix, length)
        node: Node | None = self._root
        pos = 0
        int_node: TbmNode | None = None
        int_pfx = int_plen = 0

        while node is not None:
            if isinstance(node, LcNode):
                end = pos + node.length
                if length < end:
                    break
                if not prefixes_equal(
                    prefix[pos // 8 :], node.prefix, end - 8 * (pos // 8)
                ):
                    break
                if node.terminal:
                    return node.data
                pos = end
                node = node.child
            else:
                end = pos + TBM_STRIDE
                if length < end:
                    plen = length - pos
                    pfx = extract_bits(prefix, pos, plen)
                    if node.has_internal_data(pfx, plen):
                        int_node, int_pfx, int_plen = node, pfx, plen
                    break
                pfx = extract_bits(prefix, pos, TBM_STRIDE)
                if node.has_internal_data(pfx >> 1, TBM_STRIDE - 1):
                    int_node, int_pfx, int_plen = node, pfx >> 1, TBM_STRIDE - 1
                pos = end
                node = node.ext_path(pfx)

        if int_node is None:
            return None
        data = int_node.data_for(int_pfx, int_plen)
        while data is None:
            assert int_plen > 0
            int_pfx >>= 1
            int_plen -= 1
            data = int_node.data_for(int_pfx, int_plen)
        return data

    def stats(self) -> str:
        """Return a one-line summary of entry and node counts."""
        c = self.counters
        return f"ents={c.entries} tbm={c.tbm_nodes} lc={c.lc_nodes}"

    def __len__(self) -> int:
        return self.counters.entries