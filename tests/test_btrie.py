import random

import pytest

from rbldkit.btrie import AddResult, Btrie

NUMBERED = bytes(range(64))
LONG = 8 * 2 * 7  # two full LC nodes
STRIDE = 5


def test_chain_of_lc_nodes_exact_match():
    trie = Btrie()
    assert trie.add_prefix(NUMBERED, LONG, "data") is AddResult.OKAY
    assert trie.add_prefix(NUMBERED, LONG, "data") is AddResult.DUPLICATE_PREFIX
    assert trie.lookup(NUMBERED, LONG) == "data"
    assert trie.lookup(NUMBERED, LONG + 1) == "data"
    assert trie.lookup(NUMBERED, LONG - 1) is None
    assert trie.lookup(NUMBERED[1:], LONG) is None


def test_stats_after_long_insert():
    trie = Btrie()
    trie.add_prefix(NUMBERED, LONG, "data")
    assert trie.stats() == "ents=1 tbm=0 lc=2"
    assert len(trie) == 1


def test_insert_within_existing_lc_node():
    trie = Btrie()
    trie.add_prefix(NUMBERED, LONG, "long")
    assert trie.add_prefix(NUMBERED[1:], 16, "short") is AddResult.OKAY
    assert trie.lookup(NUMBERED, LONG) == "long"
    assert trie.lookup(NUMBERED[1:], 16) == "short"
    assert trie.lookup(NUMBERED[1:], 24) == "short"
    assert len(trie) == 2


def test_terminal_lc_converted():
    trie = Btrie()
    trie.add_prefix(NUMBERED, 12, "a")
    assert trie.add_prefix(NUMBERED, 24, "b") is AddResult.OKAY
    assert trie.lookup(NUMBERED, 12) == "a"
    assert trie.lookup(NUMBERED, 20) == "a"
    assert trie.lookup(NUMBERED, 24) == "b"
    assert trie.lookup(NUMBERED, 11) is None


@pytest.mark.parametrize("pfx", range(1 << STRIDE))
def test_follow_extending_path(pfx):
    trie = Btrie()
    trie.add_prefix(b"\x00", 1, "d01")
    trie.add_prefix(b"\x80", 1, "d11")
    prefix0 = bytes([(pfx << (8 - STRIDE)) & 0xFF])
    assert trie.add_prefix(prefix0, 8, "data") is AddResult.OKAY
    assert trie.lookup(prefix0, 8) == "data"
    expected = "d11" if prefix0[0] & 0x80 else "d01"
    assert trie.lookup(prefix0, 7) == expected
    flipped = bytes([prefix0[0] ^ (1 << (8 - STRIDE))])
    expected = "d11" if flipped[0] & 0x80 else "d01"
    assert trie.lookup(flipped, 8) == expected


def test_internal_prefixes():
    trie = Btrie()
    trie.add_prefix(b"\x00", 1, "d01")
    trie.add_prefix(b"\x80", 1, "d11")
    assert trie.lookup(NUMBERED, 0) is None
    for plen in range(1, STRIDE):
        for pfx in range(1 << STRIDE):
            prefix0 = bytes([(pfx << (8 - plen)) & 0xFF])
            expected = "d11" if prefix0[0] & 0x80 else "d01"
            assert trie.lookup(prefix0, plen) == expected


def test_internal_duplicate_keeps_data():
    trie = Btrie()
    trie.add_prefix(b"\x00", 1, "a")
    trie.add_prefix(b"\x80", 1, "b")
    assert trie.add_prefix(b"\x00", 1, "z") is AddResult.DUPLICATE_PREFIX
    assert trie.lookup(b"\x00", 1) == "a"
    assert len(trie) == 2


def test_terminal_duplicate_replaces_data():
    trie = Btrie()
    trie.add_prefix(NUMBERED, 40, "first")
    assert trie.add_prefix(NUMBERED, 40, "second") is AddResult.DUPLICATE_PREFIX
    assert trie.lookup(NUMBERED, 40) == "second"
    assert len(trie) == 1


def test_default_route_matches_everything():
    trie = Btrie()
    trie.add_prefix(b"", 0, "default")
    trie.add_prefix(bytes([10, 0, 0, 0]), 8, "ten")
    trie.add_prefix(bytes([10, 1, 0, 0]), 16, "ten-one")
    assert trie.lookup(bytes([192, 0, 2, 1]), 32) == "default"
    assert trie.lookup(bytes([10, 2, 3, 4]), 32) == "ten"
    assert trie.lookup(bytes([10, 1, 3, 4]), 32) == "ten-one"
    assert trie.lookup(b"", 0) == "default"


def test_empty_trie():
    trie = Btrie()
    assert trie.lookup(bytes(16), 128) is None
    assert len(trie) == 0


def test_errors():
    trie = Btrie()
    with pytest.raises(ValueError):
        trie.add_prefix(b"\x00", 8, None)
    with pytest.raises(ValueError):
        trie.add_prefix(b"\x00", 9, "x")
    with pytest.raises(ValueError):
        trie.lookup(b"\x00", 9)
    with pytest.raises(ValueError):
        trie.add_prefix(b"\x00", -1, "x")


def _to_bytes(value: int) -> bytes:
    return value.to_bytes(16, "big")


@pytest.mark.parametrize("seed", [1, 2, 3, 4])
def test_matches_longest_prefix(seed):
    rng = random.Random(seed)
    stored = {}
    trie = Btrie()
    for n in range(300):
        length = rng.choice([0, 1, 3, 5, 8, 12, 16, 24, 31, 32, 48, 64, 96, 127, 128])
        length = rng.randint(0, 128) if n % 3 == 0 else length
        value = rng.getrandbits(128)
        if length < 128:
            value &= ~((1 << (128 - length)) - 1)
        key = (value >> (128 - length), length)
        if key in stored:
            continue
        stored[key] = n
        assert trie.add_prefix(_to_bytes(value), length, n) is AddResult.OKAY
    assert len(trie) == len(stored)

    keys = list(stored)
    probes = [rng.getrandbits(128) for _ in range(300)]
    for top, length in keys[:200]:
        tail = rng.getrandbits(128 - length) if length < 128 else 0
        probes.append((top << (128 - length)) | tail)

    for addr in probes:
        expected = None
        for length in range(128, -1, -1):
            hit = stored.get((addr >> (128 - length), length))
            if hit is not None:
                expected = hit
                break
        assert trie.lookup(_to_bytes(addr), 128) == expected

    for (top, length), n in stored.items():
        assert trie.lookup(_to_bytes(top << (128 - length)), length) == n