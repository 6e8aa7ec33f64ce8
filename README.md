# rbldkit

Pure-Python building blocks for DNS blocklist (DNSBL) servers. There are
no dependencies outside the standard library.

## Modules

### `rbldkit.dnsname`

This module handles domain names in wire format: length-prefixed labels
that end with a zero byte.

- `text_to_dn(name, max_size=255)` parses dotted text into wire format.
  It accepts `\c` and `\DDD` escapes.
- `dn_to_text(dn, max_size=None)` renders a name as dotted text. It
  escapes zone-file specials such as `"`, `.`, `;`, `\`, `@` and `$`, and
  writes other unprintable bytes as `\DDD`. The root name comes out as
  `"."`.
- `dn_equal` compares two names without regard to ASCII case.
- `dn_labels` counts the labels of a name.
- `dn_length` gives the length of a name, counting the final zero byte.
- `dn_reverse` reverses the order of the labels.
- `dn_lower` lower-cases a name. `lowercase` lower-cases raw bytes.
- `find_name(table, name)` looks up a name in a mapping keyed by
  upper-case names. The lookup ignores case. It returns `None` when the
  name is missing or too long.

Malformed, oversized or unterminated names raise `DomainNameError`, a
subclass of `ValueError`.

### `rbldkit.ip4addr`

IPv4 addresses are handled as 32-bit integers.

- `ip4_prefix(text)` parses one to four dotted octets. The result's
  `bits` is 8, 16, 24 or 32.
- `ip4_cidr(text)` parses `prefix[/bits]`. It rejects a bare number, and
  it keeps the host part. `.network` clears the host part.
- `ip4_range(text)` parses `a-b`, `prefix/bits` or a prefix into an
  `Ip4Range` with inclusive `first` and `last`. A short second end such
  as `127.0.0.1-2` is allowed.
- `ip4_addr(text)` parses an address the traditional way, so `127.1`
  means `127.0.0.1`.
- `ip4_mask(bits)` returns the netmask for a prefix length.
- `ip4_atos(addr)` formats an address as a dotted quad.

Every parser takes `allow_tail=False`. When it is true, trailing text is
allowed and `end` gives the offset where parsing stopped. Errors raise
`AddressParseError`, a `ValueError` whose `position` attribute gives the
offset of the problem.

### `rbldkit.ip6addr`

IPv6 addresses are 16-byte `bytes` values.

- `ip6_prefix(text)` parses colon-separated 16-bit fields and supports
  `::`. The result's `bits` is a multiple of 16, or 128 when `::` is
  present.
- `ip6_cidr(text)` parses `prefix[/bits]` and rejects a bare single
  field.
- `ip6_mask(addr, bits)` returns the masked address together with a flag
  that tells whether any host bit was set.
- `ip6_atos(addr)` formats an address in compressed form, for example
  `1:0:0:4::8`.

### `rbldkit.istream`

`InputStream` wraps a binary file object and reads lines through a
64 KiB buffer.

- `getline(delims=b"\n")` returns the next line, delimiter included.
  Any byte of `delims` ends a line. At end of input it returns `b""`.
  A line longer than half the buffer comes back in pieces.
- Iterating over the stream yields lines.
- `compressed()` tells whether the input starts with the gzip magic.
- `uncompress_setup()` switches the stream to gzip decompression. It
  checks the CRC and length in the trailer.
- `fill()` and `ensure_bytes(n)` give lower-level control of the buffer.

`open_stream(path)` opens a file and turns on decompression when the file
is gzip. The stream is a context manager, and `close()` closes the file.
Corrupt or truncated gzip data raises `StreamError`, a subclass of
`OSError`.

### `rbldkit.btrie`

`Btrie` is a level-compressed tree-bitmap trie for longest-prefix
matching on bit strings such as IP networks. Prefixes are byte strings
with a length in bits.

- `add_prefix(prefix, length, data)` returns `AddResult.OKAY` or
  `AddResult.DUPLICATE_PREFIX`. `data` must not be `None`.
- `lookup(prefix, length)` returns the data of the longest stored prefix,
  or `None` when no stored prefix matches.
- `len(trie)` is the number of entries.
- `stats()` returns a summary such as `ents=2 tbm=1 lc=2`.

The node types and the restructuring operations live in `rbldkit.btnode`.
The bit helpers live in `rbldkit.bits`.

## Example

```python
from rbldkit.btrie import Btrie
from rbldkit.ip4addr import ip4_cidr

trie = Btrie()
parsed = ip4_cidr("10.0.0.0/8")
trie.add_prefix(parsed.network.to_bytes(4, "big"), parsed.bits, "listed")

print(trie.lookup(bytes([10, 1, 2, 3]), 32))   # listed
print(trie.lookup(bytes([192, 0, 2, 1]), 32))  # None
print(trie.stats())
```

Reading a list file that may be gzip-compressed:

```python
from rbldkit.istream import open_stream

with open_stream("zone.txt.gz") as stream:
    for line in stream:
        ...
```

## What it does not do

This is a library only:

- It has no command and no DNS server.
- It does not load zone data.
- A `Btrie` can only add and look up entries. It cannot list, walk,
  dump or remove them.

## Tests

```
pip install .[test]
pytest
```