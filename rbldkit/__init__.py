"""Building blocks for DNS blocklist servers: domain names, IPv4/IPv6 addresses, input streams and a prefix trie."""

__version__ = "1.0.0"