[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rbldkit"
version = "1.0.0"
description = "Building blocks for DNS blocklist servers: wire-format domain names, IPv4/IPv6 parsing, buffered gzip-aware input streams and a longest-prefix-match trie"
requires-python = ">=3.10"
dependencies = []
keywords = ["dns", "dnsbl", "rbl", "trie", "ipv4", "ipv6", "cidr", "domain-name", "gzip"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rbldkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
