"""Wire protocol, parser, dictionaries, locks, sets, wildcards, geohash and connections for a Redis-compatible key-value server."""

__version__ = "0.1.0"