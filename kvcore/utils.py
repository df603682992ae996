"""Helpers for building command lines and converting ranges."""

from __future__ import annotations

_BYTES_LIKE = (bytes, bytearray, memoryview)


def to_cmd_line(*args: str) -> list[bytes]:
    """Turn strings into a command line."""
    return [arg.encode() for arg in args]


def to_cmd_line2(command_name: str, *args: str) -> list[bytes]:
    """Turn a command name and string arguments into a command line."""
    return [command_name.encode(), *(arg.encode() for arg in args)]


def to_cmd_line3(command_name: str, *args: bytes) -> list[bytes]:
    """Turn a command name and byte arguments into a command line."""
    return [command_name.encode(), *(bytes(arg) for arg in args)]


def bytes_equals(a: bytes | None, b: bytes | None) -> bool:
    """Compare two byte strings; None equals only None."""
    if (a is None) != (b is None):
        return False
    if a is None:
        return True
    return bytes(a) == bytes(b)


def equals(a: object, b: object) -> bool:
    """Compare two values, comparing byte strings by content."""
    if isinstance(a, _BYTES_LIKE) and isinstance(b, _BYTES_LIKE):
        return bytes_equals(bytes(a), bytes(b))
    return a == b


def convert_range(start: int, end: int, size: int) -> tuple[int, int]:
    """Convert an inclusive range with negative indices to a half-open one.

    Returns (-1, -1) when the range lies outside the sequence.
    """
    if start < -size:
        return -1, -1
    if start < 0:
        start = size + start
    elif start >= size:
        return -1, -1
    if end < -size:
        return -1, -1
    if end < 0:
        end = size + end + 1
    elif end < size:
        end = end + 1
    else:
        end = size
    if start > end:
        return -1, -1
    return start, end