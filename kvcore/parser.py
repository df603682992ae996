"""Streaming parser for the serialization protocol."""

from __future__ import annotations

import io
import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO

from kvcore.protocol import (
    BulkReply,
    EmptyMultiBulkReply,
    IntReply,
    MultiBulkReply,
    NullBulkReply,
    Reply,
    StandardErrReply,
    StatusReply,
)

_INT_RE = re.compile(rb"[+-]?[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


class ProtocolError(Exception):
    """Malformed data in a protocol stream."""


@dataclass(frozen=True)
class Payload:
    """One parsed reply, or the error met while parsing."""

    data: Reply | None = None
    err: Exception | None = None


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


def _parse_int(raw: bytes) -> int | None:
    if not _INT_RE.fullmatch(raw):
        return None
    value = int(raw)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return None
    return value


def _protocol_error(msg: str) -> Payload:
    return Payload(err=ProtocolError("protocol error: " + msg))


def _read_exact(reader: BinaryIO, size: int) -> bytes:
    buf = bytearray()
    while len(buf) < size:
        chunk = reader.read(size - len(buf))
        if not chunk:
            raise EOFError("unexpected EOF")
        buf += chunk
    return bytes(buf)


def _parse_bulk(header: bytes, reader: BinaryIO) -> Payload:
    size = _parse_int(header[1:])
    if size is None or size < -1:
        return _protocol_error("illegal bulk string header: " + _decode(header))
    if size == -1:
        return Payload(NullBulkReply())
    body = _read_exact(reader, size + 2)
    return Payload(BulkReply(body[:-2]))


def _parse_rdb_bulk(reader: BinaryIO) -> Payload:
    # no CRLF follows the RDB body, so it is read by length alone
    header = reader.readline().removesuffix(b"\r\n")
    if not header:
        raise ProtocolError("empty header")
    size = _parse_int(header[1:])
    if size is None or size <= 0:
        raise ProtocolError("illegal bulk header: " + _decode(header))
    return Payload(BulkReply(_read_exact(reader, size)))


def _parse_array(header: bytes, reader: BinaryIO) -> Iterator[Payload]:
    count = _parse_int(header[1:])
    if count is None or count < 0:
        yield _protocol_error("illegal array header " + _decode(header[1:]))
        return
    if count == 0:
        yield Payload(EmptyMultiBulkReply())
        return
    lines: list[bytes | None] = []
    for _ in range(count):
        line = reader.readline()
        if not line.endswith(b"\n"):
            raise EOFError("unexpected EOF")
        if len(line) < 4 or line[-2:-1] != b"\r" or line[:1] != b"$":
            yield _protocol_error("illegal bulk string header " + _decode(line))
            break
        size = _parse_int(line[1:-2])
        if size is None or size < -1:
            yield _protocol_error("illegal bulk string length " + _decode(line))
            break
        if size == -1:
            lines.append(b"")
        else:
            lines.append(_read_exact(reader, size + 2)[:-2])
    yield Payload(MultiBulkReply(lines))


def parse_stream(reader: BinaryIO) -> Iterator[Payload]:
    """Yield payloads read from a binary stream until it ends.

    Malformed items yield a payload carrying a ProtocolError and parsing
    goes on; a truncated body or a read failure yields its error and ends
    the stream.
    """
    while True:
        try:
            line = reader.readline()
            if not line.endswith(b"\n"):
                return
            if len(line) <= 2 or line[-2:-1] != b"\r":
                # empty lines occur within replication traffic
                continue
            line = line[:-2]
            kind = line[:1]
            if kind == b"+":
                content = _decode(line[1:])
                yield Payload(StatusReply(content))
                if content.startswith("FULLRESYNC"):
                    yield _parse_rdb_bulk(reader)
            elif kind == b"-":
                yield Payload(StandardErrReply(_decode(line[1:])))
            elif kind == b":":
                value = _parse_int(line[1:])
                if value is None:
                    yield _protocol_error("illegal number " + _decode(line[1:]))
                else:
                    yield Payload(IntReply(value))
            elif kind == b"$":
                yield _parse_bulk(line, reader)
            elif kind == b"*":
                yield from _parse_array(line, reader)
            else:
                yield Payload(MultiBulkReply(list(line.split(b" "))))
        except (EOFError, ProtocolError, OSError) as exc:
            yield Payload(err=exc)
            return


def parse_bytes(data: bytes) -> list[Reply]:
    """Parse every reply in data, raising the first error met."""
    results: list[Reply] = []
    for payload in parse_stream(io.BytesIO(data)):
        if payload.err is not None:
            raise payload.err
        if payload.data is not None:
            results.append(payload.data)
    return results


def parse_one(data: bytes) -> Reply:
    """Parse the first reply in data."""
    payload = next(parse_stream(io.BytesIO(data)), None)
    if payload is None:
        raise EOFError("no protocol")
    if payload.err is not None:
        raise payload.err
    assert payload.data is not None
    return payload.data