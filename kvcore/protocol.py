"""Replies of the serialization protocol and their wire encoding."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field

CRLF = b"\r\n"

_PONG_BYTES = b"+PONG\r\n"
_OK_BYTES = b"+OK\r\n"
_NULL_BULK_BYTES = b"$-1\r\n"
_EMPTY_MULTI_BULK_BYTES = b"*0\r\n"
_QUEUED_BYTES = b"+QUEUED\r\n"


def _encode(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


class Reply(abc.ABC):
    """A message of the serialization protocol."""

    @abc.abstractmethod
    def to_bytes(self) -> bytes:
        """Return the wire form of this reply."""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Reply):
            return NotImplemented
        return type(self) is type(other) and self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash((type(self), self.to_bytes()))


class _FixedReply(Reply):
    _wire: bytes = b""

    def to_bytes(self) -> bytes:
        return self._wire

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PongReply(_FixedReply):
    """+PONG"""

    _wire = _PONG_BYTES


class OkReply(_FixedReply):
    """+OK"""

    _wire = _OK_BYTES


class NullBulkReply(_FixedReply):
    """A missing bulk string."""

    _wire = _NULL_BULK_BYTES


class EmptyMultiBulkReply(_FixedReply):
    """An empty list."""

    _wire = _EMPTY_MULTI_BULK_BYTES


class NoReply(_FixedReply):
    """Nothing at all, for commands such as subscribe."""

    _wire = b""


class QueuedReply(_FixedReply):
    """+QUEUED"""

    _wire = _QUEUED_BYTES


@dataclass(eq=False)
class BulkReply(Reply):
    """A binary-safe string; None stands for the null bulk string."""

    arg: bytes | None

    def to_bytes(self) -> bytes:
        if self.arg is None:
            return _NULL_BULK_BYTES
        return b"$%d\r\n" % len(self.arg) + bytes(self.arg) + CRLF


@dataclass(eq=False)
class MultiBulkReply(Reply):
    """A list of binary-safe strings."""

    args: list[bytes | None] = field(default_factory=list)

    def to_bytes(self) -> bytes:
        parts = [b"*%d\r\n" % len(self.args)]
        for arg in self.args:
            if arg is None:
                parts.append(b"$-1\r\n")
            else:
                parts.append(b"$%d\r\n" % len(arg) + bytes(arg) + CRLF)
        return b"".join(parts)


@dataclass(eq=False)
class MultiRawReply(Reply):
    """A list of arbitrary replies, nested as they are."""

    replies: list[Reply] = field(default_factory=list)

    def to_bytes(self) -> bytes:
        head = b"*%d\r\n" % len(self.replies)
        return head + b"".join(reply.to_bytes() for reply in self.replies)


@dataclass(eq=False)
class StatusReply(Reply):
    """A simple status string."""

    status: str

    def to_bytes(self) -> bytes:
        return b"+" + _encode(self.status) + CRLF


@dataclass(eq=False)
class IntReply(Reply):
    """A 64-bit integer."""

    code: int

    def to_bytes(self) -> bytes:
        return b":%d\r\n" % self.code


class ErrorReply(Reply, Exception):
    """A reply reporting an error; it may also be raised."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def to_bytes(self) -> bytes:
        return b"-" + _encode(self.message) + CRLF


class StandardErrReply(ErrorReply):
    """A server error carrying a free-form status."""

    @property
    def status(self) -> str:
        return self.message


class UnknownErrReply(ErrorReply):
    """An unknown error."""

    def __init__(self) -> None:
        super().__init__("Err unknown")


class ArgNumErrReply(ErrorReply):
    """A command was given the wrong number of arguments."""

    def __init__(self, cmd: str) -> None:
        super().__init__("ERR wrong number of arguments for '" + cmd + "' command")
        self.cmd = cmd


class SyntaxErrReply(ErrorReply):
    """Unexpected arguments."""

    def __init__(self) -> None:
        super().__init__("Err syntax error")


class WrongTypeErrReply(ErrorReply):
    """An operation against a key holding the wrong kind of value."""

    def __init__(self) -> None:
        super().__init__("WRONGTYPE Operation against a key holding the wrong kind of value")


class ProtocolErrReply(ErrorReply):
    """An unexpected byte was met while parsing a request."""

    def __init__(self, msg: str) -> None:
        super().__init__("ERR Protocol error '" + msg + "' command")
        self.msg = msg

    def to_bytes(self) -> bytes:
        return b"-ERR Protocol error: '" + _encode(self.msg) + b"'" + CRLF


def is_ok_reply(reply: Reply) -> bool:
    """Tell whether the reply is +OK."""
    return reply.to_bytes() == _OK_BYTES


def is_error_reply(reply: Reply) -> bool:
    """Tell whether the reply is an error."""
    return reply.to_bytes().startswith(b"-")


def is_empty_multi_bulk_reply(reply: Reply) -> bool:
    """Tell whether the reply is an empty list."""
    return reply.to_bytes() == _EMPTY_MULTI_BULK_BYTES