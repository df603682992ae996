"""Client connections of the server and an in-memory connection for tests."""

from __future__ import annotations

import enum
import socket
import threading
from typing import Any

CLOSE_WAIT_SECONDS = 10.0


class Wait:
    """A counter of unfinished work that can be waited on, with a timeout."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._count = 0

    def add(self, delta: int) -> None:
        """Add delta, which may be negative, to the counter."""
        with self._cond:
            if self._count + delta < 0:
                raise ValueError("negative wait counter")
            self._count += delta
            if self._count == 0:
                self._cond.notify_all()

    def done(self) -> None:
        """Take one off the counter."""
        self.add(-1)

    def wait(self) -> None:
        """Block until the counter is zero."""
        with self._cond:
            self._cond.wait_for(lambda: self._count == 0)

    def wait_with_timeout(self, timeout: float) -> bool:
        """Block until the counter is zero or timeout seconds pass; True on timeout."""
        with self._cond:
            return not self._cond.wait_for(lambda: self._count == 0, timeout)


class _Flag(enum.Flag):
    NONE = 0
    SLAVE = enum.auto()
    MASTER = enum.auto()
    MULTI = enum.auto()


def _format_address(address: Any) -> str:
    if isinstance(address, tuple) and len(address) >= 2:
        return f"{address[0]}:{address[1]}"
    return str(address)


class Connection:
    """A connection with a client, keeping its subscriptions and transaction state."""

    def __init__(self, conn: socket.socket | Any | None = None) -> None:
        self._conn = conn
        self._sending = Wait()
        self._mu = threading.Lock()
        self._flags = _Flag.NONE
        self._subs: dict[str, None] = {}
        self.password = ""
        self._queue: list[list[bytes]] = []
        self._watching: dict[str, int] | None = None
        self.tx_errors: list[Exception] = []
        self.db_index = 0

    def write(self, data: bytes) -> int:
        """Send data to the client and return how many bytes were sent."""
        if not data:
            return 0
        if self._conn is None:
            raise ConnectionError("connection is not open")
        self._sending.add(1)
        try:
            self._conn.sendall(data)
        finally:
            self._sending.done()
        return len(data)

    def close(self) -> None:
        """Wait for pending writes, then close and forget the session state."""
        self._sending.wait_with_timeout(CLOSE_WAIT_SECONDS)
        if self._conn is not None:
            self._conn.close()
        with self._mu:
            self._subs = {}
        self.password = ""
        self._queue = []
        self._watching = None
        self.tx_errors = []
        self.db_index = 0

    def remote_addr(self) -> str:
        """Return the client's address as host:port."""
        if self._conn is None:
            return ""
        return _format_address(self._conn.getpeername())

    def name(self) -> str:
        """Return a name for this connection, its remote address if any."""
        if self._conn is not None:
            return self.remote_addr()
        return ""

    def subscribe(self, channel: str) -> None:
        """Record that this connection listens on channel."""
        with self._mu:
            self._subs[channel] = None

    def unsubscribe(self, channel: str) -> None:
        """Record that this connection no longer listens on channel."""
        with self._mu:
            self._subs.pop(channel, None)

    def subs_count(self) -> int:
        """Return the number of channels listened on."""
        return len(self._subs)

    def get_channels(self) -> list[str]:
        """Return the channels listened on."""
        with self._mu:
            return list(self._subs)

    @property
    def in_multi_state(self) -> bool:
        """Whether a transaction is open on this connection."""
        return bool(self._flags & _Flag.MULTI)

    def set_multi_state(self, state: bool) -> None:
        """Open a transaction, or cancel it and drop its queue and watches."""
        if not state:
            self._watching = None
            self._queue = []
            self._flags &= ~_Flag.MULTI
            return
        self._flags |= _Flag.MULTI

    @property
    def queued_cmd_lines(self) -> list[list[bytes]]:
        """The commands queued in the open transaction."""
        return self._queue

    def enqueue_cmd(self, cmd_line: list[bytes]) -> None:
        """Queue a command of the open transaction."""
        self._queue.append(cmd_line)

    def clear_queued_cmds(self) -> None:
        """Drop the queued commands."""
        self._queue = []

    def add_tx_error(self, err: Exception) -> None:
        """Record a syntax error met within the transaction."""
        self.tx_errors.append(err)

    def get_watching(self) -> dict[str, int]:
        """Return the watched keys and their versions when watching began."""
        if self._watching is None:
            self._watching = {}
        return self._watching

    def set_slave(self) -> None:
        """Mark this as a connection with a replica."""
        self._flags |= _Flag.SLAVE

    @property
    def is_slave(self) -> bool:
        return bool(self._flags & _Flag.SLAVE)

    def set_master(self) -> None:
        """Mark this as a connection with a master."""
        self._flags |= _Flag.MASTER

    @property
    def is_master(self) -> bool:
        return bool(self._flags & _Flag.MASTER)


class FakeConn(Connection):
    """A connection whose writes go to an in-memory buffer that can be read back."""

    def __init__(self) -> None:
        super().__init__(None)
        self._buf = bytearray()
        self._offset = 0
        self._closed = False
        self._buf_cond = threading.Condition(threading.Lock())

    def write(self, data: bytes) -> int:
        """Append data to the buffer."""
        if self._closed:
            raise BrokenPipeError("connection closed")
        with self._buf_cond:
            self._buf.extend(data)
            self._buf_cond.notify_all()
        return len(data)

    def read(self, size: int) -> bytes:
        """Read up to size unread bytes, blocking until some arrive; b"" once closed."""
        with self._buf_cond:
            self._buf_cond.wait_for(
                lambda: self._offset < len(self._buf) or self._closed
            )
            chunk = bytes(self._buf[self._offset : self._offset + size])
            self._offset += len(chunk)
            return chunk

    def clean(self) -> None:
        """Empty the buffer."""
        with self._buf_cond:
            self._buf = bytearray()
            self._offset = 0

    def data(self) -> bytes:
        """Return everything written since the last clean."""
        with self._buf_cond:
            return bytes(self._buf)

    def close(self) -> None:
        """Mark the connection closed and wake any reader."""
        with self._buf_cond:
            self._closed = True
            self._buf_cond.notify_all()

    def remote_addr(self) -> str:
        return ""