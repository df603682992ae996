"""Striped reader-writer locks keyed by string."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619
_MASK32 = 0xFFFFFFFF


def fnv32(key: str) -> int:
    """Return the 32-bit FNV-1 hash of the key's UTF-8 bytes."""
    value = _FNV_OFFSET
    for byte in key.encode("utf-8", "surrogateescape"):
        value = (value * _FNV_PRIME) & _MASK32
        value ^= byte
    return value


class RWLock:
    """A reader-writer lock; waiting writers hold back new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        """Take a shared lock."""
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        """Give back a shared lock."""
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release of an unlocked read lock")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        """Take the exclusive lock."""
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        """Give back the exclusive lock."""
        with self._cond:
            if not self._writer:
                raise RuntimeError("release of an unlocked write lock")
            self._writer = False
            self._cond.notify_all()


class Locks:
    """A fixed table of reader-writer locks, picked by the hash of a key.

    Locking several keys at once always takes the table slots in ascending
    order and releases them in descending order, so callers that lock many
    keys together cannot deadlock one another.
    """

    def __init__(self, table_size: int) -> None:
        if table_size < 1:
            raise ValueError("table size must be positive")
        self._table = [RWLock() for _ in range(table_size)]

    def _spread(self, key: str) -> int:
        return (len(self._table) - 1) & fnv32(key)

    def _indices(self, keys: Iterable[str], reverse: bool) -> list[int]:
        return sorted({self._spread(key) for key in keys}, reverse=reverse)

    def lock(self, key: str) -> None:
        """Take the exclusive lock for a key."""
        self._table[self._spread(key)].acquire_write()

    def rlock(self, key: str) -> None:
        """Take a shared lock for a key."""
        self._table[self._spread(key)].acquire_read()

    def unlock(self, key: str) -> None:
        """Give back the exclusive lock for a key."""
        self._table[self._spread(key)].release_write()

    def runlock(self, key: str) -> None:
        """Give back a shared lock for a key."""
        self._table[self._spread(key)].release_read()

    def locks(self, *keys: str) -> None:
        """Take exclusive locks for several keys."""
        for index in self._indices(keys, reverse=False):
            self._table[index].acquire_write()

    def rlocks(self, *keys: str) -> None:
        """Take shared locks for several keys."""
        for index in self._indices(keys, reverse=False):
            self._table[index].acquire_read()

    def unlocks(self, *keys: str) -> None:
        """Give back exclusive locks for several keys."""
        for index in self._indices(keys, reverse=True):
            self._table[index].release_write()

    def runlocks(self, *keys: str) -> None:
        """Give back shared locks for several keys."""
        for index in self._indices(keys, reverse=True):
            self._table[index].release_read()

    def rw_locks(
        self, write_keys: Iterable[str] | None, read_keys: Iterable[str] | None
    ) -> None:
        """Lock write keys exclusively and read keys shared; duplicates are allowed."""
        write_keys = list(write_keys or ())
        read_keys = list(read_keys or ())
        writes = {self._spread(key) for key in write_keys}
        for index in self._indices(write_keys + read_keys, reverse=False):
            if index in writes:
                self._table[index].acquire_write()
            else:
                self._table[index].acquire_read()

    def rw_unlocks(
        self, write_keys: Iterable[str] | None, read_keys: Iterable[str] | None
    ) -> None:
        """Release what rw_locks took for the same keys."""
        write_keys = list(write_keys or ())
        read_keys = list(read_keys or ())
        writes = {self._spread(key) for key in write_keys}
        for index in self._indices(write_keys + read_keys, reverse=True):
            if index in writes:
                self._table[index].release_write()
            else:
                self._table[index].release_read()

    @contextmanager
    def locked(self, *keys: str) -> Iterator[None]:
        """Hold exclusive locks for the keys within a with block."""
        self.locks(*keys)
        try:
            yield
        finally:
            self.unlocks(*keys)