"""String-keyed dictionaries: a plain one and a sharded thread-safe one."""

from __future__ import annotations

import abc
import random
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from kvcore.lockmap import RWLock, fnv32

Consumer = Callable[[str, Any], bool]


def _check_limit(limit: int) -> None:
    if limit < 0:
        raise ValueError("limit must not be negative")


class Dict(abc.ABC):
    """A mapping from string keys to values.

    Mutators return the number of entries they inserted, updated or
    removed, as the commands built on top report those counts.
    """

    @abc.abstractmethod
    def get(self, key: str) -> Any:
        """Return the value bound to key, or None."""

    @abc.abstractmethod
    def __contains__(self, key: object) -> bool:
        """Tell whether key is bound."""

    @abc.abstractmethod
    def __len__(self) -> int:
        """Return the number of entries."""

    @abc.abstractmethod
    def put(self, key: str, val: Any) -> int:
        """Bind key to val; return 1 if the key is new, else 0."""

    @abc.abstractmethod
    def put_if_absent(self, key: str, val: Any) -> int:
        """Bind key only if it is unbound; return 1 if it was bound."""

    @abc.abstractmethod
    def put_if_exists(self, key: str, val: Any) -> int:
        """Rebind key only if it is bound; return 1 if it was updated."""

    @abc.abstractmethod
    def remove(self, key: str) -> tuple[Any, int]:
        """Unbind key; return its old value and 1, or (None, 0)."""

    @abc.abstractmethod
    def for_each(self, consumer: Consumer) -> None:
        """Call consumer(key, value) for each entry until it returns False."""

    @abc.abstractmethod
    def keys(self) -> list[str]:
        """Return all keys."""

    @abc.abstractmethod
    def random_keys(self, limit: int) -> list[str]:
        """Return up to limit random keys, possibly repeated."""

    @abc.abstractmethod
    def random_distinct_keys(self, limit: int) -> list[str]:
        """Return up to limit distinct random keys."""

    @abc.abstractmethod
    def clear(self) -> None:
        """Remove every entry."""

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())


class SimpleDict(Dict):
    """A dictionary without any locking."""

    def __init__(self) -> None:
        self._m: dict[str, Any] = {}

    def get(self, key: str) -> Any:
        return self._m.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._m

    def __len__(self) -> int:
        return len(self._m)

    def put(self, key: str, val: Any) -> int:
        existed = key in self._m
        self._m[key] = val
        return 0 if existed else 1

    def put_if_absent(self, key: str, val: Any) -> int:
        if key in self._m:
            return 0
        self._m[key] = val
        return 1

    def put_if_exists(self, key: str, val: Any) -> int:
        if key in self._m:
            self._m[key] = val
            return 1
        return 0

    def remove(self, key: str) -> tuple[Any, int]:
        if key in self._m:
            return self._m.pop(key), 1
        return None, 0

    def for_each(self, consumer: Consumer) -> None:
        for key, val in list(self._m.items()):
            if not consumer(key, val):
                break

    def keys(self) -> list[str]:
        return list(self._m)

    def random_keys(self, limit: int) -> list[str]:
        _check_limit(limit)
        if not self._m:
            return []
        return random.choices(list(self._m), k=limit)

    def random_distinct_keys(self, limit: int) -> list[str]:
        _check_limit(limit)
        return random.sample(list(self._m), min(limit, len(self._m)))

    def clear(self) -> None:
        self._m = {}


class _Shard:
    __slots__ = ("m", "lock")

    def __init__(self) -> None:
        self.m: dict[str, Any] = {}
        self.lock = RWLock()

    @contextmanager
    def reading(self) -> Iterator[None]:
        self.lock.acquire_read()
        try:
            yield
        finally:
            self.lock.release_read()

    @contextmanager
    def writing(self) -> Iterator[None]:
        self.lock.acquire_write()
        try:
            yield
        finally:
            self.lock.release_write()

    def random_key(self) -> str | None:
        with self.reading():
            if not self.m:
                return None
            return random.choice(list(self.m))


def _compute_capacity(param: int) -> int:
    if param <= 16:
        return 16
    return 1 << (param - 1).bit_length()


class ConcurrentDict(Dict):
    """A thread-safe dictionary split into shards, each with its own lock.

    The *_with_lock methods take no lock themselves; the caller holds the
    shard locks through rw_locks.
    """

    def __init__(self, shard_count: int = 16) -> None:
        self._shard_count = _compute_capacity(shard_count)
        self._table = [_Shard() for _ in range(self._shard_count)]

    def _spread(self, key: str) -> int:
        return (len(self._table) - 1) & fnv32(key)

    def _shard(self, key: str) -> _Shard:
        return self._table[self._spread(key)]

    def get(self, key: str) -> Any:
        shard = self._shard(key)
        with shard.reading():
            return shard.m.get(key)

    def get_with_lock(self, key: str) -> Any:
        return self._shard(key).m.get(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        shard = self._shard(key)
        with shard.reading():
            return key in shard.m

    def __len__(self) -> int:
        return sum(len(shard.m) for shard in self._table)

    @staticmethod
    def _put(shard: _Shard, key: str, val: Any) -> int:
        existed = key in shard.m
        shard.m[key] = val
        return 0 if existed else 1

    @staticmethod
    def _put_if_absent(shard: _Shard, key: str, val: Any) -> int:
        if key in shard.m:
            return 0
        shard.m[key] = val
        return 1

    @staticmethod
    def _put_if_exists(shard: _Shard, key: str, val: Any) -> int:
        if key in shard.m:
            shard.m[key] = val
            return 1
        return 0

    @staticmethod
    def _remove(shard: _Shard, key: str) -> tuple[Any, int]:
        if key in shard.m:
            return shard.m.pop(key), 1
        return None, 0

    def put(self, key: str, val: Any) -> int:
        shard = self._shard(key)
        with shard.writing():
            return self._put(shard, key, val)

    def put_with_lock(self, key: str, val: Any) -> int:
        return self._put(self._shard(key), key, val)

    def put_if_absent(self, key: str, val: Any) -> int:
        shard = self._shard(key)
        with shard.writing():
            return self._put_if_absent(shard, key, val)

    def put_if_absent_with_lock(self, key: str, val: Any) -> int:
        return self._put_if_absent(self._shard(key), key, val)

    def put_if_exists(self, key: str, val: Any) -> int:
        shard = self._shard(key)
        with shard.writing():
            return self._put_if_exists(shard, key, val)

    def put_if_exists_with_lock(self, key: str, val: Any) -> int:
        return self._put_if_exists(self._shard(key), key, val)

    def remove(self, key: str) -> tuple[Any, int]:
        shard = self._shard(key)
        with shard.writing():
            return self._remove(shard, key)

    def remove_with_lock(self, key: str) -> tuple[Any, int]:
        return self._remove(self._shard(key), key)

    def for_each(self, consumer: Consumer) -> None:
        """Visit entries shard by shard; entries added meanwhile may be missed."""
        for shard in self._table:
            with shard.reading():
                for key, val in list(shard.m.items()):
                    if not consumer(key, val):
                        return

    def keys(self) -> list[str]:
        result: list[str] = []

        def collect(key: str, _val: Any) -> bool:
            result.append(key)
            return True

        self.for_each(collect)
        return result

    def random_keys(self, limit: int) -> list[str]:
        _check_limit(limit)
        if limit >= len(self):
            return self.keys()
        result: list[str] = []
        while len(result) < limit:
            key = random.choice(self._table).random_key()
            if key is not None:
                result.append(key)
        return result

    def random_distinct_keys(self, limit: int) -> list[str]:
        _check_limit(limit)
        if limit >= len(self):
            return self.keys()
        result: set[str] = set()
        while len(result) < limit:
            key = random.choice(self._table).random_key()
            if key is not None:
                result.add(key)
        return list(result)

    def clear(self) -> None:
        self._table = [_Shard() for _ in range(self._shard_count)]

    def _split(
        self, write_keys: Iterable[str] | None, read_keys: Iterable[str] | None
    ) -> tuple[set[int], set[int]]:
        writes = {self._spread(key) for key in write_keys or ()}
        reads = {self._spread(key) for key in read_keys or ()}
        return writes, writes | reads

    def rw_locks(
        self, write_keys: Iterable[str] | None, read_keys: Iterable[str] | None
    ) -> None:
        """Lock shards of write keys exclusively and of read keys shared."""
        writes, every = self._split(write_keys, read_keys)
        for index in sorted(every):
            if index in writes:
                self._table[index].lock.acquire_write()
            else:
                self._table[index].lock.acquire_read()

    def rw_unlocks(
        self, write_keys: Iterable[str] | None, read_keys: Iterable[str] | None
    ) -> None:
        """Release what rw_locks took for the same keys."""
        writes, every = self._split(write_keys, read_keys)
        for index in sorted(every, reverse=True):
            if index in writes:
                self._table[index].lock.release_write()
            else:
                self._table[index].lock.release_read()