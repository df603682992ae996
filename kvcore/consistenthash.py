"""A consistent hash ring mapping keys to nodes."""

from __future__ import annotations

import bisect
import zlib
from collections.abc import Callable

HashFunc = Callable[[bytes], int]


def get_partition_key(key: str) -> str:
    """Return the hash tag of key, the text inside its first {...}, or key itself."""
    begin = key.find("{")
    if begin == -1:
        return key
    end = key.find("}")
    if end == -1 or end == begin + 1 or end < begin:
        return key
    return key[begin + 1 : end]


class HashRing:
    """Nodes placed on a hash circle, each at several replica points."""

    def __init__(self, replicas: int, hash_func: HashFunc | None = None) -> None:
        self._replicas = replicas
        self._hash_func: HashFunc = hash_func or zlib.crc32
        self._points: list[int] = []
        self._owners: dict[int, str] = {}

    def is_empty(self) -> bool:
        """Tell whether no node has been added."""
        return not self._points

    def add_node(self, *keys: str) -> None:
        """Place the given nodes on the ring; empty names are skipped."""
        for key in keys:
            if not key:
                continue
            for i in range(self._replicas):
                point = self._hash_func((str(i) + key).encode())
                self._points.append(point)
                self._owners[point] = key
        self._points.sort()

    def pick_node(self, key: str) -> str | None:
        """Return the node owning key, or None when the ring is empty."""
        if self.is_empty():
            return None
        point = self._hash_func(get_partition_key(key).encode())
        index = bisect.bisect_left(self._points, point)
        if index == len(self._points):
            index = 0
        return self._owners[self._points[index]]