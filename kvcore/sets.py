"""An unordered set of strings with set algebra helpers."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterator

from kvcore.dicts import SimpleDict


class Set:
    """A set of string members backed by a hash table."""

    def __init__(self, *members: str) -> None:
        self._dict = SimpleDict()
        for member in members:
            self.add(member)

    def __len__(self) -> int:
        return len(self._dict)

    def __contains__(self, val: object) -> bool:
        return isinstance(val, str) and val in self._dict

    def __iter__(self) -> Iterator[str]:
        return iter(self._dict.keys())

    def __repr__(self) -> str:
        return f"Set({', '.join(repr(m) for m in self)})"

    def add(self, val: str) -> int:
        """Add a member; return 1 if it is new, else 0."""
        return self._dict.put(val, None)

    def remove(self, val: str) -> int:
        """Remove a member; return 1 if it was present, else 0."""
        _, removed = self._dict.remove(val)
        return removed

    def has(self, val: str) -> bool:
        """Tell whether val is a member."""
        return val in self._dict

    def to_list(self) -> list[str]:
        """Return the members as a list."""
        return self._dict.keys()

    def for_each(self, consumer: Callable[[str], bool]) -> None:
        """Call consumer(member) for each member until it returns False."""
        self._dict.for_each(lambda key, _val: consumer(key))

    def shallow_copy(self) -> Set:
        """Return a new set holding the same members."""
        return Set(*self)

    def random_members(self, limit: int) -> list[str]:
        """Return limit random members, possibly repeated."""
        return self._dict.random_keys(limit)

    def random_distinct_members(self, limit: int) -> list[str]:
        """Return up to limit distinct random members."""
        return self._dict.random_distinct_keys(limit)


def intersect(*sets: Set) -> Set:
    """Return the members found in every given set."""
    result = Set()
    if not sets:
        return result
    counts: Counter[str] = Counter()
    for current in sets:
        counts.update(current)
    for member, count in counts.items():
        if count == len(sets):
            result.add(member)
    return result


def union(*sets: Set) -> Set:
    """Return the members found in any given set."""
    result = Set()
    for current in sets:
        for member in current:
            result.add(member)
    return result


def diff(*sets: Set) -> Set:
    """Return the members of the first set found in none of the others."""
    if not sets:
        return Set()
    result = sets[0].shallow_copy()
    for current in sets[1:]:
        for member in current:
            result.remove(member)
        if len(result) == 0:
            break
    return result