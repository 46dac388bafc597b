from __future__ import annotations

import time
from collections import defaultdict
from typing import Callable


class MemoryStore:
    """In-process store for tests and single process deployments.

    Nothing awaits inside an operation, so each one is atomic with respect to
    other tasks on the same event loop. Ties in a sorted set pop in insertion
    order.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._values: dict[str, tuple[str, float]] = {}
        self._sorted: defaultdict[str, dict[str, float]] = defaultdict(dict)
        self._sets: defaultdict[str, set[str]] = defaultdict(set)

    async def put(self, key: str, value: str, ttl: float) -> None:
        self._values[key] = (value, self._clock() + ttl)

    async def get(self, key: str) -> str | None:
        entry = self._values.get(key)

        if entry is None:
            return None

        value, expires_at = entry

        if expires_at <= self._clock():
            del self._values[key]
            return None

        return value

    async def sorted_set_add(self, name: str, score: float, member: str) -> None:
        self._sorted[name][member] = float(score)

    async def sorted_set_pop_min(self, name: str) -> tuple[str, float] | None:
        members = self._sorted.get(name)

        if not members:
            return None

        member = min(members, key=members.__getitem__)

        return member, members.pop(member)

    async def sorted_set_range_by_score(
        self, name: str, min: float, max: float
    ) -> list[str]:
        members = self._sorted.get(name, {})
        matches = [item for item in members.items() if min <= item[1] <= max]

        return [member for member, _score in sorted(matches, key=lambda item: item[1])]

    async def sorted_set_remove(self, name: str, member: str) -> bool:
        return self._sorted[name].pop(member, None) is not None

    async def set_add(self, name: str, member: str) -> None:
        self._sets[name].add(member)

    async def set_remove(self, name: str, member: str) -> bool:
        members = self._sets[name]

        if member not in members:
            return False

        members.discard(member)

        return True

    async def set_cardinality(self, name: str) -> int:
        return len(self._sets.get(name, ()))

    async def sorted_set_cardinality(self, name: str) -> int:
        return len(self._sorted.get(name, ()))

    async def close(self) -> None:
        pass
