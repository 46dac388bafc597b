from __future__ import annotations

from typing import Protocol, runtime_checkable
from urllib.parse import urlsplit


@runtime_checkable
class Store(Protocol):
    """Protocol for the key/value and sorted-set primitives a queue runs on.

    Every operation is a single round trip. ``sorted_set_pop_min`` must be
    atomic: a member is returned to at most one caller.
    """

    async def put(self, key: str, value: str, ttl: float) -> None:
        """Upsert ``value`` under ``key``, expiring after ``ttl`` seconds."""
        ...

    async def get(self, key: str) -> str | None:
        """Return the live value for ``key``, or None when missing or expired."""
        ...

    async def sorted_set_add(self, name: str, score: float, member: str) -> None: ...

    async def sorted_set_pop_min(self, name: str) -> tuple[str, float] | None:
        """Remove and return the lowest scored member, or None when empty."""
        ...

    async def sorted_set_range_by_score(
        self, name: str, min: float, max: float
    ) -> list[str]:
        """Return members scored within ``[min, max]`` in ascending order."""
        ...

    async def sorted_set_remove(self, name: str, member: str) -> bool: ...

    async def set_add(self, name: str, member: str) -> None: ...

    async def set_remove(self, name: str, member: str) -> bool: ...

    async def set_cardinality(self, name: str) -> int: ...

    async def sorted_set_cardinality(self, name: str) -> int: ...

    async def close(self) -> None: ...


async def open_store(url: str) -> Store:
    """Open a store from a connection URL.

    The scheme picks the backend: ``memory://``, ``redis://`` (or ``rediss://``)
    and ``postgres://`` (or ``postgresql://``).

    Example:
        >>> store = await open_store("redis://localhost:6379/2")
    """
    scheme = urlsplit(url).scheme

    match scheme:
        case "memory":
            from ._memory import MemoryStore

            return MemoryStore()
        case "redis" | "rediss":
            from ._redis import RedisStore

            return RedisStore.from_url(url)
        case "postgres" | "postgresql":
            from ._postgres import PostgresStore

            return await PostgresStore.connect(url)
        case _:
            raise ValueError(f"Unsupported store url: {url!r}")
