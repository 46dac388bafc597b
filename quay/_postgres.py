from __future__ import annotations

from functools import lru_cache
from importlib.resources import files
from typing import Any

from psycopg_pool import AsyncConnectionPool


@lru_cache(maxsize=None)
def _read_file(path: str) -> str:
    return files("quay.queries").joinpath(path).read_text(encoding="utf-8")


def load_file(path: str, prefix: str = "public") -> str:
    return _read_file(path).replace("$prefix", prefix)


class PostgresStore:
    """Store backed by three Postgres tables, see ``queries/install.sql``.

    Records are never read past their ``expires_at``; ``prune`` reclaims the
    rows themselves.
    """

    def __init__(self, pool: AsyncConnectionPool, *, prefix: str = "public") -> None:
        self._pool = pool
        self._prefix = prefix

    @classmethod
    async def connect(
        cls, dsn: str, *, prefix: str = "public", **pool_kwargs: Any
    ) -> PostgresStore:
        pool = AsyncConnectionPool(conninfo=dsn, open=False, **pool_kwargs)

        await pool.open()

        return cls(pool, prefix=prefix)

    async def _fetchone(self, path: str, params: dict[str, Any]) -> tuple | None:
        async with self._pool.connection() as conn:
            cursor = await conn.execute(load_file(path, self._prefix), params)

            return await cursor.fetchone()

    async def _fetchall(self, path: str, params: dict[str, Any]) -> list[tuple]:
        async with self._pool.connection() as conn:
            cursor = await conn.execute(load_file(path, self._prefix), params)

            return await cursor.fetchall()

    async def _execute(self, path: str, params: dict[str, Any] | None = None) -> int:
        async with self._pool.connection() as conn:
            cursor = await conn.execute(load_file(path, self._prefix), params)

            return cursor.rowcount

    async def put(self, key: str, value: str, ttl: float) -> None:
        await self._execute(
            "put_record.sql", {"key": key, "value": value, "ttl": float(ttl)}
        )

    async def get(self, key: str) -> str | None:
        row = await self._fetchone("get_record.sql", {"key": key})

        return row[0] if row else None

    async def prune(self) -> int:
        return await self._execute("prune_records.sql")

    async def sorted_set_add(self, name: str, score: float, member: str) -> None:
        await self._execute(
            "add_sorted_member.sql",
            {"name": name, "member": member, "score": float(score)},
        )

    async def sorted_set_pop_min(self, name: str) -> tuple[str, float] | None:
        row = await self._fetchone("pop_min_sorted_member.sql", {"name": name})

        if row is None:
            return None

        member, score = row

        return member, float(score)

    async def sorted_set_range_by_score(
        self, name: str, min: float, max: float
    ) -> list[str]:
        rows = await self._fetchall(
            "range_sorted_members.sql",
            {"name": name, "min": float(min), "max": float(max)},
        )

        return [member for (member,) in rows]

    async def sorted_set_remove(self, name: str, member: str) -> bool:
        count = await self._execute(
            "remove_sorted_member.sql", {"name": name, "member": member}
        )

        return count > 0

    async def set_add(self, name: str, member: str) -> None:
        await self._execute("add_set_member.sql", {"name": name, "member": member})

    async def set_remove(self, name: str, member: str) -> bool:
        count = await self._execute(
            "remove_set_member.sql", {"name": name, "member": member}
        )

        return count > 0

    async def set_cardinality(self, name: str) -> int:
        (count,) = await self._fetchone("count_set_members.sql", {"name": name})

        return count

    async def sorted_set_cardinality(self, name: str) -> int:
        (count,) = await self._fetchone("count_sorted_members.sql", {"name": name})

        return count

    async def close(self) -> None:
        await self._pool.close()
