from __future__ import annotations

from typing import Any

import redis.asyncio as redis


def _decode(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode()

    return value


class RedisStore:
    def __init__(self, client: redis.Redis) -> None:
        self._redis = client

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisStore:
        return cls(redis.from_url(url, decode_responses=True, **kwargs))

    async def put(self, key: str, value: str, ttl: float) -> None:
        await self._redis.set(key, value, px=max(1, int(ttl * 1000)))

    async def get(self, key: str) -> str | None:
        return _decode(await self._redis.get(key))

    async def sorted_set_add(self, name: str, score: float, member: str) -> None:
        await self._redis.zadd(name, {member: score})

    async def sorted_set_pop_min(self, name: str) -> tuple[str, float] | None:
        popped = await self._redis.zpopmin(name)

        if not popped:
            return None

        member, score = popped[0]

        return _decode(member), float(score)

    async def sorted_set_range_by_score(
        self, name: str, min: float, max: float
    ) -> list[str]:
        members = await self._redis.zrangebyscore(name, min, max)

        return [_decode(member) for member in members]

    async def sorted_set_remove(self, name: str, member: str) -> bool:
        return await self._redis.zrem(name, member) > 0

    async def set_add(self, name: str, member: str) -> None:
        await self._redis.sadd(name, member)

    async def set_remove(self, name: str, member: str) -> bool:
        return await self._redis.srem(name, member) > 0

    async def set_cardinality(self, name: str) -> int:
        return await self._redis.scard(name)

    async def sorted_set_cardinality(self, name: str) -> int:
        return await self._redis.zcard(name)

    async def close(self) -> None:
        await self._redis.aclose()
