import asyncio
import os
from uuid import uuid4

import pytest

from quay import MemoryStore, Queue, telemetry
from quay.backoff import Exponential

BACKENDS = ["memory", "redis", "postgres"]


@pytest.fixture(autouse=True)
def telemetry_isolation():
    backup = dict(telemetry._handlers)

    try:
        yield
    finally:
        telemetry._handlers.clear()
        telemetry._handlers.update(backup)


@pytest.fixture
def namespace():
    return f"quay-test-{uuid4().hex[:8]}"


async def _redis_store(namespace):
    from quay._redis import RedisStore

    url = os.getenv("QUAY_TEST_REDIS_URL")

    if not url:
        pytest.skip("QUAY_TEST_REDIS_URL is not set")

    store = RedisStore.from_url(url)

    async def cleanup():
        async for key in store._redis.scan_iter(f"{namespace}*"):
            await store._redis.delete(key)

        await store.close()

    return store, cleanup


async def _postgres_store(namespace):
    from psycopg_pool import AsyncConnectionPool

    from quay import schema
    from quay._postgres import PostgresStore

    dsn = os.getenv("QUAY_TEST_DSN")

    if not dsn:
        pytest.skip("QUAY_TEST_DSN is not set")

    prefix = namespace.replace("-", "_")
    pool = AsyncConnectionPool(conninfo=dsn, open=False)

    await pool.open()
    await schema.install(pool, prefix)

    async def cleanup():
        await schema.uninstall(pool, prefix)

        async with pool.connection() as conn:
            await conn.execute(f"DROP SCHEMA IF EXISTS {prefix}")

        await pool.close()

    return PostgresStore(pool, prefix=prefix), cleanup


@pytest.fixture(params=BACKENDS)
async def store(request, namespace):
    match request.param:
        case "memory":
            yield MemoryStore()
        case "redis":
            store, cleanup = await _redis_store(namespace)

            yield store

            await cleanup()
        case "postgres":
            store, cleanup = await _postgres_store(namespace)

            yield store

            await cleanup()


@pytest.fixture
async def make_queue(store, namespace):
    queues = []

    def build(store=store, **options):
        options = {
            "poll_interval": 0.01,
            "error_interval": 0.05,
            "backoff": Exponential(0.01),
            "prefix": namespace,
            **options,
        }

        queue = Queue(store, **options)
        queues.append(queue)

        return queue

    yield build

    for queue in queues:
        await queue.stop()


@pytest.fixture
def queue(make_queue):
    return make_queue()


async def settle(queue, job_id, *, timeout=3.0):
    async with asyncio.timeout(timeout):
        while True:
            job = await queue.get_job(job_id)

            if job is not None and job.is_terminal:
                return job

            await asyncio.sleep(0.01)


async def wait_for(predicate, *, timeout=3.0):
    async with asyncio.timeout(timeout):
        while not await predicate():
            await asyncio.sleep(0.01)


@pytest.fixture
def settled():
    return settle


@pytest.fixture
def waiter():
    return wait_for
