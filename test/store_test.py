import asyncio
import time

import pytest

from quay import Job, MemoryStore, Store, open_store
from quay._keys import Keys
from quay._query import Query
from quay.scoring import PRIORITY_STEP


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestStoreContract:
    async def test_stores_satisfy_the_protocol(self, store):
        assert isinstance(store, Store)

    async def test_put_and_get(self, store, namespace):
        key = f"{namespace}:job:1"

        assert await store.get(key) is None

        await store.put(key, "alpha", 60)
        assert await store.get(key) == "alpha"

        await store.put(key, "beta", 60)
        assert await store.get(key) == "beta"

    async def test_values_expire_after_ttl(self, store, namespace):
        key = f"{namespace}:job:2"

        await store.put(key, "short", 0.1)
        await asyncio.sleep(0.3)

        assert await store.get(key) is None

    async def test_pop_min_returns_lowest_score_first(self, store, namespace):
        name = f"{namespace}:queue:pending"

        await store.sorted_set_add(name, 30, "c")
        await store.sorted_set_add(name, 10, "a")
        await store.sorted_set_add(name, 20, "b")

        assert await store.sorted_set_cardinality(name) == 3
        assert await store.sorted_set_pop_min(name) == ("a", 10.0)
        assert await store.sorted_set_pop_min(name) == ("b", 20.0)
        assert await store.sorted_set_pop_min(name) == ("c", 30.0)
        assert await store.sorted_set_pop_min(name) is None

    async def test_re_adding_a_member_updates_its_score(self, store, namespace):
        name = f"{namespace}:queue:pending"

        await store.sorted_set_add(name, 10, "a")
        await store.sorted_set_add(name, 5, "b")
        await store.sorted_set_add(name, 1, "a")

        assert await store.sorted_set_cardinality(name) == 2
        assert await store.sorted_set_pop_min(name) == ("a", 1.0)

    async def test_range_by_score_is_inclusive_and_ordered(self, store, namespace):
        name = f"{namespace}:queue:delayed"

        for member, score in [("late", 50), ("edge", 20), ("early", 5)]:
            await store.sorted_set_add(name, score, member)

        assert await store.sorted_set_range_by_score(name, float("-inf"), 20) == [
            "early",
            "edge",
        ]
        assert await store.sorted_set_range_by_score(name, 21, 49) == []

    async def test_sorted_set_remove_reports_membership(self, store, namespace):
        name = f"{namespace}:queue:delayed"

        await store.sorted_set_add(name, 1, "a")

        assert await store.sorted_set_remove(name, "a") is True
        assert await store.sorted_set_remove(name, "a") is False
        assert await store.sorted_set_cardinality(name) == 0

    async def test_set_membership(self, store, namespace):
        name = f"{namespace}:queue:processing"

        await store.set_add(name, "a")
        await store.set_add(name, "a")
        await store.set_add(name, "b")

        assert await store.set_cardinality(name) == 2
        assert await store.set_remove(name, "a") is True
        assert await store.set_remove(name, "a") is False
        assert await store.set_cardinality(name) == 1

    async def test_concurrent_pops_never_share_a_member(self, store, namespace):
        name = f"{namespace}:queue:pending"

        for index in range(20):
            await store.sorted_set_add(name, index, f"job-{index}")

        popped = await asyncio.gather(
            *(store.sorted_set_pop_min(name) for _ in range(25))
        )
        members = [entry[0] for entry in popped if entry is not None]

        assert sorted(members) == sorted(f"job-{index}" for index in range(20))


class TestMemoryStore:
    async def test_ttl_follows_the_injected_clock(self):
        clock = FakeClock()
        store = MemoryStore(clock=clock)

        await store.put("key", "value", 10)

        clock.now += 9.9
        assert await store.get("key") == "value"

        clock.now += 0.1
        assert await store.get("key") is None

    async def test_ties_pop_in_insertion_order(self):
        store = MemoryStore()

        for member in ("first", "second", "third"):
            await store.sorted_set_add("pending", 1.0, member)

        popped = [(await store.sorted_set_pop_min("pending"))[0] for _ in range(3)]

        assert popped == ["first", "second", "third"]


class TestOpenStore:
    async def test_memory_scheme(self):
        assert isinstance(await open_store("memory://"), MemoryStore)

    async def test_unsupported_scheme(self):
        with pytest.raises(ValueError, match="Unsupported store url"):
            await open_store("mongodb://localhost")


class TestStaging:
    @pytest.fixture
    def query(self, store, namespace):
        return Query(store, keys=Keys(namespace), ttl=60)

    async def test_due_jobs_are_promoted_at_now(self, query):
        urgent = await query.insert_job(Job.new("a", priority=5), delay=10)
        later = await query.insert_job(Job.new("b"), delay=1000)

        staged = await query.stage_jobs(now=time.time() + 20)

        assert staged == 1
        assert await query.store.sorted_set_cardinality(query.keys.delayed) == 1

        member, score = await query.store.sorted_set_pop_min(query.keys.pending)

        assert member == urgent.id
        assert member != later.id
        assert score > time.time()

    async def test_preserve_priority_reapplies_priority(self, query):
        job = await query.insert_job(Job.new("a", priority=5), delay=10)
        now = time.time() + 20

        assert await query.stage_jobs(now=now, preserve_priority=True) == 1

        member, score = await query.store.sorted_set_pop_min(query.keys.pending)

        assert member == job.id
        assert score == pytest.approx(now - 5 * PRIORITY_STEP)

    async def test_nothing_due_stages_nothing(self, query):
        await query.insert_job(Job.new("a"), delay=60)

        assert await query.stage_jobs() == 0
        assert await query.store.sorted_set_cardinality(query.keys.pending) == 0
