from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any

from . import scoring
from ._keys import Keys
from ._store import Store
from .job import Job, utc_now
from .types import JobStatus, Stats

logger = logging.getLogger(__name__)


class Query:
    """Job state transitions expressed as store round trips.

    Each transition persists the record first and then moves the id between
    orderings, so a terminal record is never left reachable from pending,
    delayed or processing once the transition finishes.
    """

    def __init__(self, store: Store, *, keys: Keys, ttl: float) -> None:
        self._store = store
        self._keys = keys
        self._ttl = ttl

    @property
    def store(self) -> Store:
        return self._store

    @property
    def keys(self) -> Keys:
        return self._keys

    async def save_job(self, job: Job) -> Job:
        await self._store.put(self._keys.job(job.id), job.to_json(), self._ttl)

        return job

    async def get_job(self, job_id: str) -> Job | None:
        raw = await self._store.get(self._keys.job(job_id))

        return Job.from_json(raw) if raw is not None else None

    async def insert_job(self, job: Job, *, delay: float = 0.0) -> Job:
        await self.save_job(job)

        score = scoring.score(delay=delay, priority=job.priority)

        if delay > 0:
            await self._store.sorted_set_add(self._keys.delayed, score, job.id)
        else:
            await self._store.sorted_set_add(self._keys.pending, score, job.id)

        return job

    async def fetch_job(self) -> str | None:
        popped = await self._store.sorted_set_pop_min(self._keys.pending)

        return popped[0] if popped else None

    async def requeue_job(self, job_id: str) -> None:
        """Return a claimed id to pending after a transition failed part way.

        The record is left as it was, and processing skips it later if it
        turned out to be terminal.
        """
        await self._store.set_remove(self._keys.processing, job_id)
        await self._store.sorted_set_add(self._keys.pending, time.time(), job_id)

    async def stage_jobs(
        self, *, now: float | None = None, preserve_priority: bool = False
    ) -> int:
        """Move delayed jobs that are due into the pending ordering.

        Promoted jobs are scored at ``now``, which drops their priority. With
        ``preserve_priority`` the priority is reapplied from the job record.
        """
        now = time.time() if now is None else now
        ready = await self._store.sorted_set_range_by_score(
            self._keys.delayed, float("-inf"), now
        )
        staged = 0

        for job_id in ready:
            if not await self._store.sorted_set_remove(self._keys.delayed, job_id):
                continue

            score = now

            if preserve_priority:
                job = await self.get_job(job_id)

                if job is not None:
                    score = scoring.score(priority=job.priority, now=now)

            await self._store.sorted_set_add(self._keys.pending, score, job_id)

            staged += 1

        return staged

    async def start_job(self, job: Job) -> Job:
        job = replace(
            job,
            status=JobStatus.PROCESSING,
            processed_at=utc_now(),
            attempts=job.attempts + 1,
        )

        await self.save_job(job)
        await self._store.set_add(self._keys.processing, job.id)

        return job

    async def complete_job(self, job: Job, result: Any) -> Job:
        job = replace(
            job, status=JobStatus.COMPLETED, completed_at=utc_now(), result=result
        )

        await self.save_job(job)
        await self._store.set_remove(self._keys.processing, job.id)
        await self._store.sorted_set_add(self._keys.completed, time.time(), job.id)

        return job

    async def fail_job(self, job: Job, error: str) -> Job:
        job = replace(job, status=JobStatus.FAILED, failed_at=utc_now(), error=error)

        await self.save_job(job)
        await self._store.set_remove(self._keys.processing, job.id)
        await self._store.sorted_set_add(self._keys.failed, time.time(), job.id)

        return job

    async def retry_job(self, job: Job, error: str, delay: float) -> Job:
        job = replace(job, status=JobStatus.PENDING, error=error)

        await self.save_job(job)
        await self._store.set_remove(self._keys.processing, job.id)

        now = time.time()

        if delay > 0:
            await self._store.sorted_set_add(self._keys.delayed, now + delay, job.id)
        else:
            await self._store.sorted_set_add(self._keys.pending, now, job.id)

        return job

    async def stats(self) -> Stats:
        pending, processing, completed, failed, delayed = await asyncio.gather(
            self._store.sorted_set_cardinality(self._keys.pending),
            self._store.set_cardinality(self._keys.processing),
            self._store.sorted_set_cardinality(self._keys.completed),
            self._store.sorted_set_cardinality(self._keys.failed),
            self._store.sorted_set_cardinality(self._keys.delayed),
        )

        return Stats(
            pending=pending,
            processing=processing,
            completed=completed,
            failed=failed,
            delayed=delayed,
        )
