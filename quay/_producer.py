from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from functools import partial
from typing import TYPE_CHECKING

from . import backoff as _backoff
from ._executor import Executor
from .errors import HandlerNotFoundError
from .types import JobStatus

if TYPE_CHECKING:
    from ._query import Query
    from .job import Job
    from .registry import Registry

logger = logging.getLogger(__name__)


class Producer:
    def __init__(
        self,
        *,
        query: Query,
        registry: Registry,
        backoff: _backoff.Backoff = _backoff.DEFAULT,
        limit: int = 5,
        poll_interval: float = 0.1,
        error_interval: float = 1.0,
        preserve_priority: bool = False,
    ) -> None:
        self._query = query
        self._registry = registry
        self._backoff = backoff
        self._limit = limit
        self._poll_interval = poll_interval
        self._error_interval = error_interval
        self._preserve_priority = preserve_priority

        self._active: set[str] = set()
        self._loop_task: asyncio.Task | None = None
        self._notified = asyncio.Event()
        self._stopping = asyncio.Event()
        self._running_jobs: set[asyncio.Task] = set()
        self._slots = asyncio.Semaphore(limit)

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active(self) -> frozenset[str]:
        return frozenset(self._active)

    async def start(self) -> None:
        if self.is_running:
            return

        self._stopping.clear()
        self._loop_task = asyncio.create_task(self._loop(), name="quay-producer")

    async def stop(self, *, drain: bool = True) -> None:
        """Let the loop finish its current iteration, then exit.

        The loop is never cancelled, so a claim or promotion already in progress
        completes before ``stop`` returns.
        """
        self._stopping.set()
        self._notified.set()

        if self._loop_task is not None:
            await self._loop_task

            self._loop_task = None

        if drain and self._running_jobs:
            await asyncio.gather(*self._running_jobs, return_exceptions=True)

    def notify(self) -> None:
        self._notified.set()

    async def _loop(self) -> None:
        while not self._stopping.is_set():
            try:
                await self._query.stage_jobs(preserve_priority=self._preserve_priority)
                await self._dispatch()
            except Exception:
                logger.exception("Queue processing error")

                await self._pause(self._error_interval)

                continue

            await self._wait()

    async def _wait(self) -> None:
        try:
            await asyncio.wait_for(self._notified.wait(), timeout=self._poll_interval)
        except asyncio.TimeoutError:
            pass

        self._notified.clear()

    async def _pause(self, interval: float) -> None:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass

    async def _dispatch(self) -> None:
        while not self._slots.locked() and not self._stopping.is_set():
            job_id = await self._query.fetch_job()

            if job_id is None:
                break

            await self._slots.acquire()

            self._active.add(job_id)

            task = asyncio.create_task(
                self._execute(job_id), name=f"quay-job-{job_id}"
            )
            task.add_done_callback(partial(self._on_job_complete, job_id))

            self._running_jobs.add(task)

            logger.debug("Claimed job %s", job_id)

    def _on_job_complete(self, job_id: str, task: asyncio.Task) -> None:
        self._running_jobs.discard(task)
        self._active.discard(job_id)
        self._slots.release()

        self.notify()

    async def _execute(self, job_id: str) -> None:
        try:
            await self.process(job_id)
        except asyncio.CancelledError:
            await self._requeue(job_id)

            raise
        except Exception:
            logger.exception("Unexpected error while processing job %s", job_id)

            await self._requeue(job_id)

    async def _requeue(self, job_id: str) -> None:
        try:
            await self._query.requeue_job(job_id)
        except Exception:
            logger.exception("Unable to requeue job %s", job_id)

    async def process(self, job_id: str) -> None:
        job = await self._query.get_job(job_id)

        if job is None:
            logger.debug("Job %s is missing or expired, skipping", job_id)
            return

        if job.is_terminal:
            logger.debug("Job %s is already %s, skipping", job_id, job.status)
            return

        handler = self._registry.lookup(job.type)

        if handler is None:
            error = HandlerNotFoundError(job.type)

            logger.error(str(error))

            job = replace(job, attempts=job.attempts + 1)

            await self._query.fail_job(job, str(error))
            return

        job = await self._query.start_job(job)

        executor = Executor(job, handler, backoff=self._backoff_for(job))

        await executor.execute()

        match executor.status:
            case JobStatus.COMPLETED:
                await self._complete(job, executor.result)
            case JobStatus.FAILED:
                logger.error(
                    "Job %s (%s) failed after %s attempts: %s",
                    job.id,
                    job.type,
                    job.attempts,
                    executor.message,
                )

                await self._query.fail_job(job, executor.message)
            case JobStatus.PENDING:
                logger.warning(
                    "Job %s (%s) attempt %s/%s failed, retrying in %.3fs: %s",
                    job.id,
                    job.type,
                    job.attempts,
                    job.max_attempts,
                    executor.delay,
                    executor.message,
                )

                await self._query.retry_job(job, executor.message, executor.delay)

    async def _complete(self, job: Job, result: object) -> None:
        try:
            await self._query.complete_job(job, result)
        except TypeError as error:
            logger.error(
                "Job %s (%s) returned an unserializable result", job.id, job.type
            )

            await self._query.fail_job(job, f"Unserializable result: {error}")

    def _backoff_for(self, job: Job) -> _backoff.Backoff:
        if job.backoff:
            return _backoff.from_dict(job.backoff)

        return self._backoff
