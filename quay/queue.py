from __future__ import annotations

import logging
from typing import Any, Callable

from . import backoff as _backoff
from ._keys import Keys
from ._memory import MemoryStore
from ._producer import Producer
from ._query import Query
from ._store import Store
from .job import Job
from .registry import Registry
from .types import Handler, JobStatus, Stats

logger = logging.getLogger(__name__)


class Queue:
    """A priority job queue with delayed scheduling and retries.

    Jobs are persisted in ``store`` and executed by at most ``concurrency``
    handlers at once. The dispatch loop only runs between ``start`` and
    ``stop``; jobs added while it is stopped wait in the store.

    Example:
        >>> queue = Queue(RedisStore.from_url("redis://localhost"), concurrency=10)

        >>> @queue.handler("send_email")
        ... async def send_email(job):
        ...     await mailer.deliver(**job.data)

        >>> async with queue:
        ...     job = await queue.add("send_email", {"to": "a@example.com"}, priority=5)
        ...     await queue.get_status(job.id)
        <JobStatus.PENDING: 'pending'>
    """

    def __init__(
        self,
        store: Store | None = None,
        *,
        registry: Registry | None = None,
        concurrency: int = 5,
        poll_interval: float = 0.1,
        error_interval: float = 1.0,
        job_ttl: float = 86_400,
        prefix: str = "quay",
        backoff: _backoff.Backoff | None = None,
        preserve_priority: bool = False,
    ) -> None:
        self._validate(
            concurrency=concurrency,
            poll_interval=poll_interval,
            error_interval=error_interval,
            job_ttl=job_ttl,
        )

        self._store = store if store is not None else MemoryStore()
        self._registry = registry if registry is not None else Registry()
        self._query = Query(self._store, keys=Keys(prefix), ttl=job_ttl)
        self._producer = Producer(
            query=self._query,
            registry=self._registry,
            backoff=backoff or _backoff.DEFAULT,
            limit=concurrency,
            poll_interval=poll_interval,
            error_interval=error_interval,
            preserve_priority=preserve_priority,
        )

    @staticmethod
    def _validate(
        *,
        concurrency: int,
        poll_interval: float,
        error_interval: float,
        job_ttl: float,
    ) -> None:
        if not isinstance(concurrency, int) or isinstance(concurrency, bool):
            raise TypeError(f"concurrency must be an integer, got {concurrency!r}")

        if concurrency < 1:
            raise ValueError("concurrency must be positive")

        for name, value in (
            ("poll_interval", poll_interval),
            ("error_interval", error_interval),
            ("job_ttl", job_ttl),
        ):
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise TypeError(f"{name} must be a number, got {value!r}")

            if value <= 0:
                raise ValueError(f"{name} must be positive")

    async def __aenter__(self) -> Queue:
        await self.start()

        return self

    async def __aexit__(self, *_exc_info: Any) -> None:
        await self.stop()

    @property
    def store(self) -> Store:
        return self._store

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def concurrency(self) -> int:
        return self._producer.limit

    @property
    def is_running(self) -> bool:
        return self._producer.is_running

    def register(self, type: str, handler: Handler) -> None:
        self._registry.register(type, handler)

    def handler(self, type: str) -> Callable[[Handler], Handler]:
        return self._registry.handler(type)

    async def add(
        self,
        type: str,
        data: Any = None,
        *,
        delay: float = 0.0,
        priority: int = 0,
        max_attempts: int = 3,
        backoff: _backoff.Backoff | dict[str, Any] | None = None,
    ) -> Job:
        """Enqueue a job and return it without waiting for it to run.

        Args:
            type: Name of the registered handler that processes the job
            data: JSON serializable payload handed to the handler
            delay: Seconds to wait before the job becomes eligible
            priority: Higher values are claimed sooner
            max_attempts: Total handler invocations allowed before failing
            backoff: Retry policy overriding the queue default for this job

        Raises:
            ValueError: An option is invalid
            TypeError: ``data`` is not JSON serializable
        """
        if not isinstance(delay, (int, float)) or isinstance(delay, bool):
            raise ValueError("delay must be a number")

        if delay < 0:
            raise ValueError("delay must not be negative")

        job = Job.new(
            type, data, max_attempts=max_attempts, priority=priority, backoff=backoff
        )

        await self._query.insert_job(job, delay=delay)

        logger.debug(
            "Enqueued job %s (%s) delay=%s priority=%s", job.id, type, delay, priority
        )

        self._producer.notify()

        return job

    async def get_job(self, job_id: str) -> Job | None:
        return await self._query.get_job(job_id)

    async def get_status(self, job_id: str) -> JobStatus | None:
        job = await self.get_job(job_id)

        return job.status if job else None

    async def get_stats(self) -> Stats:
        return await self._query.stats()

    async def start(self) -> None:
        await self._producer.start()

    async def stop(self, *, drain: bool = True) -> None:
        """Stop claiming new jobs.

        Handlers that are already running are never cancelled. With ``drain``
        this waits for them to finish before returning.
        """
        await self._producer.stop(drain=drain)
