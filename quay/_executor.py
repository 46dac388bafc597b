from __future__ import annotations

import asyncio
import inspect
import time
import traceback
from contextvars import ContextVar
from typing import Any

from . import telemetry
from .backoff import Backoff
from .job import Job
from .types import Handler, JobStatus

_current_job: ContextVar[Job | None] = ContextVar("quay_current_job", default=None)


class Executor:
    """Runs a single handler invocation and decides what happens to the job.

    The outcome lands in ``status``: COMPLETED on success, PENDING when the
    job should be retried after ``delay`` seconds, or FAILED once the attempts
    are exhausted. Nothing is persisted here.
    """

    def __init__(
        self, job: Job, handler: Handler, *, backoff: Backoff, safe: bool = True
    ) -> None:
        self.job = job
        self.handler = handler
        self.backoff = backoff
        self.safe = safe

        self.status: JobStatus | None = None
        self.result: Any = None
        self.error: BaseException | None = None
        self.delay: float | None = None
        self.duration = 0.0

    @staticmethod
    def current_job() -> Job | None:
        """Return the job whose handler is running in the current context."""
        return _current_job.get()

    @property
    def message(self) -> str | None:
        if self.error is None:
            return None

        return str(self.error) or type(self.error).__name__

    async def execute(self) -> Executor:
        queue_time = self._queue_time()

        telemetry.execute("quay.job.start", {"job": self.job, "queue_time": queue_time})

        token = _current_job.set(self.job)
        started = time.monotonic()

        try:
            self.result = await self._invoke()
        except (Exception, asyncio.CancelledError) as error:
            # A CancelledError raised by the handler itself is a job error, but
            # cancellation of the running task must propagate.
            if isinstance(error, asyncio.CancelledError) and _cancelling():
                raise

            self.duration = time.monotonic() - started
            self._record_error(error)

            telemetry.execute(
                "quay.job.exception",
                {
                    "job": self.job,
                    "state": str(self.status),
                    "duration": self.duration,
                    "queue_time": queue_time,
                    "error_type": type(error).__name__,
                    "error_message": self.message,
                    "traceback": "".join(traceback.format_exception(error)),
                },
            )

            if not self.safe:
                raise
        else:
            self.duration = time.monotonic() - started
            self.status = JobStatus.COMPLETED

            telemetry.execute(
                "quay.job.stop",
                {
                    "job": self.job,
                    "state": str(self.status),
                    "duration": self.duration,
                    "queue_time": queue_time,
                },
            )
        finally:
            _current_job.reset(token)

        return self

    async def _invoke(self) -> Any:
        result = self.handler(self.job)

        if inspect.isawaitable(result):
            result = await result

        return result

    def _record_error(self, error: BaseException) -> None:
        self.error = error

        if self.job.attempts >= self.job.max_attempts:
            self.status = JobStatus.FAILED
        else:
            self.status = JobStatus.PENDING
            self.delay = self.backoff(max(self.job.attempts, 1))

    def _queue_time(self) -> float:
        if self.job.processed_at is None:
            return 0.0

        return (self.job.processed_at - self.job.created_at).total_seconds()


def _cancelling() -> bool:
    task = asyncio.current_task()

    return task is not None and task.cancelling() > 0
