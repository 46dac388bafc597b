from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeAlias

if TYPE_CHECKING:
    from .job import Job


class JobStatus(StrEnum):
    """Represents the lifecycle state of a job.

    - PENDING: waiting in the pending or delayed ordering, including retries
    - PROCESSING: claimed by a worker slot and executing
    - COMPLETED: the handler returned successfully
    - FAILED: exhausted its attempts or had no registered handler
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass(frozen=True, slots=True)
class Stats:
    pending: int
    processing: int
    completed: int
    failed: int
    delayed: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


Handler: TypeAlias = "Callable[[Job], Awaitable[Any] | Any]"
