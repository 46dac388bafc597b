from ._executor import Executor
from ._memory import MemoryStore
from ._store import Store, open_store
from .backoff import Exponential, Fixed
from .errors import HandlerNotFoundError, QuayError
from .job import Job
from .queue import Queue
from .registry import Registry
from .types import JobStatus, Stats

__all__ = [
    "Executor",
    "Exponential",
    "Fixed",
    "HandlerNotFoundError",
    "Job",
    "JobStatus",
    "MemoryStore",
    "Queue",
    "QuayError",
    "Registry",
    "Stats",
    "Store",
    "open_store",
]

__version__ = "0.1.0"
