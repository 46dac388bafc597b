from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from . import backoff as _backoff
from .types import JobStatus

_TIMESTAMPS = ("created_at", "processed_at", "completed_at", "failed_at")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


@dataclass(slots=True, frozen=True)
class Job:
    type: str
    id: str = field(default_factory=_new_id)
    data: Any = None
    status: JobStatus = JobStatus.PENDING
    attempts: int = 0
    max_attempts: int = 3
    priority: int = 0
    backoff: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=utc_now)
    processed_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    error: str | None = None
    result: Any = None

    @classmethod
    def new(
        cls,
        type: str,
        data: Any = None,
        *,
        max_attempts: int = 3,
        priority: int = 0,
        backoff: _backoff.Backoff | dict[str, Any] | None = None,
    ) -> Job:
        """Build a fresh pending job, validating the caller supplied options."""
        if not isinstance(type, str) or not type.strip():
            raise ValueError("type must be a non-blank string")

        if not isinstance(max_attempts, int) or isinstance(max_attempts, bool):
            raise ValueError("max_attempts must be an integer")

        if max_attempts < 1:
            raise ValueError("max_attempts must be positive")

        if not isinstance(priority, int) or isinstance(priority, bool):
            raise ValueError("priority must be an integer")

        policy = _backoff.coerce(backoff)

        return cls(
            type=type,
            data=data,
            max_attempts=max_attempts,
            priority=priority,
            backoff=policy.to_dict() if policy else None,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)

        data["status"] = str(self.status)

        for name in _TIMESTAMPS:
            value = data[name]
            data[name] = value.isoformat() if value else None

        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Job:
        data = dict(data)

        data["status"] = JobStatus(data["status"])

        for name in _TIMESTAMPS:
            value = data.get(name)
            data[name] = datetime.fromisoformat(value) if value else None

        return cls(**data)

    @classmethod
    def from_json(cls, raw: str) -> Job:
        return cls.from_dict(json.loads(raw))
