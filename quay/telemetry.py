"""Lightweight event hooks for instrumenting job execution.

Handlers are attached under a unique id for a list of event names and are
called synchronously with ``(event, metadata)``. Events emitted by quay:

- ``quay.job.start``: ``job``, ``queue_time``
- ``quay.job.stop``: ``job``, ``state``, ``duration``, ``queue_time``
- ``quay.job.exception``: ``job``, ``state``, ``duration``, ``queue_time``,
  ``error_type``, ``error_message``, ``traceback``
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, TypeAlias

logger = logging.getLogger(__name__)

EventHandler: TypeAlias = Callable[[str, dict[str, Any]], Any]

JOB_EVENTS = ("quay.job.start", "quay.job.stop", "quay.job.exception")

_handlers: dict[str, tuple[frozenset[str], EventHandler]] = {}


def attach(handler_id: str, events: Iterable[str], handler: EventHandler) -> None:
    """Attach ``handler`` to ``events``, replacing any handler with the same id."""
    _handlers[handler_id] = (frozenset(events), handler)


def detach(handler_id: str) -> None:
    _handlers.pop(handler_id, None)


def execute(event: str, metadata: dict[str, Any]) -> None:
    for handler_id, (events, handler) in list(_handlers.items()):
        if event not in events:
            continue

        try:
            handler(event, metadata)
        except Exception:
            logger.exception("Telemetry handler %r failed for %s", handler_id, event)


def attach_default_logger(level: int = logging.INFO) -> None:
    """Log every job event on the ``quay.telemetry`` logger."""

    def log(event: str, metadata: dict[str, Any]) -> None:
        job = metadata["job"]

        match event:
            case "quay.job.start":
                logger.log(
                    level,
                    "%s id=%s type=%s attempt=%s/%s",
                    event,
                    job.id,
                    job.type,
                    job.attempts,
                    job.max_attempts,
                )
            case "quay.job.stop":
                logger.log(
                    level,
                    "%s id=%s type=%s state=%s duration=%.4f",
                    event,
                    job.id,
                    job.type,
                    metadata["state"],
                    metadata["duration"],
                )
            case "quay.job.exception":
                logger.log(
                    max(level, logging.WARNING),
                    "%s id=%s type=%s state=%s error=%s: %s",
                    event,
                    job.id,
                    job.type,
                    metadata["state"],
                    metadata["error_type"],
                    metadata["error_message"],
                )

    attach("quay-default-logger", JOB_EVENTS, log)


def detach_default_logger() -> None:
    detach("quay-default-logger")
