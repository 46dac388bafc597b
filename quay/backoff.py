"""Retry backoff policies.

A policy is a pure callable mapping the number of attempts made so far to the
delay, in seconds, before the next attempt. Policies serialize to a small dict
so they can travel on the job record as a per-job override.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias


def _check_attempts(attempts: int) -> None:
    if not isinstance(attempts, int) or attempts < 1:
        raise ValueError(f"attempts must be a positive integer, got: {attempts!r}")


@dataclass(frozen=True, slots=True)
class Exponential:
    """Doubles the delay on every attempt, starting from ``base`` seconds."""

    base: float = 1.0

    def __post_init__(self) -> None:
        if not isinstance(self.base, (int, float)) or self.base < 0:
            raise ValueError("exponential base must be a non-negative number")

    def __call__(self, attempts: int) -> float:
        _check_attempts(attempts)

        return self.base * 2 ** (attempts - 1)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "exponential", "delay": self.base}


@dataclass(frozen=True, slots=True)
class Fixed:
    """Waits the same ``delay`` seconds regardless of the attempt."""

    delay: float = 1.0

    def __post_init__(self) -> None:
        if not isinstance(self.delay, (int, float)) or self.delay < 0:
            raise ValueError("fixed delay must be a non-negative number")

    def __call__(self, attempts: int) -> float:
        _check_attempts(attempts)

        return self.delay

    def to_dict(self) -> dict[str, Any]:
        return {"type": "fixed", "delay": self.delay}


Backoff: TypeAlias = Exponential | Fixed

DEFAULT = Exponential()


def from_dict(data: dict[str, Any]) -> Backoff:
    """Build a policy from its serialized form.

    Example:
        >>> from_dict({"type": "fixed", "delay": 5})
        Fixed(delay=5)
    """
    match data:
        case {"type": "exponential", "delay": delay}:
            return Exponential(delay)
        case {"type": "exponential"}:
            return Exponential()
        case {"type": "fixed", "delay": delay}:
            return Fixed(delay)
        case {"type": "fixed"}:
            return Fixed()
        case _:
            raise ValueError(f"unrecognized backoff: {data!r}")


def coerce(value: Backoff | dict[str, Any] | None) -> Backoff | None:
    match value:
        case None:
            return None
        case Exponential() | Fixed():
            return value
        case dict():
            return from_dict(value)
        case _:
            raise ValueError(f"unrecognized backoff: {value!r}")
