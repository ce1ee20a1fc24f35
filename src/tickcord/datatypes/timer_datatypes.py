"""
Data structures shared by the hourly timer core.

Actions are zero-argument callables that may return an awaitable. Their
equality decides deduplication and removal, so persistable actions are
frozen dataclasses compared by value, while plain functions compare by
identity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Protocol, runtime_checkable

HOURS_PER_DAY = 24

TimerAction = Callable[[], Awaitable[None] | None]


@runtime_checkable
class PersistableAction(Protocol):
    """An action that can be written to storage and rebuilt on startup."""

    kind: str

    def to_payload(self) -> Dict[str, Any]: ...

    def __call__(self) -> Awaitable[None] | None: ...


@dataclass(frozen=True)
class TimerEvent:
    """An action bucketed under an hour of the day (0-23)."""
    hour: int
    action: TimerAction

    def __post_init__(self) -> None:
        if not 0 <= self.hour < HOURS_PER_DAY:
            raise ValueError(f"Hour must be between 0 and 23, got {self.hour}")


@dataclass(frozen=True)
class NamedEvent:
    """A timer event registered under a unique name."""
    name: str
    event: TimerEvent


@dataclass(frozen=True)
class BirthdayRecord:
    """One user's birthday as a slot on the 366-day calendar."""
    user_id: int
    day_of_year: int


@dataclass(frozen=True)
class ExpiryRecord:
    """
    A temporary restriction that ends once the hour counter reaches
    ``expiry_hour_count`` (hours since the Unix epoch).

    Attributes:
        subject_id (int): The restricted user.
        scope_id (int): Where the restriction applies (a guild).
        expiry_hour_count (int): Absolute hour at which to release.
    """
    subject_id: int
    scope_id: int
    expiry_hour_count: int

    def to_payload(self) -> Dict[str, int]:
        return {
            "subject_id": self.subject_id,
            "scope_id": self.scope_id,
            "expiry_hour_count": self.expiry_hour_count,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ExpiryRecord":
        return cls(
            subject_id=int(payload["subject_id"]),
            scope_id=int(payload["scope_id"]),
            expiry_hour_count=int(payload["expiry_hour_count"]),
        )
