"""Exceptions raised and reported by the hourly timer core."""

from __future__ import annotations

from typing import Any


class TimerError(Exception):
    """Base class for timer core errors."""


class DuplicateNameError(TimerError):
    """A named scheduled event was registered under a name already in use."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Scheduled event {name!r} is already registered")
        self.name = name


class UnknownNameError(TimerError, LookupError):
    """A named scheduled event was looked up or removed but never registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Scheduled event {name!r} is not registered")
        self.name = name


class InvalidCalendarInput(TimerError, ValueError):
    """Month, day or day-of-year outside the nominal calendar domain."""


class ActionFailure(TimerError):
    """
    A registered action raised during a tick.

    Never raised out of the scheduler; collected in the tick report and logged.
    """

    def __init__(self, hour: int, action: Any, cause: BaseException) -> None:
        super().__init__(f"Timer action {action!r} for hour {hour} failed: {cause}")
        self.hour = hour
        self.action = action
        self.cause = cause


class ReleaseFailure(TimerError):
    """
    Releasing an expired record failed; the record is kept for the next tick.
    """

    def __init__(self, subject_id: int, scope_id: int, cause: BaseException) -> None:
        super().__init__(f"Release of {subject_id} in {scope_id} failed: {cause}")
        self.subject_id = subject_id
        self.scope_id = scope_id
        self.cause = cause
