"""
Hour-of-day buckets of timer actions.

Removal is deferred: ``unregister`` only queues the (hour, action) pair and
the scheduler applies the queue at the start of the next tick, so an action
can unregister itself (or another action) while a tick is running.
"""

from __future__ import annotations

from typing import Callable, Dict, List

from tickcord.datatypes.timer_datatypes import HOURS_PER_DAY, NamedEvent, TimerAction, TimerEvent
from tickcord.timer.errors import DuplicateNameError, UnknownNameError
from tickcord.util.logger import get_logger

logger = get_logger("timer_registry")


class TimerRegistry:
    """
    Registry of anonymous and named timer events.

    Args:
        on_named_change: Called whenever the set of named events changes so
            the owner can persist it.
    """

    def __init__(self, on_named_change: Callable[[], None] | None = None) -> None:
        self._buckets: List[set[TimerAction]] = [set() for _ in range(HOURS_PER_DAY)]
        self._named: Dict[str, TimerEvent] = {}
        self._pending_removal: set[TimerEvent] = set()
        self._on_named_change = on_named_change

    def _named_changed(self) -> None:
        if self._on_named_change is not None:
            self._on_named_change()

    # ------------------------------------------------------------------
    # Anonymous events
    # ------------------------------------------------------------------

    def register(self, hour: int, action: TimerAction) -> TimerEvent:
        """Add ``action`` to the bucket for ``hour``. Registering twice is a no-op."""
        event = TimerEvent(hour=hour, action=action)
        self._buckets[hour].add(action)
        # re-registering cancels a removal still waiting for the next tick
        self._pending_removal.discard(event)
        return event

    def unregister(self, hour: int, action: TimerAction) -> None:
        """Queue ``action`` for removal from ``hour`` at the start of the next tick."""
        self._pending_removal.add(TimerEvent(hour=hour, action=action))

    # ------------------------------------------------------------------
    # Named events
    # ------------------------------------------------------------------

    def register_named(self, name: str, hour: int, action: TimerAction) -> NamedEvent:
        """
        Register an action under a unique name.

        Raises:
            DuplicateNameError: ``name`` is already registered.
        """
        if name in self._named:
            raise DuplicateNameError(name)
        event = self.register(hour, action)
        self._named[name] = event
        self._named_changed()
        logger.debug("[TIMER REGISTRY] Registered %s at hour %d", name, hour)
        return NamedEvent(name=name, event=event)

    def unregister_named(self, name: str) -> NamedEvent:
        """
        Drop the name now and queue its action for removal.

        The action may still fire once if the current tick already matched it.
        An (hour, action) pair still held by another name stays registered.

        Raises:
            UnknownNameError: ``name`` was never registered.
        """
        event = self._named.pop(name, None)
        if event is None:
            raise UnknownNameError(name)
        if event not in self._named.values():
            self.unregister(event.hour, event.action)
        self._named_changed()
        logger.debug("[TIMER REGISTRY] Unregistered %s (hour %d)", name, event.hour)
        return NamedEvent(name=name, event=event)

    def has_named(self, name: str) -> bool:
        return name in self._named

    def names(self) -> frozenset[str]:
        return frozenset(self._named)

    def named_event(self, name: str) -> TimerEvent:
        try:
            return self._named[name]
        except KeyError:
            raise UnknownNameError(name) from None

    def named_events(self) -> List[NamedEvent]:
        return [NamedEvent(name=name, event=event) for name, event in self._named.items()]

    # ------------------------------------------------------------------
    # Tick support
    # ------------------------------------------------------------------

    def drain_pending(self) -> int:
        """Apply and clear queued removals. Returns how many were applied."""
        if not self._pending_removal:
            return 0
        pending = list(self._pending_removal)
        self._pending_removal.clear()
        for event in pending:
            self._buckets[event.hour].discard(event.action)
        return len(pending)

    def pending_removals(self) -> frozenset[TimerEvent]:
        return frozenset(self._pending_removal)

    def actions_for(self, hour: int) -> tuple[TimerAction, ...]:
        """Snapshot of the actions registered for ``hour``."""
        return tuple(self._buckets[hour])

    def is_registered(self, hour: int, action: TimerAction) -> bool:
        return action in self._buckets[hour]
