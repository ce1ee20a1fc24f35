"""
Public entry point to the hourly timer core.

``TimerService`` owns the birthday index, the timer registry and the
scheduler, and wires them to the state store. Exactly one is built per
process by :func:`tickcord.timer.default_events.build_timer_service` and
passed to whatever needs it.
"""

from __future__ import annotations

import datetime
from typing import Any, Dict, Tuple

from tickcord.database.state_store import StateStore
from tickcord.datatypes.timer_datatypes import NamedEvent, TimerAction, TimerEvent
from tickcord.timer.actions import ActionFactory
from tickcord.timer.birthday_index import BirthdayIndex
from tickcord.timer.scheduler import SECONDS_PER_HOUR, Clock, HourlyScheduler, Sweep, TickReport
from tickcord.timer.timer_registry import TimerRegistry
from tickcord.util.logger import get_logger

logger = get_logger("timer_service")

BIRTHDAY_MAP_KEY = "birthday_map"
SCHEDULED_EVENTS_KEY = "scheduled_events"


class TimerService:
    """
    Scheduled events, timer events and birthdays behind one object.

    Args:
        store: Durable key/value state.
        action_factory: Rebuilds persisted named-event actions.
        clock: Local time source used once to seed the scheduler.
        period_seconds: Scheduler period.
    """

    def __init__(
        self,
        store: StateStore,
        action_factory: ActionFactory,
        *,
        clock: Clock = datetime.datetime.now,
        period_seconds: float = SECONDS_PER_HOUR,
    ) -> None:
        self.store = store
        self.action_factory = action_factory
        self.birthdays = BirthdayIndex(on_change=lambda: store.mark_dirty(BIRTHDAY_MAP_KEY))
        self.registry = TimerRegistry(on_named_change=lambda: store.mark_dirty(SCHEDULED_EVENTS_KEY))
        self.scheduler = HourlyScheduler(
            self.registry,
            clock=clock,
            period_seconds=period_seconds,
            on_tick_complete=self._after_tick,
        )

        store.register(BIRTHDAY_MAP_KEY, self.birthdays.to_payload)
        store.register(SCHEDULED_EVENTS_KEY, self._scheduled_events_payload)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _scheduled_events_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for named in self.registry.named_events():
            action = self.action_factory.dump(named.event.action)
            if action is None:
                logger.warning("[TIMER SERVICE] Scheduled event %s has no persistable action; not saved", named.name)
                continue
            payload[named.name] = {"hour": named.event.hour, "action": action}
        return payload

    async def load(self) -> None:
        """Restore birthdays and named scheduled events from the state store."""
        birthdays = await self.store.load(BIRTHDAY_MAP_KEY)
        if isinstance(birthdays, dict):
            self.birthdays.load_payload(birthdays)

        events = await self.store.load(SCHEDULED_EVENTS_KEY)
        if not isinstance(events, dict):
            return

        restored = 0
        for name, entry in events.items():
            try:
                action = self.action_factory.build(entry["action"])
                self.registry.register_named(name, int(entry["hour"]), action)
                restored += 1
            except Exception as exc:
                logger.error("[TIMER SERVICE] Could not restore scheduled event %s: %s", name, exc)
        logger.info("[TIMER SERVICE] Restored %d scheduled event(s)", restored)

    def request_flush(self) -> None:
        """Save dirty state in the background. Must be called inside the event loop."""
        self.store.schedule_flush()

    async def flush(self) -> bool:
        return await self.store.flush()

    def _after_tick(self, report: TickReport) -> None:
        self.request_flush()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        self.scheduler.start()

    async def stop(self) -> None:
        """Stop the scheduler for good and save whatever is still dirty."""
        await self.scheduler.stop()
        if not await self.store.flush():
            logger.error("[TIMER SERVICE] State not fully saved during shutdown")

    def add_sweep(self, sweep: Sweep) -> None:
        self.scheduler.add_sweep(sweep)

    # ------------------------------------------------------------------
    # Scheduled (named) events
    # ------------------------------------------------------------------

    def register_scheduled_event(self, name: str, hour: int, action: TimerAction) -> NamedEvent:
        return self.registry.register_named(name, hour, action)

    def unregister_scheduled_event(self, name: str) -> NamedEvent:
        return self.registry.unregister_named(name)

    def has_scheduled_event(self, name: str) -> bool:
        return self.registry.has_named(name)

    def scheduled_event_names(self) -> frozenset[str]:
        return self.registry.names()

    def scheduled_event(self, name: str) -> TimerEvent:
        return self.registry.named_event(name)

    # ------------------------------------------------------------------
    # Anonymous timer events
    # ------------------------------------------------------------------

    def register_timer_event(self, hour: int, action: TimerAction) -> TimerEvent:
        return self.registry.register(hour, action)

    def unregister_timer_event(self, hour: int, action: TimerAction) -> None:
        self.registry.unregister(hour, action)

    # ------------------------------------------------------------------
    # Birthdays
    # ------------------------------------------------------------------

    def set_birthday(self, user_id: int, month: int, day: int) -> None:
        self.birthdays.set(user_id, month, day)

    def get_birthday(self, user_id: int) -> Tuple[int, int] | None:
        return self.birthdays.get(user_id)

    def delete_birthday(self, user_id: int) -> bool:
        return self.birthdays.delete(user_id)

    def users_on_day(self, day_of_year: int) -> frozenset[int]:
        return self.birthdays.users_on_day(day_of_year)

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def hours_since_epoch(self) -> int:
        return self.scheduler.hours_since_epoch

    def current_hour(self) -> int:
        return self.scheduler.current_hour
