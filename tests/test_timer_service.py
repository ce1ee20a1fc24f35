import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from tickcord.database.db_connection import ConnectionManager
from tickcord.database.db_schema import SchemaManager
from tickcord.database.state_store import StateStore
from tickcord.timer.actions import BirthdayAnnouncementAction, ScheduledMessageAction, default_action_factory
from tickcord.timer.calendar_codec import day_of_year
from tickcord.timer.errors import DuplicateNameError, UnknownNameError
from tickcord.timer.timer_service import BIRTHDAY_MAP_KEY, SCHEDULED_EVENTS_KEY, TimerService


def make_service(notifier, clock, store=None) -> TimerService:
    return TimerService(store or MagicMock(spec=StateStore), default_action_factory(notifier), clock=clock)


def test_public_contract_for_scheduled_events(notifier, clock_at) -> None:
    service = make_service(notifier, clock_at(9))
    action = ScheduledMessageAction(channel_id=1, content="hi", notifier=notifier)

    service.register_scheduled_event("morning", 10, action)
    assert service.has_scheduled_event("morning")
    assert service.scheduled_event_names() == {"morning"}

    with pytest.raises(DuplicateNameError):
        service.register_scheduled_event("morning", 11, action)

    service.unregister_scheduled_event("morning")
    assert not service.has_scheduled_event("morning")

    with pytest.raises(UnknownNameError):
        service.unregister_scheduled_event("morning")


def test_mutations_mark_state_dirty(notifier, clock_at) -> None:
    store = MagicMock(spec=StateStore)
    service = make_service(notifier, clock_at(9), store)

    service.set_birthday(1, 1, 1)
    service.register_scheduled_event("x", 1, ScheduledMessageAction(1, "x", notifier))

    store.mark_dirty.assert_any_call(BIRTHDAY_MAP_KEY)
    store.mark_dirty.assert_any_call(SCHEDULED_EVENTS_KEY)


def test_clock_accessors(clock_at) -> None:
    clock = clock_at(17)
    service = make_service(MagicMock(), clock)

    assert service.current_hour() == 17
    assert service.hours_since_epoch() == int(clock().timestamp() // 3600)


@pytest.mark.asyncio
async def test_anonymous_timer_event_deferred_removal(notifier, clock_at) -> None:
    service = make_service(notifier, clock_at(23))
    fired = []
    action = lambda: fired.append(service.current_hour())

    service.register_timer_event(0, action)
    await service.scheduler.tick()
    service.unregister_timer_event(0, action)
    for _ in range(24):
        await service.scheduler.tick()

    assert fired == [0]


@pytest.mark.asyncio
async def test_tick_requests_background_flush(notifier, clock_at) -> None:
    store = MagicMock(spec=StateStore)
    service = make_service(notifier, clock_at(1), store)

    await service.scheduler.tick()

    store.schedule_flush.assert_called_once()


@pytest.mark.asyncio
async def test_february_29_end_to_end(notifier, clock_at) -> None:
    service = make_service(notifier, clock_at(23))
    service.set_birthday(42, 2, 29)
    assert service.get_birthday(42) == (2, 29)

    service.register_timer_event(
        0,
        BirthdayAnnouncementAction(
            channel_id=555,
            template="Happy birthday {mention}!",
            index=service.birthdays,
            notifier=notifier,
            today=lambda: datetime.date(2024, 2, 29),
        ),
    )

    report = await service.scheduler.tick()

    assert report.hour == 0
    assert service.users_on_day(60) == {42}
    assert notifier.sent == [(555, "Happy birthday <@42>!")]

    service.delete_birthday(42)
    assert service.users_on_day(60) == frozenset()
    assert service.get_birthday(42) is None


@pytest.mark.asyncio
async def test_state_survives_restart(tmp_path: Path, notifier, clock_at) -> None:
    connection = ConnectionManager()
    await connection.open(tmp_path / "state.db")
    await SchemaManager.initialize_schema(connection.connection)
    try:
        first = make_service(notifier, clock_at(8), StateStore(connection))
        first.set_birthday(42, 2, 29)
        first.set_birthday(7, 12, 31)
        first.register_scheduled_event("noon", 12, ScheduledMessageAction(99, "lunch", notifier))
        # plain functions cannot be persisted and are skipped
        first.register_scheduled_event("local", 3, lambda: None)
        assert await first.flush() is True

        second = make_service(notifier, clock_at(8), StateStore(connection))
        await second.load()

        assert second.get_birthday(42) == (2, 29)
        assert second.users_on_day(day_of_year(12, 31)) == {7}
        assert second.scheduled_event_names() == {"noon"}
        assert second.registry.is_registered(12, ScheduledMessageAction(99, "lunch", notifier))
    finally:
        await connection.close()


@pytest.mark.asyncio
async def test_load_skips_unknown_action_kinds(notifier, clock_at) -> None:
    store = MagicMock(spec=StateStore)

    def fake_load(key):
        if key == SCHEDULED_EVENTS_KEY:
            return {
                "good": {"hour": 5, "action": {"kind": "message", "payload": {"channel_id": 1, "content": "a"}}},
                "bad": {"hour": 5, "action": {"kind": "teleport", "payload": {}}},
            }
        return None

    store.load.side_effect = fake_load
    service = make_service(notifier, clock_at(1), store)

    await service.load()

    assert service.scheduled_event_names() == {"good"}


@pytest.mark.asyncio
async def test_stop_flushes_state(notifier, clock_at) -> None:
    store = MagicMock(spec=StateStore)

    store.flush.return_value = True
    service = make_service(notifier, clock_at(1), store)

    await service.stop()

    assert service.scheduler.is_stopped
    store.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_removing_one_of_two_identical_announcements_keeps_the_other(notifier, clock_at) -> None:
    service = make_service(notifier, clock_at(7))
    service.register_scheduled_event("a", 8, ScheduledMessageAction(channel_id=1, content="hi", notifier=notifier))
    service.register_scheduled_event("b", 8, ScheduledMessageAction(channel_id=1, content="hi", notifier=notifier))

    service.unregister_scheduled_event("a")
    report = await service.scheduler.tick()

    assert service.has_scheduled_event("b")
    assert report.removed == 0
    assert notifier.sent == [(1, "hi")]
