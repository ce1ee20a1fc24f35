from unittest.mock import MagicMock

import pytest

from tickcord.timer.birthday_index import BirthdayIndex
from tickcord.timer.calendar_codec import day_of_year
from tickcord.timer.errors import InvalidCalendarInput


def _buckets_containing(index: BirthdayIndex, user_id: int) -> list[int]:
    return [day for day in range(1, 367) if user_id in index.users_on_day(day)]


def test_set_and_get() -> None:
    index = BirthdayIndex()
    index.set(42, 2, 29)

    assert index.get(42) == (2, 29)
    assert index.users_on_day(60) == {42}
    assert 42 in index
    assert len(index) == 1


def test_get_missing_returns_none() -> None:
    assert BirthdayIndex().get(7) is None


def test_set_is_idempotent() -> None:
    index = BirthdayIndex()
    index.set(1, 5, 5)
    index.set(1, 5, 5)

    assert index.to_payload() == {"1": day_of_year(5, 5)}
    assert _buckets_containing(index, 1) == [day_of_year(5, 5)]


def test_reset_moves_user_between_buckets() -> None:
    index = BirthdayIndex()
    index.set(9, 1, 1)
    index.set(9, 6, 15)

    assert 9 not in index.users_on_day(day_of_year(1, 1))
    assert 9 in index.users_on_day(day_of_year(6, 15))
    assert _buckets_containing(index, 9) == [day_of_year(6, 15)]


def test_delete_is_total() -> None:
    index = BirthdayIndex()
    index.set(5, 3, 3)

    assert index.delete(5) is True
    assert index.get(5) is None
    assert _buckets_containing(index, 5) == []


def test_delete_unknown_user_is_noop() -> None:
    on_change = MagicMock()
    index = BirthdayIndex(on_change=on_change)

    assert index.delete(123) is False
    on_change.assert_not_called()


def test_users_on_day_never_none() -> None:
    index = BirthdayIndex()
    assert index.users_on_day(100) == frozenset()
    assert index.users_on_day(0) == frozenset()
    assert index.users_on_day(400) == frozenset()


def test_users_on_day_is_a_snapshot() -> None:
    index = BirthdayIndex()
    index.set(1, 1, 1)
    snapshot = index.users_on_day(1)
    index.set(2, 1, 1)

    assert snapshot == {1}
    assert index.users_on_day(1) == {1, 2}


def test_invalid_input_leaves_index_untouched() -> None:
    on_change = MagicMock()
    index = BirthdayIndex(on_change=on_change)
    index.set(3, 7, 4)
    on_change.reset_mock()

    with pytest.raises(InvalidCalendarInput):
        index.set(3, 13, 1)

    assert index.get(3) == (7, 4)
    on_change.assert_not_called()


def test_mutations_notify_owner() -> None:
    on_change = MagicMock()
    index = BirthdayIndex(on_change=on_change)

    index.set(1, 1, 1)
    index.delete(1)

    assert on_change.call_count == 2


def test_load_payload_rebuilds_reverse_index() -> None:
    index = BirthdayIndex()
    index.set(999, 1, 1)

    index.load_payload({"42": 60, "43": 60, "44": 366, "bad": "x", "45": 0})

    assert index.get(999) is None
    assert index.users_on_day(60) == {42, 43}
    assert index.get(44) == (12, 31)
    assert 45 not in index
    assert len(index) == 3
