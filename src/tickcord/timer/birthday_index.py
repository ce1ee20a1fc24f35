"""
Birthday lookup in both directions.

The forward map (user -> day-of-year) is the persisted source of truth. The
reverse index (day-of-year -> users) lives only in memory and is rebuilt
from the forward map on load, so "whose birthday is today" is a single
bucket lookup.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Tuple

from tickcord.datatypes.timer_datatypes import BirthdayRecord
from tickcord.timer.calendar_codec import DAYS_IN_YEAR, day_of_year, month_and_day
from tickcord.util.logger import get_logger

logger = get_logger("birthday_index")


class BirthdayIndex:
    """
    Bidirectional birthday index.

    Args:
        on_change: Called after every mutation so the owner can persist the
            forward map.
    """

    def __init__(self, on_change: Callable[[], None] | None = None) -> None:
        self._by_user: Dict[int, int] = {}
        self._by_day: List[set[int]] = [set() for _ in range(DAYS_IN_YEAR)]
        self._on_change = on_change

    def __len__(self) -> int:
        return len(self._by_user)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._by_user

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def set(self, user_id: int, month: int, day: int) -> BirthdayRecord:
        """
        Record (or move) a user's birthday.

        The day is encoded first so invalid input leaves the index untouched;
        the old reverse entry is removed before the new one is added.
        """
        new_day = day_of_year(month, day)
        old_day = self._by_user.get(user_id)
        if old_day is not None:
            self._by_day[old_day - 1].discard(user_id)
        self._by_day[new_day - 1].add(user_id)
        self._by_user[user_id] = new_day
        self._changed()
        return BirthdayRecord(user_id=user_id, day_of_year=new_day)

    def get(self, user_id: int) -> Tuple[int, int] | None:
        """Return ``(month, day)`` for the user, or None if they never set one."""
        stored = self._by_user.get(user_id)
        if stored is None:
            return None
        return month_and_day(stored)

    def delete(self, user_id: int) -> bool:
        """Forget a user's birthday. Returns False (not an error) if none was set."""
        old_day = self._by_user.pop(user_id, None)
        if old_day is None:
            return False
        self._by_day[old_day - 1].discard(user_id)
        self._changed()
        return True

    def users_on_day(self, value: int) -> frozenset[int]:
        """Users whose birthday falls on day-of-year ``value``; empty outside 1-366."""
        if not 1 <= value <= DAYS_IN_YEAR:
            return frozenset()
        return frozenset(self._by_day[value - 1])

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_payload(self) -> Dict[str, int]:
        # JSON object keys must be strings
        return {str(user_id): day for user_id, day in self._by_user.items()}

    def load_payload(self, payload: Mapping[str, Any]) -> None:
        """Replace the index with a stored forward map and rebuild the reverse index."""
        self._by_user.clear()
        for bucket in self._by_day:
            bucket.clear()

        for raw_user, raw_day in payload.items():
            try:
                user_id, stored = int(raw_user), int(raw_day)
            except (TypeError, ValueError):
                logger.warning("[BIRTHDAY INDEX] Skipping malformed entry %r: %r", raw_user, raw_day)
                continue
            if not 1 <= stored <= DAYS_IN_YEAR:
                logger.warning("[BIRTHDAY INDEX] Skipping out-of-range day %d for user %d", stored, user_id)
                continue
            self._by_user[user_id] = stored
            self._by_day[stored - 1].add(user_id)

        logger.info("[BIRTHDAY INDEX] Loaded %d birthdays", len(self._by_user))
