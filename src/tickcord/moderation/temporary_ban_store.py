"""
Persistent set of temporary bans.

Each ban is an :class:`ExpiryRecord` whose expiry is an absolute hour count
since the epoch, so a ban survives restarts and is compared against the
scheduler's hour counter without any timezone handling. The hourly expiry
sweep removes records from this set once the ban has been lifted.
"""

from __future__ import annotations

from collections.abc import MutableSet
from typing import Any, Dict, Iterator, List

import discord

from tickcord.database.state_store import StateStore
from tickcord.datatypes.timer_datatypes import ExpiryRecord
from tickcord.util.logger import get_logger

logger = get_logger("temporary_ban_store")

TEMPORARY_BANS_KEY = "temporary_bans"


class TemporaryBanStore(MutableSet):
    """
    Mutable set of pending temporary bans, marked dirty in the state store
    whenever it changes.

    At most one record exists per (user, guild); banning again replaces it.
    """

    def __init__(self, store: StateStore | None = None) -> None:
        self._records: set[ExpiryRecord] = set()
        self._store = store
        if store is not None:
            store.register(TEMPORARY_BANS_KEY, self.to_payload)

    # ------------------------------------------------------------------
    # MutableSet protocol
    # ------------------------------------------------------------------

    def __contains__(self, record: object) -> bool:
        return record in self._records

    def __iter__(self) -> Iterator[ExpiryRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: ExpiryRecord) -> None:
        for existing in self._find(record.scope_id, record.subject_id):
            self._records.discard(existing)
        self._records.add(record)
        self._changed()

    def discard(self, record: ExpiryRecord) -> None:
        if record in self._records:
            self._records.discard(record)
            self._changed()

    # ------------------------------------------------------------------
    # Moderation API
    # ------------------------------------------------------------------

    def ban(self, guild_id: int, user_id: int, duration_hours: int, now_hours: int) -> ExpiryRecord:
        """Record a ban lifted once the hour counter reaches ``now_hours + duration_hours``."""
        if duration_hours <= 0:
            raise ValueError(f"Ban duration must be positive, got {duration_hours}")
        record = ExpiryRecord(subject_id=user_id, scope_id=guild_id, expiry_hour_count=now_hours + duration_hours)
        self.add(record)
        logger.debug(
            "[TEMPBAN STORE] %s banned in %s until hour %d",
            user_id, guild_id, record.expiry_hour_count,
        )
        return record

    def pardon(self, guild_id: int, user_id: int) -> bool:
        """Forget a pending ban without lifting it. Returns True if one existed."""
        found = self._find(guild_id, user_id)
        for record in found:
            self.discard(record)
        return bool(found)

    def pending_for(self, guild_id: int, user_id: int) -> ExpiryRecord | None:
        found = self._find(guild_id, user_id)
        return found[0] if found else None

    def _find(self, guild_id: int, user_id: int) -> List[ExpiryRecord]:
        return [r for r in self._records if r.scope_id == guild_id and r.subject_id == user_id]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _changed(self) -> None:
        if self._store is not None:
            self._store.mark_dirty(TEMPORARY_BANS_KEY)

    def to_payload(self) -> List[Dict[str, int]]:
        return sorted(
            (record.to_payload() for record in self._records),
            key=lambda p: (p["expiry_hour_count"], p["scope_id"], p["subject_id"]),
        )

    def load_payload(self, payload: List[Dict[str, Any]]) -> None:
        self._records.clear()
        for entry in payload:
            try:
                self._records.add(ExpiryRecord.from_payload(entry))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("[TEMPBAN STORE] Skipping malformed record %r: %s", entry, exc)
        logger.info("[TEMPBAN STORE] Loaded %d pending temporary ban(s)", len(self._records))

    async def load(self) -> None:
        if self._store is None:
            return
        payload = await self._store.load(TEMPORARY_BANS_KEY)
        if isinstance(payload, list):
            self.load_payload(payload)


def unban_member(bot: discord.Bot):
    """
    Build the release capability used by the expiry sweep.

    The returned coroutine function lifts the ban for ``(user_id, guild_id)``.
    A guild the bot has left, or a user no longer in the ban list, counts as
    released; any other error propagates so the sweep retries next tick.
    """

    async def release(user_id: int, guild_id: int) -> None:
        guild = bot.get_guild(guild_id)
        if guild is None:
            logger.warning("[TEMPBAN STORE] Guild %s not found; dropping ban of %s", guild_id, user_id)
            return
        try:
            await guild.unban(discord.Object(id=user_id), reason="Temporary ban expired.")
            logger.info("[TEMPBAN STORE] Unbanned %s in guild %s", user_id, guild_id)
        except discord.NotFound:
            logger.warning("[TEMPBAN STORE] %s not in ban list for guild %s; already unbanned?", user_id, guild_id)

    return release
