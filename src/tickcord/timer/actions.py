"""
Timer actions and the factory that rebuilds persisted ones.

Persistable actions are frozen dataclasses: two actions with the same
payload are equal, so registering the same announcement twice for the same
hour collapses into one registration, and unregistering by value works.
Collaborators such as the notifier are excluded from equality.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Protocol

from tickcord.datatypes.timer_datatypes import PersistableAction, TimerAction
from tickcord.timer.birthday_index import BirthdayIndex
from tickcord.timer.calendar_codec import today_day_of_year
from tickcord.util.logger import get_logger

logger = get_logger("timer_actions")


class Notifier(Protocol):
    """Fire-and-forget message delivery."""

    async def send(self, channel_id: int, content: str) -> None: ...


@dataclass(frozen=True)
class ScheduledMessageAction:
    """Send a fixed message to a channel."""
    channel_id: int
    content: str
    notifier: Notifier = field(compare=False, repr=False)

    kind = "message"

    async def __call__(self) -> None:
        await self.notifier.send(self.channel_id, self.content)

    def to_payload(self) -> Dict[str, Any]:
        return {"channel_id": self.channel_id, "content": self.content}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], notifier: Notifier) -> "ScheduledMessageAction":
        return cls(channel_id=int(payload["channel_id"]), content=str(payload["content"]), notifier=notifier)


@dataclass(frozen=True)
class BirthdayAnnouncementAction:
    """Announce every user whose birthday is today."""
    channel_id: int
    template: str
    index: BirthdayIndex = field(compare=False, repr=False)
    notifier: Notifier = field(compare=False, repr=False)
    today: Callable[[], datetime.date] = field(default=datetime.date.today, compare=False, repr=False)

    async def __call__(self) -> None:
        users = self.index.users_on_day(today_day_of_year(self.today()))
        if not users:
            return
        logger.info("[BIRTHDAY] Announcing %d birthday(s)", len(users))
        for user_id in sorted(users):
            await self.notifier.send(self.channel_id, self.template.format(mention=f"<@{user_id}>"))


class ActionFactory:
    """Maps an action ``kind`` to a builder that turns a payload back into an action."""

    def __init__(self) -> None:
        self._builders: Dict[str, Callable[[Dict[str, Any]], TimerAction]] = {}

    def register(self, kind: str, builder: Callable[[Dict[str, Any]], TimerAction]) -> None:
        self._builders[kind] = builder

    def can_persist(self, action: TimerAction) -> bool:
        return isinstance(action, PersistableAction) and action.kind in self._builders

    def dump(self, action: TimerAction) -> Dict[str, Any] | None:
        if not self.can_persist(action):
            return None
        return {"kind": action.kind, "payload": action.to_payload()}  # type: ignore[attr-defined]

    def build(self, data: Dict[str, Any]) -> TimerAction:
        """
        Rebuild an action from ``{"kind": ..., "payload": {...}}``.

        Raises:
            KeyError: unknown kind or missing payload fields.
        """
        builder = self._builders[str(data["kind"])]
        return builder(dict(data.get("payload") or {}))


def default_action_factory(notifier: Notifier) -> ActionFactory:
    factory = ActionFactory()
    factory.register(ScheduledMessageAction.kind, lambda payload: ScheduledMessageAction.from_payload(payload, notifier))
    return factory
