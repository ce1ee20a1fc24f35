"""
Startup wiring for the timer core.

``build_timer_service`` constructs the one service per process and
``register_default_events`` adds the built-in daily events: log rotation and
birthday announcements at midnight, plus announcements declared in config.
"""

from __future__ import annotations

import datetime

from tickcord.configuration.app_configuration import AppConfig, app_config
from tickcord.database.state_store import StateStore
from tickcord.timer.actions import (
    BirthdayAnnouncementAction,
    Notifier,
    ScheduledMessageAction,
    default_action_factory,
)
from tickcord.timer.errors import DuplicateNameError
from tickcord.timer.scheduler import Clock
from tickcord.timer.timer_service import TimerService
from tickcord.util.logger import get_logger, rotate_log_file

logger = get_logger("default_events")

MIDNIGHT = 0


def build_timer_service(
    store: StateStore,
    notifier: Notifier,
    *,
    config: AppConfig = app_config,
    clock: Clock = datetime.datetime.now,
) -> TimerService:
    return TimerService(
        store,
        default_action_factory(notifier),
        clock=clock,
        period_seconds=config.tick_seconds,
    )


def register_default_events(
    service: TimerService,
    notifier: Notifier,
    *,
    config: AppConfig = app_config,
) -> None:
    """
    Register the built-in events. Call once, after ``service.load()``.

    Configured announcements are only added when no scheduled event with the
    same name was restored, so edits made through commands are kept.
    """
    service.register_timer_event(MIDNIGHT, rotate_log_file)

    channel_id = config.birthday_channel_id
    if channel_id is None:
        logger.info("[DEFAULT EVENTS] No birthday channel configured; birthday announcements disabled")
    else:
        service.register_timer_event(
            MIDNIGHT,
            BirthdayAnnouncementAction(
                channel_id=channel_id,
                template=config.birthday_message,
                index=service.birthdays,
                notifier=notifier,
            ),
        )

    for announcement in config.announcements:
        if service.has_scheduled_event(announcement.name):
            continue
        action = ScheduledMessageAction(
            channel_id=announcement.channel_id,
            content=announcement.content,
            notifier=notifier,
        )
        try:
            service.register_scheduled_event(announcement.name, announcement.hour, action)
        except (DuplicateNameError, ValueError) as exc:
            logger.warning("[DEFAULT EVENTS] Skipping announcement %s: %s", announcement.name, exc)

    logger.info("[DEFAULT EVENTS] Registered default events (%d scheduled)", len(service.scheduled_event_names()))
