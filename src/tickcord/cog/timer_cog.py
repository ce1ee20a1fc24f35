"""
Timer cog: starts the hourly scheduler and manages daily announcements.

Commands (Manage Server permission, ephemeral replies):
- /schedule add: send a message to a channel every day at an hour
- /schedule remove: delete a scheduled announcement by name
- /schedule list: show every scheduled announcement
"""

from __future__ import annotations

import asyncio

import discord
from discord import Option
from discord.ext import commands

from tickcord.timer.actions import Notifier, ScheduledMessageAction
from tickcord.timer.errors import DuplicateNameError, UnknownNameError
from tickcord.timer.timer_service import TimerService
from tickcord.util.logger import get_logger

logger = get_logger("timer_cog")


class TimerCog(commands.Cog):
    """Owns the scheduler lifecycle for the bot."""

    schedule = discord.SlashCommandGroup("schedule", "Manage daily scheduled announcements.")

    def __init__(self, discord_bot_instance: discord.Bot, service: TimerService, notifier: Notifier) -> None:
        self.discord_bot_instance = discord_bot_instance
        self.service = service
        self.notifier = notifier
        self._stop_task: asyncio.Task[None] | None = None
        logger.info("[TIMER COG] Timer cog loaded")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        if self.service.scheduler.is_running or self.service.scheduler.is_stopped:
            return
        self.service.start()
        logger.info("[TIMER COG] Scheduler started")

    def cog_unload(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._stop_task = loop.create_task(self.service.stop(), name="tickcord-timer-stop")
        logger.info("[TIMER COG] Scheduler stop requested")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _has_manage_permission(ctx: discord.ApplicationContext) -> bool:
        if not isinstance(ctx.user, discord.Member):
            return False
        return ctx.user.guild_permissions.manage_guild

    async def _check_permissions(self, ctx: discord.ApplicationContext) -> bool:
        if not ctx.guild_id:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return False
        if not self._has_manage_permission(ctx):
            await ctx.respond("You need Manage Server permission.", ephemeral=True)
            return False
        return True

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @schedule.command(name="add", description="Send a message to a channel every day at the given hour.")
    async def schedule_add(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Unique name for this announcement."),  # type: ignore
        hour: Option(int, "Hour of the day (0-23).", min_value=0, max_value=23),  # type: ignore
        content: Option(str, "Message to send."),  # type: ignore
        channel: Option(discord.TextChannel, "Target channel (defaults to this one).", required=False) = None,  # type: ignore
    ):
        if not await self._check_permissions(ctx):
            return

        channel_id = channel.id if channel is not None else ctx.channel_id
        action = ScheduledMessageAction(channel_id=channel_id, content=content, notifier=self.notifier)
        try:
            self.service.register_scheduled_event(name, hour, action)
        except DuplicateNameError:
            await ctx.respond(f"A scheduled announcement named `{name}` already exists.", ephemeral=True)
            return

        self.service.request_flush()
        logger.info("[TIMER COG] %s scheduled %s at hour %d in channel %s", ctx.user, name, hour, channel_id)
        await ctx.respond(f"Scheduled `{name}` daily at {hour:02d}:00 in <#{channel_id}>.", ephemeral=True)

    @schedule.command(name="remove", description="Remove a scheduled announcement.")
    async def schedule_remove(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Name of the announcement to remove."),  # type: ignore
    ):
        if not await self._check_permissions(ctx):
            return

        try:
            self.service.unregister_scheduled_event(name)
        except UnknownNameError:
            await ctx.respond(f"No scheduled announcement named `{name}`.", ephemeral=True)
            return

        self.service.request_flush()
        logger.info("[TIMER COG] %s removed scheduled event %s", ctx.user, name)
        await ctx.respond(f"Removed `{name}`.", ephemeral=True)

    @schedule.command(name="list", description="List scheduled announcements.")
    async def schedule_list(self, ctx: discord.ApplicationContext):
        if not await self._check_permissions(ctx):
            return

        names = sorted(self.service.scheduled_event_names())
        if not names:
            await ctx.respond("No scheduled announcements.", ephemeral=True)
            return

        lines = []
        for name in names:
            event = self.service.scheduled_event(name)
            lines.append(f"`{name}` at {event.hour:02d}:00")
        await ctx.respond("\n".join(lines), ephemeral=True)


def setup(discord_bot_instance: discord.Bot, service: TimerService, notifier: Notifier) -> None:
    discord_bot_instance.add_cog(TimerCog(discord_bot_instance, service, notifier))
