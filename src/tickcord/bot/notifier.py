"""Channel message delivery used by timer actions."""

from __future__ import annotations

import discord

from tickcord.util.logger import get_logger

logger = get_logger("notifier")


class DiscordNotifier:
    """
    Sends plain messages to channels by ID.

    Delivery is fire-and-forget: a missing channel or an HTTP error is logged
    and never raised into the scheduler.
    """

    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    async def _resolve(self, channel_id: int):
        channel = self.bot.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await self.bot.fetch_channel(channel_id)
        except (discord.NotFound, discord.Forbidden):
            return None

    async def send(self, channel_id: int, content: str) -> None:
        try:
            channel = await self._resolve(channel_id)
        except discord.HTTPException as exc:
            logger.warning("[NOTIFIER] Could not fetch channel %s: %s", channel_id, exc)
            return

        if channel is None:
            logger.warning("[NOTIFIER] Channel %s not found", channel_id)
            return
        if not isinstance(channel, discord.abc.Messageable):
            logger.warning("[NOTIFIER] Channel %s cannot receive messages", channel_id)
            return

        try:
            await channel.send(content)
        except discord.HTTPException as exc:
            logger.warning("[NOTIFIER] Failed to send to channel %s: %s", channel_id, exc)
