"""
Temporary ban commands.

/tempban bans a member and records an expiry in the temporary ban store;
the hourly expiry sweep lifts the ban once the hour count is reached.
/tempban_cancel forgets a pending expiry (the ban itself stays).
"""

from __future__ import annotations

import discord
from discord import Option
from discord.ext import commands

from tickcord.moderation.temporary_ban_store import TemporaryBanStore
from tickcord.timer.timer_service import TimerService
from tickcord.util.logger import get_logger

logger = get_logger("tempban_cog")

MAX_BAN_HOURS = 24 * 365


class TempBanCog(commands.Cog):
    """Hour-granularity temporary bans."""

    def __init__(self, discord_bot_instance: discord.Bot, service: TimerService, bans: TemporaryBanStore) -> None:
        self.discord_bot_instance = discord_bot_instance
        self.service = service
        self.bans = bans
        logger.info("[TEMPBAN COG] Temporary ban cog loaded")

    async def _check_permissions(self, ctx: discord.ApplicationContext) -> bool:
        if not ctx.guild_id or not isinstance(ctx.user, discord.Member):
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return False
        if not ctx.user.guild_permissions.ban_members:
            await ctx.respond("You need Ban Members permission.", ephemeral=True)
            return False
        return True

    @commands.slash_command(name="tempban", description="Ban a member for a number of hours.")
    async def tempban(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The member to ban."),  # type: ignore
        hours: Option(int, "Ban length in hours.", min_value=1, max_value=MAX_BAN_HOURS),  # type: ignore
        reason: Option(str, "Reason for the ban.", default="No reason provided."),  # type: ignore
    ):
        if not await self._check_permissions(ctx):
            return
        if user.id == ctx.user.id:
            await ctx.respond("You cannot ban yourself.", ephemeral=True)
            return

        try:
            await ctx.guild.ban(user, reason=reason)
        except discord.Forbidden:
            await ctx.respond("I don't have permission to ban that member.", ephemeral=True)
            return
        except discord.HTTPException as exc:
            logger.error("[TEMPBAN COG] Failed to ban %s: %s", user.id, exc)
            await ctx.respond("Failed to ban that member.", ephemeral=True)
            return

        record = self.bans.ban(ctx.guild_id, user.id, hours, self.service.hours_since_epoch())
        self.service.request_flush()
        logger.info(
            "[TEMPBAN COG] %s banned %s in %s for %dh (until hour %d)",
            ctx.user, user.id, ctx.guild_id, hours, record.expiry_hour_count,
        )
        await ctx.respond(f"Banned {user.mention} for {hours} hour(s).", ephemeral=True)

    @commands.slash_command(name="tempban_cancel", description="Make a temporary ban permanent by dropping its expiry.")
    async def tempban_cancel(
        self,
        ctx: discord.ApplicationContext,
        user_id: Option(str, "ID of the banned user."),  # type: ignore
    ):
        if not await self._check_permissions(ctx):
            return
        try:
            target = int(user_id.strip())
        except ValueError:
            await ctx.respond("That is not a valid user ID.", ephemeral=True)
            return

        if not self.bans.pardon(ctx.guild_id, target):
            await ctx.respond("No pending temporary ban for that user.", ephemeral=True)
            return

        self.service.request_flush()
        await ctx.respond(f"Expiry removed for `{target}`.", ephemeral=True)


def setup(discord_bot_instance: discord.Bot, service: TimerService, bans: TemporaryBanStore) -> None:
    discord_bot_instance.add_cog(TempBanCog(discord_bot_instance, service, bans))
