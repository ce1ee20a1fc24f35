from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from tickcord.bot.notifier import DiscordNotifier


@pytest.mark.asyncio
async def test_send_to_cached_channel() -> None:
    channel = MagicMock(spec=discord.TextChannel)
    channel.send = AsyncMock()
    bot = MagicMock()
    bot.get_channel.return_value = channel

    await DiscordNotifier(bot).send(10, "hello")

    bot.get_channel.assert_called_once_with(10)
    channel.send.assert_awaited_once_with("hello")


@pytest.mark.asyncio
async def test_send_fetches_uncached_channel() -> None:
    channel = MagicMock(spec=discord.TextChannel)
    channel.send = AsyncMock()
    bot = MagicMock()
    bot.get_channel.return_value = None
    bot.fetch_channel = AsyncMock(return_value=channel)

    await DiscordNotifier(bot).send(11, "hi")

    bot.fetch_channel.assert_awaited_once_with(11)
    channel.send.assert_awaited_once_with("hi")


@pytest.mark.asyncio
async def test_missing_channel_is_logged_not_raised() -> None:
    class DummyNotFound(Exception):
        pass

    bot = MagicMock()
    bot.get_channel.return_value = None
    bot.fetch_channel = AsyncMock(side_effect=DummyNotFound("gone"))

    with patch("tickcord.bot.notifier.discord.NotFound", DummyNotFound):
        await DiscordNotifier(bot).send(12, "hi")

    bot.fetch_channel.assert_awaited_once()


@pytest.mark.asyncio
async def test_non_messageable_channel_is_skipped() -> None:
    channel = MagicMock(spec=discord.CategoryChannel)
    bot = MagicMock()
    bot.get_channel.return_value = channel

    await DiscordNotifier(bot).send(13, "hi")


@pytest.mark.asyncio
async def test_send_http_error_is_swallowed() -> None:
    class DummyHTTPException(Exception):
        pass

    channel = MagicMock(spec=discord.TextChannel)
    channel.send = AsyncMock(side_effect=DummyHTTPException("500"))
    bot = MagicMock()
    bot.get_channel.return_value = channel

    with patch("tickcord.bot.notifier.discord.HTTPException", DummyHTTPException):
        await DiscordNotifier(bot).send(14, "hi")

    channel.send.assert_awaited_once()
