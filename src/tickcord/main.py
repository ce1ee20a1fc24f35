"""
Tickcord Discord Bot
====================

A Discord bot built around an hourly scheduler: daily announcements,
birthday greetings and automatic lifting of temporary bans.
"""

import os
import sys
from pathlib import Path

def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. TICKCORD_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("TICKCORD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]

BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from tickcord.bot.notifier import DiscordNotifier
from tickcord.configuration.app_configuration import app_config
from tickcord.database.database import Database
from tickcord.database.state_store import StateStore
from tickcord.moderation.temporary_ban_store import TemporaryBanStore, unban_member
from tickcord.timer.default_events import build_timer_service, register_default_events
from tickcord.timer.expiry_sweep import ExpirySweep
from tickcord.timer.timer_service import TimerService
from tickcord.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    return intents


def load_cogs(bot: discord.Bot, service: TimerService, notifier: DiscordNotifier, bans: TemporaryBanStore) -> None:
    from tickcord.cog import tempban_cog, timer_cog

    timer_cog.setup(bot, service, notifier)
    tempban_cog.setup(bot, service, bans)
    logger.info("All cogs loaded successfully.")


async def build_runtime(bot: discord.Bot) -> tuple[TimerService, TemporaryBanStore]:
    """Compose the timer service, restore persisted state and register defaults."""
    store = StateStore()
    notifier = DiscordNotifier(bot)

    service = build_timer_service(store, notifier, config=app_config)
    bans = TemporaryBanStore(store)

    await service.load()
    await bans.load()

    service.add_sweep(ExpirySweep(bans, unban_member(bot)))
    register_default_events(service, notifier, config=app_config)
    load_cogs(bot, service, notifier, bans)
    return service, bans


async def shutdown_runtime(bot: discord.Bot, service: TimerService | None, database: Database) -> None:
    """Stop the scheduler, save state, close Discord and the database."""
    if service is not None:
        try:
            await service.stop()
        except Exception as exc:
            logger.exception("Error during scheduler shutdown: %s", exc)

    if not bot.is_closed():
        await bot.close()

    await database.shutdown()
    logger.info("Shutdown complete.")


async def async_main() -> int:
    token = load_environment()

    database = Database(app_config.database_path)
    if not await database.initialize():
        logger.critical("Failed to initialize database.")
        return 1

    bot = discord.Bot(intents=build_intents())
    service: TimerService | None = None
    exit_code = 0
    try:
        service, _ = await build_runtime(bot)
        logger.info("Attempting to connect to Discord…")
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, service, database)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    logger.info("Starting Tickcord…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
