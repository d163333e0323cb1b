"""
Guildkeeper
===========

A Discord bot that keeps guild state in line with its stored records: it
announces and auto-starts scheduled events, lifts expired bans and mutes,
delivers reminders, assigns the default role and renames hoisted members.
"""

import os
import sys
from pathlib import Path

def resolve_base_dir() -> Path:
    """Determine the base directory of the project.
    Resolution order:
    1. GUILDKEEPER_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("GUILDKEEPER_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]

BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from guildkeeper.cog.listener import events_listener, scheduler_cog
from guildkeeper.configuration.app_configuration import app_config
from guildkeeper.reconciliation.member_reconciler import MemberReconciler
from guildkeeper.reconciliation.scheduled_event_reconciler import ScheduledEventReconciler
from guildkeeper.reconciliation.tick_scheduler import TickScheduler
from guildkeeper.services.discord_gateway import DiscordGateway
from guildkeeper.services.event_notifier import EventNotifier
from guildkeeper.settings.guild_data_store import GuildDataStore
from guildkeeper.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Returns
    -------
    str
        Discord bot token extracted from the loaded environment.

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
    """Intents for guild, member and scheduled event updates."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    intents.scheduled_events = True
    return intents


def build_scheduler(bot: discord.Bot, data_store: GuildDataStore) -> TickScheduler:
    """Wire the gateway, notifier and both reconcilers into a tick scheduler."""
    gateway = DiscordGateway(bot)
    notifier = EventNotifier(gateway)
    reconcilers = [
        ScheduledEventReconciler(gateway, notifier),
        MemberReconciler(gateway, notifier),
    ]
    return TickScheduler(data_store, reconcilers, interval=app_config.tick_interval)


def create_bot(data_store: GuildDataStore) -> tuple[discord.Bot, TickScheduler]:
    """Instantiate the Discord bot and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    scheduler = build_scheduler(bot, data_store)

    events_listener.setup(bot, data_store)
    scheduler_cog.setup(bot, scheduler)
    logger.info("All cogs loaded successfully.")
    return bot, scheduler


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and log around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot, scheduler: TickScheduler, data_store: GuildDataStore) -> None:
    """Stop the scheduler, close the bot and flush the data store, in that order."""
    try:
        await scheduler.shutdown()
    except Exception as exc:
        logger.exception("Error during scheduler shutdown: %s", exc)

    if not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord bot: %s", exc)

    for guild_id in data_store.get_guild_ids():
        try:
            await data_store.save(guild_id)
        except Exception as exc:
            logger.exception("Error persisting guild %s during shutdown: %s", guild_id, exc)

    try:
        await data_store.shutdown()
    except Exception as exc:
        logger.exception("Error during data store shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the data store and bot, returning an exit code."""
    token = load_environment()
    data_store = GuildDataStore()

    try:
        logger.info("Initializing database and loading guild data...")
        await data_store.async_init(app_config.database_path)
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    try:
        bot, scheduler = create_bot(data_store)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await data_store.shutdown()
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, scheduler, data_store)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    sys.excepthook = handle_exception
    logger.info("Starting Guildkeeper…")
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
    sys.exit(main())
