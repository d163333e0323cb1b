"""Event listener Cog for Guildkeeper.

Feeds gateway events into the data store: tracked guilds, newly created
scheduled events and joining members. Notifications and enforcement happen
later, on the next reconciliation tick.
"""

import asyncio

import discord
from discord.ext import commands

from guildkeeper.datatypes.discord_datatypes import GuildID
from guildkeeper.services.discord_gateway import snapshot_scheduled_event
from guildkeeper.settings.guild_data_store import GuildDataStore
from guildkeeper.util.logger import get_logger

logger = get_logger("events_listener")


class EventsListenerCog(commands.Cog):
    """Records guilds, scheduled events and members as the gateway reports them."""

    def __init__(self, bot: discord.Bot, data_store: GuildDataStore) -> None:
        self.bot = bot
        self.data_store = data_store
        logger.info("[EVENTS LISTENER] Events listener cog loaded")

    async def _persist(self, guild_id: GuildID) -> None:
        try:
            await self.data_store.save(guild_id)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[EVENTS LISTENER] Failed to persist guild %s", guild_id)

    # ------------------------------------------------------------------
    # Lifecycle events
    # ------------------------------------------------------------------

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self) -> None:
        """Track every guild the bot is a member of."""
        if not self.bot.user:
            logger.warning("[EVENTS LISTENER] Bot partially connected, user info not yet available.")
            return

        for guild in self.bot.guilds:
            self.data_store.track_guild(GuildID(guild.id))
        logger.info(
            "Bot connected as %s (ID: %s), tracking %d guild(s)",
            self.bot.user, self.bot.user.id, len(self.bot.guilds),
        )

    @commands.Cog.listener(name="on_guild_join")
    async def on_guild_join(self, guild: discord.Guild) -> None:
        guild_id = GuildID(guild.id)
        self.data_store.track_guild(guild_id)
        await self._persist(guild_id)
        logger.info("[EVENTS LISTENER] Joined guild '%s' (ID: %s)", guild.name, guild.id)

    # ------------------------------------------------------------------
    # Guild content
    # ------------------------------------------------------------------

    @commands.Cog.listener(name="on_scheduled_event_create")
    async def on_scheduled_event_create(self, event: discord.ScheduledEvent) -> None:
        """Start tracking a new event; the next tick sends its "created" notification."""
        remote = snapshot_scheduled_event(event)
        guild_id = GuildID(remote.guild_id)
        data = await self.data_store.get_data(guild_id)
        record = data.track_scheduled_event(remote)
        logger.debug("[EVENTS LISTENER] Tracking scheduled event '%s' (%s) in guild %s", record.name, record.id, guild_id)
        await self._persist(guild_id)

    @commands.Cog.listener(name="on_member_join")
    async def on_member_join(self, member: discord.Member) -> None:
        guild_id = GuildID(member.guild.id)
        data = await self.data_store.get_data(guild_id)
        data.get_or_create_member(member.id)
        await self._persist(guild_id)


def setup(bot: discord.Bot, data_store: GuildDataStore) -> None:
    """Register the EventsListenerCog with the bot."""
    bot.add_cog(EventsListenerCog(bot, data_store))
