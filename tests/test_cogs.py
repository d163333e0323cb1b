from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from guildkeeper.cog.listener import events_listener, scheduler_cog
from guildkeeper.cog.listener.events_listener import EventsListenerCog
from guildkeeper.cog.listener.scheduler_cog import ReconciliationCog
from guildkeeper.datatypes.discord_datatypes import GuildID
from guildkeeper.datatypes.guild_data import GuildData
from guildkeeper.datatypes.scheduled_event_datatypes import ScheduledEventStatus


class _Store:
    def __init__(self) -> None:
        self.guilds = {}
        self.save = AsyncMock()

    def track_guild(self, guild_id):
        return self.guilds.setdefault(guild_id, GuildData.empty(guild_id))

    async def get_data(self, guild_id):
        return self.track_guild(guild_id)


@pytest.mark.asyncio
async def test_reconciliation_cog_starts_scheduler_once() -> None:
    scheduler = MagicMock()
    scheduler.is_running = False
    scheduler.interval = 1.0
    cog = ReconciliationCog(MagicMock(), scheduler)

    await cog.on_ready()
    scheduler.is_running = True
    await cog.on_ready()

    scheduler.start.assert_called_once()

    cog.cog_unload()
    scheduler.stop.assert_called_once()


@pytest.mark.asyncio
async def test_on_ready_tracks_all_guilds() -> None:
    bot = MagicMock()
    bot.user = SimpleNamespace(id=1)
    bot.guilds = [SimpleNamespace(id=10), SimpleNamespace(id=20)]
    store = _Store()

    await EventsListenerCog(bot, store).on_ready()

    assert set(store.guilds) == {GuildID(10), GuildID(20)}


@pytest.mark.asyncio
async def test_guild_join_tracks_and_persists() -> None:
    store = _Store()
    cog = EventsListenerCog(MagicMock(), store)

    await cog.on_guild_join(SimpleNamespace(id=30, name="New guild"))

    assert GuildID(30) in store.guilds
    store.save.assert_awaited_once_with(GuildID(30))


@pytest.mark.asyncio
async def test_created_scheduled_event_is_tracked_dirty() -> None:
    store = _Store()
    cog = EventsListenerCog(MagicMock(), store)
    event = SimpleNamespace(
        id=42,
        guild=SimpleNamespace(id=30),
        name="Game night",
        status=discord.ScheduledEventStatus.scheduled,
        location=SimpleNamespace(type=discord.ScheduledEventLocationType.voice, value=SimpleNamespace(id=5)),
        start_time=datetime(2024, 5, 1, tzinfo=timezone.utc),
        end_time=None,
        description="",
        creator_id=7,
        creator=None,
    )

    await cog.on_scheduled_event_create(event)

    record = store.guilds[GuildID(30)].scheduled_events[42]
    assert record.status is ScheduledEventStatus.SCHEDULED
    assert record.dirty is True
    store.save.assert_awaited_once()


@pytest.mark.asyncio
async def test_member_join_creates_record_even_if_save_fails() -> None:
    store = _Store()
    store.save.side_effect = RuntimeError("disk full")
    cog = EventsListenerCog(MagicMock(), store)

    await cog.on_member_join(SimpleNamespace(id=77, guild=SimpleNamespace(id=30)))

    assert 77 in store.guilds[GuildID(30)].members


def test_setup_registers_cogs() -> None:
    bot = MagicMock()

    events_listener.setup(bot, _Store())
    scheduler_cog.setup(bot, MagicMock())

    registered = [call.args[0] for call in bot.add_cog.call_args_list]
    assert isinstance(registered[0], EventsListenerCog)
    assert isinstance(registered[1], ReconciliationCog)
