from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from guildkeeper.datatypes.discord_datatypes import ChannelID, EventID, GuildID, RoleID, UserID
from guildkeeper.services.discord_gateway import DiscordGateway, snapshot_member, snapshot_scheduled_event

START = datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)


def _role(role_id: int, *, default: bool = False):
    return SimpleNamespace(id=role_id, is_default=lambda: default)


def _gateway_with_guild(guild) -> DiscordGateway:
    bot = MagicMock()
    bot.get_guild.return_value = guild
    return DiscordGateway(bot)


class TestSnapshots:
    def test_voice_event_snapshot(self):
        event = SimpleNamespace(
            id=10,
            guild=SimpleNamespace(id=1),
            name="Game night",
            status=discord.ScheduledEventStatus.scheduled,
            location=SimpleNamespace(type=discord.ScheduledEventLocationType.voice, value=SimpleNamespace(id=555)),
            start_time=START,
            end_time=None,
            description="Bring snacks",
            creator_id=7,
            creator=SimpleNamespace(id=7, name="host"),
            image=None,
        )

        remote = snapshot_scheduled_event(event)

        assert remote.id == 10
        assert remote.guild_id == 1
        assert remote.status == 1
        assert remote.entity_type == 2
        assert remote.channel_id == 555
        assert remote.location is None
        assert remote.creator_id == 7
        assert remote.description == "Bring snacks"

    def test_external_event_snapshot_keeps_location_text(self):
        event = SimpleNamespace(
            id=11,
            guild=SimpleNamespace(id=1),
            name="Meetup",
            status=2,
            location=SimpleNamespace(type=3, value="Central Park"),
            start_time=START,
            end_time=START,
            description=None,
            creator_id=None,
            creator=None,
        )

        remote = snapshot_scheduled_event(event)

        assert remote.entity_type == 3
        assert remote.location == "Central Park"
        assert remote.channel_id is None
        assert remote.creator_id is None
        assert remote.description == ""

    def test_member_snapshot_skips_everyone_role(self):
        member = SimpleNamespace(
            id=5,
            roles=[_role(1, default=True), _role(20), _role(30)],
            nick=None,
            global_name="Global",
            name="user",
        )

        remote = snapshot_member(member)

        assert remote.role_ids == (20, 30)
        assert remote.display_name == "Global"


@pytest.mark.asyncio
async def test_fetch_member_returns_none_when_absent() -> None:
    guild = MagicMock()
    guild.fetch_member = AsyncMock(side_effect=discord.NotFound(MagicMock(), "Unknown Member"))
    gateway = _gateway_with_guild(guild)

    assert await gateway.fetch_member(GuildID(1), UserID(5)) is None


@pytest.mark.asyncio
async def test_fetch_member_propagates_other_http_errors() -> None:
    guild = MagicMock()
    guild.fetch_member = AsyncMock(side_effect=discord.Forbidden(MagicMock(), "Missing Access"))
    gateway = _gateway_with_guild(guild)

    with pytest.raises(discord.Forbidden):
        await gateway.fetch_member(GuildID(1), UserID(5))


@pytest.mark.asyncio
async def test_guild_is_fetched_when_not_cached() -> None:
    guild = MagicMock()
    guild.fetch_scheduled_events = AsyncMock(return_value=[])
    bot = MagicMock()
    bot.get_guild.return_value = None
    bot.fetch_guild = AsyncMock(return_value=guild)
    gateway = DiscordGateway(bot)

    assert await gateway.list_scheduled_events(GuildID(1)) == []
    bot.fetch_guild.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_ban_exists_maps_not_found_to_false() -> None:
    guild = MagicMock()
    guild.fetch_ban = AsyncMock(side_effect=discord.NotFound(MagicMock(), "Unknown Ban"))
    gateway = _gateway_with_guild(guild)

    assert await gateway.ban_exists(GuildID(1), UserID(5)) is False

    guild.fetch_ban = AsyncMock(return_value=SimpleNamespace(reason="spam"))
    assert await gateway.ban_exists(GuildID(1), UserID(5)) is True


@pytest.mark.asyncio
async def test_modify_member_roles_replaces_role_set() -> None:
    member = MagicMock()
    member.edit = AsyncMock()
    guild = MagicMock()
    guild.get_member.return_value = member
    gateway = _gateway_with_guild(guild)

    await gateway.modify_member_roles(GuildID(1), UserID(5), [RoleID(10), RoleID(20)], reason="Punishment expired")

    kwargs = member.edit.await_args.kwargs
    assert [role.id for role in kwargs["roles"]] == [10, 20]
    assert kwargs["reason"] == "Punishment expired"


@pytest.mark.asyncio
async def test_check_interactions_refuses_owner_and_higher_roles() -> None:
    guild = MagicMock()
    guild.owner_id = 5
    guild.me = SimpleNamespace(top_role=3)
    target = SimpleNamespace(top_role=3)
    guild.get_member.return_value = target
    gateway = _gateway_with_guild(guild)

    assert await gateway.check_interactions(GuildID(1), UserID(5)) == "target is the guild owner"
    assert await gateway.check_interactions(GuildID(1), UserID(6)) is not None

    target.top_role = 2
    assert await gateway.check_interactions(GuildID(1), UserID(6)) is None


@pytest.mark.asyncio
async def test_start_scheduled_event_uses_cached_event() -> None:
    event = MagicMock()
    event.start = AsyncMock()
    guild = MagicMock()
    guild.get_scheduled_event.return_value = event
    gateway = _gateway_with_guild(guild)

    await gateway.start_scheduled_event(GuildID(1), EventID(10))

    guild.get_scheduled_event.assert_called_once_with(10)
    event.start.assert_awaited_once()


@pytest.mark.asyncio
async def test_send_message_resolves_channel() -> None:
    channel = MagicMock()
    channel.send = AsyncMock()
    bot = MagicMock()
    bot.get_channel.return_value = channel
    gateway = DiscordGateway(bot)

    await gateway.send_message(ChannelID(9), "hello")

    bot.get_channel.assert_called_once_with(9)
    channel.send.assert_awaited_once_with(content="hello", embed=None, view=None)
