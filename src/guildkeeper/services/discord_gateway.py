"""
Thin adapter between the reconciliation engine and the py-cord client.

Every remote operation the engine needs goes through ``DiscordGateway``. The
methods translate py-cord objects into the plain snapshots in
``guildkeeper.datatypes`` and let ``discord.HTTPException`` propagate: those
are the transient failures the scheduler retries on the next tick.

Retry and rate-limit handling belong to py-cord's HTTP client; nothing here
sleeps or retries.
"""

from __future__ import annotations

from typing import Any, List, Sequence

import discord

from guildkeeper.datatypes.discord_datatypes import ChannelID, EventID, GuildID, RoleID, UserID
from guildkeeper.datatypes.member_datatypes import RemoteMember
from guildkeeper.datatypes.scheduled_event_datatypes import RemoteScheduledEvent
from guildkeeper.util.logger import get_logger

logger = get_logger("discord_gateway")

SUBSCRIBER_MENTION_LIMIT = 100


def _enum_value(value: Any) -> Any:
    """Unwrap a py-cord enum member to its raw wire value."""
    return getattr(value, "value", value)


def snapshot_scheduled_event(event: Any) -> RemoteScheduledEvent:
    """Copy the fields the reconciler reads out of a py-cord ``ScheduledEvent``."""
    location = getattr(event, "location", None)
    entity_type = _enum_value(getattr(location, "type", None)) if location is not None else None
    location_value = getattr(location, "value", None) if location is not None else None

    channel_id: int | None = None
    location_text: str | None = None
    if isinstance(location_value, str):
        location_text = location_value
    elif location_value is not None:
        channel_id = getattr(location_value, "id", None)

    creator = getattr(event, "creator", None)
    creator_id = getattr(event, "creator_id", None) or getattr(creator, "id", None)
    image = getattr(event, "image", None) or getattr(event, "cover", None)
    guild = getattr(event, "guild", None)

    return RemoteScheduledEvent(
        id=event.id,
        guild_id=getattr(guild, "id", 0),
        name=event.name,
        status=_enum_value(event.status),
        entity_type=entity_type,
        scheduled_start_time=event.start_time,
        scheduled_end_time=getattr(event, "end_time", None),
        description=getattr(event, "description", None) or "",
        channel_id=channel_id,
        location=location_text,
        creator_id=creator_id,
        creator_name=str(creator) if creator is not None else None,
        image_url=getattr(image, "url", None),
    )


def snapshot_member(member: Any) -> RemoteMember:
    """Copy a py-cord ``Member`` into a ``RemoteMember``, skipping @everyone."""
    role_ids = tuple(role.id for role in member.roles if not role.is_default())
    return RemoteMember(
        id=member.id,
        role_ids=role_ids,
        nickname=member.nick,
        global_name=getattr(member, "global_name", None),
        username=member.name,
    )


class DiscordGateway:
    """
    Remote operations used by the reconcilers, backed by a ``discord.Bot``.

    All methods are coroutines and every await is a cancellation point: a
    shutdown cancels the in-flight HTTP request and nothing local is touched.
    """

    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _guild(self, guild_id: GuildID) -> discord.Guild:
        guild = self.bot.get_guild(guild_id.to_int())
        if guild is None:
            guild = await self.bot.fetch_guild(guild_id.to_int())
        return guild

    async def _member(self, guild: discord.Guild, user_id: UserID) -> discord.Member:
        member = guild.get_member(user_id.to_int())
        if member is None:
            member = await guild.fetch_member(user_id.to_int())
        return member

    async def _scheduled_event(self, guild: discord.Guild, event_id: EventID) -> discord.ScheduledEvent:
        event = guild.get_scheduled_event(event_id.to_int())
        if event is None:
            event = await guild.fetch_scheduled_event(event_id.to_int())
        return event

    # ------------------------------------------------------------------
    # Scheduled events
    # ------------------------------------------------------------------

    async def list_scheduled_events(self, guild_id: GuildID) -> List[RemoteScheduledEvent]:
        guild = await self._guild(guild_id)
        events = await guild.fetch_scheduled_events(with_user_count=False)
        return [snapshot_scheduled_event(event) for event in events]

    async def start_scheduled_event(self, guild_id: GuildID, event_id: EventID) -> None:
        """Ask Discord to move the event to the Active status."""
        guild = await self._guild(guild_id)
        event = await self._scheduled_event(guild, event_id)
        await event.start(reason="Scheduled start time reached")
        logger.debug("[DISCORD GATEWAY] Requested start of event %s in guild %s", event_id, guild_id)

    async def list_event_subscriber_ids(self, guild_id: GuildID, event_id: EventID) -> List[int]:
        guild = await self._guild(guild_id)
        event = await self._scheduled_event(guild, event_id)
        return [user.id async for user in event.subscribers(limit=SUBSCRIBER_MENTION_LIMIT)]

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    async def fetch_member(self, guild_id: GuildID, user_id: UserID) -> RemoteMember | None:
        """Return the live member, or None when the user is not in the guild."""
        guild = await self._guild(guild_id)
        try:
            member = await guild.fetch_member(user_id.to_int())
        except discord.NotFound:
            return None
        return snapshot_member(member)

    async def modify_member_roles(
        self, guild_id: GuildID, user_id: UserID, role_ids: Sequence[RoleID], *, reason: str
    ) -> None:
        guild = await self._guild(guild_id)
        member = await self._member(guild, user_id)
        await member.edit(roles=[discord.Object(id=role.to_int()) for role in role_ids], reason=reason)

    async def add_member_role(self, guild_id: GuildID, user_id: UserID, role_id: RoleID, *, reason: str) -> None:
        guild = await self._guild(guild_id)
        member = await self._member(guild, user_id)
        await member.add_roles(discord.Object(id=role_id.to_int()), reason=reason)

    async def modify_member_nickname(self, guild_id: GuildID, user_id: UserID, nickname: str) -> None:
        guild = await self._guild(guild_id)
        member = await self._member(guild, user_id)
        await member.edit(nick=nickname)

    async def check_interactions(self, guild_id: GuildID, target_id: UserID) -> str | None:
        """
        Decide whether the bot may act on ``target_id`` right now.

        Returns None when enforcement is allowed, otherwise a short reason.
        """
        guild = await self._guild(guild_id)
        if guild.owner_id == target_id.to_int():
            return "target is the guild owner"
        me = guild.me
        if me is None:
            return "bot member is not available"
        target = await self._member(guild, target_id)
        if target.top_role >= me.top_role:
            return "target's top role is not below the bot's"
        return None

    # ------------------------------------------------------------------
    # Bans
    # ------------------------------------------------------------------

    async def ban_exists(self, guild_id: GuildID, user_id: UserID) -> bool:
        guild = await self._guild(guild_id)
        try:
            await guild.fetch_ban(discord.Object(id=user_id.to_int()))
        except discord.NotFound:
            return False
        return True

    async def remove_ban(self, guild_id: GuildID, user_id: UserID, *, reason: str) -> None:
        guild = await self._guild(guild_id)
        await guild.unban(discord.Object(id=user_id.to_int()), reason=reason)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def send_message(
        self,
        channel_id: ChannelID,
        content: str | None = None,
        *,
        embed: discord.Embed | None = None,
        view: discord.ui.View | None = None,
    ) -> None:
        channel = self.bot.get_channel(channel_id.to_int())
        if channel is None:
            channel = await self.bot.fetch_channel(channel_id.to_int())
        await channel.send(content=content, embed=embed, view=view)
