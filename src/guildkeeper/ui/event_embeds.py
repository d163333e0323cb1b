"""
Embed builders for scheduled event and reminder notifications.

The description helpers validate the remote snapshot before anything is
built: a local (stage/voice) event must name its channel, an external event
must carry an end time. Failing that they raise, so the caller sends nothing.
"""

import datetime

import discord

from guildkeeper.datatypes.errors import DataIntegrityError
from guildkeeper.datatypes.member_datatypes import Reminder, RemoteMember
from guildkeeper.datatypes.discord_datatypes import GuildID
from guildkeeper.datatypes.scheduled_event_datatypes import (
    EventEntityType,
    RemoteScheduledEvent,
    ScheduledEventData,
)
from guildkeeper.util.format_utils import channel_mention, discord_timestamp, format_duration

EVENT_COLORS = {
    "created": discord.Color.from_rgb(255, 255, 255),
    "started": discord.Color.green(),
    "completed": discord.Color.from_rgb(0, 0, 0),
    "canceled": discord.Color.red(),
    "early": discord.Color.default(),
    "reminder": discord.Color.magenta(),
}


# ---------------------------------------------------------------------------
# Descriptions
# ---------------------------------------------------------------------------

def _require_channel(remote: RemoteScheduledEvent) -> int:
    if remote.channel_id is None:
        raise DataIntegrityError(f"scheduled event {remote.id}", "channel_id")
    return remote.channel_id


def _require_end_time(remote: RemoteScheduledEvent) -> datetime.datetime:
    if remote.scheduled_end_time is None:
        raise DataIntegrityError(f"scheduled event {remote.id}", "scheduled_end_time")
    return remote.scheduled_end_time


def describe_created_event(remote: RemoteScheduledEvent) -> str:
    """Event description followed by a quote with when and where it happens."""
    entity_type = EventEntityType.parse(remote.entity_type)
    starts = discord_timestamp(remote.scheduled_start_time)

    if entity_type is EventEntityType.EXTERNAL:
        ends = discord_timestamp(_require_end_time(remote))
        details = f"Starts {starts}, ends {ends}, at `{remote.location or ''}`"
    else:
        details = f"Starts {starts} in {channel_mention(_require_channel(remote))}"

    return f"{remote.description}\n\n> {details}".lstrip("\n")


def describe_started_event(remote: RemoteScheduledEvent) -> str:
    entity_type = EventEntityType.parse(remote.entity_type)

    if entity_type is EventEntityType.EXTERNAL:
        ends = discord_timestamp(_require_end_time(remote))
        return f"The event is taking place at `{remote.location or ''}` and ends {ends}"

    return f"Join in {channel_mention(_require_channel(remote))}"


# ---------------------------------------------------------------------------
# Embeds
# ---------------------------------------------------------------------------

def create_event_created_embed(
    remote: RemoteScheduledEvent, description: str, now: datetime.datetime
) -> discord.Embed:
    embed = discord.Embed(
        title=remote.name,
        description=description,
        color=EVENT_COLORS["created"],
        timestamp=now,
    )
    embed.set_author(name=f"{remote.creator_name or 'Someone'} created a new event")
    if remote.image_url:
        embed.set_image(url=remote.image_url)
    return embed


def create_event_started_embed(
    remote: RemoteScheduledEvent, description: str, now: datetime.datetime
) -> discord.Embed:
    return discord.Embed(
        title=f'Event "{remote.name}" has started',
        description=description,
        color=EVENT_COLORS["started"],
        timestamp=now,
    )


def create_event_completed_embed(record: ScheduledEventData, now: datetime.datetime) -> discord.Embed:
    started = record.actual_start_time or record.scheduled_start_time
    return discord.Embed(
        title=f'Event "{record.name}" has finished',
        description=f"Duration: {format_duration(now - started)}",
        color=EVENT_COLORS["completed"],
        timestamp=now,
    )


def create_event_canceled_embed(record: ScheduledEventData, now: datetime.datetime) -> discord.Embed:
    embed = discord.Embed(description=":(", color=EVENT_COLORS["canceled"], timestamp=now)
    embed.set_author(name=f'Event "{record.name}" was cancelled')
    return embed


def create_early_notification_embed(remote: RemoteScheduledEvent) -> discord.Embed:
    starts = discord_timestamp(remote.scheduled_start_time, "R")
    return discord.Embed(
        description=f'Event "{remote.name}" starts {starts}!',
        color=EVENT_COLORS["early"],
    )


def create_reminder_embed(reminder: Reminder, member: RemoteMember, guild_id: GuildID) -> discord.Embed:
    embed = discord.Embed(
        description=(
            f"- Reminder text: `{reminder.text}`\n"
            f"- [Jump to message]({reminder.jump_url(guild_id)})"
        ),
        color=EVENT_COLORS["reminder"],
    )
    embed.set_author(name=f"Reminder for {member.display_name}")
    return embed
