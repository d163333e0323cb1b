"""
Everything the bot caches about one guild.

A ``GuildData`` is owned by the data store. During a tick exactly one
reconciliation task holds it and mutates its record maps in place; guilds are
disjoint, so no lock is shared between them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from guildkeeper.datatypes.discord_datatypes import GuildID, UserID
from guildkeeper.datatypes.guild_settings import GuildSettings
from guildkeeper.datatypes.member_datatypes import MemberData
from guildkeeper.datatypes.scheduled_event_datatypes import RemoteScheduledEvent, ScheduledEventData


@dataclass(slots=True)
class GuildData:
    """Cached settings plus scheduled event and member records, keyed by entity id."""

    guild_id: GuildID
    settings: GuildSettings
    scheduled_events: Dict[int, ScheduledEventData] = field(default_factory=dict)
    members: Dict[int, MemberData] = field(default_factory=dict)

    @classmethod
    def empty(cls, guild_id: GuildID) -> "GuildData":
        return cls(guild_id=guild_id, settings=GuildSettings(guild_id=guild_id))

    def get_or_create_member(self, user_id: UserID | int) -> MemberData:
        key = int(user_id.to_int() if isinstance(user_id, UserID) else user_id)
        member = self.members.get(key)
        if member is None:
            member = MemberData(id=UserID(key))
            self.members[key] = member
        return member

    def track_scheduled_event(self, remote: RemoteScheduledEvent) -> ScheduledEventData:
        """Start tracking ``remote`` unless it is already cached; return the record."""
        record = self.scheduled_events.get(remote.id)
        if record is None:
            record = ScheduledEventData.from_remote(remote)
            self.scheduled_events[remote.id] = record
        return record
