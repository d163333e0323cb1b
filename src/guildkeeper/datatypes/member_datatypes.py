"""
Member punishment and reminder records.

Timestamps are timezone-aware UTC datetimes. A punishment is considered
expired only once the current time is strictly past its end.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from guildkeeper.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, RoleID, UserID


@dataclass(slots=True)
class Reminder:
    """A message to deliver to a member in ``channel_id`` once ``at`` has passed."""

    text: str
    at: datetime
    channel_id: ChannelID
    message_id: MessageID

    def is_due(self, now: datetime) -> bool:
        return now >= self.at

    def jump_url(self, guild_id: GuildID) -> str:
        return f"https://discord.com/channels/{guild_id}/{self.channel_id}/{self.message_id}"


@dataclass(slots=True)
class MemberData:
    """
    Cached state of one guild member.

    Attributes:
        roles: Last known role set. While ``muted_until`` is set this is the
            pre-mute snapshot that gets restored on unmute, so it is frozen.
        reminders: Pending reminders in insertion order.
    """

    id: UserID
    roles: List[RoleID] = field(default_factory=list)
    banned_until: datetime | None = None
    muted_until: datetime | None = None
    reminders: List[Reminder] = field(default_factory=list)

    def ban_expired(self, now: datetime) -> bool:
        return self.banned_until is not None and now > self.banned_until

    def mute_expired(self, now: datetime) -> bool:
        return self.muted_until is not None and now > self.muted_until


@dataclass(frozen=True, slots=True)
class RemoteMember:
    """Snapshot of a live guild member fetched on this tick."""

    id: int
    role_ids: tuple[int, ...] = ()
    nickname: str | None = None
    global_name: str | None = None
    username: str = ""

    @property
    def display_name(self) -> str:
        """Nickname, falling back to the global name and then the username."""
        return self.nickname or self.global_name or self.username

    @property
    def mention(self) -> str:
        return f"<@{self.id}>"
