"""
Per-guild configuration consumed by the reconciliation engine.

Database schema:
- guild_settings table with one row per guild, one column per field below.
  The early notification offset is stored as whole seconds.
"""
from dataclasses import dataclass
from datetime import timedelta

from guildkeeper.datatypes.discord_datatypes import ChannelID, GuildID, RoleID


@dataclass(slots=True)
class GuildSettings:
    """Persistent per-guild configuration values."""

    guild_id: GuildID
    language: str = "en"
    default_role: RoleID | None = None
    event_notification_channel: ChannelID | None = None
    event_notification_role: RoleID | None = None
    autostart_events: bool = False
    event_early_notification_offset: timedelta = timedelta(0)
    rename_hoisted_users: bool = False
