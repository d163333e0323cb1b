"""Repository layer for guild data database access."""
from guildkeeper.repositories.guild_settings_repo import GuildSettingsRepo
from guildkeeper.repositories.member_repo import MemberRepo
from guildkeeper.repositories.scheduled_event_repo import ScheduledEventRepo

__all__ = ["GuildSettingsRepo", "MemberRepo", "ScheduledEventRepo"]
