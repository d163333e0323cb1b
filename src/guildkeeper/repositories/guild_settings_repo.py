"""Row mapping for the ``guild_settings`` table."""

from __future__ import annotations

from datetime import timedelta
from typing import List

import aiosqlite

from guildkeeper.datatypes.discord_datatypes import ChannelID, GuildID, RoleID
from guildkeeper.datatypes.guild_settings import GuildSettings


def _optional_int(value) -> int | None:
    return value.to_int() if value is not None else None


class GuildSettingsRepo:
    """CRUD for the ``guild_settings`` table (one row per guild)."""

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, settings: GuildSettings) -> None:
        await conn.execute(
            """
            INSERT INTO guild_settings (
                guild_id, language, default_role,
                event_notification_channel, event_notification_role,
                autostart_events, early_notification_offset, rename_hoisted_users
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET
                language = excluded.language,
                default_role = excluded.default_role,
                event_notification_channel = excluded.event_notification_channel,
                event_notification_role = excluded.event_notification_role,
                autostart_events = excluded.autostart_events,
                early_notification_offset = excluded.early_notification_offset,
                rename_hoisted_users = excluded.rename_hoisted_users,
                updated_at = CURRENT_TIMESTAMP
            """,
            (
                settings.guild_id.to_int(),
                settings.language,
                _optional_int(settings.default_role),
                _optional_int(settings.event_notification_channel),
                _optional_int(settings.event_notification_role),
                1 if settings.autostart_events else 0,
                int(settings.event_early_notification_offset.total_seconds()),
                1 if settings.rename_hoisted_users else 0,
            ),
        )

    @staticmethod
    async def get_all(conn: aiosqlite.Connection) -> List[GuildSettings]:
        cursor = await conn.execute(
            "SELECT guild_id, language, default_role, event_notification_channel, "
            "event_notification_role, autostart_events, early_notification_offset, rename_hoisted_users "
            "FROM guild_settings ORDER BY guild_id"
        )
        rows = await cursor.fetchall()
        return [
            GuildSettings(
                guild_id=GuildID(row[0]),
                language=row[1] or "en",
                default_role=RoleID.optional(row[2]),
                event_notification_channel=ChannelID.optional(row[3]),
                event_notification_role=RoleID.optional(row[4]),
                autostart_events=bool(row[5]),
                event_early_notification_offset=timedelta(seconds=row[6] or 0),
                rename_hoisted_users=bool(row[7]),
            )
            for row in rows
        ]

