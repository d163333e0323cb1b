"""Persistent storage for member records and their reminders."""

from __future__ import annotations

import json
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

import aiosqlite

from guildkeeper.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, RoleID, UserID
from guildkeeper.datatypes.member_datatypes import MemberData, Reminder
from guildkeeper.repositories.scheduled_event_repo import from_unix, to_unix


class MemberRepo:
    """CRUD for the ``members`` and ``reminders`` tables."""

    @staticmethod
    async def replace_for_guild(conn: aiosqlite.Connection, guild_id: GuildID, members: Iterable[MemberData]) -> None:
        gid = guild_id.to_int()
        # Reminders cascade from members
        await conn.execute("DELETE FROM members WHERE guild_id = ?", (gid,))

        member_rows = []
        reminder_rows = []
        for member in members:
            member_rows.append((
                gid,
                member.id.to_int(),
                json.dumps([role.to_int() for role in member.roles]),
                to_unix(member.banned_until),
                to_unix(member.muted_until),
            ))
            for position, reminder in enumerate(member.reminders):
                reminder_rows.append((
                    gid,
                    member.id.to_int(),
                    position,
                    reminder.text,
                    to_unix(reminder.at),
                    reminder.channel_id.to_int(),
                    reminder.message_id.to_int(),
                ))

        await conn.executemany(
            "INSERT INTO members (guild_id, user_id, roles, banned_until, muted_until) VALUES (?, ?, ?, ?, ?)",
            member_rows,
        )
        await conn.executemany(
            "INSERT INTO reminders (guild_id, user_id, position, text, remind_at, channel_id, message_id) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            reminder_rows,
        )

    @staticmethod
    async def get_all(conn: aiosqlite.Connection) -> Dict[GuildID, List[MemberData]]:
        cursor = await conn.execute(
            "SELECT guild_id, user_id, roles, banned_until, muted_until FROM members"
        )
        member_rows = await cursor.fetchall()

        cursor = await conn.execute(
            "SELECT guild_id, user_id, text, remind_at, channel_id, message_id "
            "FROM reminders ORDER BY guild_id, user_id, position"
        )
        reminder_rows = await cursor.fetchall()

        reminders: Dict[Tuple[int, int], List[Reminder]] = defaultdict(list)
        for row in reminder_rows:
            reminders[(row[0], row[1])].append(
                Reminder(
                    text=row[2],
                    at=from_unix(row[3]),
                    channel_id=ChannelID(row[4]),
                    message_id=MessageID(row[5]),
                )
            )

        grouped: Dict[GuildID, List[MemberData]] = defaultdict(list)
        for row in member_rows:
            grouped[GuildID(row[0])].append(
                MemberData(
                    id=UserID(row[1]),
                    roles=[RoleID(role_id) for role_id in json.loads(row[2] or "[]")],
                    banned_until=from_unix(row[3]),
                    muted_until=from_unix(row[4]),
                    reminders=reminders.get((row[0], row[1]), []),
                )
            )
        return dict(grouped)
