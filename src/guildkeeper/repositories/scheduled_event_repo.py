"""
Persistent storage for tracked scheduled events.

A guild's rows are replaced wholesale on save: the in-memory map is the
source of truth and records removed after their final notification simply
disappear from the table.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, Iterable, List

import aiosqlite

from guildkeeper.datatypes.discord_datatypes import EventID, GuildID
from guildkeeper.datatypes.errors import ContractViolationError
from guildkeeper.datatypes.scheduled_event_datatypes import ScheduledEventData, ScheduledEventStatus
from guildkeeper.util.logger import get_logger

logger = get_logger("scheduled_event_repo")


def to_unix(value: datetime | None) -> int | None:
    return int(value.timestamp()) if value is not None else None


def from_unix(value: int | None) -> datetime | None:
    return datetime.fromtimestamp(value, timezone.utc) if value is not None else None


class ScheduledEventRepo:
    """CRUD for the ``scheduled_events`` table."""

    @staticmethod
    async def replace_for_guild(
        conn: aiosqlite.Connection, guild_id: GuildID, records: Iterable[ScheduledEventData]
    ) -> None:
        await conn.execute("DELETE FROM scheduled_events WHERE guild_id = ?", (guild_id.to_int(),))
        await conn.executemany(
            """
            INSERT INTO scheduled_events (
                guild_id, event_id, name, status, scheduled_start, actual_start,
                early_notification_sent, dirty
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    guild_id.to_int(),
                    record.id.to_int(),
                    record.name,
                    record.status.value,
                    to_unix(record.scheduled_start_time),
                    to_unix(record.actual_start_time),
                    1 if record.early_notification_sent else 0,
                    1 if record.dirty else 0,
                )
                for record in records
            ],
        )

    @staticmethod
    async def get_all(conn: aiosqlite.Connection) -> Dict[GuildID, List[ScheduledEventData]]:
        """Load every stored record grouped by guild; rows with an unknown status are skipped."""
        cursor = await conn.execute(
            "SELECT guild_id, event_id, name, status, scheduled_start, actual_start, "
            "early_notification_sent, dirty FROM scheduled_events"
        )
        rows = await cursor.fetchall()

        grouped: Dict[GuildID, List[ScheduledEventData]] = defaultdict(list)
        for row in rows:
            try:
                status = ScheduledEventStatus.parse(row[3])
            except ContractViolationError as exc:
                logger.error("[SCHEDULED EVENT REPO] Skipping event %s of guild %s: %s", row[1], row[0], exc)
                continue
            grouped[GuildID(row[0])].append(
                ScheduledEventData(
                    id=EventID(row[1]),
                    name=row[2],
                    status=status,
                    scheduled_start_time=from_unix(row[4]),
                    actual_start_time=from_unix(row[5]),
                    early_notification_sent=bool(row[6]),
                    dirty=bool(row[7]),
                )
            )
        return dict(grouped)
