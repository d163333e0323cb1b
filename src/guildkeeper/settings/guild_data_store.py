"""
In-memory cache of per-guild data backed by SQLite.

Provides the API the tick scheduler and listeners use:
- get_guild_ids() -> List[GuildID]: Snapshot of tracked guilds
- get_data(guild_id) -> GuildData: Cached data (creates defaults if missing)
- track_guild(guild_id): Start tracking a guild
- save(guild_id): Persist one guild's data in a single transaction

Row mapping is delegated to the repositories.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from guildkeeper.database.db_connection import ConnectionManager, db_connection
from guildkeeper.database.db_schema import SchemaManager
from guildkeeper.datatypes.discord_datatypes import GuildID
from guildkeeper.datatypes.guild_data import GuildData
from guildkeeper.datatypes.guild_settings import GuildSettings
from guildkeeper.repositories.guild_settings_repo import GuildSettingsRepo
from guildkeeper.repositories.member_repo import MemberRepo
from guildkeeper.repositories.scheduled_event_repo import ScheduledEventRepo
from guildkeeper.util.logger import get_logger

logger = get_logger("guild_data_store")


class GuildDataStore:
    """
    Owner of every guild's ``GuildData``.

    Args:
        connection: Connection manager used for persistence. Defaults to the
            module-level singleton.
    """

    def __init__(self, connection: ConnectionManager = db_connection) -> None:
        self._connection = connection
        self._guilds: Dict[GuildID, GuildData] = {}
        self._initialized = False

    async def async_init(self, db_path: Path) -> None:
        """Open the database, create the schema and load all stored guilds."""
        if self._initialized:
            return

        await self._connection.open(db_path)
        await SchemaManager.initialize_schema(self._connection.connection)
        await self._load_all()
        self._initialized = True
        logger.info("[GUILD DATA STORE] Loaded %d guild(s) from %s", len(self._guilds), db_path)

    async def _load_all(self) -> None:
        async with self._connection.read() as conn:
            settings = await GuildSettingsRepo.get_all(conn)
            events = await ScheduledEventRepo.get_all(conn)
            members = await MemberRepo.get_all(conn)

        for guild_settings in settings:
            guild_id = guild_settings.guild_id
            self._guilds[guild_id] = GuildData(
                guild_id=guild_id,
                settings=guild_settings,
                scheduled_events={record.id.to_int(): record for record in events.get(guild_id, [])},
                members={member.id.to_int(): member for member in members.get(guild_id, [])},
            )

    def get_guild_ids(self) -> List[GuildID]:
        return list(self._guilds.keys())

    def track_guild(self, guild_id: GuildID) -> GuildData:
        """Return the guild's data, creating an empty entry if it is not tracked yet."""
        data = self._guilds.get(guild_id)
        if data is None:
            data = GuildData.empty(guild_id)
            self._guilds[guild_id] = data
            logger.debug("[GUILD DATA STORE] Tracking guild %s", guild_id)
        return data

    async def get_data(self, guild_id: GuildID) -> GuildData:
        return self.track_guild(guild_id)

    async def get_settings(self, guild_id: GuildID) -> GuildSettings:
        return self.track_guild(guild_id).settings

    async def save(self, guild_id: GuildID) -> None:
        """
        Persist the guild's settings and records.

        Raises:
            KeyError: If the guild is not tracked.
        """
        data = self._guilds[guild_id]
        async with self._connection.transaction() as conn:
            await GuildSettingsRepo.upsert(conn, data.settings)
            await ScheduledEventRepo.replace_for_guild(conn, guild_id, list(data.scheduled_events.values()))
            await MemberRepo.replace_for_guild(conn, guild_id, list(data.members.values()))

    async def shutdown(self) -> None:
        await self._connection.close()
        self._initialized = False
