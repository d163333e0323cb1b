"""
Database schema creation and version tracking.

Timestamps are stored as INTEGER unix seconds (UTC). Role lists are stored
as JSON arrays of role ids.
"""

import aiosqlite
from guildkeeper.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates the tables and indexes the data store needs."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS guild_settings (
                guild_id INTEGER PRIMARY KEY,
                language TEXT NOT NULL DEFAULT 'en',
                default_role INTEGER,
                event_notification_channel INTEGER,
                event_notification_role INTEGER,
                autostart_events INTEGER NOT NULL DEFAULT 0,
                early_notification_offset INTEGER NOT NULL DEFAULT 0,
                rename_hoisted_users INTEGER NOT NULL DEFAULT 0,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS scheduled_events (
                guild_id INTEGER NOT NULL,
                event_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                status INTEGER NOT NULL,
                scheduled_start INTEGER NOT NULL,
                actual_start INTEGER,
                early_notification_sent INTEGER NOT NULL DEFAULT 0,
                dirty INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (guild_id, event_id),
                FOREIGN KEY (guild_id) REFERENCES guild_settings(guild_id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS members (
                guild_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                roles TEXT NOT NULL DEFAULT '[]',
                banned_until INTEGER,
                muted_until INTEGER,
                PRIMARY KEY (guild_id, user_id),
                FOREIGN KEY (guild_id) REFERENCES guild_settings(guild_id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS reminders (
                guild_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                position INTEGER NOT NULL,
                text TEXT NOT NULL,
                remind_at INTEGER NOT NULL,
                channel_id INTEGER NOT NULL,
                message_id INTEGER NOT NULL,
                PRIMARY KEY (guild_id, user_id, position),
                FOREIGN KEY (guild_id, user_id) REFERENCES members(guild_id, user_id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        await db.execute("CREATE INDEX IF NOT EXISTS idx_scheduled_events_guild ON scheduled_events(guild_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_members_guild ON members(guild_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_reminders_member ON reminders(guild_id, user_id)")

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute(
            "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
