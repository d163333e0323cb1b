"""Persistence round-trips through a temporary SQLite database."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from guildkeeper.database.db_connection import ConnectionManager
from guildkeeper.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, RoleID, UserID
from guildkeeper.datatypes.member_datatypes import Reminder
from guildkeeper.datatypes.scheduled_event_datatypes import (
    RemoteScheduledEvent,
    ScheduledEventStatus,
)
from guildkeeper.settings.guild_data_store import GuildDataStore

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


async def _open_store(db_path: Path) -> GuildDataStore:
    store = GuildDataStore(ConnectionManager())
    await store.async_init(db_path)
    return store


@pytest.mark.asyncio
async def test_guild_data_survives_restart(tmp_path: Path) -> None:
    db_path = tmp_path / "data" / "app.db"
    store = await _open_store(db_path)
    guild_id = GuildID(1)

    data = await store.get_data(guild_id)
    data.settings.event_notification_channel = ChannelID(900)
    data.settings.default_role = RoleID(5)
    data.settings.autostart_events = True
    data.settings.event_early_notification_offset = timedelta(minutes=15)
    data.settings.rename_hoisted_users = True

    record = data.track_scheduled_event(
        RemoteScheduledEvent(
            id=42, guild_id=1, name="Game night", status=1, entity_type=2, scheduled_start_time=NOW
        )
    )
    record.mark_status(ScheduledEventStatus.ACTIVE)
    record.mark_started(NOW + timedelta(minutes=1))
    record.early_notification_sent = True

    member = data.get_or_create_member(UserID(77))
    member.roles = [RoleID(10), RoleID(20)]
    member.muted_until = NOW + timedelta(hours=1)
    member.reminders = [
        Reminder(text="first", at=NOW, channel_id=ChannelID(3), message_id=MessageID(4)),
        Reminder(text="second", at=NOW + timedelta(days=1), channel_id=ChannelID(3), message_id=MessageID(5)),
    ]

    await store.save(guild_id)
    await store.shutdown()

    reopened = await _open_store(db_path)
    try:
        assert reopened.get_guild_ids() == [guild_id]
        loaded = await reopened.get_data(guild_id)

        settings = loaded.settings
        assert settings.event_notification_channel == ChannelID(900)
        assert settings.default_role == RoleID(5)
        assert settings.event_notification_role is None
        assert settings.autostart_events is True
        assert settings.event_early_notification_offset == timedelta(minutes=15)
        assert settings.rename_hoisted_users is True

        loaded_record = loaded.scheduled_events[42]
        assert loaded_record.status is ScheduledEventStatus.ACTIVE
        assert loaded_record.dirty is True
        assert loaded_record.early_notification_sent is True
        assert loaded_record.actual_start_time == NOW + timedelta(minutes=1)
        assert loaded_record.scheduled_start_time == NOW

        loaded_member = loaded.members[77]
        assert loaded_member.roles == [RoleID(10), RoleID(20)]
        assert loaded_member.banned_until is None
        assert loaded_member.muted_until == NOW + timedelta(hours=1)
        assert [reminder.text for reminder in loaded_member.reminders] == ["first", "second"]
        assert loaded_member.reminders[1].message_id == MessageID(5)
    finally:
        await reopened.shutdown()


@pytest.mark.asyncio
async def test_save_replaces_removed_records(tmp_path: Path) -> None:
    db_path = tmp_path / "app.db"
    store = await _open_store(db_path)
    guild_id = GuildID(2)
    data = await store.get_data(guild_id)
    data.track_scheduled_event(
        RemoteScheduledEvent(id=1, guild_id=2, name="A", status=1, entity_type=2, scheduled_start_time=NOW)
    )
    data.get_or_create_member(UserID(8)).reminders.append(
        Reminder(text="x", at=NOW, channel_id=ChannelID(3), message_id=MessageID(4))
    )
    await store.save(guild_id)

    data.scheduled_events.clear()
    data.members[8].reminders.clear()
    await store.save(guild_id)
    await store.shutdown()

    reopened = await _open_store(db_path)
    try:
        loaded = await reopened.get_data(guild_id)
        assert loaded.scheduled_events == {}
        assert loaded.members[8].reminders == []
    finally:
        await reopened.shutdown()


@pytest.mark.asyncio
async def test_unknown_stored_status_is_skipped(tmp_path: Path) -> None:
    db_path = tmp_path / "app.db"
    store = await _open_store(db_path)
    guild_id = GuildID(3)
    await store.get_data(guild_id)
    await store.save(guild_id)

    async with store._connection.transaction() as conn:
        await conn.execute(
            "INSERT INTO scheduled_events (guild_id, event_id, name, status, scheduled_start) VALUES (?, ?, ?, ?, ?)",
            (3, 99, "Broken", 42, int(NOW.timestamp())),
        )
    await store.shutdown()

    reopened = await _open_store(db_path)
    try:
        loaded = await reopened.get_data(guild_id)
        assert loaded.scheduled_events == {}
    finally:
        await reopened.shutdown()


@pytest.mark.asyncio
async def test_track_guild_creates_defaults_once(tmp_path: Path) -> None:
    store = await _open_store(tmp_path / "app.db")
    try:
        first = store.track_guild(GuildID(4))
        assert store.track_guild(GuildID(4)) is first
        assert (await store.get_settings(GuildID(4))).language == "en"
        assert store.get_guild_ids() == [GuildID(4)]
    finally:
        await store.shutdown()


@pytest.mark.asyncio
async def test_connection_requires_open() -> None:
    manager = ConnectionManager()

    assert not manager.is_open
    with pytest.raises(RuntimeError):
        _ = manager.connection
