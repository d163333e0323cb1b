"""
Pytest configuration and fixtures for Guildkeeper tests.
"""

import random
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from guildkeeper.datatypes.discord_datatypes import GuildID  # noqa: E402
from guildkeeper.datatypes.guild_data import GuildData  # noqa: E402
from guildkeeper.services.discord_gateway import DiscordGateway  # noqa: E402
from guildkeeper.services.event_notifier import EventNotifier  # noqa: E402

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
GUILD_ID = 1111


class FixedClock:
    """Callable clock whose time the test moves by hand."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture()
def gateway() -> AsyncMock:
    """Gateway double with permissive defaults: nothing listed, everyone interactable."""
    fake = AsyncMock(spec=DiscordGateway)
    fake.list_scheduled_events.return_value = []
    fake.list_event_subscriber_ids.return_value = []
    fake.fetch_member.return_value = None
    fake.check_interactions.return_value = None
    fake.ban_exists.return_value = True
    return fake


@pytest.fixture()
def notifier() -> AsyncMock:
    return AsyncMock(spec=EventNotifier)


@pytest.fixture()
def guild_data() -> GuildData:
    return GuildData.empty(GuildID(GUILD_ID))
