"""
Member punishment, reminder and role reconciliation.

For every cached member of a guild, in this order:

1. lift an expired ban (after checking it still exists remotely)
2. fetch the live member; stop here if they are not in the guild
3. ask whether enforcement on this member is currently permitted
4. refresh the cached role snapshot unless the member is muted
5. deliver due reminders
6. lift an expired mute by restoring the cached role snapshot   (enforcement)
7. add the default role if it is missing                         (enforcement)
8. strip hoisting characters from the display name              (enforcement)

Each step's failure is recorded and the remaining steps still run. Local state
changes only after the matching remote call returned.
"""

from __future__ import annotations

import random
import re
from datetime import datetime, timezone
from typing import Callable, List, Protocol

from guildkeeper.datatypes.discord_datatypes import GuildID, RoleID, UserID
from guildkeeper.datatypes.guild_data import GuildData
from guildkeeper.datatypes.member_datatypes import MemberData, RemoteMember
from guildkeeper.reconciliation.error_aggregator import ErrorAggregator
from guildkeeper.services.discord_gateway import DiscordGateway
from guildkeeper.services.event_notifier import EventNotifier
from guildkeeper.util.logger import get_logger

logger = get_logger("member_reconciler")

PUNISHMENT_EXPIRED_REASON = "Punishment expired"
DEFAULT_ROLE_REASON = "Default role"

GENERIC_NICKNAMES = (
    "Albatross", "Alpha", "Anchor", "Banjo", "Bell", "Beta", "Blackbird", "Bulldog", "Canary",
    "Cat", "Calf", "Cyclone", "Daisy", "Dalmatian", "Dart", "Delta", "Diamond", "Donkey", "Duck",
    "Emu", "Eclipse", "Flamingo", "Flute", "Frog", "Goose", "Hatchet", "Heron", "Husky", "Hurricane",
    "Iceberg", "Iguana", "Kiwi", "Kite", "Lamb", "Lily", "Macaw", "Manatee", "Maple", "Mask",
    "Nautilus", "Ostrich", "Octopus", "Pelican", "Puffin", "Pyramid", "Rattle", "Robin", "Rose",
    "Salmon", "Seal", "Shark", "Sheep", "Snake", "Sonar", "Stump", "Sparrow", "Toaster", "Toucan",
    "Torus", "Violet", "Vortex", "Vulture", "Wagon", "Whale", "Woodpecker", "Zebra", "Zigzag",
)

# Latin and Cyrillic letters plus digits
LEGAL_NICKNAME_CHARACTER = re.compile(r"[0-9A-Za-zА-Яа-яЁё]")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def strip_hoisting_characters(name: str) -> str:
    """Drop leading characters outside the legal alphabet."""
    index = 0
    while index < len(name) and not LEGAL_NICKNAME_CHARACTER.fullmatch(name[index]):
        index += 1
    return name[index:]


def sanitize_nickname(name: str, rng: random.Random) -> str | None:
    """
    Return the nickname ``name`` should be changed to, or None to leave it.

    >>> sanitize_nickname("!!!Bob", random.Random(0))
    'Bob'
    >>> sanitize_nickname("Bob", random.Random(0)) is None
    True
    """
    trimmed = strip_hoisting_characters(name)
    if trimmed == name:
        return None
    if not trimmed.strip():
        return rng.choice(GENERIC_NICKNAMES)
    return trimmed


class InteractionChecker(Protocol):
    async def check_interactions(self, guild_id: GuildID, target_id: UserID) -> str | None:
        """Return None if the bot may act on ``target_id``, otherwise the reason it may not."""


class MemberReconciler:
    """
    Per-guild reconciliation of ``MemberData`` records.

    Args:
        gateway: Remote API for members and bans.
        notifier: Delivers reminder notifications.
        interaction_checker: Decides whether enforcement is allowed; defaults to the gateway.
        clock: Returns the current aware UTC time.
        rng: Random source for fallback nicknames.
    """

    name = "member data"

    def __init__(
        self,
        gateway: DiscordGateway,
        notifier: EventNotifier,
        interaction_checker: InteractionChecker | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        rng: random.Random | None = None,
    ) -> None:
        self.gateway = gateway
        self.notifier = notifier
        self.interaction_checker = interaction_checker or gateway
        self.clock = clock
        self.rng = rng or random.Random()

    async def reconcile(self, guild_data: GuildData) -> None:
        """
        Run one tick over every cached member of ``guild_data``.

        Raises:
            ReconciliationError: At least one step of one member failed.
        """
        errors = ErrorAggregator(f"members of guild {guild_data.guild_id}")
        for member_data in list(guild_data.members.values()):
            errors.extend(await self._reconcile_member(guild_data, member_data))
        errors.raise_if_failed()

    async def _reconcile_member(self, guild_data: GuildData, data: MemberData) -> List[Exception]:
        guild_id = guild_data.guild_id
        settings = guild_data.settings
        errors = ErrorAggregator(f"member {data.id}")
        now = self.clock()

        with errors.capture(f"auto-unban of member {data.id}"):
            await self._try_auto_unban(guild_id, data, now)

        member: RemoteMember | None = None
        with errors.capture(f"fetch of member {data.id}"):
            member = await self.gateway.fetch_member(guild_id, data.id)
        if member is None:
            return errors.errors

        can_interact = False
        with errors.capture(f"interaction check for member {data.id}"):
            refusal = await self.interaction_checker.check_interactions(guild_id, data.id)
            if refusal is not None:
                logger.debug("[MEMBERS] Not enforcing on %s in guild %s: %s", data.id, guild_id, refusal)
            can_interact = refusal is None

        if data.muted_until is None:
            data.roles = [RoleID(role_id) for role_id in member.role_ids]

        # Walk backwards so delivered reminders can be deleted in place
        for index in range(len(data.reminders) - 1, -1, -1):
            reminder = data.reminders[index]
            if not reminder.is_due(now):
                continue
            with errors.capture(f"reminder {index} of member {data.id}"):
                await self.notifier.send_reminder(guild_id, reminder, member)
                del data.reminders[index]

        if not can_interact:
            return errors.errors

        with errors.capture(f"auto-unmute of member {data.id}"):
            await self._try_auto_unmute(guild_id, data, now)

        default_role = settings.default_role
        if default_role is not None and default_role not in data.roles:
            with errors.capture(f"default role for member {data.id}"):
                await self.gateway.add_member_role(guild_id, data.id, default_role, reason=DEFAULT_ROLE_REASON)

        if settings.rename_hoisted_users:
            with errors.capture(f"nickname filter for member {data.id}"):
                await self._filter_nickname(guild_id, member)

        return errors.errors

    async def _try_auto_unban(self, guild_id: GuildID, data: MemberData, now: datetime) -> None:
        if not data.ban_expired(now):
            return

        if not await self.gateway.ban_exists(guild_id, data.id):
            logger.debug("[MEMBERS] Ban of %s in guild %s was already lifted", data.id, guild_id)
            data.banned_until = None
            return

        await self.gateway.remove_ban(guild_id, data.id, reason=PUNISHMENT_EXPIRED_REASON)
        data.banned_until = None
        logger.info("[MEMBERS] Unbanned %s in guild %s", data.id, guild_id)

    async def _try_auto_unmute(self, guild_id: GuildID, data: MemberData, now: datetime) -> None:
        if not data.mute_expired(now):
            return

        await self.gateway.modify_member_roles(guild_id, data.id, list(data.roles), reason=PUNISHMENT_EXPIRED_REASON)
        data.muted_until = None
        logger.info("[MEMBERS] Unmuted %s in guild %s", data.id, guild_id)

    async def _filter_nickname(self, guild_id: GuildID, member: RemoteMember) -> None:
        new_nickname = sanitize_nickname(member.display_name, self.rng)
        if new_nickname is None:
            return

        await self.gateway.modify_member_nickname(guild_id, UserID(member.id), new_nickname)
        logger.info("[MEMBERS] Renamed hoisted member %s to %r in guild %s", member.id, new_nickname, guild_id)
