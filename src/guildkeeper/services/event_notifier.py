"""
Construction and delivery of outbound notifications.

The reconcilers decide *which* notification is due and *when*; this service
builds the message and hands it to the gateway. Every method either returns
normally (delivered, or nothing to deliver) or raises, and the caller only
advances local state on a normal return.
"""

from __future__ import annotations

import datetime
from typing import List

from guildkeeper.datatypes.discord_datatypes import EventID, GuildID
from guildkeeper.datatypes.errors import DataIntegrityError
from guildkeeper.datatypes.guild_data import GuildData
from guildkeeper.datatypes.member_datatypes import Reminder, RemoteMember
from guildkeeper.datatypes.scheduled_event_datatypes import RemoteScheduledEvent, ScheduledEventData
from guildkeeper.services.discord_gateway import DiscordGateway
from guildkeeper.ui import event_embeds
from guildkeeper.ui.event_details_view import EventDetailsView
from guildkeeper.util.format_utils import role_mention, user_mention
from guildkeeper.util.logger import get_logger

logger = get_logger("event_notifier")


class EventNotifier:
    """Sends scheduled event and reminder notifications through a ``DiscordGateway``."""

    def __init__(self, gateway: DiscordGateway) -> None:
        self.gateway = gateway

    async def _event_mentions(self, guild_data: GuildData, event_id: int) -> str:
        """Notification role mention followed by the event's subscribers."""
        mentions: List[str] = []
        role = guild_data.settings.event_notification_role
        if role is not None:
            mentions.append(role_mention(role))

        subscriber_ids = await self.gateway.list_event_subscriber_ids(guild_data.guild_id, EventID(event_id))
        for subscriber_id in dict.fromkeys(subscriber_ids):
            mentions.append(user_mention(subscriber_id))
        return " ".join(mentions)

    # ------------------------------------------------------------------
    # Lifecycle notifications
    # ------------------------------------------------------------------

    async def send_event_created(
        self, guild_data: GuildData, remote: RemoteScheduledEvent, now: datetime.datetime
    ) -> None:
        if remote.creator_id is None:
            raise DataIntegrityError(f"scheduled event {remote.id}", "creator")
        description = event_embeds.describe_created_event(remote)

        channel = guild_data.settings.event_notification_channel
        if channel is None:
            logger.debug("[EVENT NOTIFIER] No notification channel in guild %s, skipping 'created'", guild_data.guild_id)
            return

        role = guild_data.settings.event_notification_role
        await self.gateway.send_message(
            channel,
            role_mention(role) if role is not None else None,
            embed=event_embeds.create_event_created_embed(remote, description, now),
            view=EventDetailsView(guild_data.guild_id, EventID(remote.id)),
        )

    async def send_event_started(
        self, guild_data: GuildData, remote: RemoteScheduledEvent, now: datetime.datetime
    ) -> None:
        description = event_embeds.describe_started_event(remote)

        channel = guild_data.settings.event_notification_channel
        if channel is None:
            logger.debug("[EVENT NOTIFIER] No notification channel in guild %s, skipping 'started'", guild_data.guild_id)
            return

        content = await self._event_mentions(guild_data, remote.id)
        await self.gateway.send_message(
            channel,
            content or None,
            embed=event_embeds.create_event_started_embed(remote, description, now),
        )

    async def send_event_completed(
        self, guild_data: GuildData, record: ScheduledEventData, now: datetime.datetime
    ) -> None:
        channel = guild_data.settings.event_notification_channel
        if channel is None:
            return
        await self.gateway.send_message(channel, embed=event_embeds.create_event_completed_embed(record, now))

    async def send_event_canceled(
        self, guild_data: GuildData, record: ScheduledEventData, now: datetime.datetime
    ) -> None:
        channel = guild_data.settings.event_notification_channel
        if channel is None:
            return
        await self.gateway.send_message(channel, embed=event_embeds.create_event_canceled_embed(record, now))

    async def send_early_notification(self, guild_data: GuildData, remote: RemoteScheduledEvent) -> None:
        channel = guild_data.settings.event_notification_channel
        if channel is None:
            return
        content = await self._event_mentions(guild_data, remote.id)
        await self.gateway.send_message(
            channel,
            content or None,
            embed=event_embeds.create_early_notification_embed(remote),
        )

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    async def send_reminder(self, guild_id: GuildID, reminder: Reminder, member: RemoteMember) -> None:
        await self.gateway.send_message(
            reminder.channel_id,
            member.mention,
            embed=event_embeds.create_reminder_embed(reminder, member, guild_id),
        )
