"""
Scheduled event lifecycle reconciliation.

Each tick compares the cached ``ScheduledEventData`` records of one guild with
the event list Discord returns and drives the state machine

    Scheduled -> Active -> Completed
        \\                -> Canceled

Transitions are detected by polling: a record whose event disappeared is
completed (if it ever started) or canceled, and a forward status change seen
on the remote side is adopted. Every transition marks the record dirty; the
matching notification is dispatched until one send succeeds, and terminal
records are dropped only after that.

Besides observing, the reconciler can start events itself (autostart) and
sends a one-off early notification ahead of the start time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict

from guildkeeper.datatypes.errors import ContractViolationError, DataIntegrityError
from guildkeeper.datatypes.guild_data import GuildData
from guildkeeper.datatypes.scheduled_event_datatypes import (
    RemoteScheduledEvent,
    ScheduledEventData,
    ScheduledEventStatus,
)
from guildkeeper.reconciliation.error_aggregator import ErrorAggregator
from guildkeeper.services.discord_gateway import DiscordGateway
from guildkeeper.services.event_notifier import EventNotifier
from guildkeeper.util.logger import get_logger

logger = get_logger("scheduled_event_reconciler")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScheduledEventReconciler:
    """
    Per-guild state machine over Discord scheduled events.

    Args:
        gateway: Remote API used to list and start events.
        notifier: Builds and sends the lifecycle notifications.
        clock: Returns the current aware UTC time; injectable for tests.
    """

    name = "scheduled events"

    def __init__(
        self,
        gateway: DiscordGateway,
        notifier: EventNotifier,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.gateway = gateway
        self.notifier = notifier
        self.clock = clock

    async def reconcile(self, guild_data: GuildData) -> None:
        """
        Run one tick for ``guild_data``.

        Raises:
            discord.HTTPException: The event list could not be fetched.
            ReconciliationError: One or more events failed; all were attempted.
        """
        # Taken before the fetch: records tracked while it is in flight cannot
        # be judged against a list that predates them
        records = list(guild_data.scheduled_events.values())
        remote_events = await self.gateway.list_scheduled_events(guild_data.guild_id)
        remote_by_id: Dict[int, RemoteScheduledEvent] = {event.id: event for event in remote_events}

        errors = ErrorAggregator(f"scheduled events of guild {guild_data.guild_id}")
        for record in records:
            with errors.capture(f"scheduled event {record.id} ({record.name})"):
                await self._reconcile_event(guild_data, record, remote_by_id.get(record.id.to_int()))

        errors.raise_if_failed()

    async def _reconcile_event(
        self, guild_data: GuildData, record: ScheduledEventData, remote: RemoteScheduledEvent | None
    ) -> None:
        now = self.clock()

        if remote is None:
            self._observe_removal(guild_data, record)
        else:
            self._observe_remote(guild_data, record, remote, now)

        if record.dirty:
            try:
                await self._dispatch(guild_data, record, remote, now)
            except Exception:
                record.failed_dispatches += 1
                raise
            if record.status.is_terminal:
                return

        if remote is not None:
            await self._tick(guild_data, record, remote, now)

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def _observe_removal(self, guild_data: GuildData, record: ScheduledEventData) -> None:
        status = ScheduledEventStatus.COMPLETED if record.actual_start_time is not None else ScheduledEventStatus.CANCELED
        if record.status is not status or not record.dirty:
            logger.info(
                "[SCHEDULED EVENTS] Event %s vanished from guild %s, treating it as %s",
                record.id, guild_data.guild_id, status,
            )
        record.mark_status(status)

    def _observe_remote(
        self, guild_data: GuildData, record: ScheduledEventData, remote: RemoteScheduledEvent, now: datetime
    ) -> None:
        status = remote.parsed_status
        record.name = remote.name
        record.scheduled_start_time = remote.scheduled_start_time

        if status is ScheduledEventStatus.ACTIVE:
            record.mark_started(now)

        # A pending notice keeps its turn until it has failed at least once
        if record.dirty and not record.failed_dispatches:
            return
        if not status.is_progress_from(record.status):
            return

        logger.info(
            "[SCHEDULED EVENTS] Event %s in guild %s moved %s -> %s",
            record.id, guild_data.guild_id, record.status, status,
        )
        record.mark_status(status)

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    @staticmethod
    def _require_remote(record: ScheduledEventData, remote: RemoteScheduledEvent | None) -> RemoteScheduledEvent:
        if remote is None:
            raise DataIntegrityError(f"scheduled event {record.id}", "remote event")
        return remote

    async def _dispatch(
        self,
        guild_data: GuildData,
        record: ScheduledEventData,
        remote: RemoteScheduledEvent | None,
        now: datetime,
    ) -> None:
        """Send the one notification matching ``record.status``; acknowledge only on success."""
        match record.status:
            case ScheduledEventStatus.SCHEDULED:
                await self.notifier.send_event_created(guild_data, self._require_remote(record, remote), now)
            case ScheduledEventStatus.ACTIVE:
                record.mark_started(now)
                await self.notifier.send_event_started(guild_data, self._require_remote(record, remote), now)
            case ScheduledEventStatus.COMPLETED:
                await self.notifier.send_event_completed(guild_data, record, now)
            case ScheduledEventStatus.CANCELED:
                await self.notifier.send_event_canceled(guild_data, record, now)
            case _:
                # Records loaded from storage are not guaranteed to hold a known status
                raise ContractViolationError("scheduled event status", record.status)

        record.acknowledge()
        logger.debug(
            "[SCHEDULED EVENTS] Delivered '%s' notification for event %s in guild %s",
            record.status, record.id, guild_data.guild_id,
        )

        if record.status.is_terminal:
            guild_data.scheduled_events.pop(record.id.to_int(), None)

    # ------------------------------------------------------------------
    # Tick policy
    # ------------------------------------------------------------------

    async def _tick(
        self, guild_data: GuildData, record: ScheduledEventData, remote: RemoteScheduledEvent, now: datetime
    ) -> None:
        settings = guild_data.settings
        status = remote.parsed_status

        if (
            settings.autostart_events
            and now >= remote.scheduled_start_time
            and status is ScheduledEventStatus.SCHEDULED
        ):
            # The local record stays Scheduled until a later tick sees Discord's change
            await self.gateway.start_scheduled_event(guild_data.guild_id, record.id)
            logger.info("[SCHEDULED EVENTS] Auto-started event %s in guild %s", record.id, guild_data.guild_id)
            return

        offset = settings.event_early_notification_offset
        if (
            not offset
            or record.early_notification_sent
            or status is not ScheduledEventStatus.SCHEDULED
            or now < remote.scheduled_start_time - offset
        ):
            return

        await self.notifier.send_early_notification(guild_data, remote)
        record.early_notification_sent = True
        logger.debug("[SCHEDULED EVENTS] Sent early notification for event %s", record.id)
