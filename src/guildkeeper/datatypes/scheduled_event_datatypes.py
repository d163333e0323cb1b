"""
Scheduled event lifecycle types.

``ScheduledEventData`` is the locally cached record the reconciler mutates;
``RemoteScheduledEvent`` is a read-only snapshot of what Discord reported on
the current tick. Keeping the two apart means the reconciler never needs a
live py-cord object to make a decision.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from guildkeeper.datatypes.discord_datatypes import EventID
from guildkeeper.datatypes.errors import ContractViolationError


class ScheduledEventStatus(Enum):
    """Lifecycle states of a guild scheduled event (Discord wire values)."""

    SCHEDULED = 1
    ACTIVE = 2
    COMPLETED = 3
    CANCELED = 4

    @classmethod
    def parse(cls, raw: object) -> "ScheduledEventStatus":
        """Convert a remote status value, rejecting anything outside the known set."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls(int(raw))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise ContractViolationError("scheduled event status", raw) from None

    @property
    def is_terminal(self) -> bool:
        return self in (ScheduledEventStatus.COMPLETED, ScheduledEventStatus.CANCELED)

    @property
    def rank(self) -> int:
        # Completed and Canceled share a rank: neither follows the other
        return _STATUS_RANK[self]

    def is_progress_from(self, previous: "ScheduledEventStatus") -> bool:
        """True if moving from ``previous`` to this status goes forward in the lifecycle."""
        return self.rank > previous.rank

    def __str__(self) -> str:
        return self.name.capitalize()


_STATUS_RANK = {
    ScheduledEventStatus.SCHEDULED: 0,
    ScheduledEventStatus.ACTIVE: 1,
    ScheduledEventStatus.COMPLETED: 2,
    ScheduledEventStatus.CANCELED: 2,
}


class EventEntityType(Enum):
    """Where a scheduled event takes place."""

    STAGE_INSTANCE = 1
    VOICE = 2
    EXTERNAL = 3

    @classmethod
    def parse(cls, raw: object) -> "EventEntityType":
        if isinstance(raw, cls):
            return raw
        try:
            return cls(int(raw))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise ContractViolationError("scheduled event entity type", raw) from None


@dataclass(frozen=True, slots=True)
class RemoteScheduledEvent:
    """Snapshot of a scheduled event as returned by Discord on this tick.

    ``status`` and ``entity_type`` are kept raw: Discord does not promise the
    enumerations are closed, so they are parsed at the point of use.
    """

    id: int
    guild_id: int
    name: str
    status: object
    entity_type: object
    scheduled_start_time: datetime
    scheduled_end_time: datetime | None = None
    description: str = ""
    channel_id: int | None = None
    location: str | None = None
    creator_id: int | None = None
    creator_name: str | None = None
    image_url: str | None = None

    @property
    def parsed_status(self) -> ScheduledEventStatus:
        return ScheduledEventStatus.parse(self.status)


@dataclass(slots=True)
class ScheduledEventData:
    """Locally cached record of a scheduled event.

    Attributes:
        dirty: A notification for ``status`` is pending and not yet confirmed sent.
        early_notification_sent: Set once the early reminder went out; never reverts.
        actual_start_time: When the event was observed to become active; set once.
        failed_dispatches: Delivery attempts of the pending notice that raised.
            Kept in memory only.
    """

    id: EventID
    name: str
    status: ScheduledEventStatus
    scheduled_start_time: datetime
    actual_start_time: datetime | None = None
    early_notification_sent: bool = False
    dirty: bool = False
    failed_dispatches: int = field(default=0, compare=False, repr=False)

    @classmethod
    def from_remote(cls, remote: RemoteScheduledEvent) -> "ScheduledEventData":
        """Start tracking a freshly observed event; the "created" notice is pending."""
        return cls(
            id=EventID(remote.id),
            name=remote.name,
            status=ScheduledEventStatus.SCHEDULED,
            scheduled_start_time=remote.scheduled_start_time,
            dirty=True,
        )

    def mark_status(self, status: ScheduledEventStatus) -> None:
        """Record a status transition whose notification still has to be sent."""
        self.status = status
        self.dirty = True
        self.failed_dispatches = 0

    def mark_started(self, now: datetime) -> None:
        if self.actual_start_time is None:
            self.actual_start_time = now

    def acknowledge(self) -> None:
        """The notification for the current status was delivered."""
        self.dirty = False
        self.failed_dispatches = 0
