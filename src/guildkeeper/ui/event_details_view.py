"""
Interactive controls attached to "event created" notifications.

The view is persistent (``timeout=None``) and carries the guild and event ids
in the button's custom id, so a command frontend can answer the click after a
restart without any state of its own.
"""

from __future__ import annotations

import discord

from guildkeeper.datatypes.discord_datatypes import EventID, GuildID

DETAILS_BUTTON_PREFIX = "scheduled-event-details"


def build_details_custom_id(guild_id: GuildID, event_id: EventID) -> str:
    return f"{DETAILS_BUTTON_PREFIX}:{guild_id}:{event_id}"


def parse_details_custom_id(custom_id: str) -> tuple[GuildID, EventID] | None:
    """Inverse of :func:`build_details_custom_id`; None for foreign ids."""
    prefix, _, state = custom_id.partition(":")
    if prefix != DETAILS_BUTTON_PREFIX:
        return None
    guild_part, _, event_part = state.partition(":")
    try:
        return GuildID(guild_part), EventID(event_part)
    except ValueError:
        return None


class EventDetailsView(discord.ui.View):
    """Single "Event details" button under an event announcement."""

    def __init__(self, guild_id: GuildID, event_id: EventID):
        super().__init__(timeout=None)
        self.add_item(
            discord.ui.Button(
                label="Event details",
                emoji="📋",
                style=discord.ButtonStyle.primary,
                custom_id=build_details_custom_id(guild_id, event_id),
            )
        )
