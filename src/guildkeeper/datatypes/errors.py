"""
Error taxonomy for the reconciliation engine.

Transient remote failures are not wrapped: they surface as py-cord's
``discord.HTTPException`` family and are retried by the next tick. The
classes below cover the two permanent-for-this-cycle categories.
"""

from __future__ import annotations


class GuildkeeperError(Exception):
    """Base class for errors raised by Guildkeeper itself."""


class DataIntegrityError(GuildkeeperError):
    """A remote entity is missing a field the engine needs (creator, channel, ...)."""

    def __init__(self, entity: str, field_name: str) -> None:
        self.entity = entity
        self.field_name = field_name
        super().__init__(f"{entity} is missing required field '{field_name}'")


class ContractViolationError(GuildkeeperError):
    """A value arrived from outside a closed set the engine knows about."""

    def __init__(self, kind: str, value: object) -> None:
        self.kind = kind
        self.value = value
        super().__init__(f"Unexpected {kind} value: {value!r}")
