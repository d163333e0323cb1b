"""
Type-safe wrapper classes for Discord identifiers.

Discord snowflakes are 64-bit integers but travel as strings in JSON, so each
wrapper stores the canonical string form and converts to ``int`` only at the
API boundary. The subclasses exist so a ``RoleID`` can never be passed where a
``ChannelID`` is expected without the type checker noticing.
"""

from __future__ import annotations

from typing import Union


class Snowflake:
    """
    Base class for typed Discord snowflake IDs.

    Example:
        >>> gid = GuildID(123456789012345678)
        >>> gid.to_int()
        123456789012345678
        >>> str(gid)
        '123456789012345678'
        >>> GuildID("123456789012345678") == 123456789012345678
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        """
        Build the ID from an int, a numeric string or an ID of the same type.

        Raises:
            ValueError: If the value cannot be converted to a valid snowflake.
        """
        if isinstance(value, Snowflake):
            if not isinstance(value, type(self)):
                raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}")
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool: {value}")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            self._value = str(int(value.strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    @classmethod
    def from_int(cls, value: int):
        return cls(value)

    @classmethod
    def optional(cls, value: Union[str, int, "Snowflake", None]):
        """Return ``None`` for empty values (None, 0, ""), otherwise wrap the value."""
        if value is None or value == 0 or value == "":
            return None
        return cls(value)

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls."""
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class GuildID(Snowflake):
    """Snowflake of a guild (community)."""

    __slots__ = ()


class UserID(Snowflake):
    """Snowflake of a user or guild member."""

    __slots__ = ()


class ChannelID(Snowflake):
    """Snowflake of a text, voice or stage channel."""

    __slots__ = ()


class RoleID(Snowflake):
    """Snowflake of a guild role."""

    __slots__ = ()


class MessageID(Snowflake):
    """Snowflake of a message."""

    __slots__ = ()


class EventID(Snowflake):
    """Snowflake of a guild scheduled event."""

    __slots__ = ()
