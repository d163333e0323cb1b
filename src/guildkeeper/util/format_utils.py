from datetime import datetime, timedelta, timezone


def discord_timestamp(value: datetime, style: str = "f") -> str:
    """Return Discord's ``<t:unix:style>`` markup for ``value``.

    Naive datetimes are assumed to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return f"<t:{int(value.timestamp())}:{style}>"


def format_duration(duration: timedelta) -> str:
    """Render a duration as ``1d 2h 3m 4s``, dropping leading zero units.

    Negative durations are clamped to zero.
    """
    total = max(int(duration.total_seconds()), 0)
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if days or hours:
        parts.append(f"{hours}h")
    if days or hours or minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{seconds}s")
    return " ".join(parts)


def role_mention(role_id: object) -> str:
    return f"<@&{role_id}>"


def channel_mention(channel_id: object) -> str:
    return f"<#{channel_id}>"


def user_mention(user_id: object) -> str:
    return f"<@{user_id}>"
