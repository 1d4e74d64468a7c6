"""Common time utilities."""

from __future__ import annotations

import datetime as dt
import zoneinfo


class TimezoneAwareRequiredError(ValueError):
    """Raised when a datetime argument lacks timezone information."""

    def __init__(self, context: str) -> None:
        """Name the argument that was naive."""
        super().__init__(f"{context} must be timezone aware")


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def require_aware(value: dt.datetime, context: str) -> dt.datetime:
    """Return ``value`` converted to UTC, rejecting naive datetimes."""
    if value.tzinfo is None or value.utcoffset() is None:
        raise TimezoneAwareRequiredError(context)
    return value.astimezone(dt.UTC)


def resolve_timezone(name: str | dt.tzinfo) -> dt.tzinfo:
    """Return a tzinfo for an IANA name, passing tzinfo objects through.

    Raises
    ------
    ValueError
        If ``name`` is not a known IANA time zone.

    """
    if isinstance(name, dt.tzinfo):
        return name
    try:
        return zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError) as exc:
        msg = f"Unknown time zone: {name!r}"
        raise ValueError(msg) from exc
