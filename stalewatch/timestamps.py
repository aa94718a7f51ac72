"""UTC timestamp helpers shared by the classifier and the store."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from stalewatch.errors import MalformedTimestampError

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_timestamp(moment: datetime) -> str:
    """Render a UTC instant as ``2026-01-31T08:15:00.000Z``."""
    return as_utc(moment).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def as_utc(moment: datetime) -> datetime:
    """Normalize to aware UTC. Naive values are taken to already be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def parse_timestamp(value: object, record_id: str | None = None) -> datetime:
    """Parse an ISO 8601 string into an aware UTC datetime.

    Values without an offset are read as UTC.
    """
    if not isinstance(value, str) or not value.strip():
        raise MalformedTimestampError(value, record_id)
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise MalformedTimestampError(value, record_id) from exc
    return as_utc(parsed)
