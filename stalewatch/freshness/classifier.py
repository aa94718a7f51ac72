"""Calendar-month staleness classification for single records."""

from __future__ import annotations

from datetime import datetime

from stalewatch.models import SourceRecord
from stalewatch.timestamps import Clock, as_utc, parse_timestamp, utc_now


def calculate_months_stale(
    timestamp: str | datetime,
    now: datetime | None = None,
    record_id: str | None = None,
) -> int:
    """Whole calendar months between ``timestamp`` and ``now``, never negative.

    Only the UTC year and month take part, so the day of month can shift the
    result by at most one and offsets of the same instant agree. Naive
    datetimes are read as UTC.
    """
    if isinstance(timestamp, datetime):
        then = as_utc(timestamp)
    else:
        then = parse_timestamp(timestamp, record_id)
    current = as_utc(now or utc_now())
    months = (current.year - then.year) * 12 + (current.month - then.month)
    return max(0, months)


def is_stale(
    record: SourceRecord, threshold_months: int, now: datetime | None = None
) -> bool:
    """True when the record is older than the threshold. Official items never are.

    A negative threshold counts as zero.
    """
    if record.is_official:
        return False
    months = calculate_months_stale(record.pushed_at, now, record.id)
    return months > max(threshold_months, 0)


class StalenessClassifier:
    """Binds a threshold and a clock so a whole batch shares one ``now``."""

    def __init__(self, threshold_months: int, clock: Clock = utc_now) -> None:
        self.threshold_months = threshold_months
        self._clock = clock

    def now(self) -> datetime:
        return as_utc(self._clock())

    def is_stale(
        self,
        record: SourceRecord,
        threshold_months: int | None = None,
        now: datetime | None = None,
    ) -> bool:
        threshold = self.threshold_months if threshold_months is None else threshold_months
        return is_stale(record, threshold, now or self.now())

    def calculate_months_stale(
        self, timestamp: str | datetime, now: datetime | None = None
    ) -> int:
        return calculate_months_stale(timestamp, now or self.now())
