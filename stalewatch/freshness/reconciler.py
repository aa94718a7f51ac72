"""Batch reconciliation of current records against the stale item store."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import BaseModel, Field

from stalewatch.errors import MalformedTimestampError
from stalewatch.freshness.classifier import StalenessClassifier
from stalewatch.models import SourceRecord, StaleRecord
from stalewatch.storage.sqlite_store import StaleItemStore
from stalewatch.timestamps import format_timestamp

logger = logging.getLogger(__name__)


class RecordError(BaseModel):
    """A record left out of this run's partitions."""

    id: str
    message: str


class RunStats(BaseModel):
    total_processed: int = 0
    active_count: int = 0
    newly_stale: int = 0
    reactivated: int = 0
    remaining_stale: int = 0
    failed: int = 0


class StalenessResult(BaseModel):
    """Partitions and counters for one detect_staleness() call.

    ``active_items`` includes reactivated items; ``stale_items`` holds both
    newly detected and continuing stale items.
    """

    active_items: list[SourceRecord] = Field(default_factory=list)
    stale_items: list[StaleRecord] = Field(default_factory=list)
    reactivated_items: list[SourceRecord] = Field(default_factory=list)
    stats: RunStats = Field(default_factory=RunStats)
    errors: list[RecordError] = Field(default_factory=list)


class StalenessReconciler:
    """Applies the active/stale/reactivated state machine to a batch.

    The store must already be initialized. With ``dry_run`` the result is
    computed the same way but the store is not written.
    """

    def __init__(
        self,
        store: StaleItemStore,
        classifier: StalenessClassifier,
        dry_run: bool = False,
    ) -> None:
        self.store = store
        self.classifier = classifier
        self.dry_run = dry_run

    def detect_staleness(
        self,
        records: Iterable[SourceRecord],
        threshold_months: int | None = None,
    ) -> StalenessResult:
        records = list(records)
        threshold = (
            self.classifier.threshold_months if threshold_months is None else threshold_months
        )
        now = self.classifier.now()
        detected_at = format_timestamp(now)
        previously_stale = self.store.get_detection_times()

        result = StalenessResult()
        seen: set[str] = set()

        for record in records:
            if record.id in seen:
                self._reject(result, record.id, "duplicate id in batch; first occurrence kept")
                continue
            seen.add(record.id)

            try:
                stale_now = self.classifier.is_stale(record, threshold, now)
            except MalformedTimestampError as exc:
                self._reject(result, record.id, str(exc))
                continue

            was_stale = record.id in previously_stale

            if stale_now:
                stale = StaleRecord.from_source(
                    record,
                    stale_detected_at=previously_stale.get(record.id, detected_at),
                    months_stale=self.classifier.calculate_months_stale(record.pushed_at, now),
                )
                if not was_stale:
                    result.stats.newly_stale += 1
                result.stale_items.append(stale)
                if not self.dry_run:
                    self.store.upsert(stale)
            else:
                if was_stale:
                    logger.info("Reactivated: %s (%s)", record.name or record.id, record.id)
                    result.reactivated_items.append(record)
                    if not self.dry_run:
                        self.store.remove(record.id)
                result.active_items.append(record)

        acted_on = {r.id for r in result.active_items} | {r.id for r in result.stale_items}
        result.stats.total_processed = len(records)
        result.stats.active_count = len(result.active_items)
        result.stats.reactivated = len(result.reactivated_items)
        result.stats.remaining_stale = len(previously_stale.keys() - acted_on)
        result.stats.failed = len(result.errors)

        logger.debug(
            "Staleness pass: %d active, %d stale (%d new), %d reactivated, %d failed",
            result.stats.active_count,
            len(result.stale_items),
            result.stats.newly_stale,
            result.stats.reactivated,
            result.stats.failed,
        )
        return result

    @staticmethod
    def _reject(result: StalenessResult, record_id: str, message: str) -> None:
        logger.warning("Skipping %s: %s", record_id, message)
        result.errors.append(RecordError(id=record_id, message=message))
