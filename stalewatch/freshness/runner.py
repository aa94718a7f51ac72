"""One staleness pass over a batch, as run by the directory update job."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import BaseModel, Field

from stalewatch.config.models import StalenessConfig
from stalewatch.errors import BackupSourceMissingError
from stalewatch.freshness.classifier import StalenessClassifier
from stalewatch.freshness.reconciler import StalenessReconciler, StalenessResult
from stalewatch.freshness.summary import StaleSummary, summarize_stale_items
from stalewatch.models import SourceRecord, StaleRecord
from stalewatch.storage.models import IntegrityReport, StaleStatistics
from stalewatch.storage.sqlite_store import StaleItemStore
from stalewatch.timestamps import Clock, utc_now

logger = logging.getLogger(__name__)


class StalenessRunReport(BaseModel):
    """Everything a pass produced, plus the store state after it.

    On a dry run ``statistics`` is the untouched store and ``summary`` is
    computed as if the changes had been written.
    """

    result: StalenessResult
    backup_path: str | None = None
    integrity: IntegrityReport | None = None
    statistics: StaleStatistics = Field(default_factory=StaleStatistics)
    summary: StaleSummary = Field(default_factory=StaleSummary)
    dry_run: bool = False


def run_staleness_pass(
    records: Iterable[SourceRecord],
    config: StalenessConfig,
    dry_run: bool = False,
    clock: Clock = utc_now,
) -> StalenessRunReport:
    """Back up, audit, reconcile, and report on the configured store.

    A missing backup source is logged and the pass continues. Integrity
    findings are logged and returned, never raised.
    """
    if config.threshold_months <= 0:
        logger.warning(
            "threshold_months=%d: every non-Official item older than the current month is stale",
            config.threshold_months,
        )

    with StaleItemStore(config.database_path) as store:
        backup_path: str | None = None
        if config.backup_before_run and not dry_run:
            try:
                backup_path = str(store.backup())
            except BackupSourceMissingError as exc:
                logger.warning("Skipping backup: %s", exc)

        integrity: IntegrityReport | None = None
        if config.validate_before_run:
            integrity = store.validate_integrity()
            for error in integrity.errors:
                logger.warning("Integrity: %s", error)

        classifier = StalenessClassifier(config.threshold_months, clock=clock)
        reconciler = StalenessReconciler(store, classifier, dry_run=dry_run)
        result = reconciler.detect_staleness(records)

        logger.info(
            "Staleness detection: %d active, %d newly stale, %d reactivated",
            result.stats.active_count,
            result.stats.newly_stale,
            result.stats.reactivated,
        )

        stored = store.get_all()
        statistics = store.get_statistics()

    if dry_run:
        stored = _project_store(stored, result)
    summary = summarize_stale_items(stored, len(result.active_items) + len(stored))
    return StalenessRunReport(
        result=result,
        backup_path=backup_path,
        integrity=integrity,
        statistics=statistics,
        summary=summary,
        dry_run=dry_run,
    )


def _project_store(stored: list[StaleRecord], result: StalenessResult) -> list[StaleRecord]:
    """Store contents as they would be had the dry run written its changes."""
    reactivated = {r.id for r in result.reactivated_items}
    projected = {r.id: r for r in stored if r.id not in reactivated}
    projected.update((r.id, r) for r in result.stale_items)
    return list(projected.values())
