"""Freshness tracking: staleness classification, reconciliation, and reporting."""

from stalewatch.freshness.classifier import (
    StalenessClassifier,
    calculate_months_stale,
    is_stale,
)
from stalewatch.freshness.reconciler import (
    RecordError,
    RunStats,
    StalenessReconciler,
    StalenessResult,
)
from stalewatch.freshness.runner import StalenessRunReport, run_staleness_pass
from stalewatch.freshness.summary import StaleSummary, summarize_stale_items
from stalewatch.timestamps import parse_timestamp

__all__ = [
    "RecordError",
    "RunStats",
    "StaleSummary",
    "StalenessClassifier",
    "StalenessReconciler",
    "StalenessResult",
    "StalenessRunReport",
    "calculate_months_stale",
    "is_stale",
    "parse_timestamp",
    "run_staleness_pass",
    "summarize_stale_items",
]
