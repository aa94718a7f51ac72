"""stalewatch - staleness tracking for curated repository directories."""

from stalewatch.config import StalewatchConfig, load_config
from stalewatch.errors import (
    BackupSourceMissingError,
    MalformedTimestampError,
    StalewatchError,
    StoreNotInitializedError,
)
from stalewatch.freshness import (
    StalenessClassifier,
    StalenessReconciler,
    StalenessResult,
    run_staleness_pass,
)
from stalewatch.models import SourceRecord, StaleRecord
from stalewatch.storage import StaleItemStore

__version__ = "0.1.0"

__all__ = [
    "BackupSourceMissingError",
    "MalformedTimestampError",
    "SourceRecord",
    "StaleItemStore",
    "StaleRecord",
    "StalenessClassifier",
    "StalenessReconciler",
    "StalenessResult",
    "StalewatchConfig",
    "StalewatchError",
    "StoreNotInitializedError",
    "load_config",
    "run_staleness_pass",
]
