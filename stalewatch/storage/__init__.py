"""Persistence for items currently classified stale."""

from stalewatch.storage.models import IntegrityReport, StaleStatistics
from stalewatch.storage.sqlite_store import StaleItemStore, backup_path_for

__all__ = [
    "IntegrityReport",
    "StaleItemStore",
    "StaleStatistics",
    "backup_path_for",
]
