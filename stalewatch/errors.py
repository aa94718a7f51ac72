"""Exceptions raised by the staleness engine."""

from __future__ import annotations


class StalewatchError(Exception):
    """Base class for all stalewatch errors."""


class StoreNotInitializedError(StalewatchError):
    """A store operation ran before initialize() opened the database."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            f"Stale item store not initialized; call initialize() before {operation}()"
        )


class BackupSourceMissingError(StalewatchError):
    """backup() was asked to copy a database file that does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Cannot back up {path}: database file does not exist")


class MalformedTimestampError(StalewatchError, ValueError):
    """A record's pushedAt value could not be parsed as ISO 8601."""

    def __init__(self, value: object, record_id: str | None = None) -> None:
        self.value = value
        self.record_id = record_id
        target = f" for {record_id}" if record_id else ""
        super().__init__(f"Malformed timestamp{target}: {value!r}")
