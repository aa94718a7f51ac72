"""Durable store for stale directory items, backed by a local SQLite file."""

from __future__ import annotations

import json
import logging
import math
import shutil
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from stalewatch.errors import BackupSourceMissingError, StoreNotInitializedError
from stalewatch.models import StaleRecord
from stalewatch.storage.models import IntegrityReport, StaleStatistics
from stalewatch.timestamps import format_timestamp

logger = logging.getLogger(__name__)

TABLE = "stale_items"

COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "repo",
    "url",
    "description",
    "category",
    "tags",
    "stars",
    "pushedAt",
    "archived",
    "fork",
    "license",
    "topics",
    "score",
    "confidence",
    "notes",
    "hidden",
    "staleDetectedAt",
    "monthsStale",
)

INDEXES: tuple[str, ...] = ("idx_category", "idx_staleDetectedAt", "idx_monthsStale")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS stale_items (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    repo TEXT NOT NULL,
    url TEXT NOT NULL,
    description TEXT,
    category TEXT NOT NULL,
    tags TEXT NOT NULL,
    stars INTEGER NOT NULL,
    pushedAt TEXT NOT NULL,
    archived INTEGER NOT NULL,
    fork INTEGER NOT NULL,
    license TEXT,
    topics TEXT NOT NULL,
    score INTEGER NOT NULL,
    confidence TEXT NOT NULL,
    notes TEXT,
    hidden INTEGER NOT NULL,
    staleDetectedAt TEXT NOT NULL,
    monthsStale INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_category ON stale_items(category);
CREATE INDEX IF NOT EXISTS idx_staleDetectedAt ON stale_items(staleDetectedAt);
CREATE INDEX IF NOT EXISTS idx_monthsStale ON stale_items(monthsStale);
"""

_UPSERT = (
    f"INSERT INTO {TABLE} ({', '.join(COLUMNS)}) "
    f"VALUES ({', '.join(':' + c for c in COLUMNS)}) "
    "ON CONFLICT(id) DO UPDATE SET "
    + ", ".join(f"{c} = excluded.{c}" for c in COLUMNS if c != "id")
)

_SELECT = f"SELECT {', '.join(COLUMNS)} FROM {TABLE}"


def backup_path_for(db_path: str | Path, moment: datetime | None = None) -> Path:
    """Sibling path ``<stem>.backup-<timestamp><suffix>`` for a store file."""
    path = Path(db_path)
    stamp = format_timestamp(moment or datetime.now(UTC))
    stamp = stamp.replace(":", "-").replace(".", "-")
    return path.with_name(f"{path.stem}.backup-{stamp}{path.suffix}")


def round_one_decimal(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


class StaleItemStore:
    """Keyed storage for items currently classified stale.

    One table, one writer. Runs in autocommit mode so every upsert or
    delete is its own transaction; an interrupted batch leaves the earlier
    writes committed and the file consistent.
    """

    def __init__(self, db_path: str | Path = "data/stale-items.db") -> None:
        self.db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None

    # -- lifecycle -------------------------------------------------------------

    def initialize(self) -> None:
        """Open the database file and create the schema if it is missing."""
        if self._conn is not None:
            return
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, isolation_level=None, timeout=5)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.executescript(_SCHEMA)
        self._conn = conn
        logger.debug("Opened stale item store at %s", self.db_path)

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def __enter__(self) -> StaleItemStore:
        self.initialize()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- helpers ---------------------------------------------------------------

    def _require(self, operation: str) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreNotInitializedError(operation)
        return self._conn

    @staticmethod
    def _to_row(record: StaleRecord) -> dict[str, Any]:
        return {
            "id": record.id,
            "name": record.name,
            "repo": record.repo,
            "url": record.url,
            "description": record.description,
            "category": record.category,
            "tags": json.dumps(record.tags),
            "stars": record.stars,
            "pushedAt": record.pushed_at,
            "archived": int(record.archived),
            "fork": int(record.fork),
            "license": record.license,
            "topics": json.dumps(record.topics),
            "score": record.score,
            "confidence": record.confidence,
            "notes": record.notes,
            "hidden": int(record.hidden),
            "staleDetectedAt": record.stale_detected_at,
            "monthsStale": record.months_stale,
        }

    @staticmethod
    def _from_row(row: sqlite3.Row) -> StaleRecord:
        data = dict(row)
        data["tags"] = json.loads(data["tags"])
        data["topics"] = json.loads(data["topics"])
        for flag in ("archived", "fork", "hidden"):
            data[flag] = data[flag] == 1
        return StaleRecord.model_validate(data)

    # -- CRUD ------------------------------------------------------------------

    def upsert(self, record: StaleRecord) -> None:
        """Insert the record, or replace every column of the existing row."""
        conn = self._require("upsert")
        conn.execute(_UPSERT, self._to_row(record))

    def remove(self, item_id: str) -> None:
        """Delete by id. Unknown ids are ignored."""
        conn = self._require("remove")
        conn.execute(f"DELETE FROM {TABLE} WHERE id = ?", (item_id,))

    def get(self, item_id: str) -> StaleRecord | None:
        conn = self._require("get")
        row = conn.execute(f"{_SELECT} WHERE id = ?", (item_id,)).fetchone()
        return self._from_row(row) if row is not None else None

    def get_all(self) -> list[StaleRecord]:
        """Every stored item, grouped by category and most-starred first."""
        conn = self._require("get_all")
        rows = conn.execute(f"{_SELECT} ORDER BY category, stars DESC, id").fetchall()
        return [self._from_row(r) for r in rows]

    def get_by_category(self, category: str) -> list[StaleRecord]:
        conn = self._require("get_by_category")
        rows = conn.execute(
            f"{_SELECT} WHERE category = ? ORDER BY stars DESC, id", (category,)
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def get_detection_times(self) -> dict[str, str]:
        """Map of stored id -> staleDetectedAt, without decoding whole rows."""
        conn = self._require("get_detection_times")
        rows = conn.execute(f"SELECT id, staleDetectedAt FROM {TABLE}").fetchall()
        return {row["id"]: row["staleDetectedAt"] for row in rows}

    def count(self) -> int:
        conn = self._require("count")
        return conn.execute(f"SELECT COUNT(*) FROM {TABLE}").fetchone()[0]

    # -- reporting -------------------------------------------------------------

    def get_statistics(self) -> StaleStatistics:
        conn = self._require("get_statistics")
        total = conn.execute(f"SELECT COUNT(*) FROM {TABLE}").fetchone()[0]
        by_category = {
            row["category"]: row["n"]
            for row in conn.execute(
                f"SELECT category, COUNT(*) AS n FROM {TABLE} GROUP BY category ORDER BY category"
            )
        }
        avg = conn.execute(f"SELECT AVG(monthsStale) FROM {TABLE}").fetchone()[0]
        return StaleStatistics(
            total_stale=total,
            by_category=by_category,
            average_months_stale=round_one_decimal(avg) if avg is not None else 0.0,
        )

    # -- maintenance -----------------------------------------------------------

    def backup(self) -> Path:
        """Flush the WAL into the main file and copy it next to the live file."""
        conn = self._require("backup")
        source = Path(self.db_path)
        if not source.is_file():
            raise BackupSourceMissingError(self.db_path)

        conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        target = backup_path_for(source)
        shutil.copy2(source, target)
        logger.info("Backed up %s to %s", source, target)
        return target

    def validate_integrity(self) -> IntegrityReport:
        """Audit the file and rows; findings come back in the report."""
        conn = self._require("validate_integrity")
        errors: list[str] = []

        try:
            results = [row[0] for row in conn.execute("PRAGMA integrity_check")]
            if results != ["ok"]:
                errors.extend(f"SQLite integrity check failed: {r}" for r in results)

            present = {row["name"] for row in conn.execute(f"PRAGMA table_info({TABLE})")}
            if not present:
                errors.append(f"Missing table: {TABLE}")
                return IntegrityReport(valid=False, errors=errors)
            errors.extend(
                f"Missing required column: {col}" for col in COLUMNS if col not in present
            )

            indexes = {row["name"] for row in conn.execute(f"PRAGMA index_list({TABLE})")}
            errors.extend(
                f"Missing required index: {idx}" for idx in INDEXES if idx not in indexes
            )

            if {"tags", "topics"} <= present:
                for row in conn.execute(f"SELECT id, tags, topics FROM {TABLE} ORDER BY id"):
                    for column in ("tags", "topics"):
                        problem = _json_list_problem(row[column])
                        if problem:
                            errors.append(f"Invalid JSON in {column} for item {row['id']}: {problem}")

            if {"stars", "score", "monthsStale"} <= present:
                negative = [
                    row["id"]
                    for row in conn.execute(
                        f"SELECT id FROM {TABLE} "
                        "WHERE stars < 0 OR score < 0 OR monthsStale < 0 ORDER BY id"
                    )
                ]
                if negative:
                    errors.append(
                        f"Found {len(negative)} items with negative numeric values: "
                        + ", ".join(negative)
                    )
        except sqlite3.Error as exc:
            errors.append(f"Validation error: {exc}")

        return IntegrityReport(valid=not errors, errors=errors)


def _json_list_problem(raw: object) -> str | None:
    if not isinstance(raw, str):
        return "not a JSON string"
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        return str(exc)
    if not isinstance(value, list):
        return "expected a list"
    return None
