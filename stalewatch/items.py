"""Reading and writing items files (a YAML or JSON list of records)."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path

import yaml
from pydantic import ValidationError

from stalewatch.models import SourceRecord


def load_items(path: str | Path) -> list[SourceRecord]:
    """Load records from an items file, JSON when the suffix is .json, else YAML."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            raw = json.loads(text) if text.strip() else None
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(f"Expected a list of items in {path}, got {type(raw).__name__}")

    records: list[SourceRecord] = []
    for index, entry in enumerate(raw):
        try:
            records.append(SourceRecord.model_validate(entry))
        except ValidationError as e:
            raise ValueError(f"Invalid item #{index} in {path}: {e}") from e
    return records


def write_items(path: str | Path, records: Iterable[SourceRecord]) -> Path:
    """Write records back out with camelCase keys, preserving field order."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = [record.to_wire() for record in records]
    path.write_text(
        yaml.safe_dump(data, sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )
    return path
