"""Pydantic models for directory records flowing through the staleness engine."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

OFFICIAL_CATEGORY = "Official"

Confidence = Literal["high", "medium", "low"]


class SourceRecord(BaseModel):
    """A repository entry produced by the crawler and classifier.

    Only ``category`` and ``pushed_at`` are inspected by the engine. The rest
    is carried through untouched, including any unknown extra keys.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(description="Stable identity, usually owner/repo")
    name: str = ""
    repo: str = ""
    url: str = ""
    description: str | None = None
    category: str
    tags: list[Any] = Field(default_factory=list)
    stars: int = 0
    pushed_at: str = Field(alias="pushedAt", description="ISO 8601 last push time")
    archived: bool = False
    fork: bool = False
    license: str | None = None
    topics: list[Any] = Field(default_factory=list)
    score: int = 0
    confidence: Confidence = "low"
    notes: str | None = None
    hidden: bool = False

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("id cannot be empty or whitespace")
        return v

    @field_validator("pushed_at", mode="before")
    @classmethod
    def coerce_pushed_at(cls, v: Any) -> Any:
        # YAML loads bare timestamps as datetime; anything unparseable is left
        # for the classifier to reject per record.
        if isinstance(v, (datetime, date)):
            return v.isoformat()
        if v is None:
            return ""
        if not isinstance(v, str):
            return str(v)
        return v

    @property
    def is_official(self) -> bool:
        return self.category == OFFICIAL_CATEGORY

    def to_wire(self) -> dict[str, Any]:
        """Dump with camelCase keys, the shape items files use."""
        return self.model_dump(by_alias=True)


class StaleRecord(SourceRecord):
    """A SourceRecord the engine has classified stale."""

    stale_detected_at: str = Field(alias="staleDetectedAt")
    months_stale: int = Field(alias="monthsStale", ge=0)

    @classmethod
    def from_source(
        cls, record: SourceRecord, stale_detected_at: str, months_stale: int
    ) -> StaleRecord:
        data = record.model_dump(by_alias=True)
        data["staleDetectedAt"] = stale_detected_at
        data["monthsStale"] = months_stale
        return cls.model_validate(data)
