"""Report models returned by the stale item store."""

from __future__ import annotations

from pydantic import BaseModel, Field


class StaleStatistics(BaseModel):
    """Aggregate view over every stored stale item."""

    total_stale: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    average_months_stale: float = 0.0


class IntegrityReport(BaseModel):
    """Outcome of validate_integrity(). Problems are listed, never raised."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
