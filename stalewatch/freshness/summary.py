"""Directory-facing statistics over stored stale items."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, Field

from stalewatch.models import StaleRecord
from stalewatch.storage.sqlite_store import round_one_decimal


class StaleSummary(BaseModel):
    """What a reader of the directory sees: hidden items are not counted."""

    total_stale: int = 0
    percentage_of_total: float = 0.0
    by_category: dict[str, int] = Field(default_factory=dict)
    average_months_stale: float = 0.0


def summarize_stale_items(items: Iterable[StaleRecord], total_items: int) -> StaleSummary:
    """Summarize visible stale items against the size of the whole directory.

    ``total_items`` is active plus stale; a zero total yields 0%.
    """
    visible = [item for item in items if not item.hidden]
    by_category: dict[str, int] = {}
    for item in visible:
        category = item.category or "Other"
        by_category[category] = by_category.get(category, 0) + 1

    count = len(visible)
    months = sum(item.months_stale for item in visible)
    return StaleSummary(
        total_stale=count,
        percentage_of_total=round_one_decimal(count / total_items * 100) if total_items > 0 else 0.0,
        by_category=dict(sorted(by_category.items())),
        average_months_stale=round_one_decimal(months / count) if count else 0.0,
    )
