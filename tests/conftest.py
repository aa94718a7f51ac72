"""Shared test fixtures for stalewatch."""

from datetime import UTC, datetime

import pytest

from stalewatch.freshness.classifier import StalenessClassifier
from stalewatch.models import SourceRecord, StaleRecord
from stalewatch.storage import StaleItemStore

NOW = datetime(2026, 6, 15, 12, 0, 0, tzinfo=UTC)


def _months_before(now: datetime, months: int) -> str:
    total = now.year * 12 + (now.month - 1) - months
    year, month0 = divmod(total, 12)
    moment = datetime(year, month0 + 1, min(now.day, 28), 12, 0, 0, tzinfo=UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def months_ago():
    """pushedAt string exactly N calendar months before NOW."""

    def _make(months: int) -> str:
        return _months_before(NOW, months)

    return _make


@pytest.fixture
def make_record(months_ago):
    def _make(item_id: str = "acme/casper-fork", months: int = 0, **overrides) -> SourceRecord:
        data = dict(
            id=item_id,
            name=item_id.split("/")[-1],
            repo=item_id,
            url=f"https://github.com/{item_id}",
            description="A Ghost theme",
            category="Theme",
            tags=["ghost-theme", "handlebars"],
            stars=42,
            pushedAt=months_ago(months),
            archived=False,
            fork=False,
            license="MIT",
            topics=["ghost", "theme"],
            score=80,
            confidence="high",
            notes=None,
            hidden=False,
        )
        data.update(overrides)
        return SourceRecord.model_validate(data)

    return _make


@pytest.fixture
def make_stale(make_record):
    def _make(
        item_id: str = "acme/casper-fork",
        months: int = 18,
        detected_at: str = "2025-01-01T00:00:00.000Z",
        **overrides,
    ) -> StaleRecord:
        record = make_record(item_id, months, **overrides)
        return StaleRecord.from_source(record, stale_detected_at=detected_at, months_stale=months)

    return _make


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data" / "stale-items.db"


@pytest.fixture
def store(db_path):
    with StaleItemStore(db_path) as s:
        yield s


@pytest.fixture
def classifier():
    return StalenessClassifier(12, clock=lambda: NOW)
