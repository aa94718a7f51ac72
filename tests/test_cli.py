"""Tests for the stalewatch CLI commands (detect, list, stats, backup, validate, config)."""

from __future__ import annotations

import io
import json
import logging
from datetime import UTC, datetime

import pytest
import yaml
from rich.logging import RichHandler
from typer.testing import CliRunner

from stalewatch.cli import _configure_logging, app
from stalewatch.config import StalewatchConfig
from stalewatch.storage import StaleItemStore

runner = CliRunner()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolate(tmp_path, monkeypatch):
    """No stray config files, and leave the package logger as we found it."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")
    monkeypatch.delenv("STALEWATCH_CONFIG", raising=False)
    logger = logging.getLogger("stalewatch")
    handlers, level = logger.handlers[:], logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture()
def items_file(tmp_path):
    now = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
    items = [
        {"id": "a/old", "name": "old", "category": "Theme", "pushedAt": "2015-01-01T00:00:00Z", "stars": 3},
        {"id": "a/new", "name": "new", "category": "Theme", "pushedAt": now, "stars": 9},
        {"id": "o/core", "name": "core", "category": "Official", "pushedAt": "2010-01-01T00:00:00Z"},
    ]
    path = tmp_path / "items.yml"
    path.write_text(yaml.safe_dump(items, sort_keys=False))
    return path


@pytest.fixture()
def db(tmp_path):
    return str(tmp_path / "data" / "stale-items.db")


def _detect(items_file, db, *extra):
    return runner.invoke(app, ["detect", str(items_file), "--db", db, *extra])


# ---------------------------------------------------------------------------
# detect
# ---------------------------------------------------------------------------


class TestDetect:
    def test_detect_stores_stale_items(self, items_file, db):
        result = _detect(items_file, db)
        assert result.exit_code == 0, result.output
        assert "Staleness pass" in result.output
        with StaleItemStore(db) as store:
            assert [r.id for r in store.get_all()] == ["a/old"]

    def test_detect_dry_run(self, items_file, db):
        result = _detect(items_file, db, "--dry-run")
        assert result.exit_code == 0, result.output
        assert "dry run" in result.output
        with StaleItemStore(db) as store:
            assert store.count() == 0

    def test_detect_threshold_override(self, items_file, db):
        result = _detect(items_file, db, "--threshold", "1200")
        assert result.exit_code == 0, result.output
        with StaleItemStore(db) as store:
            assert store.count() == 0

    def test_detect_reports_reactivation(self, tmp_path, items_file, db):
        _detect(items_file, db)
        now = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        revived = tmp_path / "revived.yml"
        revived.write_text(
            yaml.safe_dump([{"id": "a/old", "name": "old", "category": "Theme", "pushedAt": now}])
        )
        result = _detect(revived, db)
        assert result.exit_code == 0, result.output
        assert "Reactivated:" in result.output
        with StaleItemStore(db) as store:
            assert store.count() == 0

    def test_detect_writes_active_items(self, tmp_path, items_file, db):
        out = tmp_path / "active.yml"
        result = _detect(items_file, db, "--write-active", str(out))
        assert result.exit_code == 0, result.output
        written = yaml.safe_load(out.read_text())
        assert sorted(item["id"] for item in written) == ["a/new", "o/core"]

    def test_detect_reports_malformed_items(self, tmp_path, db):
        path = tmp_path / "bad.yml"
        path.write_text(
            yaml.safe_dump([{"id": "a/bad", "category": "Theme", "pushedAt": "not-a-date"}])
        )
        result = _detect(path, db)
        assert result.exit_code == 0, result.output
        assert "Skipped" in result.output

    def test_detect_missing_items_file(self, tmp_path, db):
        result = _detect(tmp_path / "missing.yml", db)
        assert result.exit_code == 1
        assert "items file not found" in result.output

    def test_detect_invalid_items_file(self, tmp_path, db):
        path = tmp_path / "items.yml"
        path.write_text("just: a mapping\n")
        result = _detect(path, db)
        assert result.exit_code == 1
        assert "Expected a list" in result.output

    def test_detect_disabled_in_config(self, tmp_path, items_file, db):
        cfg = tmp_path / "custom.yaml"
        cfg.write_text("staleness:\n  enabled: false\n")
        result = runner.invoke(app, ["--config", str(cfg), "detect", str(items_file), "--db", db])
        assert result.exit_code == 0
        assert "disabled" in result.output

    def test_invalid_config_exits(self, tmp_path, items_file, db):
        cfg = tmp_path / "custom.yaml"
        cfg.write_text("log_level: loud\n")
        result = runner.invoke(app, ["--config", str(cfg), "detect", str(items_file), "--db", db])
        assert result.exit_code == 1
        assert "Invalid config" in result.output


# ---------------------------------------------------------------------------
# list / stats
# ---------------------------------------------------------------------------


class TestListAndStats:
    def test_list_empty(self, db):
        result = runner.invoke(app, ["list", "--db", db])
        assert result.exit_code == 0
        assert "No stale items" in result.output

    def test_list_after_detect(self, items_file, db):
        _detect(items_file, db)
        result = runner.invoke(app, ["list", "--db", db])
        assert result.exit_code == 0
        assert "a/old" in result.output

    def test_list_by_category(self, items_file, db):
        _detect(items_file, db)
        result = runner.invoke(app, ["list", "--db", db, "--category", "Adapter"])
        assert result.exit_code == 0
        assert "No stale items" in result.output

    def test_stats_json(self, items_file, db):
        _detect(items_file, db)
        result = runner.invoke(app, ["stats", "--db", db, "--json", "--total", "4"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["store"]["total_stale"] == 1
        assert data["store"]["by_category"] == {"Theme": 1}
        assert data["visible"]["percentage_of_total"] == 25.0

    def test_stats_table(self, items_file, db):
        _detect(items_file, db)
        result = runner.invoke(app, ["stats", "--db", db])
        assert result.exit_code == 0
        assert "Theme" in result.output


# ---------------------------------------------------------------------------
# backup / validate
# ---------------------------------------------------------------------------


class TestMaintenance:
    def test_backup(self, tmp_path, items_file, db):
        _detect(items_file, db, "--dry-run")
        result = runner.invoke(app, ["backup", "--db", db])
        assert result.exit_code == 0, result.output
        assert "Backup created" in result.output
        assert list((tmp_path / "data").glob("stale-items.backup-*.db"))

    def test_validate_healthy(self, items_file, db):
        _detect(items_file, db)
        result = runner.invoke(app, ["validate", "--db", db])
        assert result.exit_code == 0
        assert "integrity check passed" in result.output

    def test_validate_reports_problems(self, items_file, db):
        _detect(items_file, db)
        with StaleItemStore(db) as store:
            store._conn.execute("UPDATE stale_items SET stars = -5")
        result = runner.invoke(app, ["validate", "--db", db])
        assert result.exit_code == 1
        assert "negative" in result.output

    def test_validate_missing_database(self, db):
        result = runner.invoke(app, ["validate", "--db", db])
        assert result.exit_code == 1
        assert "not found" in result.output


# ---------------------------------------------------------------------------
# logging
# ---------------------------------------------------------------------------


class TestLogging:
    def test_json_format_emits_json_lines(self):
        _configure_logging(StalewatchConfig(log_format="json", log_level="debug"))
        handler = logging.getLogger("stalewatch").handlers[0]
        buf = io.StringIO()
        handler.setStream(buf)

        logging.getLogger("stalewatch.freshness.reconciler").warning(
            "Skipping %s: %s", "a/bad", "malformed"
        )

        entry = json.loads(buf.getvalue().strip())
        assert entry["event"] == "Skipping a/bad: malformed"
        assert entry["level"] == "warning"
        assert entry["logger"] == "stalewatch.freshness.reconciler"
        assert "timestamp" in entry

    def test_level_filters_records(self):
        _configure_logging(StalewatchConfig(log_format="json", log_level="error"))
        handler = logging.getLogger("stalewatch").handlers[0]
        buf = io.StringIO()
        handler.setStream(buf)

        logging.getLogger("stalewatch.freshness.runner").info("not shown")
        assert buf.getvalue() == ""

    def test_text_format_uses_rich_handler(self):
        _configure_logging(StalewatchConfig())
        assert isinstance(logging.getLogger("stalewatch").handlers[0], RichHandler)

    def test_detect_with_json_logging(self, tmp_path, items_file, db):
        cfg = tmp_path / "custom.yaml"
        cfg.write_text("log_format: json\nlog_level: info\n")
        result = runner.invoke(app, ["--config", str(cfg), "detect", str(items_file), "--db", db])
        assert result.exit_code == 0, result.output
        entries = [
            json.loads(line) for line in result.output.splitlines() if line.startswith("{")
        ]
        events = [e["event"] for e in entries]
        assert any(event.startswith("Staleness detection:") for event in events)
        assert all(e["logger"].startswith("stalewatch") for e in entries)


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def test_config_init_writes_template(self, tmp_path):
        result = runner.invoke(app, ["config", "init"])
        assert result.exit_code == 0
        assert (tmp_path / "stalewatch.yaml").exists()

    def test_config_init_refuses_overwrite(self, tmp_path):
        (tmp_path / "stalewatch.yaml").write_text("log_level: debug\n")
        result = runner.invoke(app, ["config", "init"])
        assert result.exit_code == 1
        assert (tmp_path / "stalewatch.yaml").read_text() == "log_level: debug\n"

    def test_config_init_force(self, tmp_path):
        (tmp_path / "stalewatch.yaml").write_text("log_level: debug\n")
        result = runner.invoke(app, ["config", "init", "--force"])
        assert result.exit_code == 0
        assert "threshold_months" in (tmp_path / "stalewatch.yaml").read_text()

    def test_config_show(self):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "threshold_months" in result.output
