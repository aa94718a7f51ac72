"""CLI entry point for stalewatch."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated

import structlog
import typer
import yaml
from rich import print as rprint
from rich.logging import RichHandler
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from stalewatch.config import StalewatchConfig, load_config
from stalewatch.config.loader import DEFAULT_CONFIG_TEMPLATE
from stalewatch.errors import StalewatchError
from stalewatch.freshness import StalenessRunReport, run_staleness_pass, summarize_stale_items
from stalewatch.items import load_items, write_items
from stalewatch.storage import StaleItemStore

app = typer.Typer(
    name="stalewatch",
    help="Track directory items that have gone without updates.",
)

config_app = typer.Typer(help="Manage stalewatch configuration.")
app.add_typer(config_app, name="config")

# Global state
_config: StalewatchConfig | None = None

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def _json_formatter() -> logging.Formatter:
    """One JSON object per line for records from plain stdlib loggers."""
    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
        ],
    )


def _configure_logging(cfg: StalewatchConfig) -> None:
    if cfg.log_format == "json":
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(_json_formatter())
    else:
        handler = RichHandler(show_path=False)
    root = logging.getLogger("stalewatch")
    root.handlers[:] = [handler]
    root.setLevel(_LOG_LEVELS[cfg.log_level])


def _get_config() -> StalewatchConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to stalewatch.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    _configure_logging(_config)


def _db_path(cfg: StalewatchConfig, override: str | None) -> str:
    return override or cfg.staleness.database_path


def _display_run(report: StalenessRunReport, threshold: int) -> None:
    stats = report.result.stats
    table = Table(title=f"Staleness pass (threshold: {threshold} months)")
    table.add_column("metric", style="cyan")
    table.add_column("count", justify="right", style="green")
    table.add_row("processed", str(stats.total_processed))
    table.add_row("active", str(stats.active_count))
    table.add_row("stale", str(len(report.result.stale_items)))
    table.add_row("newly stale", str(stats.newly_stale))
    table.add_row("reactivated", str(stats.reactivated))
    table.add_row("remaining stale (not in batch)", str(stats.remaining_stale))
    table.add_row("failed", str(stats.failed))
    rprint(table)

    for item in report.result.reactivated_items:
        rprint(f"[green]Reactivated:[/green] {item.name or item.id} ({item.id})")
    for error in report.result.errors:
        rprint(f"[red]Skipped[/red] {error.id}: {error.message}")

    if report.backup_path:
        rprint(f"[dim]Backup:[/dim] {report.backup_path}")
    if report.integrity is not None and not report.integrity.valid:
        rprint(Panel("\n".join(report.integrity.errors), title="Integrity issues", border_style="yellow"))

    summary = report.summary
    rprint(
        f"\n[bold]{summary.total_stale}[/bold] visible stale item(s) "
        f"({summary.percentage_of_total}% of directory), "
        f"avg {summary.average_months_stale} months stale."
    )
    if report.dry_run:
        rprint("[yellow](dry run: store not modified)[/yellow]")


@app.command()
def detect(
    items: Annotated[str | None, typer.Argument(help="Items file (YAML or JSON list)")] = None,
    threshold: Annotated[
        int | None, typer.Option("--threshold", "-t", help="Override threshold_months")
    ] = None,
    db: Annotated[str | None, typer.Option("--db", help="Path to stale items database")] = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Classify without writing")] = False,
    write_active: Annotated[
        str | None, typer.Option("--write-active", help="Write active items to this YAML file")
    ] = None,
) -> None:
    """Classify items and update the stale items database."""
    cfg = _get_config()
    if not cfg.staleness.enabled:
        rprint("[yellow]Staleness tracking disabled in configuration.[/yellow]")
        raise typer.Exit(0)

    staleness = cfg.staleness.model_copy(
        update={
            "database_path": _db_path(cfg, db),
            **({"threshold_months": threshold} if threshold is not None else {}),
        }
    )
    items_path = items or cfg.items_path

    try:
        records = load_items(items_path)
        report = run_staleness_pass(records, staleness, dry_run=dry_run)
    except FileNotFoundError:
        rprint(f"[red]Error:[/red] items file not found: {items_path}")
        raise typer.Exit(1)
    except (StalewatchError, ValueError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    _display_run(report, staleness.threshold_months)

    if write_active and not dry_run:
        out = write_items(write_active, report.result.active_items)
        rprint(f"[green]Wrote[/green] {len(report.result.active_items)} active item(s) to {out}")


@app.command("list")
def list_items(
    category: Annotated[str | None, typer.Option("--category", help="Only this category")] = None,
    db: Annotated[str | None, typer.Option("--db", help="Path to stale items database")] = None,
) -> None:
    """List items currently stored as stale."""
    cfg = _get_config()
    with StaleItemStore(_db_path(cfg, db)) as store:
        items = store.get_by_category(category) if category else store.get_all()

    if not items:
        rprint("[yellow]No stale items.[/yellow]")
        return

    table = Table(title=f"Stale items ({len(items)})")
    table.add_column("id", style="cyan")
    table.add_column("category", style="green")
    table.add_column("stars", justify="right")
    table.add_column("months stale", justify="right", style="yellow")
    table.add_column("pushed at", style="dim")
    table.add_column("stale since", style="dim")
    for item in items:
        table.add_row(
            item.id,
            item.category,
            str(item.stars),
            str(item.months_stale),
            item.pushed_at,
            item.stale_detected_at,
        )
    rprint(table)


@app.command()
def stats(
    total: Annotated[
        int | None,
        typer.Option("--total", help="Directory size (active + stale) for the percentage"),
    ] = None,
    db: Annotated[str | None, typer.Option("--db", help="Path to stale items database")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Machine-readable output")] = False,
) -> None:
    """Show statistics for the stale items database."""
    cfg = _get_config()
    with StaleItemStore(_db_path(cfg, db)) as store:
        statistics = store.get_statistics()
        items = store.get_all()
    summary = summarize_stale_items(items, total if total is not None else len(items))

    if as_json:
        typer.echo(json.dumps({"store": statistics.model_dump(), "visible": summary.model_dump()}))
        return

    table = Table(title="Stale items by category")
    table.add_column("category", style="cyan")
    table.add_column("count", justify="right", style="green")
    for category, count in statistics.by_category.items():
        table.add_row(category, str(count))
    rprint(table)
    rprint(
        f"[bold]Total:[/bold] {statistics.total_stale}  "
        f"[bold]Average months stale:[/bold] {statistics.average_months_stale}"
    )
    rprint(
        f"[dim]Visible:[/dim] {summary.total_stale} "
        f"({summary.percentage_of_total}% of {total if total is not None else len(items)})"
    )


@app.command()
def backup(
    db: Annotated[str | None, typer.Option("--db", help="Path to stale items database")] = None,
) -> None:
    """Copy the stale items database to a timestamped sibling file."""
    cfg = _get_config()
    try:
        with StaleItemStore(_db_path(cfg, db)) as store:
            path = store.backup()
    except StalewatchError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    rprint(f"[green]Backup created:[/green] {path}")


@app.command()
def validate(
    db: Annotated[str | None, typer.Option("--db", help="Path to stale items database")] = None,
) -> None:
    """Audit the stale items database. Exits 1 when problems are found."""
    cfg = _get_config()
    db_path = _db_path(cfg, db)
    if not Path(db_path).is_file():
        rprint(f"[red]Error:[/red] database file not found: {db_path}")
        raise typer.Exit(1)

    with StaleItemStore(db_path) as store:
        report = store.validate_integrity()
        count = store.count()

    if report.valid:
        rprint(f"[green]Database integrity check passed[/green] ({count} stale item(s)).")
        return
    for error in report.errors:
        rprint(f"[red]✗[/red] {error}")
    raise typer.Exit(code=1)


@config_app.command("show")
def config_show() -> None:
    """Print the resolved configuration."""
    cfg = _get_config()
    text = yaml.safe_dump(cfg.model_dump(), sort_keys=False)
    rprint(Syntax(text, "yaml"))


@config_app.command("init")
def config_init(
    path: Annotated[str, typer.Option("--path", help="Where to write the config")] = "stalewatch.yaml",
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing file")] = False,
) -> None:
    """Write a default stalewatch.yaml."""
    target = Path(path)
    if target.exists() and not force:
        rprint(f"[yellow]{target} already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")
