"""Typer CLI entrypoint for plaza-events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table
from typer import BadParameter

from .config import BuildConfig, ConfigRepository, parse_mode
from .logging_conf import configure_logging
from .orchestrator import BuildResult, Orchestrator

app = typer.Typer(
    help="Plaza de España events site builder",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    verbose: bool = False


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    configure_logging(verbose=verbose, log_dir=repository.locator.logs_dir)
    return AppState(repository=repository, verbose=verbose)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _parse_datetime_option(value: str, option_name: str, config: BuildConfig) -> datetime:
    text = value.strip()
    if not text:
        raise BadParameter(f"{option_name} must not be empty.")
    normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        candidate = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise BadParameter(
            f"{option_name} expects an ISO 8601 timestamp, e.g. 2025-10-22T12:00+02:00."
        ) from exc
    if candidate.tzinfo is None:
        candidate = candidate.replace(tzinfo=config.tz)
    return candidate.astimezone(config.tz)


def _load_config(state: AppState, config_path: Optional[Path], mode: Optional[str]) -> BuildConfig:
    config = state.repository.load(config_path)
    if mode:
        fetch = config.fetch.model_copy(update={"mode": parse_mode(mode)})
        config = config.model_copy(update={"fetch": fetch})
    return config


def _render_summary(result: BuildResult) -> Table:
    table = Table(title="Build summary", box=box.SIMPLE_HEAD)
    table.add_column("Pipeline", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Kept", justify="right", style="green")
    table.add_column("Filtered", justify="right", style="yellow")
    table.add_column("Breakdown")
    for name, summary in (("cultural", result.cultural_summary), ("city", result.city_summary)):
        breakdown = ", ".join(
            f"{reason}: {count}" for reason, count in sorted(summary.reasons.items())
        )
        table.add_row(name, str(summary.total), str(summary.kept), str(summary.filtered), breakdown)
    return table


def _render_groups(result: BuildResult) -> Table:
    table = Table(title="Time groups", box=box.SIMPLE_HEAD)
    table.add_column("Group", style="cyan")
    table.add_column("Events", justify="right")
    table.add_column("At plaza", justify="right")
    table.add_column("Nearby", justify="right")
    table.add_column("City", justify="right")
    for group in [*result.grouping.groups, result.grouping.ongoing]:
        table.add_row(
            group.name,
            str(len(group)),
            str(group.count_plaza),
            str(group.count_nearby),
            str(group.city_count),
        )
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging", is_flag=True),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("build", help="Fetch, merge, classify and group events; write audit files.")
def build(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to a YAML/JSON config."),
    mode: Optional[str] = typer.Option(None, "--mode", help="Fetch mode: production|development."),
    now: Optional[str] = typer.Option(None, "--now", help="Reference time (ISO 8601)."),
) -> None:
    state = _get_state(ctx)
    try:
        config = _load_config(state, config_path, mode)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"Invalid configuration: {exc}", style="red")
        raise typer.Exit(code=2) from exc
    reference = _parse_datetime_option(now, "--now", config) if now else None

    orchestrator = Orchestrator(config)
    try:
        result = orchestrator.run(now=reference)
        orchestrator.export(result)
    finally:
        orchestrator.close()

    console.print(_render_summary(result))
    console.print(_render_groups(result))
    if result.parse_errors:
        console.print(f"{len(result.parse_errors)} parse errors recorded in the build audit.", style="yellow")
    console.print(f"Build audit written to {config.output.build_audit_path}", style="green")


@app.command("show-config", help="Print the effective configuration.")
def show_config(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to a YAML/JSON config."),
    mode: Optional[str] = typer.Option(None, "--mode", help="Fetch mode: production|development."),
) -> None:
    state = _get_state(ctx)
    try:
        config = _load_config(state, config_path, mode)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"Invalid configuration: {exc}", style="red")
        raise typer.Exit(code=2) from exc
    payload = config.model_dump(mode="json")
    payload["effective_mode"] = config.fetch.mode_config().model_dump(mode="json")
    console.print(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False), markup=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
