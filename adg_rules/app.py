"""Typer CLI entrypoint for adg-rules."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import AppConfig, ConfigLocator, ConfigRepository, RuleCategory
from .errors import ConfigError, OutputSetupError, OutputSinkError
from .logging_conf import configure_logging
from .orchestrator import Orchestrator, RunSummary

app = typer.Typer(
    help="Merge upstream ad-blocking / DNS filter lists into category outputs.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    verbose: bool = False


def build_state(verbose: bool, config_path: Optional[Path] = None) -> AppState:
    locator = ConfigLocator()
    locator.ensure_directories()
    repository = ConfigRepository(locator, path=config_path)
    configure_logging(verbose=verbose, log_dir=locator.logs_dir)
    return AppState(repository=repository, verbose=verbose)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _load_config(state: AppState) -> AppConfig:
    try:
        return state.repository.load()
    except ConfigError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=2) from exc


def _render_summary(summary: RunSummary) -> Table:
    table = Table(title=f"Sources · {summary.sources}", box=box.SIMPLE_HEAD)
    table.add_column("Source", style="cyan", overflow="fold")
    table.add_column("Status", style="magenta")
    table.add_column("Lines", justify="right")
    table.add_column("Accepted", justify="right", style="green")
    table.add_column("Duplicates", justify="right", style="yellow")
    for result in summary.results:
        status = result.status if not result.error else f"{result.status}: {result.error}"
        table.add_row(
            result.source.location,
            status,
            str(result.lines),
            str(result.accepted),
            str(result.duplicates),
        )
    table.add_row(
        "Total",
        f"{summary.failed} failed",
        str(sum(r.lines for r in summary.results)),
        str(summary.accepted),
        str(summary.duplicates),
    )
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to application.yaml."),
) -> None:
    ctx.obj = build_state(verbose, config)


@app.command("run", help="Fetch every source and write the merged outputs.")
def run(
    ctx: typer.Context,
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Override worker pool size."),
    quiet: bool = typer.Option(False, "--quiet", help="Only print the elapsed time.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    config = _load_config(state)
    if workers:
        pipeline = config.pipeline.model_copy(update={"max_workers": workers})
        config = config.model_copy(update={"pipeline": pipeline})
    orchestrator = Orchestrator(config, base_dir=state.repository.base_dir)
    try:
        summary = orchestrator.run()
    except (OutputSetupError, OutputSinkError) as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1) from exc
    if not quiet:
        console.print(_render_summary(summary))
    console.print(f"Done! {summary.elapsed_ms} ms")


@app.command("sources", help="List the resolved rule sources.")
def sources(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = _load_config(state)
    resolved = Orchestrator(config, base_dir=state.repository.base_dir).resolve_sources()
    if not resolved:
        console.print("No rule sources configured.", style="yellow")
        raise typer.Exit(code=0)
    table = Table(title=f"Rule sources · {len(resolved)}", box=box.SIMPLE_HEAD)
    table.add_column("Kind", style="magenta")
    table.add_column("Location", style="cyan", overflow="fold")
    for source in resolved:
        table.add_row(source.kind.value, source.location)
    console.print(table)


@app.command("outputs", help="Show output files and the categories routed to them.")
def outputs(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = _load_config(state)
    output_dir = config.output.resolved_path(state.repository.base_dir)
    table = Table(title=f"Outputs · {output_dir}", box=box.SIMPLE_HEAD)
    table.add_column("File", style="cyan")
    table.add_column("Categories", style="green")
    mapped: set[RuleCategory] = set()
    for name, categories in config.output.files.items():
        mapped.update(categories)
        table.add_row(name, ", ".join(category.value for category in categories) or "-")
    console.print(table)
    unmapped = [category.value for category in RuleCategory if category not in mapped]
    if unmapped:
        console.print("Unmapped categories (classified but discarded): " + ", ".join(unmapped), style="yellow")


def cli() -> None:
    app()


__all__ = ["app", "cli", "AppState", "build_state"]
