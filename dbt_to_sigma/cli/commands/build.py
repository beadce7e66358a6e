"""Build command for dbt-to-sigma CLI."""

from __future__ import annotations

import traceback
from pathlib import Path

import click
import yaml
from pydantic import ValidationError
from rich.console import Console

from dbt_to_sigma.cli import RichCommand
from dbt_to_sigma.cli.formatting import (
    build_layer_tree,
    build_results_table,
    format_diagnostics,
)
from dbt_to_sigma.cli.utils import resolve_config
from dbt_to_sigma.core.builder import run_build

console = Console()


@click.command(cls=RichCommand)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to sigma.yml config file (auto-detected if not specified)",
)
@click.option(
    "--changed",
    multiple=True,
    metavar="FILE",
    help="Only rebuild models in FILE and their dependents (repeatable)",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Preview what would be generated without writing files",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show detailed output",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Show full exception stacktraces for troubleshooting",
)
def build(
    config: Path | None,
    changed: tuple[str, ...],
    dry_run: bool,
    verbose: bool,
    debug: bool,
) -> None:
    """Translate semantic models into Sigma data models.

    Models are processed in dependency layers: a model is translated only
    after every model owning one of its foreign entities has been published
    to the store. Writes one data model YAML per semantic model, plus
    cross_model_metrics.yml, processing_results.json and dag.json.

    Examples:

        # Build everything using sigma.yml in current directory
        d2s build

        # Rebuild one file and everything that joins to it
        d2s build --changed semantic_models/orders.yml

        # Preview without writing files
        d2s build --dry-run --verbose
    """
    cfg, config_path = resolve_config(config, console, debug)

    console.print()
    console.print("[bold]dbt-to-sigma[/bold]", highlight=False)
    console.print()
    console.print(f"[dim]Config:[/dim] {config_path}")
    console.print(f"[dim]Mode:[/dim]   {cfg.mode.value}")

    if dry_run:
        console.print("[yellow]Dry run mode[/yellow]")
        console.print()

    try:
        result = run_build(
            cfg,
            changed_files=list(changed) if changed else None,
            dry_run=dry_run,
            verbose=verbose,
        )
    except FileNotFoundError as e:
        if debug:
            console.print(traceback.format_exc())
        console.print(f"[red]File not found:[/red] {e}")
        raise click.ClickException(str(e))
    except yaml.YAMLError as e:
        if debug:
            console.print(traceback.format_exc())
        console.print(f"[red]YAML parsing error:[/red] {e}")
        raise click.ClickException(str(e))
    except ValidationError as e:
        if debug:
            console.print(traceback.format_exc())
        console.print(f"[red]Model validation error:[/red] {e}")
        raise click.ClickException(str(e))

    if verbose or dry_run:
        console.print(build_layer_tree(result.layers))
        console.print()
        console.print(build_results_table(result.results))

    if result.diagnostics.issues:
        console.print()
        console.print(format_diagnostics(result.diagnostics))

    summary = result.summary()
    stats = result.statistics
    action = "Would translate" if dry_run else "Translated"
    console.print(
        f"\n[bold green]{action} {summary['successful']} models[/bold green] "
        f"[dim]({summary['totalLayers']} layers, {stats.columns} columns, "
        f"{stats.metrics} metrics, {stats.relationships} relationships, "
        f"{stats.deferred} deferred metrics)[/dim]"
    )

    if result.failures:
        console.print(f"[red]{summary['failed']} models failed[/red]")
        raise click.ClickException("Build completed with failures")
