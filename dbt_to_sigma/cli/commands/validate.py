"""Validate command for dbt-to-sigma CLI."""

from __future__ import annotations

import traceback
from pathlib import Path

import click
import yaml
from pydantic import ValidationError
from rich.console import Console

from dbt_to_sigma.cli import RichCommand
from dbt_to_sigma.cli.formatting import format_diagnostics
from dbt_to_sigma.cli.utils import resolve_config
from dbt_to_sigma.core.diagnostics import Diagnostics

console = Console()


@click.command(cls=RichCommand)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to sigma.yml config file",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Show full exception stacktraces for troubleshooting",
)
def validate(config: Path | None, debug: bool) -> None:
    """Validate configuration and semantic models.

    Checks that:
    - sigma.yml is valid
    - Input directory exists
    - Semantic models and metrics parse correctly
    - Foreign entities resolve to a declaring model

    ## Examples

    Validate using sigma.yml in current directory:

        $ d2s validate

    Validate before building:

        $ d2s validate && d2s build
    """
    cfg, config_path = resolve_config(config, console, debug)
    console.print(f"[green]Config valid:[/green] {config_path}")

    # Check input directory
    if not cfg.input_path.exists():
        console.print(f"[red]Input directory not found:[/red] {cfg.input_path}")
        raise click.ClickException("Input directory not found")
    console.print(f"[green]Input exists:[/green] {cfg.input_path}")

    diagnostics = Diagnostics()
    try:
        from dbt_to_sigma.graph import DependencyGraph, EntityIndex
        from dbt_to_sigma.ingestion import DbtLoader

        loader = DbtLoader(cfg.input_path, cfg.time_spine_path.name)
        corpus = loader.load_corpus(diagnostics)
        index = EntityIndex.from_models(corpus.models, diagnostics)
        DependencyGraph.build(corpus.models, index, diagnostics)
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

    console.print(
        f"[green]Models valid:[/green] {len(corpus.models)} models, "
        f"{len(corpus.metrics)} metrics"
    )
    for model in corpus.models:
        console.print(f"  - {model.name} [dim]({model.source_file})[/dim]")

    if diagnostics.issues:
        console.print()
        console.print(format_diagnostics(diagnostics))

    if diagnostics.has_errors():
        raise click.ClickException(f"{len(diagnostics.errors)} errors found")

    console.print("\n[bold green]All checks passed[/bold green]")
