"""Dag command for dbt-to-sigma CLI."""

from __future__ import annotations

import json
import traceback
from pathlib import Path

import click
import yaml
from rich.console import Console

from dbt_to_sigma.cli import RichCommand
from dbt_to_sigma.cli.formatting import build_layer_tree, format_diagnostics
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
    "--json",
    "as_json",
    is_flag=True,
    help="Print the dependency graph and layers as JSON",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Show full exception stacktraces for troubleshooting",
)
def dag(config: Path | None, as_json: bool, debug: bool) -> None:
    """Show the model dependency graph and processing layers.

    Examples:

        d2s dag

        d2s dag --json > dag.json
    """
    cfg, _ = resolve_config(config, console, debug)

    from dbt_to_sigma.graph import (
        DependencyGraph,
        EntityIndex,
        TopologicalLayerer,
        layer_summary,
    )
    from dbt_to_sigma.ingestion import DbtLoader

    diagnostics = Diagnostics()
    try:
        corpus = DbtLoader(cfg.input_path, cfg.time_spine_path.name).load_corpus(diagnostics)
    except (FileNotFoundError, yaml.YAMLError) as e:
        if debug:
            console.print(traceback.format_exc())
        console.print(f"[red]Could not load models:[/red] {e}")
        raise click.ClickException(str(e))

    index = EntityIndex.from_models(corpus.models, diagnostics)
    graph = DependencyGraph.build(corpus.models, index, diagnostics)
    layers = TopologicalLayerer(graph.dependency_map(), diagnostics).sort()

    if as_json:
        payload = {"graph": graph.to_dict(), **layer_summary(layers)}
        click.echo(json.dumps(payload, indent=2))
        return

    console.print(build_layer_tree(layers))
    if diagnostics.issues:
        console.print()
        console.print(format_diagnostics(diagnostics))
