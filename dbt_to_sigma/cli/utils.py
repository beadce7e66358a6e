"""CLI utility functions for dbt-to-sigma."""

from __future__ import annotations

import traceback
from pathlib import Path

import click
import yaml
from pydantic import ValidationError
from rich.console import Console

from dbt_to_sigma.config import SigmaConfig, find_config, load_config

EXAMPLE_CONFIG = """[dim]input: ./semantic_models
output: ./sigma_output
store: ./sigma_models
connection_id: <sigma connection id>
database: ANALYTICS
schema: GOLD[/dim]"""


def resolve_config(
    config: Path | None, console: Console, debug: bool = False
) -> tuple[SigmaConfig, Path]:
    """Load the explicit config, or find sigma.yml from the working directory.

    Returns:
        Tuple of (parsed config, path it was loaded from)

    Raises:
        click.ClickException: If the config is missing or invalid
    """
    try:
        if config:
            return load_config(config), config
        found_config = find_config()
        if found_config is None:
            console.print("[red]No sigma.yml found[/red]")
            console.print("\nCreate a sigma.yml file:")
            console.print(EXAMPLE_CONFIG)
            raise click.ClickException("Config file not found")
        return load_config(found_config), found_config
    except FileNotFoundError as e:
        if debug:
            console.print(traceback.format_exc())
        console.print(f"[red]Config file not found:[/red] {e}")
        raise click.ClickException(str(e))
    except yaml.YAMLError as e:
        if debug:
            console.print(traceback.format_exc())
        console.print(f"[red]YAML parsing error:[/red] {e}")
        raise click.ClickException(str(e))
    except ValidationError as e:
        if debug:
            console.print(traceback.format_exc())
        console.print(f"[red]Config validation error:[/red] {e}")
        raise click.ClickException(str(e))
