"""Command-line interface for dbt-to-sigma."""

from __future__ import annotations

import click

from dbt_to_sigma.cli import RichGroup
from dbt_to_sigma.cli.commands import build, dag, translate, validate


@click.group(cls=RichGroup)
@click.version_option(package_name="dbt-to-sigma")
def cli() -> None:
    """Translate dbt semantic models into Sigma data models.

    Config-driven generation:

        $ d2s build

    Or with explicit config:

        $ d2s build --config sigma.yml
    """
    pass


cli.add_command(build)
cli.add_command(validate)
cli.add_command(dag)
cli.add_command(translate)


if __name__ == "__main__":
    cli()
