"""CLI commands for dbt-to-sigma.

This package contains all CLI command definitions, organized by functionality.
Commands are registered by importing them in __main__.py.
"""

from __future__ import annotations

from dbt_to_sigma.cli.commands.build import build
from dbt_to_sigma.cli.commands.dag import dag
from dbt_to_sigma.cli.commands.translate import translate
from dbt_to_sigma.cli.commands.validate import validate

__all__ = [
    "build",
    "dag",
    "translate",
    "validate",
]
