"""CLI utilities for dbt-to-sigma.

This package provides Rich-based formatting helpers and the Click command
classes shared by every command.
"""

from __future__ import annotations

from dbt_to_sigma.cli.formatting import (
    format_error,
    format_success,
    format_warning,
)
from dbt_to_sigma.cli.help_formatter import RichCommand, RichGroup

__all__ = [
    "format_error",
    "format_success",
    "format_warning",
    "RichCommand",
    "RichGroup",
]
