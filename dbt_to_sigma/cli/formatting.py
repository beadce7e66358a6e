"""Rich formatting utilities for CLI output.

This module provides reusable Rich components for consistent visual
formatting across CLI commands: message panels, the layer tree and the
per-model results table.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

if TYPE_CHECKING:
    from dbt_to_sigma.core.builder import ModelResult
    from dbt_to_sigma.core.diagnostics import Diagnostics
    from dbt_to_sigma.graph import Layer


def format_error(message: str, context: str | None = None) -> Panel:
    """Create formatted error panel.

    Args:
        message: Error message
        context: Optional context hint for resolution

    Returns:
        Panel with error formatting
    """
    content = f"[bold red]{message}[/bold red]"
    if context:
        content += f"\n\n[dim]{context}[/dim]"

    return Panel(
        content,
        title="[bold red]Error[/bold red]",
        border_style="red",
        width=78,
        expand=False,
    )


def format_warning(message: str, context: str | None = None) -> Panel:
    """Create formatted warning panel.

    Args:
        message: Warning message
        context: Optional additional information

    Returns:
        Panel with warning formatting
    """
    content = f"[bold yellow]{message}[/bold yellow]"
    if context:
        content += f"\n\n[dim]{context}[/dim]"

    return Panel(
        content,
        title="[bold yellow]Warning[/bold yellow]",
        border_style="yellow",
        width=78,
        expand=False,
    )


def format_success(message: str, details: str | None = None) -> Panel:
    """Create formatted success panel.

    Args:
        message: Success message
        details: Optional details about the result

    Returns:
        Panel with success formatting
    """
    content = f"[bold green]✓ {message}[/bold green]"
    if details:
        content += f"\n\n[dim]{details}[/dim]"

    return Panel(
        content,
        title="[bold green]Success[/bold green]",
        border_style="green",
        width=78,
        expand=False,
    )


def format_diagnostics(diagnostics: Diagnostics) -> Panel:
    """Wrap the diagnostics report in a panel coloured by its worst issue."""
    border = "red" if diagnostics.has_errors() else "yellow"
    return Panel(
        diagnostics.format_report(),
        title=f"[bold {border}]Diagnostics[/bold {border}]",
        border_style=border,
        width=78,
        expand=False,
    )


def build_layer_tree(layers: list[Layer], title: str = "Processing order") -> Tree:
    """Render layers as a tree, one branch per layer."""
    tree = Tree(f"[bold]{title}[/bold]")
    for layer in layers:
        label = f"[blue]Layer {layer.index}[/blue] [dim]({len(layer)} models)[/dim]"
        if layer.cyclic:
            label += " [yellow]cycle[/yellow]"
        branch = tree.add(label)
        for name in layer.models:
            branch.add(f"[green]{name}[/green]")
    return tree


def build_results_table(results: list[ModelResult]) -> Table:
    table = Table(title="Models", show_lines=False)
    table.add_column("Model", style="cyan")
    table.add_column("File", style="dim")
    table.add_column("Status")
    table.add_column("Data model id / error", overflow="fold")

    for result in results:
        if result.success:
            status = "[green]✓[/green]"
            detail = result.data_model_id or "[dim](dry run)[/dim]"
        else:
            status = "[red]✗[/red]"
            detail = f"[red]{escape(result.error or '')}[/red]"
        table.add_row(result.model_name, result.file_name, status, detail)
    return table
