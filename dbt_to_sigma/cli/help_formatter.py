"""Custom Click help formatter.

Commands and groups keep Click's plain formatting but render help at a
wider column so option descriptions do not wrap early.
"""

from __future__ import annotations

import click


class RichCommand(click.Command):
    """Click command with an 88-column help formatter."""

    def get_help(self, ctx: click.Context) -> str:
        formatter = click.HelpFormatter(width=88)
        self.format_help(ctx, formatter)
        return formatter.getvalue()


class RichGroup(click.Group):
    """Click group with an 88-column help formatter."""

    def get_help(self, ctx: click.Context) -> str:
        formatter = click.HelpFormatter(width=88)
        self.format_help(ctx, formatter)
        return formatter.getvalue()
