"""Translate command for dbt-to-sigma CLI."""

from __future__ import annotations

import click

from dbt_to_sigma.cli import RichCommand
from dbt_to_sigma.translate import DisplayNamePolicy, ExpressionTranslator


@click.command(cls=RichCommand)
@click.argument("expression")
@click.option(
    "--friendly",
    is_flag=True,
    help="Replace underscores with spaces in column references",
)
def translate(expression: str, friendly: bool) -> None:
    """Translate one SQL expression into a Sigma formula.

    Examples:

        $ d2s translate "case when amount > 0 then 'paid' else 'free' end"
        if([amount] > 0,'paid','free')

        $ d2s translate "concat(first_name, ' ', last_name)" --friendly
        [first name] & ' ' & [last name]
    """
    translator = ExpressionTranslator(DisplayNamePolicy(user_friendly=friendly))
    click.echo(translator.translate(expression))
