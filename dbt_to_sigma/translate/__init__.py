"""Expression and filter translation from dbt SQL to Sigma formulas."""

from dbt_to_sigma.translate.expression import ExpressionTranslator, RESERVED_WORDS
from dbt_to_sigma.translate.filters import (
    DimensionReference,
    FilterTranslator,
    combine_filters,
    find_dimension_references,
    rebuild_filtered_formula,
)
from dbt_to_sigma.translate.names import DisplayNamePolicy

__all__ = [
    "DimensionReference",
    "DisplayNamePolicy",
    "ExpressionTranslator",
    "FilterTranslator",
    "RESERVED_WORDS",
    "combine_filters",
    "find_dimension_references",
    "rebuild_filtered_formula",
]
