"""Measure formulas and their decomposed form."""

from __future__ import annotations

from dataclasses import dataclass

from dbt_to_sigma.domain import AggregationType, Measure
from dbt_to_sigma.translate import ExpressionTranslator

AGG_FUNCTIONS: dict[AggregationType, str] = {
    AggregationType.COUNT_DISTINCT: "countdistinct",
    AggregationType.SUM: "sum",
    AggregationType.SUM_BOOLEAN: "sum",
    AggregationType.COUNT: "count",
    AggregationType.AVERAGE: "avg",
    AggregationType.MIN: "min",
    AggregationType.MAX: "max",
    AggregationType.MEDIAN: "median",
    AggregationType.PERCENTILE: "percentile",
}

FILTERED_AGG_FUNCTIONS: dict[AggregationType, str] = {
    AggregationType.SUM: "sumif",
    AggregationType.SUM_BOOLEAN: "sumif",
    AggregationType.AVERAGE: "avgif",
    AggregationType.MIN: "minif",
    AggregationType.MAX: "maxif",
    AggregationType.COUNT: "countif",
    AggregationType.COUNT_DISTINCT: "countdistinctif",
}

# Unfiltered Sigma function -> filtered variant
FILTERED_VARIANTS: dict[str, str] = {
    "sum": "sumif",
    "avg": "avgif",
    "min": "minif",
    "max": "maxif",
    "count": "countif",
    "countdistinct": "countdistinctif",
}


@dataclass(frozen=True)
class FormulaObject:
    """
    A translated formula plus the parts it was built from.

    Keeping ``agg_func`` and ``measure_expr`` lets a later filtered reference
    rebuild the aggregation with a combined filter instead of nesting it.
    """

    formula: str
    agg_func: str | None = None
    measure_expr: str | None = None
    existing_filter: str | None = None

    @property
    def is_aggregation(self) -> bool:
        return self.agg_func is not None

    def filtered_agg_func(self) -> str | None:
        """The filtered aggregation to use when adding a filter to this formula."""
        if self.agg_func is None:
            return None
        if self.existing_filter is not None:
            return self.agg_func
        return FILTERED_VARIANTS.get(self.agg_func)


def build_measure_formula(
    measure: Measure, translator: ExpressionTranslator
) -> FormulaObject:
    """Build ``agg(expr)`` for a measure."""
    agg_func = AGG_FUNCTIONS[measure.agg]
    measure_expr = translator.translate(measure.effective_expr) or measure.name
    return FormulaObject(
        formula=f"{agg_func}({measure_expr})",
        agg_func=agg_func,
        measure_expr=measure_expr,
        existing_filter=None,
    )


def build_filtered_measure_formula(
    measure: Measure, sigma_filter: str, translator: ExpressionTranslator
) -> FormulaObject | None:
    """Build ``aggif(expr,filter)`` (or ``countif(filter)``) for a measure.

    Returns None for aggregations Sigma has no filtered variant of.
    """
    agg_func = FILTERED_AGG_FUNCTIONS.get(measure.agg)
    if agg_func is None:
        return None

    if agg_func == "countif":
        return FormulaObject(
            formula=f"countif({sigma_filter})",
            agg_func=agg_func,
            measure_expr=None,
            existing_filter=sigma_filter,
        )

    measure_expr = translator.translate(measure.effective_expr) or measure.name
    return FormulaObject(
        formula=f"{agg_func}({measure_expr},{sigma_filter})",
        agg_func=agg_func,
        measure_expr=measure_expr,
        existing_filter=sigma_filter,
    )
