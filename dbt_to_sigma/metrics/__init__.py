"""Metric placement and formula resolution."""

from dbt_to_sigma.metrics.analyzer import can_add_metric_to_model, missing_references
from dbt_to_sigma.metrics.formula import (
    AGG_FUNCTIONS,
    FILTERED_AGG_FUNCTIONS,
    FormulaObject,
    build_filtered_measure_formula,
    build_measure_formula,
)
from dbt_to_sigma.metrics.resolver import FormulaCache, MetricResolution, MetricResolver

__all__ = [
    "AGG_FUNCTIONS",
    "FILTERED_AGG_FUNCTIONS",
    "FormulaCache",
    "FormulaObject",
    "MetricResolution",
    "MetricResolver",
    "build_filtered_measure_formula",
    "build_measure_formula",
    "can_add_metric_to_model",
    "missing_references",
]
