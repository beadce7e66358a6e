"""Resolve dbt metrics into Sigma metric formulas.

Metrics are resolved in three passes: simple, then derived, then ratio.
Derived and ratio metrics usually build on simple ones. Every resolved formula is
memoized in a run-scoped :class:`FormulaCache`, so a later reference that adds
a filter can rebuild the aggregation with both filters ANDed together:

    sumif([amount],[status] = 'paid')            # cached simple metric
    sumif([amount],([status] = 'paid') and ...)  # filtered reference to it

rather than nesting one filtered aggregation inside another.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from dbt_to_sigma.adapters.sigma.types import SigmaMetric
from dbt_to_sigma.core.diagnostics import Diagnostics
from dbt_to_sigma.domain import Metric, MetricInput, MetricType, SemanticModel
from dbt_to_sigma.metrics.analyzer import missing_references
from dbt_to_sigma.metrics.formula import (
    FormulaObject,
    build_filtered_measure_formula,
    build_measure_formula,
)
from dbt_to_sigma.translate import (
    RESERVED_WORDS,
    ExpressionTranslator,
    FilterTranslator,
    combine_filters,
    rebuild_filtered_formula,
)
from dbt_to_sigma.translate.scanner import is_wrapped, normalize_whitespace

RESOLUTION_ORDER = (MetricType.SIMPLE, MetricType.DERIVED, MetricType.RATIO)

EXPR_TOKEN = re.compile(r"\b[A-Za-z_][A-Za-z0-9_]*\b")


@dataclass
class FormulaCache:
    """Formulas resolved during one run, keyed by measure and metric name."""

    measures: dict[str, FormulaObject] = field(default_factory=dict)
    metrics: dict[str, FormulaObject] = field(default_factory=dict)


@dataclass
class MetricResolution:
    """Outcome of resolving one model's metrics."""

    placed: list[SigmaMetric] = field(default_factory=list)
    deferred: list[Metric] = field(default_factory=list)
    omitted: list[str] = field(default_factory=list)


class MetricResolver:
    """
    Converts metric definitions into Sigma formulas for one semantic model.

    Args:
        model: The model metrics are being placed on
        catalog: Every metric known in this run, by name
        translator: Expression translator for measure expressions
        filters: Filter translator for metric and reference filters
        cache: Shared formula cache for the run
        diagnostics: Where unresolvable references are reported
    """

    def __init__(
        self,
        model: SemanticModel,
        catalog: Mapping[str, Metric],
        translator: ExpressionTranslator,
        filters: FilterTranslator,
        cache: FormulaCache | None = None,
        diagnostics: Diagnostics | None = None,
    ) -> None:
        self.model = model
        self.catalog = catalog
        self.translator = translator
        self.filters = filters
        self.cache = cache if cache is not None else FormulaCache()
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self._in_progress: set[str] = set()

    # =========================================================================
    # References
    # =========================================================================

    def measure_formula(self, name: str) -> FormulaObject | None:
        """Unfiltered formula of a measure declared on this model."""
        if name in self.cache.measures:
            return self.cache.measures[name]
        measure = self.model.get_measure(name)
        if measure is None:
            return None
        formula = build_measure_formula(measure, self.translator)
        self.cache.measures[name] = formula
        return formula

    def _translate_filter(self, filter_expr: str) -> str:
        return self.filters.translate(filter_expr, self.model.name)

    def _measure_reference(self, ref: MetricInput) -> FormulaObject | None:
        measure = self.model.get_measure(ref.name)
        if measure is None:
            return None
        if not ref.filter:
            return self.measure_formula(ref.name)

        formula = build_filtered_measure_formula(
            measure, self._translate_filter(ref.filter), self.translator
        )
        if formula is None:
            self.diagnostics.add_warning(
                self.model.name,
                "unsupported_metric",
                f"Aggregation '{measure.agg.value}' of measure '{measure.name}' "
                "has no filtered form in Sigma",
            )
        return formula

    def _resolve_reference(self, ref: MetricInput) -> FormulaObject | None:
        if self.model.get_measure(ref.name) is not None:
            return self._measure_reference(ref)

        metric = self.catalog.get(ref.name)
        if metric is None:
            return None

        base = self.cache.metrics.get(ref.name) or self.resolve(metric)
        if base is None or not ref.filter:
            return base

        agg_func = base.filtered_agg_func()
        if agg_func is None:
            self.diagnostics.add_warning(
                ref.name,
                "unsupported_metric",
                f"Cannot apply filter to metric '{ref.name}': its formula is not "
                "a single aggregation",
            )
            return None

        combined = (
            combine_filters(base.existing_filter, self._translate_filter(ref.filter)) or ""
        )
        measure_expr = None if agg_func == "countif" else base.measure_expr
        return FormulaObject(
            formula=rebuild_filtered_formula(agg_func, measure_expr, combined),
            agg_func=agg_func,
            measure_expr=measure_expr,
            existing_filter=combined,
        )

    def resolve_input(self, ref: MetricInput | str) -> str | None:
        """Formula for a measure or metric reference, or None if unresolvable."""
        formula = self._resolve_reference(MetricInput.parse(ref))
        return formula.formula if formula else None

    # =========================================================================
    # Metrics
    # =========================================================================

    def resolve(self, metric: Metric) -> FormulaObject | None:
        """Resolve a metric, memoizing the result in the run cache."""
        if metric.name in self.cache.metrics:
            return self.cache.metrics[metric.name]

        if metric.name in self._in_progress:
            self.diagnostics.add_warning(
                metric.name,
                "circular_metric",
                f"Metric '{metric.name}' references itself through its inputs",
            )
            return None

        self._in_progress.add(metric.name)
        try:
            if metric.type == MetricType.SIMPLE:
                formula = self._resolve_simple(metric)
            elif metric.type == MetricType.DERIVED:
                formula = self._resolve_derived(metric)
            elif metric.type == MetricType.RATIO:
                formula = self._resolve_ratio(metric)
            else:
                self.diagnostics.add_warning(
                    metric.name,
                    "unsupported_metric",
                    f"Metric type '{metric.type.value}' is not supported",
                )
                formula = None
        finally:
            self._in_progress.discard(metric.name)

        if formula is not None:
            self.cache.metrics[metric.name] = formula
        return formula

    def _resolve_simple(self, metric: Metric) -> FormulaObject | None:
        if metric.measure is None:
            self.diagnostics.add_warning(
                metric.name, "unresolved_metric", "Simple metric has no measure"
            )
            return None

        ref = metric.measure.with_filter(metric.filter)
        if self.model.get_measure(ref.name) is None:
            self.diagnostics.add_warning(
                metric.name,
                "unresolved_metric",
                f"Measure '{ref.name}' is not declared on '{self.model.name}'",
            )
            return None
        return self._measure_reference(ref)

    def _find_input(self, metric: Metric, token: str) -> MetricInput | None:
        for ref in metric.metrics:
            if ref.alias == token:
                return ref
        for ref in metric.metrics:
            if ref.name == token:
                return ref
        return None

    @staticmethod
    def _as_operand(formula: FormulaObject) -> str:
        # Aggregations are single calls; composite formulas need their own parens
        if formula.is_aggregation or is_wrapped(formula.formula):
            return formula.formula
        return f"({formula.formula})"

    def _resolve_derived(self, metric: Metric) -> FormulaObject | None:
        if not metric.expr:
            self.diagnostics.add_warning(
                metric.name, "unresolved_metric", "Derived metric has no expr"
            )
            return None

        replacements: dict[str, str] = {}
        for token in dict.fromkeys(EXPR_TOKEN.findall(metric.expr)):
            ref = self._find_input(metric, token)
            if ref is None:
                if token.lower() in RESERVED_WORDS:
                    continue
                self.diagnostics.add_warning(
                    metric.name,
                    "unresolved_metric",
                    f"'{token}' in expr is not one of the metric's inputs",
                )
                return None

            formula = self._resolve_reference(ref)
            if formula is None:
                self.diagnostics.add_warning(
                    metric.name,
                    "unresolved_metric",
                    f"Could not resolve input '{ref.name}'",
                )
                return None
            replacements[token] = self._as_operand(formula)

        resolved = EXPR_TOKEN.sub(
            lambda m: replacements.get(m.group(0), m.group(0)), metric.expr
        )
        return FormulaObject(formula=normalize_whitespace(resolved))

    def _resolve_ratio(self, metric: Metric) -> FormulaObject | None:
        numerator = denominator = None
        if metric.numerator is not None:
            numerator = self._resolve_reference(metric.numerator.with_filter(metric.filter))
        if metric.denominator is not None:
            denominator = self._resolve_reference(
                metric.denominator.with_filter(metric.filter)
            )

        if numerator is None or denominator is None:
            self.diagnostics.add_warning(
                metric.name,
                "unresolved_metric",
                f"Could not build formula for ratio metric '{metric.name}'",
            )
            return None

        return FormulaObject(formula=f"({numerator.formula}) / ({denominator.formula})")

    # =========================================================================
    # Placement
    # =========================================================================

    def resolve_all(self, metrics: list[Metric]) -> MetricResolution:
        """Place, defer or omit each metric, simple first, then derived, then ratio."""
        resolution = MetricResolution()

        for metric in metrics:
            if metric.type not in RESOLUTION_ORDER:
                self.diagnostics.add_warning(
                    metric.name,
                    "unsupported_metric",
                    f"Metric type '{metric.type.value}' is not supported",
                )
                resolution.omitted.append(metric.name)

        for metric_type in RESOLUTION_ORDER:
            for metric in metrics:
                if metric.type != metric_type:
                    continue

                problems = missing_references(metric, self.model, self.catalog)
                if problems:
                    self.diagnostics.add_warning(
                        metric.name,
                        "metric_deferred",
                        f"Deferred from '{self.model.name}': {'; '.join(problems)}",
                    )
                    resolution.deferred.append(metric)
                    continue

                formula = self.resolve(metric)
                if formula is None:
                    self.diagnostics.add_warning(
                        metric.name,
                        "metric_omitted",
                        f"No formula could be built; omitted from '{self.model.name}'",
                    )
                    resolution.omitted.append(metric.name)
                    continue

                resolution.placed.append(
                    SigmaMetric(
                        id=metric.name,
                        name=self.translator.names.display(metric.name),
                        description=metric.display_description,
                        formula=formula.formula,
                    )
                )

        return resolution
