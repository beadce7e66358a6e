"""Decide whether a metric can be placed on a given semantic model."""

from __future__ import annotations

from collections.abc import Mapping

from dbt_to_sigma.domain import Metric, MetricType, SemanticModel
from dbt_to_sigma.translate import find_dimension_references


def missing_references(
    metric: Metric, model: SemanticModel, catalog: Mapping[str, Metric]
) -> list[str]:
    """List the reasons ``metric`` cannot be placed on ``model``.

    An empty list means the metric is placeable:
    - a simple metric's measure must be declared on the model
    - every derived/ratio input must be a measure on the model or a known metric
    - every dimension referenced by an attached filter must go through an
      entity declared on the model
    """
    problems: list[str] = []

    if metric.type == MetricType.SIMPLE:
        if metric.measure is None:
            problems.append("simple metric has no measure")
        elif model.get_measure(metric.measure.name) is None:
            problems.append(f"measure '{metric.measure.name}' is not on '{model.name}'")
    else:
        for ref in metric.inputs:
            if model.get_measure(ref.name) is None and ref.name not in catalog:
                problems.append(f"'{ref.name}' is neither a measure nor a known metric")

    entities = model.entity_names
    for filter_expr in metric.filters:
        for dim_ref in find_dimension_references(filter_expr):
            if dim_ref.entity is None:
                problems.append(f"filter dimension '{dim_ref.dimension}' names no entity")
            elif dim_ref.entity not in entities:
                problems.append(
                    f"filter dimension '{dim_ref.entity}__{dim_ref.dimension}' "
                    f"needs entity '{dim_ref.entity}'"
                )

    return problems


def can_add_metric_to_model(
    metric: Metric, model: SemanticModel, catalog: Mapping[str, Metric]
) -> bool:
    return not missing_references(metric, model, catalog)
