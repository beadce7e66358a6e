"""Map raw dbt YAML dicts onto the domain models."""

from __future__ import annotations

from typing import Any

from dbt_to_sigma.domain import (
    Metric,
    MetricInput,
    SemanticModel,
    TimeSpine,
)
from dbt_to_sigma.errors import NoSemanticModelError


def _extract_meta(dbt_obj: dict[str, Any]) -> dict[str, Any]:
    """
    Extract metadata from ``config.meta``, falling back to a top-level ``meta``.
    """
    config: dict[str, Any] = dbt_obj.get("config") or {}
    meta = config.get("meta") or dbt_obj.get("meta") or {}
    return meta if isinstance(meta, dict) else {}


def map_entity(dbt_entity: dict[str, Any]) -> dict[str, Any]:
    """
    Transform dbt entity dict to our format.

    dbt format:
        name: customer
        type: foreign
        expr: customer_id
    """
    result: dict[str, Any] = {
        "name": dbt_entity["name"],
        "type": str(dbt_entity.get("type", "primary")).lower(),
    }
    if dbt_entity.get("expr") is not None:
        result["expr"] = str(dbt_entity["expr"])
    if "description" in dbt_entity:
        result["description"] = dbt_entity["description"]
    return result


def map_dimension(dbt_dim: dict[str, Any]) -> dict[str, Any]:
    """
    Transform dbt dimension dict to our format.

    dbt format:
        name: ordered_at
        type: time
        type_params:
          time_granularity: day
        expr: ordered_at_utc
        config:
          meta:
            synonyms: [order date, purchase date]

    Our format:
        name: ordered_at
        type: time
        granularity: day
        expr: ordered_at_utc
        synonyms: [order date, purchase date]
    """
    result: dict[str, Any] = {
        "name": dbt_dim["name"],
        "type": str(dbt_dim.get("type", "categorical")).lower(),
    }

    if "label" in dbt_dim:
        result["label"] = dbt_dim["label"]
    if "description" in dbt_dim:
        result["description"] = dbt_dim["description"]
    if dbt_dim.get("expr") is not None:
        result["expr"] = str(dbt_dim["expr"])

    # Flatten type_params.time_granularity -> granularity
    type_params = dbt_dim.get("type_params") or {}
    if type_params.get("time_granularity"):
        result["granularity"] = str(type_params["time_granularity"]).lower()

    synonyms = _extract_meta(dbt_dim).get("synonyms")
    if synonyms:
        result["synonyms"] = [str(s) for s in synonyms]

    return result


def map_measure(dbt_measure: dict[str, Any]) -> dict[str, Any]:
    """
    Transform dbt measure dict to our format.

    dbt format:
        name: order_total
        agg: sum
        expr: amount
        agg_time_dimension: ordered_at
    """
    result: dict[str, Any] = {
        "name": dbt_measure["name"],
        "agg": dbt_measure.get("agg"),
    }
    # expr may be a bare number such as 1
    if dbt_measure.get("expr") is not None:
        result["expr"] = str(dbt_measure["expr"])
    for key in ("agg_time_dimension", "label", "description"):
        if key in dbt_measure:
            result[key] = dbt_measure[key]
    return result


def map_metric(dbt_metric: dict[str, Any]) -> dict[str, Any]:
    """
    Transform dbt metric dict to our format.

    dbt format:
        name: completed_revenue
        type: simple
        type_params:
          measure:
            name: order_total
            filter: "{{ Dimension('order__status') }} = 'completed'"
        filter: "{{ Dimension('order__channel') }} = 'web'"

    Measure and metric references are normalized to ``MetricInput`` records,
    whether dbt gives them as a bare name or as a mapping.
    """
    raw = {k: v for k, v in dbt_metric.items() if not k.startswith("_")}
    result: dict[str, Any] = {
        "name": dbt_metric["name"],
        "type": str(dbt_metric.get("type", "simple")).lower(),
        "raw": raw,
    }

    for key in ("label", "description", "filter"):
        if key in dbt_metric:
            result[key] = dbt_metric[key]

    type_params = dbt_metric.get("type_params") or {}

    if type_params.get("measure") is not None:
        result["measure"] = MetricInput.parse(type_params["measure"])
    if type_params.get("expr") is not None:
        result["expr"] = str(type_params["expr"])
    if type_params.get("metrics"):
        result["metrics"] = [MetricInput.parse(m) for m in type_params["metrics"]]
    if type_params.get("numerator") is not None:
        result["numerator"] = MetricInput.parse(type_params["numerator"])
    if type_params.get("denominator") is not None:
        result["denominator"] = MetricInput.parse(type_params["denominator"])

    return result


def map_semantic_model(dbt_model: dict[str, Any], source_file: str = "") -> dict[str, Any]:
    """
    Transform a dbt semantic model dict to our format.

    ``defaults.agg_time_dimension`` is flattened to ``default_agg_time_dimension``.
    """
    defaults = dbt_model.get("defaults") or {}
    return {
        "name": dbt_model["name"],
        "description": dbt_model.get("description"),
        "source_file": source_file,
        "entities": [map_entity(e) for e in dbt_model.get("entities") or []],
        "dimensions": [map_dimension(d) for d in dbt_model.get("dimensions") or []],
        "measures": [map_measure(m) for m in dbt_model.get("measures") or []],
        "default_agg_time_dimension": defaults.get("agg_time_dimension"),
    }


def map_time_spines(document: dict[str, Any]) -> list[TimeSpine]:
    """
    Extract time spines from a dbt ``_models.yml`` document.

    dbt format:
        models:
          - name: time_spine_daily
            time_spine:
              standard_granularity_column: date_day
            columns:
              - name: date_day
                granularity: day
    """
    spines: list[TimeSpine] = []
    for model in document.get("models") or []:
        spine_config = model.get("time_spine") or {}
        standard = spine_config.get("standard_granularity_column")
        if not standard:
            continue
        spines.append(
            TimeSpine.model_validate(
                {
                    "name": model["name"],
                    "standard_granularity_column": standard,
                    "columns": [
                        {
                            "name": column["name"],
                            "granularity": column.get("granularity"),
                            "description": column.get("description"),
                        }
                        for column in model.get("columns") or []
                    ],
                }
            )
        )
    return spines


def parse_semantic_models(document: dict[str, Any], source_file: str) -> list[SemanticModel]:
    """Validate every semantic model declared in one file.

    Raises:
        NoSemanticModelError: If the document declares no semantic models
    """
    raw_models = document.get("semantic_models") or []
    if not raw_models:
        raise NoSemanticModelError(f"No semantic models found in {source_file}")
    return [
        SemanticModel.model_validate(map_semantic_model(raw, source_file))
        for raw in raw_models
    ]


def parse_metrics(document: dict[str, Any], source_file: str) -> list[Metric]:
    metrics: list[Metric] = []
    for raw in document.get("metrics") or []:
        data = map_metric(raw)
        data["source_file"] = source_file
        metrics.append(Metric.model_validate(data))
    return metrics


__all__ = [
    "map_dimension",
    "map_entity",
    "map_measure",
    "map_metric",
    "map_semantic_model",
    "map_time_spines",
    "parse_metrics",
    "parse_semantic_models",
]
