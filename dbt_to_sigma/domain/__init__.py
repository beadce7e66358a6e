"""Domain layer - semantic primitives and types.

This layer contains output-agnostic semantic concepts:
- Models, entities, dimensions, measures, metrics
- Time spines, time granularity, aggregation types

Sigma-specific concepts (elements, relationships, columns) belong in
adapters/sigma/types.py, not here.
"""

from dbt_to_sigma.domain.dimension import Dimension, DimensionType, TimeGranularity
from dbt_to_sigma.domain.measure import AggregationType, Measure
from dbt_to_sigma.domain.metric import (
    Metric,
    MetricInput,
    MetricType,
    normalize_filter,
)
from dbt_to_sigma.domain.model import Entity, EntityType, SemanticModel
from dbt_to_sigma.domain.time_spine import TimeSpine, TimeSpineColumn

__all__ = [
    # Dimension
    "Dimension",
    "DimensionType",
    "TimeGranularity",
    # Measure
    "AggregationType",
    "Measure",
    # Metric
    "Metric",
    "MetricInput",
    "MetricType",
    "normalize_filter",
    # Model
    "Entity",
    "EntityType",
    "SemanticModel",
    # Time spine
    "TimeSpine",
    "TimeSpineColumn",
]
