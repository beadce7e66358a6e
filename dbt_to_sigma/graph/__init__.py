"""Cross-model dependency analysis and processing order."""

from dbt_to_sigma.graph.analyzer import (
    DependencyGraph,
    DependencyRecord,
    EntityIndex,
    EntityLocation,
    ForeignReference,
)
from dbt_to_sigma.graph.layers import Layer, TopologicalLayerer, layer_summary

__all__ = [
    "DependencyGraph",
    "DependencyRecord",
    "EntityIndex",
    "EntityLocation",
    "ForeignReference",
    "Layer",
    "TopologicalLayerer",
    "layer_summary",
]
