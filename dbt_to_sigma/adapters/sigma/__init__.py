"""Sigma data model adapter.

The generator lives in ``dbt_to_sigma.adapters.sigma.generator`` and is
imported from there; this package exports the document types and the
publishing helpers it builds on.
"""

from dbt_to_sigma.adapters.sigma.catalog import merge_cross_model_metrics
from dbt_to_sigma.adapters.sigma.paths import OutputPaths, safe_join, sanitize_path
from dbt_to_sigma.adapters.sigma.store import FileModelStore, PublishedElement
from dbt_to_sigma.adapters.sigma.types import (
    Column,
    DataModelSource,
    DataModelSpec,
    Element,
    Page,
    Relationship,
    RelationshipKey,
    SigmaMetric,
    WarehouseTableSource,
)

__all__ = [
    "Column",
    "DataModelSource",
    "DataModelSpec",
    "Element",
    "FileModelStore",
    "OutputPaths",
    "Page",
    "PublishedElement",
    "Relationship",
    "RelationshipKey",
    "SigmaMetric",
    "WarehouseTableSource",
    "merge_cross_model_metrics",
    "safe_join",
    "sanitize_path",
]
