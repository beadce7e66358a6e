"""dbt semantic layer ingestion."""

from dbt_to_sigma.ingestion.dbt.loader import (
    TIME_SPINE_FILENAME,
    Corpus,
    DbtLoader,
    SourceDocument,
    load_time_spines,
)
from dbt_to_sigma.ingestion.dbt.mapper import (
    map_dimension,
    map_entity,
    map_measure,
    map_metric,
    map_semantic_model,
    map_time_spines,
    parse_metrics,
    parse_semantic_models,
)

__all__ = [
    "TIME_SPINE_FILENAME",
    "Corpus",
    "DbtLoader",
    "SourceDocument",
    "load_time_spines",
    "map_dimension",
    "map_entity",
    "map_measure",
    "map_metric",
    "map_semantic_model",
    "map_time_spines",
    "parse_metrics",
    "parse_semantic_models",
]
