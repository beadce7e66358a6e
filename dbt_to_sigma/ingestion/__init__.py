"""Ingestion layer - load source definitions into domain objects."""

from dbt_to_sigma.ingestion.dbt import Corpus, DbtLoader, SourceDocument, load_time_spines

__all__ = ["Corpus", "DbtLoader", "SourceDocument", "load_time_spines"]
