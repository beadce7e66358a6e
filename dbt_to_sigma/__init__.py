"""
dbt-to-sigma: translate dbt semantic models into Sigma data models.

Architecture:
    YAML → Ingestion (DbtLoader) → Domain (SemanticModel, Metric)
         → Graph (layers) → Adapter (SigmaModelGenerator) → data model YAML

Layers:
    - domain/: Pure semantic types (models, entities, dims, measures, metrics)
    - ingestion/: dbt YAML loading and mapping onto the domain
    - graph/: Entity ownership, model dependencies and processing layers
    - translate/: SQL expression and dbt filter rewriting into Sigma formulas
    - metrics/: Placing metrics on a model and resolving them to formulas
    - adapters/: Sigma document generation and the published model store

Key Concepts:
    - A model is translated only after every model it joins to is published
    - Metrics that need more than one model are deferred to a shared catalog
"""

__version__ = "0.1.0"
