"""Build the cross-model dependency graph from entity declarations.

A model depends on another model when one of its foreign entities names a
primary or unique entity declared by that model. The graph records both
directions:

    depends_on   models whose published output this model joins to
    dependents   models that join to this one

Usage:
    index = EntityIndex.from_models(models, diagnostics)
    graph = DependencyGraph.build(models, index, diagnostics)
    layers = TopologicalLayerer(graph.dependency_map(), diagnostics).sort()
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from dbt_to_sigma.core.diagnostics import Diagnostics
from dbt_to_sigma.domain import SemanticModel


@dataclass(frozen=True)
class EntityLocation:
    """Where a primary/unique entity is declared."""

    file_name: str
    model_name: str


class EntityIndex:
    """Entity name -> declaring model, for every primary/unique entity."""

    def __init__(self, locations: dict[str, EntityLocation] | None = None) -> None:
        self.locations: dict[str, EntityLocation] = locations or {}

    @classmethod
    def from_models(
        cls,
        models: Iterable[SemanticModel],
        diagnostics: Diagnostics | None = None,
    ) -> EntityIndex:
        """Index every key entity. The first declaration of a name wins."""
        index = cls()
        for model in models:
            for entity in model.entities:
                if not entity.is_key:
                    continue
                existing = index.locations.get(entity.name)
                if existing is None:
                    index.locations[entity.name] = EntityLocation(
                        file_name=model.source_file, model_name=model.name
                    )
                elif existing.model_name != model.name and diagnostics is not None:
                    diagnostics.add_warning(
                        model.name,
                        "duplicate_entity",
                        f"Entity '{entity.name}' is already declared by "
                        f"'{existing.model_name}'; keeping that declaration",
                    )
        return index

    def resolve(self, entity_name: str) -> EntityLocation | None:
        return self.locations.get(entity_name)

    def __contains__(self, entity_name: object) -> bool:
        return entity_name in self.locations

    def __len__(self) -> int:
        return len(self.locations)


@dataclass
class ForeignReference:
    """A foreign entity and the model that owns its key, if found."""

    name: str
    expr: str | None
    location: EntityLocation | None

    @property
    def resolved(self) -> bool:
        return self.location is not None


@dataclass
class DependencyRecord:
    """Dependency edges of one semantic model."""

    model: str
    file_name: str
    primary_entity: str | None = None
    description: str | None = None
    depends_on: list[str] = field(default_factory=list)
    dependents: list[str] = field(default_factory=list)
    foreign_references: list[ForeignReference] = field(default_factory=list)


class DependencyGraph:
    """Dependency records keyed by model name, in corpus order."""

    def __init__(self, records: dict[str, DependencyRecord] | None = None) -> None:
        self.records: dict[str, DependencyRecord] = records or {}

    @classmethod
    def build(
        cls,
        models: Iterable[SemanticModel],
        index: EntityIndex,
        diagnostics: Diagnostics | None = None,
    ) -> DependencyGraph:
        diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        models = list(models)
        known = {model.name for model in models}
        graph = cls()

        for model in models:
            primary = model.primary_entity
            record = DependencyRecord(
                model=model.name,
                file_name=model.source_file,
                primary_entity=primary.name if primary else None,
                description=model.description,
            )

            for entity in model.foreign_entities:
                location = index.resolve(entity.name)
                record.foreign_references.append(
                    ForeignReference(name=entity.name, expr=entity.expr, location=location)
                )
                if location is None:
                    diagnostics.add_warning(
                        model.name,
                        "unresolved_entity",
                        f"Foreign entity '{entity.name}' has no primary or unique "
                        "declaration in any model",
                    )
                    continue
                owner = location.model_name
                if owner == model.name or owner in record.depends_on:
                    continue
                if owner not in known:
                    diagnostics.add_warning(
                        model.name,
                        "unresolved_entity",
                        f"Foreign entity '{entity.name}' belongs to '{owner}', "
                        "which is not in the loaded models",
                    )
                    continue
                record.depends_on.append(owner)

            graph.records[model.name] = record

        for record in graph.records.values():
            for owner in record.depends_on:
                graph.records[owner].dependents.append(record.model)

        return graph

    def __contains__(self, name: object) -> bool:
        return name in self.records

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, name: str) -> DependencyRecord:
        return self.records[name]

    def dependency_map(self) -> dict[str, list[str]]:
        """Model name -> the models it depends on, for layering."""
        return {name: list(record.depends_on) for name, record in self.records.items()}

    def models_in_files(self, file_names: Iterable[str]) -> list[str]:
        wanted = set(file_names)
        return [name for name, record in self.records.items() if record.file_name in wanted]

    def affected_by(self, models: Iterable[str]) -> list[str]:
        """The given models plus everything that transitively depends on them."""
        affected: set[str] = set()
        pending = [name for name in models if name in self.records]
        while pending:
            name = pending.pop()
            if name in affected:
                continue
            affected.add(name)
            pending.extend(self.records[name].dependents)
        return [name for name in self.records if name in affected]

    def subgraph(self, names: Iterable[str]) -> DependencyGraph:
        """Restrict the graph to ``names``.

        Edges to models outside the scope are dropped; those models are
        already published and count as satisfied.
        """
        scope = set(names)
        records: dict[str, DependencyRecord] = {}
        for name, record in self.records.items():
            if name not in scope:
                continue
            records[name] = DependencyRecord(
                model=record.model,
                file_name=record.file_name,
                primary_entity=record.primary_entity,
                description=record.description,
                depends_on=[d for d in record.depends_on if d in scope],
                dependents=[d for d in record.dependents if d in scope],
                foreign_references=list(record.foreign_references),
            )
        return DependencyGraph(records)

    def to_dict(self) -> dict[str, Any]:
        return {
            name: {
                "file": record.file_name,
                "primaryEntity": record.primary_entity,
                "dependsOn": list(record.depends_on),
                "dependents": list(record.dependents),
                "foreignEntities": [
                    {
                        "name": ref.name,
                        "semanticModelName": ref.location.model_name if ref.location else None,
                        "file": ref.location.file_name if ref.location else None,
                    }
                    for ref in record.foreign_references
                ],
            }
            for name, record in self.records.items()
        }
