"""Generate a Sigma data model from one dbt semantic model."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from dbt_to_sigma.adapters.sigma.store import FileModelStore
from dbt_to_sigma.adapters.sigma.time_spine import TimeSpineIndex, add_time_relationships
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
from dbt_to_sigma.core.diagnostics import Diagnostics
from dbt_to_sigma.domain import Dimension, Entity, Metric, SemanticModel
from dbt_to_sigma.graph import ForeignReference
from dbt_to_sigma.metrics import FormulaCache, MetricResolver
from dbt_to_sigma.translate import DisplayNamePolicy, ExpressionTranslator, FilterTranslator
from dbt_to_sigma.translate.expression import MAX_PASSES


@dataclass(frozen=True)
class GeneratorOptions:
    """Warehouse location and Sigma folder for generated models.

    The defaults are placeholders that Sigma substitutes at publish time.
    """

    connection_id: str = "$connectionId"
    database: str = "$db"
    schema: str = "$schema"
    folder_id: str | None = None


@dataclass
class TranslatedModel:
    """A generated data model plus the metrics it could not hold."""

    spec: DataModelSpec
    deferred_metrics: list[Metric] = field(default_factory=list)
    omitted_metrics: list[str] = field(default_factory=list)

    @property
    def column_count(self) -> int:
        return len(self.spec.primary_element.columns)

    @property
    def metric_count(self) -> int:
        return len(self.spec.primary_element.metrics)

    @property
    def relationship_count(self) -> int:
        return len(self.spec.primary_element.relationships)


class SigmaModelGenerator:
    """
    Builds Sigma data model documents.

    The primary element is the model's warehouse table; it carries one column
    per dimension and entity, one metric per measure and placeable metric, and
    one relationship per foreign entity whose owner is already published.

    Args:
        options: Warehouse connection, database, schema and folder
        names: Display-name policy for column and metric names
        store: Published models, used to resolve foreign entities
        time_spines: Time spine tables by granularity
        max_passes: Stalled rewrite passes allowed per expression
    """

    def __init__(
        self,
        options: GeneratorOptions | None = None,
        names: DisplayNamePolicy | None = None,
        store: FileModelStore | None = None,
        time_spines: TimeSpineIndex | None = None,
        max_passes: int = MAX_PASSES,
    ) -> None:
        self.options = options or GeneratorOptions()
        self.names = names or DisplayNamePolicy()
        self.store = store
        self.time_spines = time_spines or TimeSpineIndex()
        self.translator = ExpressionTranslator(self.names, max_passes=max_passes)
        self.filters = FilterTranslator(self.names)

    def warehouse_source(self, table_name: str) -> WarehouseTableSource:
        return WarehouseTableSource(
            name=table_name,
            connection_id=self.options.connection_id,
            path=[self.options.database, self.options.schema, table_name.upper()],
        )

    # =========================================================================
    # Columns
    # =========================================================================

    def dimension_formula(self, model: SemanticModel, dimension: Dimension) -> str:
        if dimension.has_derived_expr:
            return self.translator.translate(dimension.expr) or ""
        reference = self.names.reference(dimension.name, table=model.name)
        if dimension.is_time and dimension.granularity is not None:
            return f"DateTrunc('{dimension.granularity.value}', {reference})"
        return reference

    def entity_formula(self, model: SemanticModel, entity: Entity) -> str:
        if entity.expr:
            return self.translator.translate(entity.expr) or ""
        return self.names.reference(entity.name, table=model.name)

    def build_columns(self, model: SemanticModel) -> list[Column]:
        columns: list[Column] = []
        for dimension in model.dimensions:
            description = dimension.description or ""
            if dimension.synonyms:
                synonyms = ", ".join(dimension.synonyms)
                description = f"{description} Synonyms: {synonyms}".strip()
            columns.append(
                Column(
                    id=f"{model.name}__{dimension.name}",
                    name=self.names.display(dimension.name),
                    description=description or None,
                    formula=self.dimension_formula(model, dimension),
                )
            )
        for entity in model.entities:
            column_id = f"{model.name}__{entity.name}"
            columns.append(
                Column(id=column_id, name=column_id, formula=self.entity_formula(model, entity))
            )
        return columns

    # =========================================================================
    # Relationships
    # =========================================================================

    def add_foreign_relationships(
        self,
        spec: DataModelSpec,
        model: SemanticModel,
        references: list[ForeignReference],
        diagnostics: Diagnostics,
    ) -> None:
        """Relate the primary element to each published foreign entity owner."""
        primary = spec.primary_element
        for ref in references:
            if ref.location is None:
                continue

            owner = ref.location.model_name
            published = self.store.lookup(owner, ref.name) if self.store else None
            if published is None:
                diagnostics.add_warning(
                    model.name,
                    "unresolved_entity",
                    f"'{owner}' has no published element for entity '{ref.name}'; "
                    "relationship omitted",
                )
                continue

            spec.add_element(
                Element(
                    id=ref.name,
                    name=ref.name,
                    description=ref.name,
                    source=DataModelSource(
                        name=ref.name,
                        data_model_id=published.data_model_id,
                        element_id=published.element_id,
                    ),
                    columns=published.columns,
                )
            )

            fallback_id = f"{owner}__{ref.name}"
            target = published.find_column(fallback_id)
            primary.relationships.append(
                Relationship(
                    id=f"{model.name}__{ref.name}",
                    name=f"{model.name}__{ref.name}",
                    target_element_id=ref.name,
                    keys=[
                        RelationshipKey(
                            source_column_id=f"{model.name}__{ref.name}",
                            target_column_id=target.id if target else fallback_id,
                        )
                    ],
                )
            )

    # =========================================================================
    # Model
    # =========================================================================

    def generate(
        self,
        model: SemanticModel,
        metrics: list[Metric],
        catalog: Mapping[str, Metric],
        diagnostics: Diagnostics | None = None,
        foreign_references: list[ForeignReference] | None = None,
        data_model_id: str | None = None,
    ) -> TranslatedModel:
        """Generate the data model for ``model``.

        Args:
            model: The semantic model to translate
            metrics: Metrics declared alongside the model
            catalog: Every metric known in this run, by name
            diagnostics: Where warnings are recorded
            foreign_references: Resolved foreign entities from the dependency graph
            data_model_id: Id of an existing data model to update

        Returns:
            TranslatedModel with the document and any deferred metrics
        """
        diagnostics = diagnostics if diagnostics is not None else Diagnostics()

        primary_entity = model.primary_entity
        if primary_entity is None:
            diagnostics.add_warning(
                model.name,
                "missing_primary_entity",
                "No primary entity; the element is named after the model",
            )
        table_name = primary_entity.name if primary_entity else model.name

        primary = Element(
            id=table_name,
            name=table_name,
            description=table_name,
            source=self.warehouse_source(table_name),
            columns=self.build_columns(model),
        )
        spec = DataModelSpec(
            data_model_id=data_model_id,
            name=model.name,
            folder_id=self.options.folder_id,
            pages=[
                Page(
                    id="1",
                    name=model.name,
                    description=model.description,
                    elements=[primary],
                )
            ],
        )

        if foreign_references is None:
            foreign_references = [
                ForeignReference(name=e.name, expr=e.expr, location=None)
                for e in model.foreign_entities
            ]
            for ref in foreign_references:
                diagnostics.add_warning(
                    model.name,
                    "unresolved_entity",
                    f"Foreign entity '{ref.name}' was not resolved; relationship omitted",
                )
        self.add_foreign_relationships(spec, model, foreign_references, diagnostics)

        # One formula cache per generated model
        resolver = MetricResolver(
            model,
            catalog,
            self.translator,
            self.filters,
            cache=FormulaCache(),
            diagnostics=diagnostics,
        )
        for measure in model.measures:
            formula = resolver.measure_formula(measure.name)
            if formula is None:
                continue
            primary.metrics.append(
                SigmaMetric(
                    id=measure.name,
                    name=self.names.display(measure.name),
                    description=measure.description,
                    formula=formula.formula,
                )
            )

        resolution = resolver.resolve_all(metrics)
        for sigma_metric in resolution.placed:
            # A metric replaces the raw measure it shares a name with
            primary.metrics = [m for m in primary.metrics if m.id != sigma_metric.id]
            primary.metrics.append(sigma_metric)

        add_time_relationships(
            spec,
            model,
            self.time_spines,
            self.warehouse_source,
            self.names,
            diagnostics,
        )

        return TranslatedModel(
            spec=spec,
            deferred_metrics=resolution.deferred,
            omitted_metrics=resolution.omitted,
        )
