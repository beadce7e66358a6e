"""Relate a model's aggregation time dimensions to time spine tables.

For every granularity used by the model's ``agg_time_dimension`` settings,
the time spine declared at that granularity is added as an element and the
primary element gets an N:1 relationship onto its standard column.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from dbt_to_sigma.adapters.sigma.types import (
    Column,
    DataModelSpec,
    Element,
    Relationship,
    RelationshipKey,
    WarehouseTableSource,
)
from dbt_to_sigma.core.diagnostics import Diagnostics
from dbt_to_sigma.domain import SemanticModel, TimeGranularity, TimeSpine
from dbt_to_sigma.translate import DisplayNamePolicy

# Table name -> warehouse source for that table
WarehouseSourceFactory = Callable[[str], WarehouseTableSource]


class TimeSpineIndex:
    """Time spines keyed by the granularity of their standard column."""

    def __init__(self, spines: Iterable[TimeSpine] = ()) -> None:
        self.by_granularity: dict[TimeGranularity, TimeSpine] = {}
        for spine in spines:
            if spine.granularity is not None:
                self.by_granularity[spine.granularity] = spine

    def get(self, granularity: TimeGranularity) -> TimeSpine | None:
        return self.by_granularity.get(granularity)

    def __len__(self) -> int:
        return len(self.by_granularity)


def agg_time_dimensions(model: SemanticModel) -> list[str]:
    """The model default plus every measure's agg_time_dimension, de-duplicated."""
    names: list[str] = []
    if model.default_agg_time_dimension:
        names.append(model.default_agg_time_dimension)
    for measure in model.measures:
        if measure.agg_time_dimension:
            names.append(measure.agg_time_dimension)
    return list(dict.fromkeys(names))


def spine_element_id(granularity: TimeGranularity) -> str:
    return f"time_spine_{granularity.value}"


def build_spine_element(
    spine: TimeSpine,
    granularity: TimeGranularity,
    source: WarehouseTableSource,
    names: DisplayNamePolicy,
) -> Element:
    element_id = spine_element_id(granularity)
    return Element(
        id=element_id,
        name=spine.name,
        description=f"Time spine table for {granularity.value} granularity",
        source=source,
        columns=[
            Column(
                id=f"{element_id}__{column.name}",
                name=names.display(column.name),
                description=column.description or "",
                formula=names.reference(column.name, table=spine.name),
            )
            for column in spine.columns
        ],
    )


def add_time_relationships(
    spec: DataModelSpec,
    model: SemanticModel,
    index: TimeSpineIndex,
    warehouse_source: WarehouseSourceFactory,
    names: DisplayNamePolicy,
    diagnostics: Diagnostics,
) -> int:
    """Add time spine elements and relationships to ``spec``.

    Returns:
        Number of relationships added
    """
    dimension_names = agg_time_dimensions(model)
    if not dimension_names:
        return 0

    added: set[TimeGranularity] = set()
    primary = spec.primary_element

    for dimension_name in dimension_names:
        dimension = model.get_dimension(dimension_name)
        if dimension is None or not dimension.is_time or dimension.granularity is None:
            diagnostics.add_warning(
                model.name,
                "time_spine",
                f"No time granularity found for dimension '{dimension_name}'",
            )
            continue

        granularity = dimension.granularity
        if granularity in added:
            continue

        spine = index.get(granularity)
        if spine is None:
            diagnostics.add_warning(
                model.name,
                "time_spine",
                f"No time spine declared for granularity '{granularity.value}'",
            )
            continue

        added.add(granularity)
        element_id = spine_element_id(granularity)
        spec.add_element(
            build_spine_element(spine, granularity, warehouse_source(spine.name), names)
        )
        primary.relationships.append(
            Relationship(
                id=f"{model.name}__{element_id}",
                name=f"{model.name}__{element_id}",
                target_element_id=element_id,
                keys=[
                    RelationshipKey(
                        source_column_id=f"{model.name}__{dimension.name}",
                        target_column_id=f"{element_id}__{spine.standard_granularity_column}",
                    )
                ],
            )
        )

    return len(added)
