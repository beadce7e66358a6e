"""Semantic model and entity domain."""

from enum import Enum

from pydantic import BaseModel, Field

from dbt_to_sigma.domain.dimension import Dimension
from dbt_to_sigma.domain.measure import Measure


class EntityType(str, Enum):
    """Entity roles."""

    PRIMARY = "primary"
    FOREIGN = "foreign"
    UNIQUE = "unique"
    NATURAL = "natural"


class Entity(BaseModel):
    """
    A named key within a semantic model.

    Primary/unique entities define the model's join key; foreign entities point at
    another model's primary or unique entity of the same name.
    """

    name: str
    type: EntityType
    expr: str | None = None
    description: str | None = None

    model_config = {"frozen": True}

    @property
    def is_key(self) -> bool:
        """True for entities that other models can reference."""
        return self.type in (EntityType.PRIMARY, EntityType.UNIQUE)


class SemanticModel(BaseModel):
    """
    A parsed dbt semantic model.

    Read-only for the duration of a run. ``source_file`` is the file identity
    (stem of the YAML file the model was declared in).
    """

    name: str = Field(..., description="Unique identifier")
    description: str | None = None
    source_file: str = ""
    entities: list[Entity] = Field(default_factory=list)
    dimensions: list[Dimension] = Field(default_factory=list)
    measures: list[Measure] = Field(default_factory=list)
    default_agg_time_dimension: str | None = None

    model_config = {"frozen": True}

    @property
    def primary_entity(self) -> Entity | None:
        for entity in self.entities:
            if entity.type == EntityType.PRIMARY:
                return entity
        return None

    @property
    def foreign_entities(self) -> list[Entity]:
        return [e for e in self.entities if e.type == EntityType.FOREIGN]

    @property
    def entity_names(self) -> set[str]:
        return {e.name for e in self.entities}

    def get_measure(self, name: str) -> Measure | None:
        for measure in self.measures:
            if measure.name == name:
                return measure
        return None

    def get_dimension(self, name: str) -> Dimension | None:
        for dimension in self.dimensions:
            if dimension.name == name:
                return dimension
        return None
