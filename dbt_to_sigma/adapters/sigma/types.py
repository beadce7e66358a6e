"""Sigma data model types.

These mirror the Sigma data model document: a model with pages, pages with
elements, elements with columns, metrics and relationships. Field names are
snake_case in Python and serialize to camelCase.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class SigmaBase(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    def to_dict(self) -> dict[str, Any]:
        """Serialize with Sigma's camelCase keys, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


class WarehouseTableSource(SigmaBase):
    """A table read straight from the warehouse connection."""

    kind: Literal["warehouse-table"] = "warehouse-table"
    name: str
    connection_id: str
    path: list[str]


class DataModelSource(SigmaBase):
    """An element of another, already published data model."""

    kind: Literal["data-model"] = "data-model"
    name: str
    data_model_id: str
    element_id: str


class Column(SigmaBase):
    id: str
    name: str
    description: str | None = None
    formula: str


class SigmaMetric(SigmaBase):
    id: str
    name: str
    description: str | None = None
    formula: str


class RelationshipKey(SigmaBase):
    source_column_id: str
    target_column_id: str


class Relationship(SigmaBase):
    id: str
    name: str
    target_element_id: str
    keys: list[RelationshipKey]
    relationship_type: str = "N:1"


class Element(SigmaBase):
    id: str
    name: str
    description: str | None = None
    kind: Literal["table"] = "table"
    source: WarehouseTableSource | DataModelSource
    columns: list[Column] = Field(default_factory=list)
    filters: list[Any] = Field(default_factory=list)
    folders: list[Any] = Field(default_factory=list)
    metrics: list[SigmaMetric] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    joins: list[Any] = Field(default_factory=list)

    def get_column(self, name: str) -> Column | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None


class Page(SigmaBase):
    id: str = "1"
    name: str
    description: str | None = None
    elements: list[Element] = Field(default_factory=list)


class DataModelSpec(SigmaBase):
    """A complete Sigma data model document."""

    data_model_id: str | None = None
    name: str
    schema_version: int = 1
    folder_id: str | None = None
    pages: list[Page] = Field(default_factory=list)

    @property
    def primary_element(self) -> Element:
        return self.pages[0].elements[0]

    def find_element(self, name: str) -> Element | None:
        for page in self.pages:
            for element in page.elements:
                if element.name == name:
                    return element
        return None

    def add_element(self, element: Element) -> None:
        """Append an element to the first page unless one with its id exists."""
        elements = self.pages[0].elements
        if any(existing.id == element.id for existing in elements):
            return
        elements.append(element)
