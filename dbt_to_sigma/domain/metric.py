"""Metric domain - simple, derived and ratio metrics."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator
from typing_extensions import Self


class MetricType(str, Enum):
    """dbt metric types."""

    SIMPLE = "simple"
    DERIVED = "derived"
    RATIO = "ratio"
    CUMULATIVE = "cumulative"
    CONVERSION = "conversion"


def normalize_filter(value: Any) -> str | None:
    """Collapse a dbt filter (string or list of strings) into one expression."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        parts = [str(v).strip() for v in value if v and str(v).strip()]
        if not parts:
            return None
        if len(parts) == 1:
            return parts[0]
        return " and ".join(f"({p})" for p in parts)
    text = str(value).strip()
    return text or None


class MetricInput(BaseModel):
    """
    Canonical reference to a measure or metric.

    dbt allows references as a bare name or as a mapping with ``name``,
    ``filter`` and ``alias``; both are normalized through :meth:`parse`.
    """

    name: str
    filter: str | None = None
    alias: str | None = None

    model_config = {"frozen": True}

    @field_validator("filter", mode="before")
    @classmethod
    def parse_filter(cls, v: Any) -> str | None:
        return normalize_filter(v)

    @classmethod
    def parse(cls, value: Any) -> Self:
        if isinstance(value, str):
            return cls(name=value)
        if isinstance(value, dict):
            if not value.get("name"):
                raise ValueError(f"Metric reference is missing a name: {value!r}")
            return cls(
                name=value["name"],
                filter=value.get("filter"),
                alias=value.get("alias"),
            )
        if isinstance(value, cls):
            return value
        raise ValueError(f"Unsupported metric reference: {value!r}")

    def with_filter(self, extra: str | None) -> "MetricInput":
        """Return a copy whose filter is ANDed with ``extra``."""
        if not extra:
            return self
        combined = f"({self.filter}) and ({extra})" if self.filter else extra
        return self.model_copy(update={"filter": combined})

    @property
    def token(self) -> str:
        """Name used for this input inside a derived expression."""
        return self.alias or self.name


class Metric(BaseModel):
    """
    A business metric.

    Type-specific parameters:
    - simple: ``measure``
    - derived: ``expr`` + ``metrics``
    - ratio: ``numerator`` + ``denominator``
    """

    name: str = Field(..., description="Unique identifier")
    type: MetricType
    label: str | None = None
    description: str | None = None
    filter: str | None = None
    source_file: str = ""

    measure: MetricInput | None = None
    expr: str | None = None
    metrics: list[MetricInput] = Field(default_factory=list)
    numerator: MetricInput | None = None
    denominator: MetricInput | None = None

    # Original definition, re-emitted into the cross-model catalog
    raw: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @field_validator("filter", mode="before")
    @classmethod
    def parse_filter(cls, v: Any) -> str | None:
        return normalize_filter(v)

    @property
    def display_description(self) -> str:
        return self.description or self.label or self.name

    @property
    def inputs(self) -> list[MetricInput]:
        """Every reference carried by the type-specific parameters."""
        if self.type == MetricType.SIMPLE:
            return [self.measure] if self.measure else []
        if self.type == MetricType.RATIO:
            return [ref for ref in (self.numerator, self.denominator) if ref]
        return list(self.metrics)

    @property
    def filters(self) -> list[str]:
        """The metric filter plus every input filter."""
        found = [self.filter] if self.filter else []
        found.extend(ref.filter for ref in self.inputs if ref.filter)
        return found
