"""Dimension domain - categorical and time-based attributes."""

from enum import Enum

from pydantic import BaseModel, Field


class DimensionType(str, Enum):
    """Dimension types."""

    CATEGORICAL = "categorical"
    TIME = "time"


class TimeGranularity(str, Enum):
    """Time granularity for time dimensions and time spine columns."""

    NANOSECOND = "nanosecond"
    MICROSECOND = "microsecond"
    MILLISECOND = "millisecond"
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class Dimension(BaseModel):
    """
    A dimension represents a categorical or time-based attribute for grouping/filtering.

    When ``expr`` is omitted the dimension maps directly onto the column of the same name.
    """

    name: str = Field(..., description="Unique identifier")
    type: DimensionType = Field(DimensionType.CATEGORICAL, description="Dimension type")
    label: str | None = Field(None, description="Display label")
    description: str | None = Field(None, description="Human-readable description")
    expr: str | None = Field(None, description="SQL expression")

    # Time-specific
    granularity: TimeGranularity | None = Field(
        None, description="Time granularity (day, hour, etc.)"
    )

    # From config.meta.synonyms
    synonyms: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def is_time(self) -> bool:
        return self.type == DimensionType.TIME

    @property
    def has_derived_expr(self) -> bool:
        """True when the expression is something other than the bare column name."""
        return bool(self.expr) and self.expr != self.name
