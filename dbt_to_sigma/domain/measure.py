"""Measure domain - aggregatable expressions."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class AggregationType(str, Enum):
    """dbt measure aggregations."""

    SUM = "sum"
    COUNT = "count"
    COUNT_DISTINCT = "count_distinct"
    AVERAGE = "average"
    MIN = "min"
    MAX = "max"
    MEDIAN = "median"
    PERCENTILE = "percentile"
    SUM_BOOLEAN = "sum_boolean"


# Spellings seen in hand-written models
AGGREGATION_ALIASES = {
    "avg": AggregationType.AVERAGE,
    "countdistinct": AggregationType.COUNT_DISTINCT,
}


class Measure(BaseModel):
    """A named aggregation over a column expression."""

    name: str = Field(..., description="Unique identifier")
    agg: AggregationType = Field(..., description="Aggregation function")
    expr: str | None = Field(None, description="Column expression (defaults to name)")
    agg_time_dimension: str | None = None
    label: str | None = None
    description: str | None = None

    model_config = {"frozen": True}

    @field_validator("agg", mode="before")
    @classmethod
    def parse_agg(cls, v: Any) -> Any:
        if isinstance(v, str):
            key = v.strip().lower()
            return AGGREGATION_ALIASES.get(key, key)
        return v

    @property
    def effective_expr(self) -> str:
        return self.expr if self.expr else self.name
