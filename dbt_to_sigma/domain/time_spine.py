"""Time spine domain - reference calendars declared in _models.yml."""

from pydantic import BaseModel, Field

from dbt_to_sigma.domain.dimension import TimeGranularity


class TimeSpineColumn(BaseModel):
    name: str
    granularity: TimeGranularity | None = None
    description: str | None = None

    model_config = {"frozen": True}


class TimeSpine(BaseModel):
    """A time spine table keyed by the granularity of its standard column."""

    name: str
    standard_granularity_column: str
    columns: list[TimeSpineColumn] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def granularity(self) -> TimeGranularity | None:
        for column in self.columns:
            if column.name == self.standard_granularity_column:
                return column.granularity
        return None
