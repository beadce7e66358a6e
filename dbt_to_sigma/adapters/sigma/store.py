"""Published Sigma data models, read back when later models join to them.

The store is keyed by semantic model name. Each entry is the data model
document as it was published, including the ``dataModelId`` it was given.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import ValidationError

from dbt_to_sigma.adapters.sigma.paths import safe_join
from dbt_to_sigma.adapters.sigma.types import Column, DataModelSpec


@dataclass
class PublishedElement:
    """What a later model needs to relate to an already published element."""

    data_model_id: str
    element_id: str
    columns: list[Column] = field(default_factory=list)

    def find_column(self, name: str) -> Column | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None


class FileModelStore:
    """A directory of published data model documents, one YAML file per model."""

    def __init__(self, base_path: str | Path) -> None:
        self.base_path = Path(base_path)

    def path_for(self, model_name: str) -> Path:
        return safe_join(self.base_path, model_name, ".yml")

    def load(self, model_name: str) -> DataModelSpec | None:
        """The published document for ``model_name``, or None if absent or unreadable."""
        path = self.path_for(model_name)
        if not path.is_file():
            return None
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
            return DataModelSpec.model_validate(data or {})
        except (yaml.YAMLError, ValidationError):
            return None

    def data_model_id(self, model_name: str) -> str | None:
        spec = self.load(model_name)
        return spec.data_model_id if spec else None

    def lookup(self, model_name: str, element_name: str) -> PublishedElement | None:
        """Find the published element named ``element_name`` in ``model_name``."""
        spec = self.load(model_name)
        if spec is None or not spec.data_model_id:
            return None
        element = spec.find_element(element_name)
        if element is None:
            return None
        return PublishedElement(
            data_model_id=spec.data_model_id,
            element_id=element.id,
            columns=list(element.columns),
        )

    def publish(
        self, model_name: str, spec: DataModelSpec, keep_existing_id: bool = True
    ) -> str:
        """Persist ``spec``, keeping an existing id or assigning a new one.

        With ``keep_existing_id=False`` a previously published id is replaced,
        which is what an initial build wants.
        """
        existing = self.data_model_id(model_name) if keep_existing_id else None
        data_model_id = spec.data_model_id or existing or str(uuid.uuid4())
        published = spec.model_copy(update={"data_model_id": data_model_id})
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.path_for(model_name).write_text(
            yaml.safe_dump(published.to_dict(), sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )
        return data_model_id
