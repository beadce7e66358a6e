"""DbtLoader - loads dbt semantic model YAML files from a directory."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from dbt_to_sigma.core.diagnostics import Diagnostics
from dbt_to_sigma.domain import Metric, SemanticModel, TimeSpine
from dbt_to_sigma.errors import NoSemanticModelError
from dbt_to_sigma.ingestion.dbt.mapper import (
    map_time_spines,
    parse_metrics,
    parse_semantic_models,
)

TIME_SPINE_FILENAME = "_models.yml"


@dataclass
class SourceDocument:
    """One parsed YAML file. ``file_name`` (the stem) is the file identity."""

    path: Path
    file_name: str
    content: dict[str, Any]

    @property
    def has_semantic_models(self) -> bool:
        return bool(self.content.get("semantic_models"))

    @property
    def has_metrics(self) -> bool:
        return bool(self.content.get("metrics"))


@dataclass
class Corpus:
    """Every semantic model and metric loaded for one run."""

    models: list[SemanticModel] = field(default_factory=list)
    metrics: list[Metric] = field(default_factory=list)
    documents: dict[str, SourceDocument] = field(default_factory=dict)
    failures: list[tuple[str, str]] = field(default_factory=list)

    @property
    def catalog(self) -> dict[str, Metric]:
        """All metrics by name. The first declaration of a name wins."""
        catalog: dict[str, Metric] = {}
        for metric in self.metrics:
            catalog.setdefault(metric.name, metric)
        return catalog

    def get_model(self, name: str) -> SemanticModel | None:
        for model in self.models:
            if model.name == name:
                return model
        return None

    def models_in_file(self, file_name: str) -> list[SemanticModel]:
        return [m for m in self.models if m.source_file == file_name]

    def metrics_in_file(self, file_name: str) -> list[Metric]:
        return [m for m in self.metrics if m.source_file == file_name]


class DbtLoader:
    """
    Load dbt semantic model files.

    Handles:
    - Finding all YAML files recursively, skipping the time spine file
    - Parsing each file into semantic models and metrics
    - Recording unreadable files instead of failing the whole load
    """

    def __init__(
        self,
        base_path: str | Path,
        time_spine_filename: str = TIME_SPINE_FILENAME,
    ) -> None:
        self.base_path = Path(base_path)
        self.time_spine_filename = time_spine_filename

    def find_files(self) -> list[Path]:
        """Find all .yml and .yaml files recursively."""
        if not self.base_path.is_dir():
            raise FileNotFoundError(f"Input directory not found: {self.base_path}")
        files: list[Path] = []
        for pattern in ["**/*.yml", "**/*.yaml"]:
            files.extend(self.base_path.glob(pattern))
        # Sort for deterministic ordering
        return sorted(f for f in set(files) if f.name != self.time_spine_filename)

    def load_documents(self, diagnostics: Diagnostics | None = None) -> list[SourceDocument]:
        """Load every file that declares semantic models or metrics."""
        diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        documents: list[SourceDocument] = []
        for file_path in self.find_files():
            try:
                content = self._load_file(file_path)
            except (yaml.YAMLError, ValueError) as e:
                diagnostics.add_warning(file_path.name, "parse_error", str(e))
                continue
            document = SourceDocument(
                path=file_path, file_name=file_path.stem, content=content
            )
            if document.has_semantic_models or document.has_metrics:
                documents.append(document)
        return documents

    def load_corpus(self, diagnostics: Diagnostics | None = None) -> Corpus:
        """Load and validate every semantic model and metric under ``base_path``.

        A file that fails validation is recorded in ``Corpus.failures``; the
        remaining files still load.
        """
        diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        corpus = Corpus()
        for document in self.load_documents(diagnostics):
            corpus.documents[document.file_name] = document
            try:
                if document.has_semantic_models:
                    corpus.models.extend(
                        parse_semantic_models(document.content, document.file_name)
                    )
                corpus.metrics.extend(parse_metrics(document.content, document.file_name))
            except (ValidationError, ValueError, KeyError) as e:
                diagnostics.add_error(document.file_name, "parse_error", str(e))
                corpus.failures.append((document.file_name, str(e)))
        return corpus

    def _load_file(self, file_path: Path) -> dict[str, Any]:
        """Load and parse a single YAML file."""
        with open(file_path, encoding="utf-8") as f:
            content = yaml.safe_load(f)

        if content is None:
            return {}

        if not isinstance(content, dict):
            raise ValueError(
                f"Expected dict at root of {file_path}, got {type(content).__name__}"
            )

        return content


def load_time_spines(path: str | Path | None) -> list[TimeSpine]:
    """Load time spine definitions, or nothing if the file does not exist."""
    if path is None:
        return []
    path = Path(path)
    if not path.is_file():
        return []
    content = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(content, dict):
        return []
    return map_time_spines(content)


__all__ = [
    "Corpus",
    "DbtLoader",
    "NoSemanticModelError",
    "SourceDocument",
    "TIME_SPINE_FILENAME",
    "load_time_spines",
]
