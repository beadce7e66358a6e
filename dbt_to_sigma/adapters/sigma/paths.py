"""Path generation for Sigma output structure.

Generates:
    {output}/
    ├── {model_name}.yml
    ├── cross_model_metrics.yml
    ├── processing_results.json
    └── dag.json
    {store}/
    └── {model_name}.yml       # published copy, read back by later layers
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from dbt_to_sigma.errors import UnsafePathError

INVALID_FILENAME_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')


def sanitize_path(name: str) -> str:
    """Reduce ``name`` to a bare file name with no traversal.

    Raises:
        UnsafePathError: If nothing usable is left
    """
    if not name or not isinstance(name, str):
        raise UnsafePathError("File name must be a non-empty string")
    sanitized = name.replace("..", "")
    sanitized = re.sub(r"[/\\]", "", sanitized)
    sanitized = INVALID_FILENAME_CHARS.sub("", sanitized).strip()
    if not sanitized:
        raise UnsafePathError(f"File name '{name}' is invalid after sanitization")
    return sanitized


def safe_join(base_dir: Path, name: str, extension: str = "") -> Path:
    """Join a sanitized file name onto ``base_dir``, refusing to escape it."""
    base = base_dir.resolve()
    path = (base / f"{sanitize_path(name)}{extension}").resolve()
    if path.parent != base:
        raise UnsafePathError(f"Path traversal detected: {name} would escape {base_dir}")
    return path


@dataclass
class OutputPaths:
    """Container for output path structure."""

    base_path: Path
    store_path: Path

    @property
    def cross_model_metrics_path(self) -> Path:
        """Deferred metrics catalog: {output}/cross_model_metrics.yml"""
        return self.base_path / "cross_model_metrics.yml"

    @property
    def results_path(self) -> Path:
        """Per-run summary: {output}/processing_results.json"""
        return self.base_path / "processing_results.json"

    @property
    def dag_path(self) -> Path:
        """Dependency graph export: {output}/dag.json"""
        return self.base_path / "dag.json"

    def model_file_path(self, model_name: str) -> Path:
        """Translated model: {output}/{model_name}.yml"""
        return safe_join(self.base_path, model_name, ".yml")

    def ensure_directories(self) -> None:
        """Create all required directories."""
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.store_path.mkdir(parents=True, exist_ok=True)
