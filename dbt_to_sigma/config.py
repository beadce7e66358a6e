"""Configuration schema for dbt-to-sigma.

Defines the sigma.yml configuration file format using Pydantic models.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from typing_extensions import Self

from dbt_to_sigma.ingestion.dbt.loader import TIME_SPINE_FILENAME


class BuildMode(str, Enum):
    """initial creates new data models; update reuses published ids."""

    INITIAL = "initial"
    UPDATE = "update"


class OptionsConfig(BaseModel):
    """Translation options configuration."""

    user_friendly_names: bool = False  # Replace underscores with spaces in names
    max_passes: int = Field(10, ge=1)  # Stalled rewrite passes allowed per expression

    model_config = {"frozen": True}


class SigmaConfig(BaseModel):
    """
    Root configuration from sigma.yml.

    Example:
        input: ./semantic_models
        output: ./sigma_output
        store: ./sigma_models
        connection_id: 0f1e2d3c-...
        database: ANALYTICS
        schema: GOLD
        folder_id: a1b2c3...
        mode: update
        options:
          user_friendly_names: true
    """

    input: str
    output: str = "./sigma_output"
    store: str = "./sigma_models"
    time_spine: str | None = None  # Defaults to _models.yml in the input dir
    connection_id: str = "$connectionId"
    database: str = "$db"
    schema_name: str = Field("$schema", alias="schema")
    folder_id: str | None = None
    mode: BuildMode = BuildMode.INITIAL
    options: OptionsConfig = Field(default_factory=OptionsConfig)

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("mode", mode="before")
    @classmethod
    def parse_mode(cls, v: Any) -> BuildMode:
        """Parse mode from string."""
        if isinstance(v, BuildMode):
            return v
        if v is None:
            return BuildMode.INITIAL
        if isinstance(v, str):
            try:
                return BuildMode(v.lower())
            except ValueError:
                valid = [m.value for m in BuildMode]
                raise ValueError(f"Invalid mode '{v}'. Valid: {valid}")
        raise ValueError(f"mode must be a string, got {type(v)}")

    @model_validator(mode="after")
    def validate_store_separate(self) -> Self:
        """The published store is read back between layers and must not be the output."""
        if Path(self.output).resolve() == Path(self.store).resolve():
            raise ValueError("store must be a different directory from output")
        return self

    @property
    def input_path(self) -> Path:
        """Get input as Path."""
        return Path(self.input)

    @property
    def output_path(self) -> Path:
        """Get output as Path."""
        return Path(self.output)

    @property
    def store_path(self) -> Path:
        """Get published model store as Path."""
        return Path(self.store)

    @property
    def time_spine_path(self) -> Path:
        """Get the time spine definition file as Path."""
        if self.time_spine:
            return Path(self.time_spine)
        return self.input_path / TIME_SPINE_FILENAME

    @classmethod
    def from_yaml(cls, content: str) -> SigmaConfig:
        """Parse config from YAML string."""
        data = yaml.safe_load(content)
        return cls.model_validate(data)

    @classmethod
    def from_file(cls, path: Path | str) -> SigmaConfig:
        """Load config from a YAML file.

        Relative paths in the file are resolved against the file's directory.
        """
        path = Path(path)
        content = path.read_text(encoding="utf-8")
        config = cls.from_yaml(content)
        return config.relative_to(path.parent)

    def relative_to(self, base: Path) -> SigmaConfig:
        """Return a copy with relative input/output/store/time_spine anchored at ``base``."""
        updates: dict[str, str] = {}
        for key in ("input", "output", "store", "time_spine"):
            value = getattr(self, key)
            if value and not Path(value).is_absolute():
                updates[key] = str(base / value)
        return self.model_copy(update=updates)


# Config file discovery
CONFIG_FILENAMES = ["sigma.yml", "sigma.yaml", ".sigma.yml", ".sigma.yaml"]


def find_config(start_dir: Path | str | None = None) -> Path | None:
    """
    Find sigma.yml config file.

    Searches in:
    1. start_dir (if provided)
    2. Current working directory
    3. Parent directories up to root

    Args:
        start_dir: Directory to start search from

    Returns:
        Path to config file, or None if not found
    """
    if start_dir is None:
        start_dir = Path.cwd()
    else:
        start_dir = Path(start_dir)

    current = start_dir.resolve()

    while True:
        for filename in CONFIG_FILENAMES:
            config_path = current / filename
            if config_path.is_file():
                return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(path: Path | str | None = None) -> SigmaConfig:
    """
    Load configuration from file.

    If path is not provided, searches for sigma.yml in current
    and parent directories.

    Args:
        path: Explicit path to config file

    Returns:
        Parsed SigmaConfig

    Raises:
        FileNotFoundError: If no config file found
        ValueError: If config is invalid
    """
    if path is None:
        path = find_config()
        if path is None:
            raise FileNotFoundError(
                "No sigma.yml found. Create one or specify path with --config"
            )
    else:
        path = Path(path)

    return SigmaConfig.from_file(path)
