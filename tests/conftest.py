"""Shared fixtures for dbt-to-sigma tests."""

import shutil
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def semantic_models_dir() -> Path:
    """The read-only sample corpus: customers <- orders <- order_items."""
    return FIXTURES_DIR / "semantic_models"


@pytest.fixture
def project_dir(tmp_path: Path, semantic_models_dir: Path) -> Path:
    """A writable project with the sample corpus and a sigma.yml."""
    shutil.copytree(semantic_models_dir, tmp_path / "semantic_models")
    (tmp_path / "sigma.yml").write_text(
        """\
input: ./semantic_models
output: ./sigma_output
store: ./sigma_models
connection_id: conn-123
database: ANALYTICS
schema: GOLD
""",
        encoding="utf-8",
    )
    return tmp_path
