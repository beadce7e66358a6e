"""Shared catalog of metrics that could not be placed on a single model."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from dbt_to_sigma.domain import Metric


def merge_cross_model_metrics(path: Path, metrics: Iterable[Metric]) -> list[dict[str, Any]]:
    """Add deferred metric definitions to the catalog file at ``path``.

    Entries are de-duplicated by name; an entry already in the file wins.

    Returns:
        The merged list as written
    """
    existing: list[dict[str, Any]] = []
    if path.is_file():
        content = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        existing = list(content.get("metrics") or [])

    seen = {entry.get("name") for entry in existing}
    for metric in metrics:
        if metric.name in seen:
            continue
        existing.append(metric.raw or {"name": metric.name, "type": metric.type.value})
        seen.add(metric.name)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump({"metrics": existing}, sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )
    return existing
