"""Order models into processing layers.

Layer 1 holds models with no dependencies; each following layer holds every
remaining model whose dependencies were all placed in earlier layers. When a
round places nothing, the remaining models form a dependency cycle and are
placed together in one final layer.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from typing import Any

from dbt_to_sigma.core.diagnostics import Diagnostics


@dataclass
class Layer:
    """A batch of models that can be processed once earlier layers are done."""

    index: int
    models: list[str] = field(default_factory=list)
    cyclic: bool = False

    def __len__(self) -> int:
        return len(self.models)


class TopologicalLayerer:
    """
    Kahn-style layering over a ``model -> dependencies`` map.

    Iteration follows the insertion order of the map, so the result is
    deterministic for a given input.
    """

    def __init__(
        self,
        dependencies: Mapping[str, Collection[str]],
        diagnostics: Diagnostics | None = None,
    ) -> None:
        self.dependencies = dependencies
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    def sort(self) -> list[Layer]:
        layers: list[Layer] = []
        placed: set[str] = set()
        remaining = list(self.dependencies)

        while remaining:
            frontier = [
                name
                for name in remaining
                if all(dep in placed for dep in self.dependencies[name])
            ]
            cyclic = not frontier
            if cyclic:
                frontier = list(remaining)
                self.diagnostics.add_warning(
                    ", ".join(frontier),
                    "dependency_cycle",
                    "Circular dependencies detected for models: " + ", ".join(frontier),
                )

            layers.append(Layer(index=len(layers) + 1, models=frontier, cyclic=cyclic))
            placed.update(frontier)
            remaining = [name for name in remaining if name not in placed]

        return layers


def layer_summary(layers: list[Layer]) -> dict[str, Any]:
    return {
        "totalModels": sum(len(layer) for layer in layers),
        "totalLayers": len(layers),
        "layers": [
            {
                "layer": layer.index,
                "modelCount": len(layer),
                "models": list(layer.models),
                "cyclic": layer.cyclic,
            }
            for layer in layers
        ],
    }
