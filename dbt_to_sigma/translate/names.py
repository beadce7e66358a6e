"""Display-name policy for identifiers surfaced into Sigma."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DisplayNamePolicy:
    """When ``user_friendly`` is set, underscores become spaces."""

    user_friendly: bool = False

    def display(self, name: str) -> str:
        if self.user_friendly:
            return name.replace("_", " ")
        return name

    def reference(self, name: str, table: str | None = None) -> str:
        """Bracketed reference, ``[name]`` or ``[table/name]``."""
        if table:
            return f"[{table}/{self.display(name)}]"
        return f"[{self.display(name)}]"
