"""Translate dbt metric filters into Sigma predicates.

dbt filters are Jinja templates such as::

    {{ Dimension('order__status') }} in ('completed', 'shipped')

which become::

    arraycontains(array('completed', 'shipped'),[status])

Rewrites are independent substitutions applied in a fixed order. Operators
that are not recognized pass through unchanged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from dbt_to_sigma.translate.names import DisplayNamePolicy

JINJA_DELIMITERS = re.compile(r"\{\{\s*|\s*\}\}")
WHITESPACE = re.compile(r"\s+")

# Dimension('entity__dim') and TimeDimension('entity__dim', 'grain')
DIMENSION_REF_PATTERN = re.compile(
    r"""\b(?:Time)?Dimension\(\s*['"]([^'"]+)['"]\s*(?:,\s*['"][^'"]*['"]\s*)?\)"""
)
ENTITY_REF_PATTERN = re.compile(r"""\bEntity\(\s*['"]([^'"]+)['"]\s*\)""")

# (pattern, replacement) pairs, applied in order
PREDICATE_REWRITES: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(r"\[([^\]]+)\]\s+in\s*\(([^)]+)\)", re.IGNORECASE),
        r"arraycontains(array(\2),[\1])",
    ),
    (
        re.compile(r"\[([^\]]+)\]\s+not\s+in\s*\(([^)]+)\)", re.IGNORECASE),
        r"not(arraycontains(array(\2),[\1]))",
    ),
    (
        re.compile(r"\[([^\]]+)\]\s+is\s+not\s+null", re.IGNORECASE),
        r"isnotnull([\1])",
    ),
    (
        re.compile(r"\[([^\]]+)\]\s+is\s+null", re.IGNORECASE),
        r"isnull([\1])",
    ),
    (
        re.compile(r"""\[([^\]]+)\]\s+not\s+ilike\s+(['"])([^'"]*)\2""", re.IGNORECASE),
        r"not(ilike([\1],\2\3\2))",
    ),
    (
        re.compile(r"""\[([^\]]+)\]\s+ilike\s+(['"])([^'"]*)\2""", re.IGNORECASE),
        r"ilike([\1],\2\3\2)",
    ),
]


@dataclass(frozen=True)
class DimensionReference:
    """A ``Dimension('entity__dim')`` reference split into its parts."""

    entity: str | None
    dimension: str

    @classmethod
    def parse(cls, ref: str) -> DimensionReference:
        parts = ref.split("__")
        if len(parts) >= 2:
            return cls(entity=parts[0], dimension=parts[-1])
        return cls(entity=None, dimension=ref)


def find_dimension_references(filter_expr: str | None) -> list[DimensionReference]:
    """All dimension references in a filter, in order of appearance."""
    if not filter_expr:
        return []
    return [
        DimensionReference.parse(m.group(1))
        for m in DIMENSION_REF_PATTERN.finditer(filter_expr)
    ]


def combine_filters(existing: str | None, new: str | None) -> str | None:
    """AND two translated filters together."""
    if not existing:
        return new
    if not new:
        return existing
    return f"({existing}) and ({new})"


def rebuild_filtered_formula(
    agg_func: str, measure_expr: str | None, combined_filter: str
) -> str:
    """Build a filtered aggregation from its parts instead of nesting calls."""
    if agg_func == "countif" or measure_expr is None:
        return f"{agg_func}({combined_filter})"
    return f"{agg_func}({measure_expr},{combined_filter})"


class FilterTranslator:
    """Rewrites dbt Jinja filters into Sigma predicate syntax."""

    def __init__(self, names: DisplayNamePolicy | None = None) -> None:
        self.names = names or DisplayNamePolicy()

    def translate(self, filter_expr: str, model_name: str | None = None) -> str:
        """Translate a filter declared on a metric of ``model_name``.

        The entity prefix of a reference is dropped; the dimension becomes a
        column of the element the metric is placed on.
        """
        converted = JINJA_DELIMITERS.sub("", filter_expr)
        converted = WHITESPACE.sub(" ", converted).strip()

        def _dimension(match: re.Match[str]) -> str:
            ref = DimensionReference.parse(match.group(1))
            return self.names.reference(ref.dimension)

        def _entity(match: re.Match[str]) -> str:
            return self.names.reference(match.group(1))

        converted = DIMENSION_REF_PATTERN.sub(_dimension, converted)
        converted = ENTITY_REF_PATTERN.sub(_entity, converted)

        for pattern, replacement in PREDICATE_REWRITES:
            converted = pattern.sub(replacement, converted)

        return converted
