"""Translate dbt SQL expressions into Sigma formulas.

Supported constructs, rewritten one outermost occurrence per pass in this
priority order:

    CASE WHEN c1 THEN r1 ... ELSE e END  ->  if(c1,r1,...,e)
    CONCAT(a, b, ...)                    ->  a & b & ...
    SPLIT_PART(value, delim, n)          ->  splitpart(value,delim,n)

Whatever is left afterwards has its bare identifiers wrapped as ``[column]``.
Malformed constructs are left untouched rather than raising.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from dbt_to_sigma.translate.names import DisplayNamePolicy
from dbt_to_sigma.translate.scanner import (
    QUOTES,
    find_closing_paren,
    find_keyword,
    in_literal,
    is_quoted_literal,
    is_word_char,
    iter_keywords,
    normalize_whitespace,
    split_arguments,
)

MAX_PASSES = 10

# Identifiers that are never column references
RESERVED_WORDS = frozenset(
    {
        # SQL functions
        "splitpart",
        "split_part",
        "substring",
        "substr",
        "concat",
        "concat_ws",
        "upper",
        "lower",
        "trim",
        "ltrim",
        "rtrim",
        "coalesce",
        "nullif",
        "date_trunc",
        "date_part",
        "extract",
        "to_date",
        "to_timestamp",
        "cast",
        "sum",
        "count",
        "avg",
        "min",
        "max",
        "round",
        "abs",
        # Sigma functions
        "if",
        "datetrunc",
        "isnull",
        "isnotnull",
        "ilike",
        "arraycontains",
        "array",
        # Keywords
        "case",
        "when",
        "then",
        "else",
        "end",
        "and",
        "or",
        "not",
        "is",
        "null",
        "in",
        "like",
        "between",
        "as",
        "distinct",
        "true",
        "false",
    }
)

CASE_KEYWORDS = ("case", "end", "when", "then", "else")

CONCAT_ANCHOR = re.compile(r"\bconcat\s*\(", re.IGNORECASE)
SPLIT_PART_ANCHOR = re.compile(r"\bsplit_part\s*\(", re.IGNORECASE)


@dataclass
class CaseClauses:
    """The top-level pieces of one CASE body."""

    operand: str
    branches: list[tuple[str, str]]
    default: str | None


def _find_anchor(pattern: re.Pattern[str], expr: str) -> re.Match[str] | None:
    for match in pattern.finditer(expr):
        if not in_literal(expr, match.start()):
            return match
    return None


def count_anchors(expr: str) -> int:
    """Number of CASE, CONCAT( and SPLIT_PART( anchors outside literals."""
    count = sum(1 for _ in iter_keywords(expr, ("case",)))
    for pattern in (CONCAT_ANCHOR, SPLIT_PART_ANCHOR):
        count += sum(1 for m in pattern.finditer(expr) if not in_literal(expr, m.start()))
    return count


def _find_case_end(text: str, start: int) -> int:
    """Index of the END matching a CASE whose body begins at ``start``."""
    nesting = 0
    for position, keyword, _ in iter_keywords(text, ("case", "end"), start):
        if keyword == "case":
            nesting += 1
        elif nesting == 0:
            return position
        else:
            nesting -= 1
    return -1


def parse_case_body(body: str) -> CaseClauses | None:
    """Split a CASE body into operand, WHEN/THEN branches and ELSE.

    Only keywords outside parens, literals and nested CASE blocks count.
    Returns None when the body is not a well-formed sequence of clauses.
    """
    markers: list[tuple[int, str]] = []
    nesting = 0
    for position, keyword, depth in iter_keywords(body, CASE_KEYWORDS):
        if keyword == "case":
            nesting += 1
        elif keyword == "end":
            nesting -= 1
        elif nesting == 0 and depth == 0:
            markers.append((position, keyword))

    if not markers or markers[0][1] != "when":
        return None

    operand = body[: markers[0][0]].strip()
    branches: list[tuple[str, str]] = []
    default: str | None = None

    i = 0
    while i < len(markers):
        position, keyword = markers[i]
        if keyword == "when":
            if i + 1 >= len(markers) or markers[i + 1][1] != "then":
                return None
            then_position = markers[i + 1][0]
            result_end = markers[i + 2][0] if i + 2 < len(markers) else len(body)
            condition = body[position + len("when") : then_position].strip()
            result = body[then_position + len("then") : result_end].strip()
            if not condition or not result:
                return None
            branches.append((condition, result))
            i += 2
        elif keyword == "else":
            if i + 1 < len(markers):
                return None
            default = body[position + len("else") :].strip() or None
            i += 1
        else:
            return None

    return CaseClauses(operand=operand, branches=branches, default=default)


class ExpressionTranslator:
    """
    Rewrites dbt SQL expressions into Sigma formula syntax.

    Translation is pure and idempotent: feeding a translated formula back in
    returns it unchanged.

    Example:
        >>> ExpressionTranslator().translate("SPLIT_PART(email, '@', 2)")
        "splitpart([email],'@',2)"
    """

    def __init__(
        self,
        names: DisplayNamePolicy | None = None,
        max_passes: int = MAX_PASSES,
    ) -> None:
        self.names = names or DisplayNamePolicy()
        self.max_passes = max_passes

    def translate(self, expr: str | None) -> str | None:
        if expr is None:
            return None
        text = normalize_whitespace(expr)
        if not text:
            return text

        converters = (self.convert_case, self.convert_concat, self.convert_split_part)
        # Only passes that leave the anchor count unchanged use up the ceiling
        stalled = 0
        while stalled < self.max_passes:
            before = count_anchors(text)
            for convert in converters:
                converted = convert(text)
                if converted is not None:
                    text = converted
                    break
            else:
                break
            if count_anchors(text) >= before:
                stalled += 1

        return self.bracket_columns(text)

    def _translate_part(self, part: str) -> str:
        if is_quoted_literal(part):
            return part.strip()
        return self.translate(part) or ""

    def convert_case(self, expr: str) -> str | None:
        """Rewrite the first CASE ... END block as ``if(...)``."""
        start = find_keyword(expr, "case", top_level=False)
        if start == -1:
            return None

        body_start = start + len("case")
        end = _find_case_end(expr, body_start)
        if end == -1:
            return None

        clauses = parse_case_body(expr[body_start:end])
        if clauses is None:
            return None

        parts: list[str] = []
        for condition, result in clauses.branches:
            if clauses.operand:
                condition = f"{clauses.operand} = {condition}"
            parts.append(self._translate_part(condition))
            parts.append(self._translate_part(result))
        if clauses.default is not None:
            parts.append(self._translate_part(clauses.default))

        return f"{expr[:start]}if({','.join(parts)}){expr[end + len('end'):]}"

    def convert_concat(self, expr: str) -> str | None:
        """Rewrite the first CONCAT(...) call as an ``&`` chain."""
        match = _find_anchor(CONCAT_ANCHOR, expr)
        if match is None:
            return None

        close = find_closing_paren(expr, match.end())
        if close == -1:
            return None

        args = split_arguments(expr[match.end() : close])
        if not args:
            return None

        joined = " & ".join(self._translate_part(arg) for arg in args)
        return f"{expr[: match.start()]}{joined}{expr[close + 1 :]}"

    def convert_split_part(self, expr: str) -> str | None:
        """Rewrite the first SPLIT_PART(value, delim, n) call."""
        match = _find_anchor(SPLIT_PART_ANCHOR, expr)
        if match is None:
            return None

        close = find_closing_paren(expr, match.end())
        if close == -1:
            return None

        args = split_arguments(expr[match.end() : close])
        if len(args) != 3:
            return None

        value, delimiter, index = args
        rewritten = f"splitpart({self._translate_part(value)},{delimiter},{index})"
        return f"{expr[: match.start()]}{rewritten}{expr[close + 1 :]}"

    def bracket_columns(self, expr: str) -> str:
        """Wrap every bare, non-reserved identifier as ``[name]``.

        Literals and existing ``[...]`` references are copied through untouched.
        """
        out: list[str] = []
        i = 0
        n = len(expr)
        while i < n:
            char = expr[i]
            if char in QUOTES:
                close = expr.find(char, i + 1)
                end = n if close == -1 else close + 1
                out.append(expr[i:end])
                i = end
            elif char == "[":
                close = expr.find("]", i + 1)
                end = n if close == -1 else close + 1
                out.append(expr[i:end])
                i = end
            elif (char.isascii() and (char.isalpha() or char == "_")) and (
                i == 0 or not is_word_char(expr[i - 1])
            ):
                j = i + 1
                while j < n and is_word_char(expr[j]):
                    j += 1
                word = expr[i:j]
                if word.lower() in RESERVED_WORDS:
                    out.append(word)
                else:
                    out.append(self.names.reference(word))
                i = j
            else:
                out.append(char)
                i += 1
        return "".join(out)
