"""Quote- and paren-aware scanning primitives.

Every rewrite in the translators locates its delimiters with :func:`scan`,
which tracks three things explicitly: the current position, the paren
depth, and whether the position falls inside a quoted literal. Parens,
commas and keywords inside a literal never count.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

QUOTES = ("'", '"')


def is_word_char(char: str) -> bool:
    return char.isascii() and (char.isalnum() or char == "_")


def scan(text: str, start: int = 0) -> Iterator[tuple[int, str, int, bool]]:
    """Walk ``text`` from ``start`` yielding ``(position, char, depth, in_literal)``.

    ``depth`` is relative to ``start``. An opening paren reports the depth
    outside it and a closing paren reports the depth after it closes, so the
    paren that closes a group opened before ``start`` is reported at depth -1.
    Quote delimiters are reported as part of the literal.
    """
    depth = 0
    quote: str | None = None
    for position in range(start, len(text)):
        char = text[position]
        if quote is not None:
            if char == quote:
                quote = None
            yield position, char, depth, True
        elif char in QUOTES:
            quote = char
            yield position, char, depth, True
        elif char == "(":
            yield position, char, depth, False
            depth += 1
        elif char == ")":
            depth -= 1
            yield position, char, depth, False
        else:
            yield position, char, depth, False


def in_literal(text: str, position: int) -> bool:
    """True if ``position`` lies inside a quoted literal."""
    for pos, _, _, quoted in scan(text):
        if pos == position:
            return quoted
    return False


def find_closing_paren(text: str, start: int) -> int:
    """Return the index of the ``)`` closing the paren opened just before ``start``.

    Returns -1 when the group is never closed.
    """
    for position, char, depth, quoted in scan(text, start):
        if char == ")" and not quoted and depth < 0:
            return position
    return -1


def split_arguments(text: str) -> list[str]:
    """Split a function argument list on top-level commas."""
    args: list[str] = []
    current = 0
    for position, char, depth, quoted in scan(text):
        if char == "," and depth == 0 and not quoted:
            args.append(text[current:position].strip())
            current = position + 1
    tail = text[current:].strip()
    if tail or args:
        args.append(tail)
    return args


def iter_keywords(
    text: str, keywords: Iterable[str], start: int = 0
) -> Iterator[tuple[int, str, int]]:
    """Yield ``(position, keyword, depth)`` for whole-word keyword matches.

    Matching is case-insensitive and skips literals. Keywords are reported
    lowercased.
    """
    wanted = sorted({k.lower() for k in keywords}, key=len, reverse=True)
    for position, char, depth, quoted in scan(text, start):
        if quoted or not is_word_char(char):
            continue
        if position > 0 and is_word_char(text[position - 1]):
            continue
        for keyword in wanted:
            end = position + len(keyword)
            if text[position:end].lower() != keyword:
                continue
            if end < len(text) and is_word_char(text[end]):
                continue
            yield position, keyword, depth
            break


def find_keyword(text: str, keyword: str, start: int = 0, top_level: bool = True) -> int:
    """Index of the first whole-word ``keyword`` outside literals, or -1.

    With ``top_level`` only matches at paren depth 0 (relative to ``start``) count.
    """
    for position, _, depth in iter_keywords(text, (keyword,), start):
        if top_level and depth != 0:
            continue
        return position
    return -1


def is_quoted_literal(text: str) -> bool:
    """True if ``text`` is exactly one quoted literal, e.g. ``' - '``."""
    stripped = text.strip()
    if len(stripped) < 2 or stripped[0] not in QUOTES or stripped[-1] != stripped[0]:
        return False
    return all(quoted for _, _, _, quoted in scan(stripped))


def is_wrapped(text: str) -> bool:
    """True if ``text`` is a single parenthesized group, e.g. ``(a + b)``."""
    stripped = text.strip()
    if not stripped.startswith("("):
        return False
    return find_closing_paren(stripped, 1) == len(stripped) - 1


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs outside literals and ``[...]`` references, then trim."""
    out: list[str] = []
    pending_space = False
    in_reference = False
    for _, char, _, quoted in scan(text):
        if not quoted:
            if char == "[":
                in_reference = True
            elif char == "]":
                in_reference = False
        if not quoted and not in_reference and char.isspace():
            pending_space = True
            continue
        if pending_space and out:
            out.append(" ")
        pending_space = False
        out.append(char)
    return "".join(out)
