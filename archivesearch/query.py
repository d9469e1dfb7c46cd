"""
Tag query language: parsing and matching.

A filter is a sequence of whitespace-separated clauses. Each clause is
``[-]term`` where term is either ``"text"[$]`` or ``text[$]``:

- ``-`` negates the clause
- a trailing ``$`` (after the closing quote, or as the last character of
  the text) makes the clause exact: it must equal a whole tag entry
- ``?`` and ``_`` match exactly one character
- ``*`` and ``%`` match any run of characters

Every clause must be satisfied for a record to match. Matching is
case-insensitive and never raises: malformed input (an unterminated
quote, a dangling ``-``) is interpreted as literally as possible.

Examples:
    matches("artist:alice", "artist:alice,color")       # True
    matches('-"color$"', "artist:alice,color")          # False
    matches("art*:a?ice", "artist:alice,color")         # True
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


# Wildcard characters and the regex fragment each one stands for
_WILDCARDS = {
    "?": ".",
    "_": ".",
    "*": ".*",
    "%": ".*",
}


@dataclass(frozen=True)
class Clause:
    """One term of a filter, as parsed."""
    text: str
    negated: bool = False
    exact: bool = False

    @property
    def pattern(self) -> re.Pattern:
        return compile_clause(self.text, self.exact)

    def is_satisfied(self, tag_blob: str) -> bool:
        present = self.pattern.search(tag_blob) is not None
        return present != self.negated


def glob_to_regex(text: str) -> str:
    """Translate clause text to a regex fragment.

    Literal characters are escaped one by one so user input can never
    inject regex syntax; only the wildcard characters are translated.
    """
    return "".join(_WILDCARDS.get(ch) or re.escape(ch) for ch in text)


@lru_cache(maxsize=1024)
def compile_clause(text: str, exact: bool) -> re.Pattern:
    """Compile clause text into a case-insensitive pattern.

    Exact clauses are anchored to a full comma-delimited entry: start of
    string or a comma (plus optional whitespace) on the left, a comma or
    end of string on the right.
    """
    body = glob_to_regex(text)
    if exact:
        body = rf"(?:^|,\s*){body}(?:,|$)"
    return re.compile(body, re.IGNORECASE)


@lru_cache(maxsize=256)
def parse_filter(filter_text: Optional[str]) -> tuple[Clause, ...]:
    """
    Split filter text into clauses.

    Parsing uses a cursor local to this call, so any number of filters
    can be parsed concurrently.

    Args:
        filter_text: Raw filter string (None or "" yields no clauses)

    Returns:
        Tuple of clauses in input order; empty clauses are dropped
    """
    if not filter_text:
        return ()

    clauses: list[Clause] = []
    pos = 0
    end = len(filter_text)

    while pos < end:
        if filter_text[pos].isspace():
            pos += 1
            continue

        negated = False
        if filter_text[pos] == "-":
            negated = True
            pos += 1

        quoted = pos < end and filter_text[pos] == '"'
        if quoted:
            pos += 1
            close = filter_text.find('"', pos)
            if close == -1:
                # Unterminated quote: take the rest literally
                close = end
            text = filter_text[pos:close]
            pos = close + 1
            exact = pos < end and filter_text[pos] == "$"
            if exact:
                pos += 1
            elif text.endswith("$"):
                # "tag$" is accepted as well as "tag"$
                exact = True
                text = text[:-1]
        else:
            stop = pos
            while stop < end and not filter_text[stop].isspace():
                stop += 1
            text = filter_text[pos:stop]
            pos = stop
            exact = text.endswith("$")
            if exact:
                text = text[:-1]

        if text:
            clauses.append(Clause(text=text, negated=negated, exact=exact))

    return tuple(clauses)


class CompiledFilter:
    """
    A filter parsed and compiled once, evaluated many times.

    The scanner builds one of these per query so the clause patterns are
    not recompiled for every record.
    """

    def __init__(self, filter_text: Optional[str] = ""):
        self.text = filter_text or ""
        self.clauses = parse_filter(self.text)
        self._compiled = [(c.pattern, c.negated) for c in self.clauses]

    def __bool__(self) -> bool:
        return bool(self._compiled)

    def matches(self, tag_blob: str) -> bool:
        blob = tag_blob or ""
        for pattern, negated in self._compiled:
            present = pattern.search(blob) is not None
            if present == negated:
                return False
        return True

    def __repr__(self) -> str:
        return f"CompiledFilter({self.text!r})"


def matches(filter_text: Optional[str], tag_blob: str) -> bool:
    """Check whether a tag blob satisfies every clause of a filter."""
    return all(c.is_satisfied(tag_blob or "") for c in parse_filter(filter_text or ""))
