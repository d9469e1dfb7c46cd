"""
Sort key extraction and natural-order comparison for match results.
"""

import re
from functools import cmp_to_key, lru_cache
from typing import Iterable, Optional

from .types import DEFAULT_SORT_KEY, MatchResult

# Key given to results that lack the requested tag namespace.
# Sorts after any real value when ascending, and first when descending.
MISSING_KEY_SENTINEL = "zzzz"

_DIGIT_RUN_RE = re.compile(r"(\d+)")


@lru_cache(maxsize=128)
def _namespace_pattern(namespace: str) -> re.Pattern:
    return re.compile(rf"(?:^|,)\s*{re.escape(namespace)}:([^,]*)", re.IGNORECASE)


def extract_key(result: MatchResult, sort_key: Optional[str]) -> str:
    """
    Get the value a result is sorted by.

    "title" (or no key) sorts by title. Any other key is a tag namespace:
    the value of the first ``<namespace>:<value>`` entry is used,
    stripped and lower-cased.
    """
    if not sort_key or sort_key == DEFAULT_SORT_KEY:
        return result.title
    m = _namespace_pattern(sort_key).search(result.tags or "")
    if m is None:
        return MISSING_KEY_SENTINEL
    return m.group(1).strip().lower()


def natural_key(value: str) -> tuple:
    """Split a string into text and integer runs for natural ordering.

    re.split with a capture group always alternates text, digits, text...
    so tuples from two keys never compare a str against an int.
    """
    parts = _DIGIT_RUN_RE.split((value or "").lower())
    return tuple(int(p) if i % 2 else p for i, p in enumerate(parts))


def natural_compare(left: str, right: str) -> int:
    a, b = natural_key(left), natural_key(right)
    return (a > b) - (a < b)


def compare(
    a: MatchResult,
    b: MatchResult,
    sort_key: Optional[str] = DEFAULT_SORT_KEY,
    descending: bool = False,
) -> int:
    """Three-way natural-order comparison of two results by sort key."""
    key_a = extract_key(a, sort_key)
    key_b = extract_key(b, sort_key)
    if descending:
        key_a, key_b = key_b, key_a
    return natural_compare(key_a, key_b)


def sort_results(
    results: Iterable[MatchResult],
    sort_key: Optional[str] = DEFAULT_SORT_KEY,
    descending: bool = False,
) -> list[MatchResult]:
    """
    Sort results by natural order of their sort key.

    Ties are broken by ID (ascending, whichever the direction), so the
    output does not depend on the order results arrived in.
    """
    by_id = sorted(results, key=lambda r: r.id)
    keyed = [(natural_key(extract_key(r, sort_key)), r) for r in by_id]
    # reverse=True keeps equal keys in their existing (ID) order
    keyed.sort(key=lambda pair: pair[0], reverse=descending)
    return [r for _, r in keyed]


def sort_key_function(sort_key: Optional[str] = DEFAULT_SORT_KEY, descending: bool = False):
    """Key function equivalent of compare(), for use with sorted()."""
    return cmp_to_key(lambda a, b: compare(a, b, sort_key, descending))
