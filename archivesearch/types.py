"""
Data types for the archive search engine.
"""

import json
from dataclasses import dataclass, field
from typing import Optional


# Sort key used when none is requested
DEFAULT_SORT_KEY = "title"


@dataclass(frozen=True)
class Record:
    """
    An archive entry as held by the record store.

    Tags are a single comma-joined string of entries, each either a bare
    label ("color") or a namespaced pair ("artist:alice").
    A record without a file is invalid and never appears in results.
    """
    id: str
    title: str = ""
    tags: str = ""
    file: Optional[str] = None
    is_new: bool = False


@dataclass(frozen=True)
class MatchResult:
    """The minimal projection kept for every record that passes a query."""
    id: str
    title: str
    tags: str

    @classmethod
    def from_record(cls, record: Record) -> "MatchResult":
        return cls(id=record.id, title=record.title, tags=record.tags)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "title": self.title, "tags": self.tags}


@dataclass(frozen=True)
class Query:
    """
    A fully specified search request.

    Args:
        filter: Filter text in the tag query language
        category: Category name restricting the search ("" for none)
        sort_key: "title" or a tag namespace to sort by
        sort_descending: Reverse the sort order
        new_only: Only records flagged as new
        untagged_only: Only records without user tags
        start: Offset of the first result on the requested page
    """
    filter: str = ""
    category: str = ""
    sort_key: str = DEFAULT_SORT_KEY
    sort_descending: bool = False
    new_only: bool = False
    untagged_only: bool = False
    start: int = 0

    def signature(self) -> str:
        """Cache key covering every parameter that changes the result list.

        The page offset is deliberately absent: pagination happens after
        the cached list is retrieved.
        """
        return json.dumps([
            self.category,
            self.filter,
            self.sort_key or DEFAULT_SORT_KEY,
            self.sort_descending,
            self.new_only,
            self.untagged_only,
        ], ensure_ascii=False)


@dataclass(frozen=True)
class CategoryScope:
    """
    What a category resolves to.

    Exactly one of the two is meaningful: a saved search (non-empty
    `search`) or a static list of archive IDs.
    """
    name: str
    archive_ids: tuple[str, ...] = ()
    search: str = ""

    @property
    def is_saved_search(self) -> bool:
        return bool(self.search)


@dataclass
class SearchOutcome:
    """Result of a search: totals plus the requested page."""
    total_candidates: int
    total_matches: int
    page: list[MatchResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_candidates": self.total_candidates,
            "total_matches": self.total_matches,
            "page": [r.to_dict() for r in self.page],
        }
