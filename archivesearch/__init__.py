"""
Archive Search

A filter engine over tagged archive records: a compact tag query
language, a parallel scan, natural-order sorting, a result cache and
pagination.

Quick Start:
    from archivesearch import ArchiveStore, Query, ResultCache, SearchCoordinator

    store = ArchiveStore(Path("archives.db"))
    search = SearchCoordinator(store, store, ResultCache(store.search_cache))
    outcome = search.search(Query(filter='artist:alice -"color$"', sort_key="date"))

Query Language:
    cat dog          both terms present (substring match)
    -cat             term absent
    "cat"$           whole tag entry equals "cat"
    c?t  c_t         one arbitrary character
    c*t  c%t         any run of characters

CLI Usage:
    archivesearch search "artist:alice" --sort date --desc
    archivesearch match "c*t" "cart,dog"

Environment Variables:
    ARCHIVESEARCH_STORE_PATH - Override default store location (~/.archivesearch)
"""

from .archive_store import ArchiveStore
from .cache import ResultCache
from .cancel import CancelToken
from .errors import SearchCancelled, SearchError, StoreUnavailableError
from .query import CompiledFilter, matches, parse_filter
from .scanner import ParallelScanner
from .search import SearchCoordinator
from .sorting import compare, extract_key, sort_results
from .types import CategoryScope, MatchResult, Query, Record, SearchOutcome

__version__ = "0.1.0"
__all__ = [
    "ArchiveStore",
    "CancelToken",
    "CategoryScope",
    "CompiledFilter",
    "MatchResult",
    "ParallelScanner",
    "Query",
    "Record",
    "ResultCache",
    "SearchCancelled",
    "SearchCoordinator",
    "SearchError",
    "SearchOutcome",
    "StoreUnavailableError",
    "compare",
    "extract_key",
    "matches",
    "parse_filter",
    "sort_results",
]
