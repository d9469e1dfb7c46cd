"""
Search coordination: category scoping, caching, scanning, sorting, paging.
"""

import logging
from typing import Optional

from .cache import ResultCache
from .cancel import CancelToken
from .config import DEFAULT_PAGE_SIZE
from .protocol import CategoryProtocol, RecordStoreProtocol
from .scanner import ParallelScanner
from .sorting import sort_results
from .types import DEFAULT_SORT_KEY, CategoryScope, MatchResult, Query, SearchOutcome

logger = logging.getLogger(__name__)


class SearchCoordinator:
    """
    Runs searches over an archive store.

    A search resolves its category, looks for a cached result list under
    the query signature, and on a miss scans the candidates in parallel,
    sorts the matches and caches them. The requested page is cut from the
    full list, so every page of a query shares one cache entry.

    Args:
        store: Record store
        categories: Category lookup (None: categories are ignored)
        cache: Result cache (None: no caching)
        page_size: Number of results per page
        workers: Scan worker pool size (default: CPU count)
    """

    def __init__(
        self,
        store: RecordStoreProtocol,
        categories: Optional[CategoryProtocol] = None,
        cache: Optional[ResultCache] = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        workers: Optional[int] = None,
    ):
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self._store = store
        self._categories = categories
        self._cache = cache or ResultCache(None)
        self._scanner = ParallelScanner(store, workers=workers)
        self.page_size = page_size

    @property
    def scanner(self) -> ParallelScanner:
        return self._scanner

    def _resolve_category(self, name: str) -> Optional[CategoryScope]:
        if not name or self._categories is None:
            return None
        scope = self._categories.resolve(name)
        if scope is None:
            logger.debug("Unknown category %r, searching the whole database", name)
            return None
        try:
            self._categories.touch_last_used(name)
        except Exception as e:
            logger.warning("Could not update last use of category %r: %s", name, e)
        return scope

    def search(self, query: Query, *, cancel: Optional[CancelToken] = None) -> SearchOutcome:
        """
        Run a search and return one page of results.

        Args:
            query: The search request
            cancel: Cancels the scan and any cache access

        Returns:
            SearchOutcome with candidate/match totals and the requested page

        Raises:
            StoreUnavailableError: The record store failed during the scan
            SearchCancelled: The token fired; nothing was cached
        """
        if cancel is not None:
            cancel.raise_if_cancelled()

        scope = self._resolve_category(query.category)
        saved_filter = scope.search if scope is not None and scope.is_saved_search else ""

        if scope is not None and not scope.is_saved_search:
            logger.debug("Static category %r: using its ID list as search base", scope.name)
            ids = list(scope.archive_ids)
        else:
            ids = self._store.list_ids()

        signature = query.signature()
        logger.debug("Search request: %s", signature)

        results = self._cache.get(signature, cancel=cancel)
        if results is not None:
            logger.debug("Using cache for this query")
        else:
            logger.debug("No cache available, scanning %d archives", len(ids))
            matched = self._scanner.scan(ids, query, saved_filter=saved_filter, cancel=cancel)
            results = sort_results(
                matched, query.sort_key or DEFAULT_SORT_KEY, query.sort_descending,
            )
            self._cache.put(signature, results, cancel=cancel)

        logger.info("Search %s: %d of %d archives matched", signature, len(results), len(ids))
        return SearchOutcome(
            total_candidates=len(ids),
            total_matches=len(results),
            page=self.paginate(results, query.start),
        )

    def paginate(self, results: list[MatchResult], start: int) -> list[MatchResult]:
        """Cut one page out of a full result list; empty past the end."""
        start = max(0, start)
        if start >= len(results):
            return []
        return list(results[start:start + self.page_size])
