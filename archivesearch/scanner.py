"""
Parallel scan-and-filter over archive records.

The candidate ID list is split into contiguous groups, one per worker
thread. Each worker opens its own reader on the record store, fetches
its records one by one and keeps those that pass the status filters and
the query. Worker buffers are merged in group order after the join.
"""

import logging
import os
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Optional, Sequence

from .cancel import CancelToken
from .errors import SearchCancelled, SearchError, StoreUnavailableError
from .protocol import RecordStoreProtocol
from .query import CompiledFilter
from .types import MatchResult, Query

logger = logging.getLogger(__name__)


def default_worker_count() -> int:
    return os.cpu_count() or 1


def split_workload(ids: Sequence[str], workers: int) -> list[list[str]]:
    """
    Partition IDs into contiguous, near-equal groups.

    The first ``len(ids) % workers`` groups get one extra ID. Order within
    each group follows the input. Never returns empty groups.
    """
    workers = max(1, min(workers, len(ids)))
    size, extra = divmod(len(ids), workers)
    groups = []
    start = 0
    for i in range(workers):
        end = start + size + (1 if i < extra else 0)
        if end > start:
            groups.append(list(ids[start:end]))
        start = end
    return groups


class ParallelScanner:
    """
    Evaluates a query against every candidate record.

    Args:
        store: Record store; each worker calls store.open_reader()
        workers: Worker pool size (default: CPU count)
    """

    def __init__(self, store: RecordStoreProtocol, workers: Optional[int] = None):
        self._store = store
        self._workers = workers or default_worker_count()

    @property
    def workers(self) -> int:
        return self._workers

    def scan(
        self,
        ids: Sequence[str],
        query: Query,
        *,
        saved_filter: str = "",
        cancel: Optional[CancelToken] = None,
    ) -> list[MatchResult]:
        """
        Return a MatchResult for every candidate that passes the query.

        Args:
            ids: Candidate archive IDs
            query: The search request (filter, new/untagged flags)
            saved_filter: Extra filter ANDed with the query filter
            cancel: Aborts the scan; partial results are discarded

        Returns:
            Passing results, grouped by worker; not sorted

        Raises:
            StoreUnavailableError: A worker could not read the store
            SearchCancelled: The token fired before the scan finished
        """
        if not ids:
            return []
        if cancel is not None:
            cancel.raise_if_cancelled()

        untagged: Optional[frozenset[str]] = None
        if query.untagged_only:
            try:
                untagged = frozenset(self._store.get_untagged_ids())
            except SearchError:
                raise
            except Exception as e:
                raise StoreUnavailableError(f"Cannot list untagged archives: {e}") from e

        main_filter = CompiledFilter(query.filter)
        category_filter = CompiledFilter(saved_filter)
        groups = split_workload(ids, self._workers)
        logger.debug("Scanning %d archives with %d workers", len(ids), len(groups))

        abort = threading.Event()
        with ThreadPoolExecutor(
            max_workers=len(groups), thread_name_prefix="archivesearch-scan",
        ) as executor:
            futures = [
                executor.submit(
                    self._scan_group, group, query, main_filter, category_filter,
                    untagged, abort, cancel,
                )
                for group in groups
            ]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            if any(f.exception() is not None for f in done):
                abort.set()

        # Re-raise the first worker failure in group order
        for f in futures:
            exc = f.exception()
            if exc is not None and not isinstance(exc, _Aborted):
                raise exc
        if cancel is not None:
            cancel.raise_if_cancelled()

        results: list[MatchResult] = []
        for f in futures:
            results.extend(f.result())
        return results

    def _scan_group(
        self,
        group: list[str],
        query: Query,
        main_filter: CompiledFilter,
        category_filter: CompiledFilter,
        untagged: Optional[frozenset[str]],
        abort: threading.Event,
        cancel: Optional[CancelToken],
    ) -> list[MatchResult]:
        found: list[MatchResult] = []
        try:
            reader = self._store.open_reader()
        except SearchError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Cannot open record store: {e}") from e

        with reader:
            for id in group:
                if abort.is_set():
                    raise _Aborted()
                if cancel is not None and cancel.cancelled:
                    raise SearchCancelled("Search cancelled")

                # Untagged check first, it needs no store access
                if untagged is not None and id not in untagged:
                    continue

                try:
                    record = reader.get_record(id)
                except SearchError:
                    raise
                except Exception as e:
                    raise StoreUnavailableError(f"Cannot read archive {id}: {e}") from e

                if record is None or not record.file:
                    continue
                if query.new_only and not record.is_new:
                    continue

                blob = f"{record.title},{record.tags}"
                if category_filter.matches(blob) and main_filter.matches(blob):
                    found.append(MatchResult.from_record(record))
        return found


class _Aborted(Exception):
    """Raised inside a worker when a sibling worker has already failed."""
