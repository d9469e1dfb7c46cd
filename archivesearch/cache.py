"""
Memoized search results.

A cache entry maps a query signature to the full, sorted result list.
Entries are stored as JSON through a CacheStoreProtocol. The cache is
best-effort in both directions: a failed read is a miss and a failed
write is dropped, since the caller already has the computed results.
"""

import json
import logging
from typing import Optional, Sequence

from .cancel import CancelToken, is_cancelled
from .protocol import CacheStoreProtocol
from .types import MatchResult

logger = logging.getLogger(__name__)


def encode_results(results: Sequence[MatchResult]) -> bytes:
    return json.dumps([r.to_dict() for r in results], ensure_ascii=False).encode("utf-8")


def decode_results(payload: bytes) -> list[MatchResult]:
    """Decode a cache payload; raises ValueError if it is malformed."""
    data = json.loads(payload.decode("utf-8") if isinstance(payload, bytes) else payload)
    if not isinstance(data, list):
        raise ValueError("Cached search result is not a list")
    try:
        return [MatchResult(id=d["id"], title=d["title"], tags=d["tags"]) for d in data]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed cached search result: {e}") from e


class ResultCache:
    """
    Cache of sorted search results keyed by query signature.

    Args:
        store: Byte storage for entries (None disables caching)
    """

    def __init__(self, store: Optional[CacheStoreProtocol]):
        self._store = store

    @property
    def enabled(self) -> bool:
        return self._store is not None

    def get(
        self, signature: str, *, cancel: Optional[CancelToken] = None,
    ) -> Optional[list[MatchResult]]:
        """Return the cached results for a signature, or None on a miss."""
        if self._store is None or is_cancelled(cancel):
            return None
        try:
            payload = self._store.get(signature)
        except Exception as e:
            logger.warning("Search cache read failed, treating as miss: %s", e)
            return None
        if payload is None:
            return None
        try:
            return decode_results(payload)
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning("Discarding unreadable search cache entry %r: %s", signature, e)
            return None

    def put(
        self,
        signature: str,
        results: Sequence[MatchResult],
        *,
        cancel: Optional[CancelToken] = None,
    ) -> bool:
        """Store results for a signature. Returns False if nothing was stored."""
        if self._store is None or is_cancelled(cancel):
            return False
        try:
            self._store.set(signature, encode_results(results))
        except Exception as e:
            logger.warning("Search cache write failed for %r: %s", signature, e)
            return False
        return True

    def clear(self) -> bool:
        if self._store is None:
            return False
        try:
            self._store.clear()
        except Exception as e:
            logger.warning("Search cache clear failed: %s", e)
            return False
        return True
