"""
Pluggable storage backend factory.

Creates the record store, category lookup and cache store based on
configuration. The local backend uses a single SQLite ArchiveStore for
all three. External backends register via the ``archivesearch.backends``
entry point group.

External backend packages provide a factory function::

    def create_stores(config: SearchConfig) -> StoreBundle:
        ...

and register it in their pyproject.toml::

    [project.entry-points."archivesearch.backends"]
    my-backend = "my_package.backend:create_stores"
"""

from typing import NamedTuple, Optional

from .cache import ResultCache
from .config import SearchConfig
from .protocol import CacheStoreProtocol, CategoryProtocol, RecordStoreProtocol
from .search import SearchCoordinator


class StoreBundle(NamedTuple):
    """Collection of storage backends returned by the factory."""
    records: RecordStoreProtocol
    categories: Optional[CategoryProtocol]
    cache: Optional[CacheStoreProtocol]
    is_local: bool  # True for filesystem-backed stores


def create_stores(config: SearchConfig) -> StoreBundle:
    """
    Create storage backends from configuration.

    For ``backend = "local"`` (default), opens ``archives.db`` in the
    store directory. For other values, loads the backend via the
    ``archivesearch.backends`` entry point group.
    """
    if config.backend == "local":
        return _create_local_stores(config)
    return _load_backend(config.backend, config)


def _create_local_stores(config: SearchConfig) -> StoreBundle:
    """Create the default local storage backend."""
    from .archive_store import ArchiveStore

    store = ArchiveStore(config.path / "archives.db")
    return StoreBundle(
        records=store,
        categories=store,
        cache=store.search_cache,
        is_local=True,
    )


def _load_backend(name: str, config: SearchConfig) -> StoreBundle:
    """Load a backend by entry point name."""
    from importlib.metadata import entry_points

    eps = entry_points(group="archivesearch.backends")
    for ep in eps:
        if ep.name == name:
            factory = ep.load()
            return factory(config)

    available = [ep.name for ep in eps]
    if available:
        raise ValueError(
            f"Unknown backend: {name!r}. Available: {available}"
        )
    raise ValueError(
        f"Unknown backend: {name!r}. No backends registered."
    )


def create_coordinator(config: SearchConfig, bundle: Optional[StoreBundle] = None) -> SearchCoordinator:
    """Build a SearchCoordinator wired to the configured stores."""
    if bundle is None:
        bundle = create_stores(config)
    cache = ResultCache(bundle.cache if config.cache_enabled else None)
    return SearchCoordinator(
        bundle.records,
        bundle.categories,
        cache,
        page_size=config.page_size,
        workers=config.workers,
    )
