"""
Configuration management for archive search stores.

The configuration is stored as a TOML file in the store directory.
It selects the storage backend and sets paging, worker pool and cache
options.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

# tomli_w for writing TOML (tomllib is read-only)
try:
    import tomli_w
except ImportError:
    tomli_w = None  # type: ignore


CONFIG_FILENAME = "archivesearch.toml"
CONFIG_VERSION = 1

DEFAULT_PAGE_SIZE = 100


def get_default_store_path() -> Path:
    """Store directory from ARCHIVESEARCH_STORE_PATH, else ~/.archivesearch."""
    env = os.environ.get("ARCHIVESEARCH_STORE_PATH")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".archivesearch"


@dataclass
class SearchConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    # "local" (SQLite) or the name of an archivesearch.backends entry point
    backend: str = "local"
    backend_params: dict[str, Any] = field(default_factory=dict)

    page_size: int = DEFAULT_PAGE_SIZE
    workers: Optional[int] = None  # None: one per CPU
    cache_enabled: bool = True

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def load_config(store_path: Path) -> SearchConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    store = data.get("store", {})
    version = store.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    search = data.get("search", {})
    page_size = search.get("page_size", DEFAULT_PAGE_SIZE)
    if not isinstance(page_size, int) or page_size < 1:
        raise ValueError(f"search.page_size must be a positive integer, got {page_size!r}")
    workers = search.get("workers")
    if workers is not None and (not isinstance(workers, int) or workers < 1):
        raise ValueError(f"search.workers must be a positive integer, got {workers!r}")

    backend = data.get("backend", {})
    return SearchConfig(
        path=store_path,
        version=version,
        created=store.get("created", ""),
        backend=backend.get("name", "local"),
        backend_params={k: v for k, v in backend.items() if k != "name"},
        page_size=page_size,
        workers=workers,
        cache_enabled=bool(search.get("cache", True)),
    )


def save_config(config: SearchConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    if tomli_w is None:
        raise RuntimeError("tomli_w is required to save config. Install with: pip install tomli-w")

    config.path.mkdir(parents=True, exist_ok=True)

    search: dict[str, Any] = {
        "page_size": config.page_size,
        "cache": config.cache_enabled,
    }
    # TOML has no null; an absent key means "one worker per CPU"
    if config.workers is not None:
        search["workers"] = config.workers

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
        },
        "backend": {"name": config.backend, **config.backend_params},
        "search": search,
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Path) -> SearchConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config_path = store_path / CONFIG_FILENAME

    if config_path.exists():
        return load_config(store_path)
    else:
        config = SearchConfig(path=store_path)
        save_config(config)
        return config
