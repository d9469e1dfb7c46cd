"""
Logging configuration for archivesearch.

Quiet by default; debug output and a persistent ops log on request.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path


def configure_quiet_mode(quiet: bool = True):
    """
    Keep library output to warnings and above.

    Args:
        quiet: If True, suppress verbose output. If False, show everything.
    """
    if quiet:
        warnings.filterwarnings("ignore")
        logging.getLogger("archivesearch").setLevel(logging.WARNING)
    else:
        warnings.filterwarnings("default")
        logging.getLogger("archivesearch").setLevel(logging.NOTSET)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("archivesearch").setLevel(logging.DEBUG)


def configure_ops_log(store_path):
    """Configure a persistent operations log for a store.

    Writes to {store_path}/archivesearch-ops.log using a rotating file
    handler (1MB max, 3 backups). Returns the handler so it can be
    removed on close().
    """
    log_path = Path(store_path) / "archivesearch-ops.log"
    search_logger = logging.getLogger("archivesearch")
    for existing in search_logger.handlers:
        if (isinstance(existing, RotatingFileHandler)
                and Path(existing.baseFilename) == log_path.resolve()):
            return existing

    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    search_logger.addHandler(handler)
    # Let INFO through even in quiet mode
    if search_logger.level == logging.NOTSET or search_logger.level > logging.INFO:
        search_logger.setLevel(logging.INFO)

    return handler
