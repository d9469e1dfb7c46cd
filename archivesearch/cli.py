"""
CLI interface for archive search.

Usage:
    archivesearch search "artist:alice -\"color$\"" --sort date --desc
    archivesearch match "c*t" "cart,dog"
    archivesearch add 3f2a... --title "Book" --tags "artist:alice" --file book.zip
"""

import json
import os
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .backend import StoreBundle, create_coordinator, create_stores
from .cache import ResultCache
from .config import get_default_store_path, load_or_create_config
from .errors import SearchError, log_exception
from .logging_config import configure_ops_log, configure_quiet_mode, enable_debug_mode
from .query import matches as filter_matches
from .search import SearchCoordinator
from .types import Query, SearchOutcome


# Configure quiet mode by default
# Set ARCHIVESEARCH_VERBOSE=1 to enable debug mode via environment
if os.environ.get("ARCHIVESEARCH_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"archivesearch {version('archive-search')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _store_callback(value: Optional[Path]):
    global _store_override
    if value is not None:
        _store_override = value


def _get_store_override() -> Optional[Path]:
    return _store_override


app = typer.Typer(
    name="archivesearch",
    help="Search tagged archives with a compact query language.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
category_app = typer.Typer(name="category", help="Manage categories.", no_args_is_help=True)
cache_app = typer.Typer(name="cache", help="Manage the search cache.", no_args_is_help=True)
app.add_typer(category_app)
app.add_typer(cache_app)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="ARCHIVESEARCH_STORE_PATH",
        help="Path to the store directory",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """Search tagged archives with a compact query language."""


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

StoreOption = Annotated[
    Optional[Path],
    typer.Option(
        "--store", "-s",
        envvar="ARCHIVESEARCH_STORE_PATH",
        help="Path to the store directory (default: ~/.archivesearch/)"
    )
]


def _open_stores(store: Optional[Path]) -> tuple[StoreBundle, SearchCoordinator]:
    """Load config and open the backend, handling errors gracefully."""
    actual_store = store if store is not None else _get_store_override()
    path = actual_store if actual_store is not None else get_default_store_path()
    try:
        config = load_or_create_config(path)
        bundle = create_stores(config)
    except (OSError, ValueError, SearchError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if bundle.is_local:
        configure_ops_log(config.path)
    return bundle, create_coordinator(config, bundle)


def _format_outcome(outcome: SearchOutcome, query: Query, as_json: bool = False) -> str:
    if as_json:
        return json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2)
    if not outcome.page:
        return f"No results ({outcome.total_matches} matches of {outcome.total_candidates} archives)"
    first = query.start + 1
    last = query.start + len(outcome.page)
    lines = [f"{r.id}  {r.title}  [{r.tags}]" for r in outcome.page]
    lines.append(
        f"-- {first}-{last} of {outcome.total_matches} matches "
        f"({outcome.total_candidates} archives)"
    )
    return "\n".join(lines)


@app.command()
def search(
    filter: Annotated[str, typer.Argument(help="Filter in the tag query language")] = "",
    category: Annotated[str, typer.Option(
        "--category", "-c",
        help="Restrict to a category (static list or saved search)"
    )] = "",
    sort: Annotated[str, typer.Option(
        "--sort", "-k",
        help="Sort by title or by a tag namespace"
    )] = "title",
    desc: Annotated[bool, typer.Option(
        "--desc",
        help="Sort in descending order"
    )] = False,
    new_only: Annotated[bool, typer.Option(
        "--new",
        help="Only archives flagged as new"
    )] = False,
    untagged_only: Annotated[bool, typer.Option(
        "--untagged",
        help="Only archives without user tags"
    )] = False,
    start: Annotated[int, typer.Option(
        "--start", "-n",
        help="Index of the first result to show"
    )] = 0,
    store: StoreOption = None,
):
    """
    Search archives.

    \b
    Examples:
        archivesearch search "artist:alice"          # Substring match
        archivesearch search '"color"$'              # Whole tag entry
        archivesearch search -- "-parody c?t"        # Negation + wildcard
        archivesearch search -c favourites --new     # Category + new only
    """
    _, coordinator = _open_stores(store)
    query = Query(
        filter=filter,
        category=category,
        sort_key=sort,
        sort_descending=desc,
        new_only=new_only,
        untagged_only=untagged_only,
        start=start,
    )
    try:
        outcome = coordinator.search(query)
    except SearchError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(_format_outcome(outcome, query, as_json=_get_json_output()))


@app.command()
def match(
    filter: Annotated[str, typer.Argument(help="Filter in the tag query language")],
    tags: Annotated[str, typer.Argument(help="Comma-separated tags to test")],
):
    """Test a filter against a tag string. Exits 1 when it does not match."""
    result = filter_matches(filter, tags)
    if _get_json_output():
        typer.echo(json.dumps({"filter": filter, "tags": tags, "matches": result}))
    else:
        typer.echo("match" if result else "no match")
    if not result:
        raise typer.Exit(1)


@app.command()
def add(
    id: Annotated[str, typer.Argument(help="Archive ID")],
    title: Annotated[str, typer.Option("--title", help="Archive title")] = "",
    tags: Annotated[str, typer.Option(
        "--tags", "-t",
        help="Comma-separated tags (label or namespace:value)"
    )] = "",
    file: Annotated[Optional[str], typer.Option(
        "--file", "-f",
        help="Archive file path; archives without one never match"
    )] = None,
    is_new: Annotated[bool, typer.Option("--new", help="Flag as new")] = False,
    store: StoreOption = None,
):
    """Add or replace an archive record (local backend only)."""
    bundle, _ = _open_stores(store)
    upsert = getattr(bundle.records, "upsert_archive", None)
    if upsert is None:
        typer.echo("Error: this backend does not support adding archives", err=True)
        raise typer.Exit(1)
    record = upsert(id, title=title, tags=tags, file=file, is_new=is_new)
    typer.echo(f"Added {record.id}")


@category_app.command("create")
def category_create(
    name: Annotated[str, typer.Argument(help="Category name")],
    search: Annotated[str, typer.Option(
        "--search",
        help="Saved search filter (makes this a dynamic category)"
    )] = "",
    ids: Annotated[Optional[list[str]], typer.Option(
        "--id",
        help="Archive ID to include (repeatable; static categories)"
    )] = None,
    pinned: Annotated[bool, typer.Option("--pinned", help="Pin the category")] = False,
    store: StoreOption = None,
):
    """Create or replace a category."""
    bundle, _ = _open_stores(store)
    create = getattr(bundle.categories, "create_category", None)
    if create is None:
        typer.echo("Error: this backend does not support creating categories", err=True)
        raise typer.Exit(1)
    if search and ids:
        typer.echo("Error: Specify either --search or --id, not both", err=True)
        raise typer.Exit(1)
    scope = create(name, search=search, archive_ids=ids or [], pinned=pinned)
    kind = "saved search" if scope.is_saved_search else f"{len(scope.archive_ids)} archives"
    typer.echo(f"Category {scope.name} ({kind})")


@category_app.command("list")
def category_list(
    store: StoreOption = None,
):
    """List categories, pinned and most recently used first."""
    bundle, _ = _open_stores(store)
    lister = getattr(bundle.categories, "list_categories", None)
    if lister is None:
        typer.echo("Error: this backend does not support listing categories", err=True)
        raise typer.Exit(1)
    categories = lister()
    if _get_json_output():
        typer.echo(json.dumps(categories, ensure_ascii=False, indent=2))
        return
    for cat in categories:
        kind = f"search: {cat['search']}" if cat["search"] else f"{len(cat['archives'])} archives"
        pin = "*" if cat["pinned"] else " "
        typer.echo(f"{pin} {cat['name']}  ({kind})  last used: {cat['last_used'] or 'never'}")


@category_app.command("delete")
def category_delete(
    name: Annotated[str, typer.Argument(help="Category name")],
    store: StoreOption = None,
):
    """Delete a category."""
    bundle, _ = _open_stores(store)
    delete = getattr(bundle.categories, "delete_category", None)
    if delete is None:
        typer.echo("Error: this backend does not support deleting categories", err=True)
        raise typer.Exit(1)
    if not delete(name):
        typer.echo(f"Category not found: {name}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Deleted {name}")


@cache_app.command("clear")
def cache_clear(
    store: StoreOption = None,
):
    """Empty the search cache."""
    bundle, _ = _open_stores(store)
    if not ResultCache(bundle.cache).clear():
        typer.echo("Search cache not cleared (disabled or unavailable)", err=True)
        raise typer.Exit(1)
    typer.echo("Search cache cleared")


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        log_path = log_exception(e, context="archivesearch CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
