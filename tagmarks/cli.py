"""
CLI interface for tagmarks.

Usage:
    tagmarks add https://example.com --tag python --title "Example"
    tagmarks find tagged:python by:most-visited limit:10
    tagmarks rm https://example.com
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .bookmark_store import BookmarkStore
from .config import get_store_path, load_or_create_config
from .errors import QueryError, log_exception
from .logging_config import (
    configure_ops_log,
    configure_quiet_mode,
    enable_debug_mode,
    remove_handler,
)
from .query import Query
from .types import Bookmark, Locator, format_timestamp, normalize_color, normalize_tag

# Set TAGMARKS_VERBOSE=1 to enable debug mode via environment
if os.environ.get("TAGMARKS_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"tagmarks {version('tagmarks')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None
_ops_handler: Optional[logging.Handler] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _store_callback(value: Optional[Path]):
    global _store_override
    _store_override = value


app = typer.Typer(
    name="tagmarks",
    help="Tagged bookmarks with a small query language.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


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
        envvar="TAGMARKS_STORE_PATH",
        help="Path to the bookmark store directory",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """Tagged bookmarks with a small query language."""


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _get_store() -> BookmarkStore:
    """Open the configured store, exiting cleanly on failure."""
    global _ops_handler
    try:
        config = load_or_create_config()
        path = get_store_path(config, _store_override)
        path.mkdir(parents=True, exist_ok=True)
        remove_handler(_ops_handler)
        _ops_handler = configure_ops_log(path)
        return BookmarkStore.open(path)
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _format_bookmark(b: Bookmark) -> str:
    """One line: url, title, tags."""
    parts = [b.url]
    if b.title:
        parts.append(b.title)
    if b.tags:
        parts.append(" ".join(f"#{t}" for t in sorted(b.tags)))
    return "  ".join(parts)


def _format_details(b: Bookmark) -> str:
    lines = [f"url: {b.url}"]
    if b.title:
        lines.append(f"title: {b.title}")
    if b.tags:
        lines.append(f"tags: {', '.join(sorted(b.tags))}")
    if b.color:
        lines.append(f"color: {b.color}")
    for label, value in (
        ("created", b.created),
        ("modified", b.modified),
        ("last-visited", b.last_visited),
    ):
        if value is not None:
            lines.append(f"{label}: {format_timestamp(value)}")
    if b.visit_count is not None:
        lines.append(f"visit-count: {b.visit_count}")
    if b.notes:
        lines.append("")
        lines.append(b.notes.rstrip())
    return "\n".join(lines)


def _echo_bookmark(b: Bookmark) -> None:
    if _get_json_output():
        typer.echo(json.dumps(b.to_dict(), ensure_ascii=False))
    else:
        typer.echo(_format_details(b))


def _echo_list(bookmarks: list[Bookmark]) -> None:
    if _get_json_output():
        typer.echo(json.dumps([b.to_dict() for b in bookmarks], ensure_ascii=False, indent=2))
    else:
        for b in bookmarks:
            typer.echo(_format_bookmark(b))


def _parse_tags(tags: Optional[list[str]]) -> frozenset[str]:
    """Tags may be repeated (--tag a --tag b) or comma-separated."""
    result = set()
    for t in tags or []:
        for name in t.split(","):
            if name.strip():
                result.add(normalize_tag(name))
    return frozenset(result)


def _exit_error(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _locator(url: str) -> Locator:
    """Normalize a URL argument, exiting with a message if it is empty."""
    try:
        return Locator.of(url)
    except ValueError as e:
        _exit_error(str(e))


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def add(
    url: Annotated[str, typer.Argument(help="URL to bookmark")],
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="Bookmark title")] = None,
    tag: Annotated[Optional[list[str]], typer.Option(
        "--tag", "-g", help="Tag (repeatable, or comma-separated)",
    )] = None,
    color: Annotated[Optional[str], typer.Option("--color", help="Color as #rrggbb")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", "-n", help="Freeform notes")] = None,
):
    """Add a bookmark, or update the one with the same URL."""
    store = _get_store()
    try:
        existing = store.get(url)
        if existing is not None:
            bookmark = existing.replace(
                title=title if title is not None else existing.title,
                tags=_parse_tags(tag) if tag else existing.tags,
                color=normalize_color(color) if color is not None else existing.color,
                notes=notes if notes is not None else existing.notes,
                modified=None,
            )
        else:
            bookmark = Bookmark.of(
                url, title=title or "", tags=_parse_tags(tag),
                color=color, notes=notes or "",
            )
    except ValueError as e:
        _exit_error(str(e))
    _echo_bookmark(store.add(bookmark))


@app.command()
def get(
    url: Annotated[str, typer.Argument(help="URL of the bookmark")],
):
    """Show a bookmark."""
    bookmark = _get_store().get(_locator(url))
    if bookmark is None:
        _exit_error(f"Not found: {url}")
    _echo_bookmark(bookmark)


@app.command("rm")
def rm(
    url: Annotated[str, typer.Argument(help="URL of the bookmark to remove")],
):
    """Remove a bookmark."""
    removed = _get_store().remove(_locator(url))
    if removed is None:
        _exit_error(f"Not found: {url}")
    typer.echo(f"Removed {removed.url}")


@app.command("mv")
def mv(
    old_url: Annotated[str, typer.Argument(help="Current URL")],
    new_url: Annotated[str, typer.Argument(help="New URL")],
):
    """Change a bookmark's URL, keeping everything else."""
    old = _locator(old_url)
    new = _locator(new_url)
    store = _get_store()
    current = store.get(old)
    if current is None:
        _exit_error(f"Not found: {old_url}")
    result = store.replace(current.locator, current.replace(locator=new, modified=None))
    _echo_bookmark(result)


@app.command()
def visit(
    url: Annotated[str, typer.Argument(help="URL of the visited bookmark")],
):
    """Record a visit to a bookmark."""
    bookmark = _get_store().visit(_locator(url))
    if bookmark is None:
        _exit_error(f"Not found: {url}")
    _echo_bookmark(bookmark)


@app.command()
def find(
    query: Annotated[Optional[list[str]], typer.Argument(
        help="Query terms, e.g. tagged:python site:github.com by:most-visited",
    )] = None,
    limit: Annotated[Optional[int], typer.Option(
        "--limit", "-n", help="Maximum results (default from config)",
    )] = None,
):
    """Run a query over all bookmarks."""
    config = load_or_create_config()
    text = " ".join(query) if query else config.default_query
    try:
        compiled = Query.parse(text)
    except QueryError as e:
        _exit_error(str(e))
    results = compiled(_get_store().all())
    max_results = limit if limit is not None else config.limit
    if max_results:
        results = results[:max_results]
    _echo_list(results)


@app.command()
def tags():
    """List all tags in use."""
    names = sorted(_get_store().tags())
    if _get_json_output():
        typer.echo(json.dumps(names))
    else:
        for name in names:
            typer.echo(name)


@app.command("import")
def import_(
    file: Annotated[Path, typer.Argument(
        help="JSON file: a list of bookmarks (url, title, tags, created, ...)",
        exists=True, dir_okay=False,
    )],
):
    """Import bookmarks from a JSON file, keeping their timestamps."""
    try:
        with open(file, encoding="utf-8") as f:
            entries = json.load(f)
        bookmarks = [Bookmark.from_dict(d) for d in entries]
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        _exit_error(f"Invalid import file {file}: {e}")
    store = _get_store()
    for b in bookmarks:
        store.add(b)
    typer.echo(f"Imported {len(bookmarks)} bookmarks")


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        log_path = log_exception(e, context=" ".join(sys.argv), store_path=_store_override)
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
