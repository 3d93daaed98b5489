"""
tagmarks

A durable, thread-safe bookmark store keyed by URL, with a small query
language for filtering and sorting bookmarks.

Quick Start:
    from pathlib import Path
    from tagmarks import Bookmark, BookmarkStore, Query

    store = BookmarkStore.open(Path("~/.tagmarks/bookmarks").expanduser())
    store.add(Bookmark.of("https://example.com", tags="python,docs"))
    results = Query.parse("tagged:python by:most-recently-created limit:10")(store.all())

CLI Usage:
    tagmarks add https://example.com --tag python
    tagmarks find tagged:python site:example.com
    tagmarks mv https://example.com https://example.org

Default Store:
    ~/.tagmarks/bookmarks, one JSON file per bookmark.
    Override with TAGMARKS_STORE_PATH or the `path` setting in tagmarks.toml.

Environment Variables:
    TAGMARKS_STORE_PATH   - Override the store location
    TAGMARKS_CONFIG_DIR   - Override the config directory (~/.tagmarks)
    TAGMARKS_VERBOSE      - Set to 1 for debug logging
"""

from .bookmark_store import BookmarkStore
from .errors import QueryError
from .json_dir_map import JsonDirMap
from .query import Query, QueryTerm, compile_term, register_action, run_query
from .types import Bookmark, Locator

__version__ = "0.1.0"
__all__ = [
    "Bookmark",
    "BookmarkStore",
    "JsonDirMap",
    "Locator",
    "Query",
    "QueryError",
    "QueryTerm",
    "compile_term",
    "register_action",
    "run_query",
]
