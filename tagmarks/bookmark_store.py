"""
Bookmark store: the authoritative, thread-safe set of bookmarks.

Durability is delegated to a keyed map (JsonDirMap by default). The store
adds what the map does not know about:
- one lock serializing every operation, so read-then-write sequences in
  add() and replace() see a consistent view
- created/modified timestamp maintenance
- backfilling timestamps on records written before they existed
"""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

from .json_dir_map import JsonDirMap
from .protocol import KeyedMapProtocol
from .types import Bookmark, Locator, utc_now

logger = logging.getLogger(__name__)


class BookmarkStore:
    """
    Bookmarks keyed by Locator, persisted through a KeyedMapProtocol.

    All operations hold a single store-wide lock for their whole duration,
    including the map's file I/O. Operations therefore run one at a time,
    in lock-acquisition order. Only one process should own a store
    directory at a time.
    """

    def __init__(
        self,
        bookmarks: KeyedMapProtocol[Locator, Bookmark],
        *,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            bookmarks: Durable map holding the bookmarks, keyed by locator
            clock: Returns the current UTC time (injectable for tests)
        """
        self._map = bookmarks
        self._clock = clock
        # Reentrant: add() is called from migration and replace()
        self._lock = threading.RLock()
        self._migrate()

    @classmethod
    def open(cls, path: Path, **kwargs) -> "BookmarkStore":
        """Open (or create) a store backed by a directory of JSON files."""
        bookmarks = JsonDirMap(
            Path(path),
            key_getter=lambda b: b.locator,
            value_type=Bookmark,
            key_desc="url",
        )
        return cls(bookmarks, **kwargs)

    def _migrate(self) -> None:
        """Backfill created/modified on bookmarks stored without them."""
        migrated = 0
        for bookmark in self._map.values():
            if bookmark.created is not None and bookmark.modified is not None:
                continue
            now = self._clock()
            updated = bookmark.replace(
                created=bookmark.created or now,
                modified=bookmark.modified or now,
            )
            try:
                self.add(updated)
                migrated += 1
            except OSError as e:
                logger.error(
                    "Unable to update bookmark structure for %s: %s",
                    bookmark.locator, e, exc_info=True,
                )
        if migrated:
            logger.info("Backfilled timestamps on %d bookmarks", migrated)

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def get(self, locator: Union[Locator, str]) -> Optional[Bookmark]:
        """Look up a bookmark by URL. Returns None if absent."""
        with self._lock:
            return self._map.get(Locator.of(locator))

    def all(self) -> tuple[Bookmark, ...]:
        """
        Snapshot of every bookmark.

        Order is whatever the underlying map yields; sort with a query
        ("by:...") when order matters.
        """
        with self._lock:
            return tuple(self._map.values())

    def tags(self) -> set[str]:
        """All tag names used by at least one bookmark."""
        with self._lock:
            return {t for b in self._map.values() for t in b.tags}

    def __len__(self) -> int:
        with self._lock:
            return len(self._map.values())

    def __contains__(self, locator: object) -> bool:
        if not isinstance(locator, (Locator, str)):
            return False
        return self.get(locator) is not None

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def add(self, bookmark: Bookmark) -> Bookmark:
        """
        Insert or update a bookmark.

        A missing creation time is inherited from the stored bookmark with
        the same locator, or set to now for a new one. A missing
        modification time is always set to now. Supplied timestamps
        (e.g. from an import) are kept as given.

        Returns:
            The bookmark as stored

        Raises:
            OSError: If the bookmark could not be persisted
        """
        with self._lock:
            original = self._map.get(bookmark.locator)
            now = self._clock()
            changes = {}
            if bookmark.created is None:
                changes["created"] = (
                    original.created
                    if original is not None and original.created is not None
                    else now
                )
            if bookmark.modified is None:
                changes["modified"] = now
            result = bookmark.replace(**changes) if changes else bookmark
            self._map.add(result)
            logger.info("%s %s", "Updated" if original else "Added", result.locator)
            return result

    def remove(self, target: Union[Bookmark, Locator, str]) -> Optional[Bookmark]:
        """
        Remove a bookmark, given either the bookmark itself or its URL.

        A Bookmark is matched by value against the stored entries.

        Returns:
            The removed bookmark, or None if nothing matched

        Raises:
            OSError: If the stored file could not be deleted
        """
        with self._lock:
            if isinstance(target, Bookmark):
                removed = self._map.remove_by_value(target)
            else:
                removed = self._map.remove(Locator.of(target))
            if removed is not None:
                logger.info("Removed %s", removed.locator)
            return removed

    def replace(self, replacing: Union[Locator, str], bookmark: Bookmark) -> Bookmark:
        """
        Store bookmark, removing the entry at `replacing` if its URL differs.

        Used to edit a bookmark including its URL. The new bookmark is
        committed before the old one is removed, so a failed removal never
        loses the edit.

        Raises:
            OSError: If either the add or the removal fails
        """
        old = Locator.of(replacing)
        with self._lock:
            result = self.add(bookmark)
            if bookmark.locator != old:
                self._map.remove(old)
                logger.info("Replaced %s with %s", old, bookmark.locator)
            return result

    def visit(self, locator: Union[Locator, str]) -> Optional[Bookmark]:
        """Record a visit to a bookmark. Returns None if it doesn't exist."""
        with self._lock:
            current = self._map.get(Locator.of(locator))
            if current is None:
                return None
            return self.add(current.visited(self._clock()))
