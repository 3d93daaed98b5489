"""
Protocol definitions for the bookmark store and its storage backend.

Defines interface contracts at two levels:
- BookmarkCollectionProtocol: the public store API (CLI, application layer)
- KeyedMapProtocol: the durable keyed map the store is built on
  (one JSON file per key locally; anything with the same contract elsewhere)
"""

from typing import Optional, Protocol, TypeVar, Union, runtime_checkable

from .types import Bookmark, Locator

K = TypeVar("K")
V = TypeVar("V")


@runtime_checkable
class KeyedMapProtocol(Protocol[K, V]):
    """
    A durable map holding one value per key.

    Keys are derived from values by a key-extraction function given at
    construction. Writes may raise OSError.
    """

    def get(self, key: K) -> Optional[V]: ...

    def add(self, value: V) -> None:
        """Persist value under its own key, overwriting any existing entry."""
        ...

    def remove(self, key: K) -> Optional[V]: ...

    def remove_by_value(self, value: V) -> Optional[V]:
        """Remove whichever stored entry equals value; return it or None."""
        ...

    def values(self) -> list[V]: ...


@runtime_checkable
class BookmarkCollectionProtocol(Protocol):
    """
    The public interface of a bookmark collection.

    Implemented by:
    - BookmarkStore (JSON directory backend)
    """

    def get(self, locator: Union[Locator, str]) -> Optional[Bookmark]: ...

    def add(self, bookmark: Bookmark) -> Bookmark: ...

    def remove(self, target: Union[Bookmark, Locator, str]) -> Optional[Bookmark]: ...

    def replace(self, replacing: Union[Locator, str], bookmark: Bookmark) -> Bookmark: ...

    def all(self) -> tuple[Bookmark, ...]: ...
