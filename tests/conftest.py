"""
Shared pytest fixtures for tagmarks tests.

Provides a controllable clock and in-memory keyed maps so store behavior
can be tested without timing or filesystem dependencies.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest

from tagmarks.bookmark_store import BookmarkStore
from tagmarks.types import Bookmark, Locator


class FakeClock:
    """Clock returning a fixed time until advanced."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class MemoryMap:
    """In-memory KeyedMapProtocol implementation keyed by locator."""

    def __init__(self, values: Optional[list[Bookmark]] = None):
        self.entries: dict[Locator, Bookmark] = {b.locator: b for b in values or []}
        self.add_calls = 0

    def get(self, key):
        return self.entries.get(key)

    def add(self, value):
        self.add_calls += 1
        self.entries[value.locator] = value

    def remove(self, key):
        return self.entries.pop(key, None)

    def remove_by_value(self, value):
        for k, v in list(self.entries.items()):
            if v == value:
                return self.entries.pop(k)
        return None

    def values(self):
        return list(self.entries.values())


class FailingMap(MemoryMap):
    """MemoryMap whose writes fail with OSError when told to."""

    def __init__(self, values=None, fail_add=False, fail_remove=False):
        super().__init__(values)
        self.fail_add = fail_add
        self.fail_remove = fail_remove

    def add(self, value):
        if self.fail_add:
            raise OSError("disk full")
        super().add(value)

    def remove(self, key):
        if self.fail_remove:
            raise OSError("read-only file system")
        return super().remove(key)


def local_time(year, month, day, hour=12, minute=0) -> datetime:
    """Aware datetime for a wall-clock time in the local timezone."""
    return datetime(year, month, day, hour, minute).astimezone()


@pytest.fixture
def clock():
    """A FakeClock starting at 2024-03-01 12:00 UTC."""
    return FakeClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store_path(tmp_path) -> Path:
    return tmp_path / "bookmarks"


@pytest.fixture
def store(store_path, clock):
    """A JSON-directory BookmarkStore driven by the fake clock."""
    return BookmarkStore.open(store_path, clock=clock)


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Isolate CLI config and store locations under tmp_path."""
    config_dir = tmp_path / "config"
    monkeypatch.setenv("TAGMARKS_CONFIG_DIR", str(config_dir))
    monkeypatch.delenv("TAGMARKS_STORE_PATH", raising=False)
    return {"config_dir": config_dir, "store": tmp_path / "bookmarks"}
