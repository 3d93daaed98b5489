"""
Durable keyed map stored as a directory of JSON files.

Each value lives in its own file, named by a hash of its key, so any
single entry can be rewritten or removed without touching the rest.
The whole map is loaded into memory when opened; the directory is the
source of truth for reconstructing it.

Values must provide ``to_dict()`` and a ``from_dict()`` classmethod.
"""

import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")

FILE_SUFFIX = ".json"


class JsonDirMap(Generic[K, V]):
    """
    One-JSON-file-per-key map.

    Not synchronized: callers that share an instance between threads
    must hold their own lock (BookmarkStore does).
    """

    def __init__(
        self,
        path: Path,
        key_getter: Callable[[V], K],
        value_type: type,
        key_desc: str = "key",
    ):
        """
        Args:
            path: Directory holding the JSON files (created if missing)
            key_getter: Extracts a value's key
            value_type: Class with from_dict() used to decode files
            key_desc: Human-readable name of the key, used in log messages
        """
        self._path = Path(path)
        self._key_getter = key_getter
        self._value_type = value_type
        self._key_desc = key_desc
        self._entries: dict[K, V] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        """Read every JSON file in the directory."""
        self._path.mkdir(parents=True, exist_ok=True)
        for file in sorted(self._path.glob(f"*{FILE_SUFFIX}")):
            if file.name.startswith("."):
                continue  # temp file from an interrupted write
            try:
                with open(file, encoding="utf-8") as f:
                    value = self._value_type.from_dict(json.load(f))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                # Leave the file in place so it can be repaired by hand
                logger.warning("Skipping unreadable %s: %s", file, e)
                continue
            key = self._key_getter(value)
            if file.name != self._file_for(key).name:
                logger.warning("%s is stored under an unexpected file name: %s", key, file.name)
            self._entries[key] = value
        logger.debug("Loaded %d entries from %s", len(self._entries), self._path)

    def _file_for(self, key: K) -> Path:
        digest = hashlib.sha1(str(key).encode("utf-8")).hexdigest()
        return self._path / f"{digest}{FILE_SUFFIX}"

    def _write(self, key: K, value: V) -> None:
        """Write atomically: temp file in the same directory, then rename."""
        target = self._file_for(key)
        data = json.dumps(value.to_dict(), indent=2, ensure_ascii=False)
        fd, tmp = tempfile.mkstemp(dir=self._path, prefix=".tmp-", suffix=FILE_SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
                f.write("\n")
            os.replace(tmp, target)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    # -------------------------------------------------------------------------
    # Map operations
    # -------------------------------------------------------------------------

    def get(self, key: K) -> Optional[V]:
        return self._entries.get(key)

    def add(self, value: V) -> None:
        """Persist value under its own key, overwriting any existing entry.

        Raises:
            OSError: If the file could not be written (memory is unchanged)
        """
        key = self._key_getter(value)
        self._write(key, value)
        self._entries[key] = value
        logger.debug("Stored %s %s", self._key_desc, key)

    def remove(self, key: K) -> Optional[V]:
        """Remove the entry at key; return it, or None if there was none.

        Raises:
            OSError: If the file exists but could not be deleted
        """
        if key not in self._entries:
            return None
        self._file_for(key).unlink(missing_ok=True)
        logger.debug("Removed %s %s", self._key_desc, key)
        return self._entries.pop(key)

    def remove_by_value(self, value: V) -> Optional[V]:
        """Remove the stored entry equal to value; return it, or None."""
        key = self._key_getter(value)
        if self._entries.get(key) == value:
            return self.remove(key)
        for k, v in list(self._entries.items()):
            if v == value:
                return self.remove(k)
        return None

    def values(self) -> list[V]:
        return list(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
