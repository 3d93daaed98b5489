"""
Configuration management for tagmarks.

The configuration is a TOML file in the config directory. It says where
the bookmark store lives and what the default query is.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import tomli_w

CONFIG_FILENAME = "tagmarks.toml"
CONFIG_VERSION = 1

DEFAULT_QUERY = "by:most-recently-modified"
DEFAULT_LIMIT = 50


def get_config_dir() -> Path:
    """Config directory: TAGMARKS_CONFIG_DIR, else ~/.tagmarks."""
    env = os.environ.get("TAGMARKS_CONFIG_DIR")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".tagmarks"


@dataclass
class StoreConfig:
    """Complete tagmarks configuration."""
    path: Path  # config directory
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    # Where bookmark files are kept; relative paths are under `path`
    store_path: Path = Path("bookmarks")

    # Query used by `tagmarks find` with no arguments, and its result limit
    default_query: str = DEFAULT_QUERY
    limit: int = DEFAULT_LIMIT

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    @property
    def bookmarks_path(self) -> Path:
        """Absolute path to the bookmark store directory."""
        p = Path(self.store_path).expanduser()
        return p if p.is_absolute() else self.path / p

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def load_config(config_dir: Path) -> StoreConfig:
    """
    Load configuration from a config directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = config_dir / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    store = data.get("store", {})
    version = store.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    query = data.get("query", {})
    limit = query.get("limit", DEFAULT_LIMIT)
    if not isinstance(limit, int) or limit < 0:
        raise ValueError(f"Invalid query.limit in {config_path}: {limit!r}")

    return StoreConfig(
        path=config_dir,
        version=version,
        created=store.get("created", ""),
        store_path=Path(store.get("path", "bookmarks")),
        default_query=query.get("default", DEFAULT_QUERY),
        limit=limit,
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the config directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
            "path": str(config.store_path),
        },
        "query": {
            "default": config.default_query,
            "limit": config.limit,
        },
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(config_dir: Optional[Path] = None) -> StoreConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config_dir = config_dir or get_config_dir()
    if (config_dir / CONFIG_FILENAME).exists():
        return load_config(config_dir)
    config = StoreConfig(path=config_dir)
    save_config(config)
    return config


def get_store_path(config: StoreConfig, override: Optional[Path] = None) -> Path:
    """Store directory: explicit override, TAGMARKS_STORE_PATH, else config."""
    if override is not None:
        return Path(override).expanduser()
    env = os.environ.get("TAGMARKS_STORE_PATH")
    if env:
        return Path(env).expanduser()
    return config.bookmarks_path
