"""
Logging setup for tagmarks.

Library code logs through ``logging.getLogger(__name__)`` and never
configures handlers itself. The CLI calls into this module to choose
between quiet output, debug output on stderr, and the per-store
operations log.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = "tagmarks"
OPS_LOG_NAME = "tagmarks-ops.log"
OPS_LOG_MAX_BYTES = 1_000_000
OPS_LOG_BACKUPS = 3

_DEBUG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_OPS_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def configure_quiet_mode(quiet: bool = True):
    """
    Keep CLI output limited to command results.

    Args:
        quiet: If True, only errors are logged and warnings are hidden.
            If False, nothing is changed.
    """
    if not quiet:
        return
    warnings.filterwarnings("ignore")
    logging.getLogger(LOGGER_NAME).setLevel(logging.ERROR)


def _has_stderr_handler(logger: logging.Logger) -> bool:
    return any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
        for h in logger.handlers
    )


def enable_debug_mode():
    """Send tagmarks debug logging to stderr (--verbose, TAGMARKS_VERBOSE=1)."""
    warnings.filterwarnings("default")
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    if _has_stderr_handler(logger):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_DEBUG_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(handler)


def configure_ops_log(store_path) -> logging.Handler:
    """
    Record store changes in {store_path}/tagmarks-ops.log.

    The file rotates at 1MB with 3 backups and receives INFO and above
    even when the console is quiet. Returns the handler so it can be
    detached with remove_handler() when another store is opened.
    """
    log_path = Path(store_path) / OPS_LOG_NAME
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=OPS_LOG_MAX_BYTES,
        backupCount=OPS_LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(_OPS_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logger = logging.getLogger(LOGGER_NAME)
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)
    return handler


def remove_handler(handler: Optional[logging.Handler]) -> None:
    """Detach and close a handler added by configure_ops_log()."""
    if handler is None:
        return
    logging.getLogger(LOGGER_NAME).removeHandler(handler)
    handler.close()
