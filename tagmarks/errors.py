"""
Exceptions raised by tagmarks, and the CLI's crash log.

Unexpected CLI failures are written with their traceback to
``tagmarks-errors.log`` in the store directory; the user sees a one-line
message pointing at that file.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

ERROR_LOG_NAME = "tagmarks-errors.log"


class QueryError(ValueError):
    """A query term could not be compiled.

    Raised before any part of the query runs. `term` is the offending
    term's text when known.
    """

    def __init__(self, message: str, term: Optional[str] = None):
        super().__init__(message)
        self.term = term


def error_log_path(store_path: Optional[Path] = None) -> Path:
    """Crash log location: the given store, TAGMARKS_STORE_PATH, else ~/.tagmarks."""
    if store_path is None:
        env = os.environ.get("TAGMARKS_STORE_PATH")
        store_path = Path(env) if env else Path.home() / ".tagmarks"
    return Path(store_path).expanduser() / ERROR_LOG_NAME


def _format_entry(exc: BaseException, context: str) -> str:
    header = f"[{datetime.now(timezone.utc).isoformat()}]"
    if context:
        header += f" {context}"
    trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return f"\n{'=' * 60}\n{header}\n{trace}"


def log_exception(
    exc: BaseException,
    context: str = "",
    store_path: Optional[Path] = None,
) -> Path:
    """
    Append an exception and its traceback to the crash log.

    Args:
        exc: The exception that occurred
        context: What was running, e.g. the command line
        store_path: Store directory to log into (see error_log_path)

    Returns:
        Path to the crash log, whether or not it could be written
    """
    log_path = error_log_path(store_path)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a", encoding="utf-8") as f:
            f.write(_format_entry(exc, context))
    except OSError:
        pass  # An unwritable crash log must not hide the original error
    return log_path
