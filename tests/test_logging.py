"""Tests for the operations log and the CLI crash log."""

import logging

import pytest

from tagmarks.errors import ERROR_LOG_NAME, error_log_path, log_exception
from tagmarks.logging_config import (
    LOGGER_NAME,
    OPS_LOG_NAME,
    configure_ops_log,
    remove_handler,
)
from tagmarks.types import Bookmark


@pytest.fixture
def ops_log(store_path):
    handler = configure_ops_log(store_path)
    yield store_path / OPS_LOG_NAME
    remove_handler(handler)


class TestOpsLog:
    def test_store_changes_logged(self, store, ops_log):
        store.add(Bookmark.of("https://a.com"))
        store.remove("https://a.com")
        text = ops_log.read_text(encoding="utf-8")
        assert "Added https://a.com/" in text
        assert "Removed https://a.com/" in text

    def test_debug_not_logged(self, ops_log):
        logging.getLogger(LOGGER_NAME).debug("noise")
        assert "noise" not in ops_log.read_text(encoding="utf-8")

    def test_remove_handler_detaches(self, store_path):
        handler = configure_ops_log(store_path)
        remove_handler(handler)
        assert handler not in logging.getLogger(LOGGER_NAME).handlers

    def test_remove_none(self):
        remove_handler(None)


class TestCrashLog:
    def test_path_prefers_argument(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TAGMARKS_STORE_PATH", str(tmp_path / "env"))
        assert error_log_path(tmp_path / "arg") == tmp_path / "arg" / ERROR_LOG_NAME
        assert error_log_path() == tmp_path / "env" / ERROR_LOG_NAME

    def test_traceback_appended(self, tmp_path):
        for n in range(2):
            try:
                raise RuntimeError(f"boom {n}")
            except RuntimeError as e:
                path = log_exception(e, context="tagmarks find", store_path=tmp_path)
        text = path.read_text(encoding="utf-8")
        assert "tagmarks find" in text
        assert "RuntimeError: boom 0" in text
        assert "RuntimeError: boom 1" in text
        assert "Traceback" in text
