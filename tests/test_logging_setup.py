import logging

import pytest

from finance_tracker.logging_setup import get_logger, resolve_level


def test_explicit_level_wins_over_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("FINANCE_TRACKER_LOG_LEVEL", "ERROR")
    assert resolve_level("debug") == logging.DEBUG


def test_env_level_used_when_option_missing(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("FINANCE_TRACKER_LOG_LEVEL", " info ")
    assert resolve_level(None) == logging.INFO


def test_unknown_level_falls_back_to_warning():
    assert resolve_level("chatty") == logging.WARNING
    assert resolve_level(None) == logging.WARNING


def test_get_logger_is_namespaced():
    logger = get_logger("finance_tracker.storage")
    assert logger.name == "finance_tracker.storage"
    assert logging.getLogger("finance_tracker").handlers
