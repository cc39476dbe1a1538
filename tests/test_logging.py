"""Tests for logging setup."""

import logging

import pytest
from rich.logging import RichHandler

from apply_desk.utils.logging import (
    NOISY_LOGGERS,
    configure_logging,
    get_logger,
    log_error_context,
    log_session_transition,
)


@pytest.mark.parametrize("json_logs", [True, False])
def test_configure_logging_installs_rich_handler(json_logs):
    configure_logging("debug", json_logs=json_logs)

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], RichHandler)
    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING

    get_logger("test").info("configured", json_logs=json_logs)


def test_configure_logging_can_run_twice():
    configure_logging()
    configure_logging()

    assert len(logging.getLogger().handlers) == 1


def test_api_module_imports():
    from apply_desk.api import main

    assert main.app.title == "Apply Desk API"


def test_log_contexts():
    assert log_error_context(ValueError("bad"), session_id="s-1") == {
        "error": "bad",
        "error_type": "ValueError",
        "session_id": "s-1",
    }
    assert log_session_transition("s-1", "OPEN", "ANALYZED") == {
        "session_id": "s-1",
        "transition": {"from": "OPEN", "to": "ANALYZED"},
    }
