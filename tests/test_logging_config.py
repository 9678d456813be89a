"""Tests for logging setup, secret scrubbing and the discard logger."""

import logging
from unittest.mock import MagicMock

import pytest
import structlog

from hookwire.logging_config import (
    LOGGER_PREFIX,
    SUBSYSTEMS,
    discard_logger,
    sanitize_secrets,
    setup_logging,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    for name in (LOGGER_PREFIX, *(f"{LOGGER_PREFIX}.{s}" for s in SUBSYSTEMS)):
        for handler in logging.getLogger(name).handlers:
            handler.close()
        logging.getLogger(name).handlers.clear()


class TestSanitizeSecrets:

    def test_authorization_header_redacted(self):
        event = {"event": "request", "header": "Bot MTIzNDU2Nzg5MDEyMzQ1Njc4.abcdef"}
        result = sanitize_secrets(None, "info", event)

        assert "MTIzNDU2" not in result["header"]
        assert "***REDACTED***" in result["header"]

    def test_bare_bot_token_redacted(self):
        token = "MTA5ODc2NTQzMjEwOTg3NjU0.GaBcDe.abcdefghijklmnopqrstuvwxyz0123"
        result = sanitize_secrets(None, "error", {"event": "x", "error": f"bad token {token}"})

        assert token not in result["error"]

    def test_interaction_token_in_url_redacted(self):
        url = "/interactions/111222333/aW50ZXJhY3Rpb246MTExMjIyMzMz/callback"
        result = sanitize_secrets(None, "warning", {"event": "x", "route": url})

        assert result["route"] == "/interactions/111222333/***REDACTED***/callback"

    def test_webhook_token_in_list_redacted(self):
        routes = ["/webhooks/42/aW50ZXJhY3Rpb246MTExMjIyMzMz/messages/@original"]
        result = sanitize_secrets(None, "info", {"event": "x", "routes": routes})

        assert result["routes"] == ["/webhooks/42/***REDACTED***/messages/@original"]

    def test_nested_dict_values_scrubbed(self):
        event = {"event": "x", "headers": {"Authorization": "Bot abcdefghijklmnopqrstuvwxyz", "n": 1}}
        result = sanitize_secrets(None, "info", event)

        assert result["headers"]["Authorization"] == "***REDACTED***"
        assert result["headers"]["n"] == 1

    def test_ordinary_values_untouched(self):
        event = {"event": "command_handler_failed", "command": "ping", "count": 3}

        assert sanitize_secrets(None, "info", dict(event)) == event


class TestDiscardLogger:

    def test_drops_every_level(self):
        log = discard_logger()

        for method in ("debug", "info", "warning", "error"):
            assert getattr(log, method)("event", key="value") is None

    def test_bind_keeps_discarding(self):
        log = discard_logger().bind(interaction_id="1")

        assert log.info("bound_event") is None


class TestSetupLogging:

    def test_creates_subsystem_files(self, tmp_path, restore_logging):
        config = MagicMock()
        config.log_dir = tmp_path
        config.logging_level = "info"
        config.logging_subsystem_levels = {"router": "DEBUG"}
        config.logging_max_file_size_mb = 1
        config.logging_backup_count = 2

        setup_logging(config)

        assert (tmp_path / "hookwire.log").exists()
        for subsystem in SUBSYSTEMS:
            assert (tmp_path / f"{subsystem}.log").exists()
        assert logging.getLogger("hookwire.router").level == logging.DEBUG
        assert logging.getLogger("hookwire.session").level == logging.INFO

    def test_unwritable_log_dir_falls_back_to_console(self, tmp_path, restore_logging):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        config = MagicMock()
        config.log_dir = blocker / "logs"
        config.logging_level = "INFO"
        config.logging_subsystem_levels = {}
        config.logging_max_file_size_mb = 1
        config.logging_backup_count = 1

        setup_logging(config)

        assert logging.getLogger(LOGGER_PREFIX).handlers == []
