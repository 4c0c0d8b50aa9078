"""
Unit tests for the logging and error handling framework.

Tests cover:
- Logging setup and configuration
- Structured formatter
- Contextual logger functionality
- The exception hierarchy
- Audit logging decorator
"""

import json
import logging
import sys
from unittest.mock import patch

import pytest

from mux_orchestrator.utils.logging import (
    AdapterError,
    ConfigurationError,
    ContextualLogger,
    LogContext,
    LogLevel,
    MuxOrchestratorException,
    StaleTopologyWarning,
    StructuredFormatter,
    UnknownPaneError,
    audit_log,
    get_logger,
    setup_logging,
)


class TestLoggingSetup:
    """Test logging setup and configuration."""

    def test_setup_logging_console_only(self, reset_logging):
        """Test logging setup with console output only."""
        setup_logging(log_level=LogLevel.DEBUG)

        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0], logging.StreamHandler)

    def test_setup_logging_string_level(self, reset_logging):
        setup_logging(log_level="info")

        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_unknown_level(self, reset_logging):
        """Test an unknown level name falls back to WARNING."""
        setup_logging(log_level="chatty")

        assert logging.getLogger().level == logging.WARNING

    def test_setup_logging_file(self, temp_log_file, reset_logging):
        """Test the log file gets JSON lines and its directory is created."""
        setup_logging(log_level=LogLevel.INFO, log_file=temp_log_file, enable_console=False)

        get_logger("mux_orchestrator.test", LogContext.SESSION).info(
            "Session created", session="demo"
        )
        for handler in logging.getLogger().handlers:
            handler.flush()

        record = json.loads(temp_log_file.read_text().splitlines()[-1])
        assert record["message"] == "Session created"
        assert record["context"] == "session"
        assert record["session"] == "demo"

    def test_libtmux_is_quiet(self, reset_logging):
        """Test libtmux's per-command debug output is suppressed."""
        setup_logging(log_level=LogLevel.DEBUG)

        assert logging.getLogger("libtmux").level == logging.WARNING


class TestStructuredFormatter:
    """Test JSON formatting of log records."""

    def make_record(self, **extra):
        record = logging.LogRecord(
            "mux_orchestrator.test", logging.INFO, __file__, 10, "hello %s", ("world",), None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_basic_fields(self):
        data = json.loads(StructuredFormatter().format(self.make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "mux_orchestrator.test"
        assert data["message"] == "hello world"
        assert "timestamp" in data

    def test_extra_fields(self):
        record = self.make_record(context="tmux", session="demo", pane="api")

        data = json.loads(StructuredFormatter().format(record))

        assert data["context"] == "tmux"
        assert data["session"] == "demo"
        assert data["pane"] == "api"

    def test_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = self.make_record()
            record.exc_info = sys.exc_info()

        data = json.loads(StructuredFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad"


class TestContextualLogger:
    """Test the context-injecting logger."""

    def test_get_logger(self):
        logger = get_logger("mux_orchestrator.test", LogContext.CONFIG)

        assert isinstance(logger, ContextualLogger)
        assert logger.context == "config"

    def test_context_and_kwargs_in_extra(self):
        logger = get_logger("mux_orchestrator.test", LogContext.TMUX)

        with patch.object(logger.logger, "log") as mock_log:
            logger.info("Layout applied", layout="tiled")

        level, message = mock_log.call_args.args
        assert level == logging.INFO
        assert message == "Layout applied"
        assert mock_log.call_args.kwargs["extra"] == {"context": "tmux", "layout": "tiled"}

    def test_context_only(self):
        logger = get_logger("mux_orchestrator.test", LogContext.SESSION)

        with patch.object(logger.logger, "log") as mock_log:
            logger.warning("Pane missing")

        assert mock_log.call_args.kwargs["extra"] == {"context": "session"}

    def test_error_with_exception(self):
        logger = get_logger("mux_orchestrator.test", LogContext.CLI)
        error = RuntimeError("boom")

        with patch.object(logger.logger, "error") as mock_error:
            logger.error("Command failed", exception=error, command="restart")

        assert mock_error.call_args.kwargs["exc_info"] is error
        assert mock_error.call_args.kwargs["extra"]["command"] == "restart"


class TestExceptions:
    """Test the exception hierarchy."""

    def test_hierarchy(self):
        for error in (
            ConfigurationError("bad"),
            UnknownPaneError("db"),
            AdapterError("failed"),
            StaleTopologyWarning("api", 0, 1),
        ):
            assert isinstance(error, MuxOrchestratorException)

    def test_base_exception(self):
        error = MuxOrchestratorException("oops", {"key": "value"})

        assert str(error) == "oops"
        assert error.context == {"key": "value"}
        assert error.timestamp is not None

    def test_unknown_pane(self):
        error = UnknownPaneError("db")

        assert error.message == "Unknown pane: db"
        assert error.context == {"pane_name": "db"}

    def test_adapter_error(self):
        error = AdapterError("failed", target="%1", command=["send-keys"], stderr="dead")

        assert error.target == "%1"
        assert error.command == ["send-keys"]
        assert error.stderr == "dead"

    def test_adapter_error_defaults(self):
        error = AdapterError("failed")

        assert error.target is None
        assert error.command == []
        assert error.stderr == ""

    def test_stale_topology(self):
        error = StaleTopologyWarning("api", 1, 2)

        assert error.message == 'Pane "api" not found in tmux session'
        assert (error.window_index, error.pane_index) == (1, 2)


class TestAuditLog:
    """Test the audit logging decorator."""

    def test_success(self):
        @audit_log("test action")
        def operation(value):
            return value + 1

        with patch("mux_orchestrator.utils.logging.get_logger") as mock_get_logger:
            assert operation(1) == 2

        logger = mock_get_logger.return_value
        assert logger.info.call_count == 2
        assert "completed successfully" in logger.info.call_args.args[0]

    def test_failure_is_logged_and_reraised(self):
        @audit_log("test action")
        def operation():
            raise AdapterError("tmux failed")

        with patch("mux_orchestrator.utils.logging.get_logger") as mock_get_logger:
            with pytest.raises(AdapterError):
                operation()

        logger = mock_get_logger.return_value
        assert logger.error.call_args.kwargs["error"] == "tmux failed"
