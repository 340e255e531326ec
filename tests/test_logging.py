"""Tests for logging configuration."""

import logging

import pytest

from aws_inspection_network.core.logging import get_logger, logger, setup_logging


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


class TestLogging:
    """Tests for logging configuration."""

    def test_logger_exists(self):
        """Package logger should exist."""
        assert logger.name == "aws_inspection_network"

    def test_setup_logging_default(self, mock_console):
        """setup_logging should log INFO but only show warnings on the console."""
        result = setup_logging(console=mock_console)
        assert result is logger
        assert result.level == logging.INFO
        (handler,) = result.handlers
        assert handler.level == logging.WARNING

    def test_setup_logging_debug(self, mock_console):
        result = setup_logging(debug=True, console=mock_console)
        assert result.level == logging.DEBUG
        assert result.handlers[0].level == logging.DEBUG

    def test_console_output(self, mock_console):
        setup_logging(console=mock_console)
        get_logger("spokes").warning("Spoke dev rejected")
        get_logger("spokes").info("quiet")
        output = mock_console._output.getvalue()
        assert "Spoke dev rejected" in output
        assert "quiet" not in output

    def test_setup_logging_with_file(self, tmp_path, mock_console):
        """setup_logging with log_file should add a debug file handler."""
        log_file = tmp_path / "resolve.log"
        result = setup_logging(log_file=str(log_file), console=mock_console)
        assert len(result.handlers) == 2
        get_logger("pipeline").info("Resolving network")
        for handler in result.handlers:
            handler.flush()
        content = log_file.read_text()
        assert "Resolving network" in content
        assert "aws_inspection_network.pipeline" in content

    def test_file_gets_debug_records(self, tmp_path, mock_console):
        log_file = tmp_path / "resolve.log"
        result = setup_logging(log_file=str(log_file), console=mock_console)
        assert result.level == logging.DEBUG
        get_logger("x").debug("detail")
        for handler in result.handlers:
            handler.flush()
        assert "[DEBUG] aws_inspection_network.x: detail" in log_file.read_text()
        assert "detail" not in mock_console._output.getvalue()

    def test_setup_is_repeatable(self, mock_console):
        setup_logging(console=mock_console)
        setup_logging(console=mock_console)
        assert len(logger.handlers) == 1

    def test_get_logger(self):
        """get_logger should return child logger."""
        child = get_logger("propagation")
        assert child.name == "aws_inspection_network.propagation"
        assert child.parent is logger

    def test_get_logger_different_modules(self):
        hub = get_logger("hub")
        spokes = get_logger("spokes")
        assert hub is not spokes
        assert hub.name != spokes.name
