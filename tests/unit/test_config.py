"""
Unit tests for configuration and logging setup.

Tests cover:
- Default settings
- Environment overrides
- Log formatter selection
"""

import logging

import json_log_formatter
import pytest
from pydantic import ValidationError

from schemagen.config import Settings, get_settings
from schemagen.logging_config import setup_logging


@pytest.fixture
def root_logger():
    """Restore the root logger after setup_logging replaces its handlers."""
    logger = logging.getLogger()
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers = handlers
    logger.setLevel(level)


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch):
        """Settings have sensible defaults."""
        for name in ("LOG_LEVEL", "LOG_FORMAT", "GRAPHQL_FILENAME", "DGRAPH_FILENAME"):
            monkeypatch.delenv(f"SCHEMAGEN_{name}", raising=False)

        settings = get_settings()

        assert settings.log_level == "INFO"
        assert settings.log_format == "text"
        assert settings.graphql_filename == "schema.graphql"
        assert settings.dgraph_filename == "schema.dgraph"

    def test_environment_override(self, monkeypatch):
        """SCHEMAGEN_* variables override defaults."""
        monkeypatch.setenv("SCHEMAGEN_LOG_FORMAT", "json")
        monkeypatch.setenv("SCHEMAGEN_DGRAPH_FILENAME", "out.rdf")

        settings = get_settings()

        assert settings.log_format == "json"
        assert settings.dgraph_filename == "out.rdf"

    def test_invalid_log_format(self):
        """Unknown log formats are rejected."""
        with pytest.raises(ValidationError):
            Settings(log_format="xml")


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_text_format(self, root_logger):
        """Text format uses a plain formatter."""
        setup_logging(Settings(log_format="text", log_level="DEBUG"))

        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        formatter = root_logger.handlers[0].formatter
        assert not isinstance(formatter, json_log_formatter.JSONFormatter)
        assert "%(levelname)s" in formatter._fmt

    def test_json_format(self, root_logger):
        """JSON format uses json_log_formatter."""
        setup_logging(Settings(log_format="json"))

        assert isinstance(root_logger.handlers[0].formatter, json_log_formatter.JSONFormatter)

    def test_level_override(self, root_logger):
        """An explicit level wins over settings."""
        setup_logging(Settings(log_level="INFO"), level_override="warning")

        assert root_logger.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, root_logger):
        """Unknown level names fall back to INFO."""
        setup_logging(Settings(log_level="LOUD"))

        assert root_logger.level == logging.INFO
