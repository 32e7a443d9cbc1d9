"""
Global pytest fixtures and configuration for test suite.

This module provides reusable fixtures for:
- Settings with deterministic output (no Date, no X-Mailer)
- Sample body data
- Temporary attachment files
- Logging routed away from stdout
"""

import logging
import sys
from pathlib import Path

import pytest
import structlog

from eml_composer.config import Settings
from tests.fixtures.payloads import GIF_BYTES, MULTILINE_TEXT, SAMPLE_BODIES


@pytest.fixture(autouse=True, scope="session")
def configure_test_logging():
    """
    Route log output to stderr and keep loggers uncached.

    ``structlog.testing.capture_logs`` only sees loggers that are not cached,
    and stdout must stay clean for CLI output tests.
    """
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def test_settings() -> Settings:
    """
    Create settings for testing with deterministic output.

    Returns:
        Settings instance without Date/X-Mailer headers
    """
    return Settings(
        datestamp=False,
        x_mailer=False,
        log_level="WARNING",
        log_json=False,  # Easier to read in tests
    )


@pytest.fixture
def quiet_settings(test_settings) -> Settings:
    """Test settings with advisory warnings suppressed."""
    return test_settings.model_copy(update={"quiet": True})


@pytest.fixture
def paranoid_settings(test_settings) -> Settings:
    """Test settings using the built-in codecs and media type table."""
    return test_settings.model_copy(update={"paranoid": True})


@pytest.fixture
def gif_file(tmp_path) -> Path:
    """
    Write a small GIF image to a temporary file.

    Returns:
        Path to ``logo.gif``
    """
    path = tmp_path / "logo.gif"
    path.write_bytes(GIF_BYTES)
    return path


@pytest.fixture
def text_file(tmp_path) -> Path:
    """
    Write a short text document to a temporary file.

    Returns:
        Path to ``notes.txt``
    """
    path = tmp_path / "notes.txt"
    path.write_bytes(MULTILINE_TEXT)
    return path


@pytest.fixture
def large_binary_file(tmp_path) -> Path:
    """
    Write a binary file larger than several read chunks.

    Returns:
        Path to ``blob.bin`` (about 300 KB)
    """
    path = tmp_path / "blob.bin"
    path.write_bytes(SAMPLE_BODIES["all_bytes"] * 300)
    return path


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (may touch the filesystem or subprocesses)"
    )
    config.addinivalue_line(
        "markers", "slow: Slow tests (large bodies)"
    )
