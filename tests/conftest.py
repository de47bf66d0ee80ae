"""Test configuration for pytest."""

import logging
import os

import pytest

from pixprint.config import CacheMode, Settings


@pytest.fixture(autouse=True)
def configure_test_logging():
    """Configure logging for tests to be minimal."""
    os.environ['PIXPRINT_LOG_LEVEL'] = 'WARNING'
    logging.getLogger().setLevel(logging.WARNING)

    # Per-file fingerprint failures are expected in several tests
    for logger_name in ['pixprint.fetch', 'pixprint.cli']:
        logging.getLogger(logger_name).setLevel(logging.ERROR)


@pytest.fixture
def settings_factory(tmp_path):
    """Build Settings whose cache lives inside the test's tmp directory."""
    def _make(**overrides) -> Settings:
        values = {"cache_dir": tmp_path / "cache", "cache_mode": CacheMode.DISABLED}
        values.update(overrides)
        return Settings(**values)
    return _make
