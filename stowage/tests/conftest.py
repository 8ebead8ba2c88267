"""
Test configuration and fixtures for the stowage test suite.

This module provides core fixtures and test isolation.
"""

import os
from collections.abc import Generator

import pytest

from stowage.config import reset_config
from stowage.structured_logging.enhanced_logging_config import reset_logging_state

os.environ.setdefault("STOWAGE_LOG_ENVIRONMENT", "unit_test")

pytest_plugins = [
    "stowage.tests.fixtures.pocket_fixtures",
]


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """
    Reset config singleton before and after each test.

    In test mode, get_config() always returns fresh instances (no caching),
    but we still clear global state for consistency.
    """
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Forget logging initialization so setup_logging tests start clean."""
    reset_logging_state()
    yield
    reset_logging_state()
