"""
Configuration module for stowage.

Usage:
    from stowage.config import get_config

    config = get_config()
    logger.info("Simulation configuration", ambient=config.simulation.ambient_temperature)
"""

import sys
import threading
from functools import lru_cache
from os import getenv

from .models import LoggingConfig, SimulationConfig, StowageConfig

__all__ = ["get_config", "reset_config", "LoggingConfig", "SimulationConfig", "StowageConfig"]

_config_instance = None
_config_lock = threading.Lock()


def _is_test_mode() -> bool:
    """
    Detect if running in test environment.

    Returns:
        bool: True if running under pytest, False otherwise
    """
    if "pytest" in sys.modules:
        return True
    return bool(getenv("PYTEST_CURRENT_TEST"))


@lru_cache(maxsize=1)
def _get_config_cached() -> StowageConfig:
    """
    Production config loader with caching.

    Returns:
        StowageConfig: Cached configuration
    """
    global _config_instance  # pylint: disable=global-statement
    with _config_lock:
        if _config_instance is None:
            _config_instance = StowageConfig()
    return _config_instance


def get_config() -> StowageConfig:
    """
    Get configuration (cached in production, fresh in tests).

    In test mode every call builds a new instance from the current
    environment so monkeypatched variables take effect immediately.

    Returns:
        StowageConfig: The configuration

    Raises:
        ValidationError: If configuration is invalid
    """
    if _is_test_mode():
        return StowageConfig()
    return _get_config_cached()


def reset_config() -> None:
    """
    Reset the configuration cache.

    This is primarily used for testing to force configuration reload.
    """
    global _config_instance  # pylint: disable=global-statement
    with _config_lock:
        _get_config_cached.cache_clear()
        _config_instance = None
