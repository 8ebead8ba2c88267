"""
Structlog-based logging configuration for stowage.

This module is the main entry point for the logging system. Library code only
calls ``get_logger``; a host application calls ``setup_logging`` once with its
configuration to decide level and rendering.
"""

# pylint: disable=too-few-public-methods  # Reason: State container class with focused responsibility

import json
import logging
import sys
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars
from structlog.stdlib import BoundLogger, LoggerFactory

from stowage.structured_logging.logging_processors import summarize_items

logger = structlog.get_logger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class _LoggingState:
    """State container for logging initialization to avoid global statements."""

    initialized: bool = False
    signature: str | None = None


_logging_state = _LoggingState()


def configure_structlog(
    environment: str = "development",
    log_level: str = "INFO",
    *,
    json_output: bool = False,
) -> None:
    """
    Configure structlog processors and the standard library root handler.

    Args:
        environment: Environment name, attached to every entry
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines instead of key=value pairs
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    if not any(getattr(handler, "_stowage_handler", False) for handler in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler._stowage_handler = True  # type: ignore[attr-defined]  # Reason: marker attribute used to avoid installing the handler twice
        root_logger.addHandler(handler)
    root_logger.setLevel(level)

    def add_environment(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("environment", environment)
        return event_dict

    renderer: Any = structlog.processors.JSONRenderer() if json_output else structlog.processors.KeyValueRenderer()

    structlog.configure(
        processors=[
            merge_contextvars,
            summarize_items,
            add_environment,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=False,
    )


def setup_logging(config: dict[str, Any], *, force_reconfigure: bool = False) -> None:
    """
    Set up logging from a configuration dictionary.

    Calling this more than once is a no-op unless ``force_reconfigure`` is set.

    Args:
        config: Configuration dictionary with an optional "logging" section
        force_reconfigure: When True, reconfigure even if already initialized
    """
    config_signature = json.dumps(config, sort_keys=True, default=str)

    if _logging_state.initialized and not force_reconfigure:
        get_logger("stowage.structured_logging.setup").debug(
            "setup_logging skipped; logging system already initialized",
            config_signature=_logging_state.signature,
        )
        return

    logging_config = config.get("logging", {})
    environment = logging_config.get("environment", "development")
    log_level = logging_config.get("level", "INFO")

    if logging_config.get("disable_logging", False):
        structlog.configure(
            processors=[structlog.stdlib.filter_by_level, structlog.processors.KeyValueRenderer()],
            logger_factory=LoggerFactory(),
            wrapper_class=BoundLogger,
        )
        logging.getLogger().setLevel(logging.CRITICAL + 1)
    else:
        configure_structlog(environment, log_level, json_output=logging_config.get("json_output", False))
        get_logger("stowage.structured_logging.setup").info(
            "Logging system initialized",
            environment=environment,
            log_level=log_level,
        )

    _logging_state.initialized = True
    _logging_state.signature = config_signature


def reset_logging_state() -> None:
    """Forget that logging was initialized. Intended for tests."""
    _logging_state.initialized = False
    _logging_state.signature = None


def get_logger(name: str) -> Any:  # Returns BoundLogger but typed as Any for flexibility
    """
    Get a structlog logger with the specified name.

    This is the public API for obtaining loggers. All application code
    should use this function rather than calling structlog.get_logger()
    directly.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)
