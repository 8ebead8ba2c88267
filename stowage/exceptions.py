"""
Exception hierarchy for the stowage storage core.

Only static configuration problems and persisted-state inconsistencies are
raised. Acceptance checks never raise: a rejected insertion is reported as a
classified result (see ``stowage.game.items.constants.AcceptCode``).
"""

import traceback
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """
    Contextual information for error handling.

    Identifies which item type, item instance or persisted record an error
    belongs to, so that a failure can be reported against that one item.
    """

    item_type_id: str | None = None
    item_instance_id: str | None = None
    pocket_index: int | None = None
    operation: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "item_type_id": self.item_type_id,
            "item_instance_id": self.item_instance_id,
            "pocket_index": self.pocket_index,
            "operation": self.operation,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class StowageError(Exception):
    """
    Base exception for all stowage errors.

    Provides structured error handling with context and metadata
    for proper error categorization and debugging.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        """
        Initialize stowage error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
            user_friendly: User-friendly error message
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.user_friendly = user_friendly or message
        self.timestamp = datetime.now()

        self._log_error()

    def _log_error(self):
        """Log the error with structured context."""
        log_data = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context.to_dict(),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }
        logger.error("Stowage error occurred", **log_data)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for reporting."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "user_friendly": self.user_friendly,
            "context": self.context.to_dict(),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class ConfigError(StowageError):
    """Malformed static pocket template or item type definition."""

    def __init__(self, message: str, context: ErrorContext | None = None, config_key: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.config_key = config_key
        if config_key:
            self.details["config_key"] = config_key


class DataIntegrityError(StowageError):
    """Persisted state that does not agree with the loaded item type definitions."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        record_path: str | None = None,
        type_id: str | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.record_path = record_path
        self.type_id = type_id
        if record_path:
            self.details["record_path"] = record_path
        if type_id:
            self.details["type_id"] = type_id


def create_error_context(**kwargs) -> ErrorContext:
    """
    Create an error context with the given parameters.

    Args:
        **kwargs: Context parameters

    Returns:
        ErrorContext object
    """
    return ErrorContext(**kwargs)


def handle_exception(exc: Exception, context: ErrorContext | None = None) -> StowageError:
    """
    Convert a generic exception raised while loading data to a stowage error.

    Args:
        exc: The original exception
        context: Error context

    Returns:
        StowageError instance
    """
    if isinstance(exc, StowageError):
        return exc

    if isinstance(exc, KeyError | TypeError | ValueError):
        return DataIntegrityError(str(exc), context, details={"original_type": type(exc).__name__})
    return StowageError(
        str(exc), context, details={"original_type": type(exc).__name__, "traceback": traceback.format_exc()}
    )
