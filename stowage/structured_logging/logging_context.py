"""
Context management utilities for structured logging.

A load or process pass binds an operation context once, and every log entry
emitted underneath it carries the same operation id.
"""

import uuid
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars


def bind_operation_context(
    operation: str,
    operation_id: str | None = None,
    item_instance_id: str | None = None,
    **kwargs,
) -> str:
    """
    Bind operation context to the current logging context.

    Args:
        operation: Name of the operation (for example "load_tree")
        operation_id: Unique id for this run of the operation
        item_instance_id: Top-level item the operation works on, if known
        **kwargs: Additional context variables

    Returns:
        The operation id that was bound
    """
    if operation_id is None:
        operation_id = str(uuid.uuid4())

    context_vars = {
        "operation": operation,
        "operation_id": operation_id,
        "item_instance_id": item_instance_id,
        **kwargs,
    }
    context_vars = {k: v for k, v in context_vars.items() if v is not None}

    bind_contextvars(**context_vars)
    return operation_id


def clear_operation_context() -> None:
    """Clear the current operation context from logging."""
    clear_contextvars()


def get_current_context() -> dict[str, Any]:
    """Get the current logging context."""
    try:
        return structlog.contextvars.get_contextvars()
    except (AttributeError, KeyError):
        return {}
