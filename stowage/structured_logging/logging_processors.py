"""
Logging processors for structlog event processing.
"""

from typing import Any


def summarize_items(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Replace item objects in a log entry with a compact identifier.

    Items own whole subtrees, so rendering one with repr() would dump its
    entire contents into the log line.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to rewrite

    Returns:
        Event dictionary with items summarized
    """
    for key, value in list(event_dict.items()):
        if _is_item(value):
            event_dict[key] = _summary(value)
        elif isinstance(value, list | tuple) and value and all(_is_item(entry) for entry in value):
            event_dict[key] = [_summary(entry) for entry in value]
    return event_dict


def _is_item(value: Any) -> bool:
    return hasattr(value, "item_instance_id") and hasattr(value, "item_type")


def _summary(item: Any) -> str:
    return f"{item.item_type.type_id}#{item.item_instance_id[:8]}"
