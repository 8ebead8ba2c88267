"""
Structured logging package for stowage.

All imports should use explicit paths like
'from stowage.structured_logging.enhanced_logging_config import get_logger'.

The directory is named 'structured_logging' rather than 'logging' so it never
shadows the standard library module.
"""

__all__ = []
