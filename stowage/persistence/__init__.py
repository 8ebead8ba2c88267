"""
Persistence package for stowage.

Turns container trees into plain documents and back.
"""

from .container_persistence import (
    ContainerTreeLoader,
    LoadFailure,
    LoadResult,
    serialize_item,
    serialize_pocket,
    serialize_tree,
)

__all__ = [
    "ContainerTreeLoader",
    "LoadFailure",
    "LoadResult",
    "serialize_item",
    "serialize_pocket",
    "serialize_tree",
]
