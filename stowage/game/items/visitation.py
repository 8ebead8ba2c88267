"""Depth-first traversal of nested contents, and deferred edits.

Walks never mutate what they iterate. A visitor that wants items removed or
converted records them in an ``EditPlan``; the plan is applied once the walk
is over.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from stowage.game.items.results import MigrationRecord
from stowage.structured_logging.enhanced_logging_config import get_logger

if TYPE_CHECKING:
    from stowage.game.items.container_tree import ContainerTree
    from stowage.game.items.item_instance import Item
    from stowage.game.items.models import ItemType
    from stowage.game.items.pocket import Pocket

logger = get_logger(__name__)


class VisitResponse(Enum):
    """What a visitor wants to happen after seeing one item."""

    NEXT = "next"  # descend into the item's contents, then continue
    SKIP = "skip"  # continue with the next sibling, ignoring the contents
    ABORT = "abort"  # stop the whole walk


@dataclass(frozen=True)
class ContentLocation:
    """Where an item sits: the pocket holding it and the item owning that pocket."""

    pocket: Pocket
    item: Item
    # owner of ``pocket``; None for the pockets of the tree the walk started at
    parent: Item | None
    depth: int


Visitor = Callable[[ContentLocation], VisitResponse]


def walk(tree: ContainerTree, parent: Item | None = None, depth: int = 0) -> Iterator[ContentLocation]:
    """Yield every contained item in pre-order: pocket order, then content order."""
    for pocket in tree.pockets():
        for item in pocket.items():
            yield ContentLocation(pocket, item, parent, depth)
            child = item.child_tree()
            if child is not None:
                yield from walk(child, item, depth + 1)


def visit_contents(
    tree: ContainerTree, visitor: Visitor, parent: Item | None = None, depth: int = 0
) -> VisitResponse:
    """
    Call ``visitor`` on every item in pre-order, honouring its responses.

    Each pocket is iterated over a snapshot, so a visitor that mutates the
    tree cannot make the walk skip or revisit siblings.

    Returns:
        ABORT if the visitor aborted, NEXT otherwise.
    """
    for pocket in tree.pockets():
        for item in pocket.items():
            response = visitor(ContentLocation(pocket, item, parent, depth))
            if response is VisitResponse.ABORT:
                return VisitResponse.ABORT
            if response is VisitResponse.SKIP:
                continue
            child = item.child_tree()
            if child is not None and visit_contents(child, visitor, item, depth + 1) is VisitResponse.ABORT:
                return VisitResponse.ABORT
    return VisitResponse.NEXT


@dataclass
class AppliedEdits:
    removed: list[ContentLocation] = field(default_factory=list)
    migrated: list[MigrationRecord] = field(default_factory=list)


@dataclass
class EditPlan:
    """Removals and type substitutions collected during a walk."""

    removals: list[ContentLocation] = field(default_factory=list)
    substitutions: list[tuple[ContentLocation, ItemType]] = field(default_factory=list)

    def remove(self, location: ContentLocation) -> None:
        self.removals.append(location)

    def substitute(self, location: ContentLocation, new_type: ItemType) -> None:
        self.substitutions.append((location, new_type))

    def __bool__(self) -> bool:
        return bool(self.removals or self.substitutions)

    def apply(self) -> AppliedEdits:
        """Perform substitutions, then removals, in the order they were recorded."""
        applied = AppliedEdits()
        for location, new_type in self.substitutions:
            old_type_id = location.item.item_type.type_id
            displaced = location.item.convert(new_type)
            if displaced:
                logger.warning(
                    "Contents displaced by item conversion",
                    item=location.item,
                    old_type_id=old_type_id,
                    displaced=displaced,
                )
            applied.migrated.append(
                MigrationRecord(location.item, old_type_id, new_type.type_id, tuple(displaced))
            )

        for location in self.removals:
            if location.pocket.remove_item(location.item) is not None:
                applied.removed.append(location)
        return applied
