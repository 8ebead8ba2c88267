"""Transitional adapters for code that still thinks of contents as one flat list.

Older saves stored an item's contents as a single list with no pockets, and
some callers still ask for "the first" or "the last" contained item without
caring which pocket it is in. These helpers bridge that gap at the API
boundary only; nothing in the pocket model depends on them.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from stowage.exceptions import DataIntegrityError, create_error_context
from stowage.game.items.constants import PocketKind
from stowage.game.items.container_tree import ContainerTree
from stowage.game.items.models import PocketTemplate
from stowage.game.items.pocket import Pocket
from stowage.structured_logging.enhanced_logging_config import get_logger

if TYPE_CHECKING:
    from stowage.game.items.item_instance import Item

logger = get_logger(__name__)


def _placement_order(tree: ContainerTree, item: Item) -> list[Pocket]:
    """Pockets to try for ``item``: the kind it naturally belongs in first, then template order."""
    preferred = None
    if item.is_mod():
        preferred = PocketKind.MOD_SLOT
    elif item.ammo_type() is not None:
        preferred = PocketKind.MAGAZINE
    pockets = tree.pockets()
    if preferred is None:
        return pockets
    return [pocket for pocket in pockets if pocket.kind is preferred] + [
        pocket for pocket in pockets if pocket.kind is not preferred
    ]


def consolidate_items(tree: ContainerTree, items: Iterable[Item]) -> list[Item]:
    """
    Put each item into the first pocket that accepts it.

    Returns:
        The items no pocket would take, in their original order.
    """
    leftovers: list[Item] = []
    for item in items:
        for pocket in _placement_order(tree, item):
            if pocket.insert_item(item):
                break
        else:
            leftovers.append(item)
    return leftovers


def from_legacy_items(templates: Iterable[PocketTemplate], items: Iterable[Item]) -> ContainerTree:
    """
    Build a tree from a flat legacy content list.

    Items that no pocket accepts are forced into the first container pocket
    so nothing is lost; the pocket is then over capacity until overflowed.

    Raises:
        DataIntegrityError: If items are left over and there is no container pocket.
    """
    tree = ContainerTree(templates)
    leftovers = consolidate_items(tree, items)
    if not leftovers:
        return tree

    target = tree.pocket_of_kind(PocketKind.CONTAINER)
    if target is None:
        raise DataIntegrityError(
            f"{len(leftovers)} legacy item(s) have no container pocket to go into",
            create_error_context(
                operation="from_legacy_items",
                item_type_id=leftovers[0].item_type.type_id,
                item_instance_id=leftovers[0].item_instance_id,
            ),
        )
    for item in leftovers:
        target.add(item)
    logger.warning("Legacy items forced into container pocket", forced=leftovers)
    return tree


def legacy_front(tree: ContainerTree) -> Item | None:
    """First contained item regardless of pocket."""
    for pocket in tree.pockets():
        if not pocket.empty():
            return pocket.front()
    return None


def legacy_back(tree: ContainerTree) -> Item | None:
    """Last contained item regardless of pocket."""
    for pocket in reversed(tree.pockets()):
        if not pocket.empty():
            return pocket.back()
    return None
