"""The ordered set of pockets belonging to one item.

``ContainerTree`` is the orchestration layer: it picks which pocket receives
an insertion, sums aggregates over its pockets, and offers the traversal
family used by inventory, crafting and simulation code. Insertion queries go
top-down through the pockets; aggregates come bottom-up from the items.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, Any

from stowage.game.items.constants import AcceptCode, PocketKind
from stowage.game.items.models import ItemType, PocketTemplate
from stowage.game.items.pocket import ItemFilter, Pocket
from stowage.game.items.results import ContainResult, MigrationRecord, SpilledItem
from stowage.game.items.visitation import (
    ContentLocation,
    EditPlan,
    Visitor,
    VisitResponse,
    visit_contents,
    walk,
)
from stowage.structured_logging.enhanced_logging_config import get_logger

if TYPE_CHECKING:
    from stowage.game.items.item_instance import AmbientConditions, Item

logger = get_logger(__name__)


def _size_growth(pocket: Pocket, volume: int) -> int:
    """How much the pocket's owner grows if ``volume`` more is put in the pocket."""
    if pocket.template.rigid or not pocket.rules.adds_volume:
        return 0
    contained = pocket.contains_volume()
    well = pocket.template.magazine_well
    return max(0, contained + volume - well) - max(0, contained - well)


def _weight_growth(pocket: Pocket, weight: int) -> int:
    """How much the pocket's owner gets heavier if ``weight`` more is put in the pocket."""
    if not pocket.rules.adds_weight:
        return 0
    contained = pocket.contains_weight()
    multiplier = pocket.template.weight_multiplier
    return round((contained + weight) * multiplier) - round(contained * multiplier)


class ContainerTree:  # pylint: disable=too-many-public-methods  # Reason: this is the whole query surface consumed by callers
    """All pockets of one item instance, in template order."""

    def __init__(self, templates: Iterable[PocketTemplate] = ()):
        self._pockets: list[Pocket] = [Pocket(template) for template in templates]

    @classmethod
    def from_pockets(cls, pockets: Iterable[Pocket]) -> ContainerTree:
        """Wrap already-built pockets, e.g. when restoring persisted state."""
        tree = cls()
        tree._pockets = list(pockets)
        return tree

    def __repr__(self) -> str:
        return f"ContainerTree({self._pockets!r})"

    # --- pockets -----------------------------------------------------------

    def pockets(self) -> list[Pocket]:
        return list(self._pockets)

    def pockets_of(self, kind: PocketKind) -> list[Pocket]:
        return [pocket for pocket in self._pockets if pocket.kind is kind]

    def pocket_of_kind(self, kind: PocketKind) -> Pocket | None:
        return next((pocket for pocket in self._pockets if pocket.kind is kind), None)

    def has_pocket_type(self, kind: PocketKind) -> bool:
        return self.pocket_of_kind(kind) is not None

    def empty(self) -> bool:
        return all(pocket.empty() for pocket in self._pockets)

    def full(self) -> bool:
        containers = self.pockets_of(PocketKind.CONTAINER)
        return bool(containers) and all(pocket.full() for pocket in containers)

    def size(self) -> int:
        """Number of top-level entries across every pocket."""
        return sum(pocket.size() for pocket in self._pockets)

    def clear_items(self) -> list[Item]:
        removed: list[Item] = []
        for pocket in self._pockets:
            removed.extend(pocket.clear_items())
        return removed

    # --- insertion ---------------------------------------------------------

    def _candidates(self, item: Item, nested: bool, ancestors: tuple[Pocket, ...] = ()) -> Iterator[Pocket]:
        """Container pockets able to take ``item``, in pre-order.

        ``ancestors`` are the pockets holding the owner of this tree,
        innermost first.
        """
        for pocket in self._pockets:
            if pocket.kind is not PocketKind.CONTAINER:
                continue
            if pocket.can_contain(item) and self._growth_fits(pocket, item, ancestors):
                yield pocket
            if not nested:
                continue
            for holder in pocket.items():
                child = holder.child_tree()
                if child is None or holder is item:
                    continue
                yield from child._candidates(item, nested, (pocket, *ancestors))

    @staticmethod
    def _growth_fits(pocket: Pocket, item: Item, ancestors: tuple[Pocket, ...]) -> bool:
        """Whether every ancestor still has room once ``item`` is in ``pocket``."""
        volume_growth = _size_growth(pocket, item.volume())
        weight_growth = _weight_growth(pocket, item.weight())
        for ancestor in ancestors:
            if volume_growth > ancestor.remaining_volume() or weight_growth > ancestor.remaining_weight():
                return False
            volume_growth = _size_growth(ancestor, volume_growth)
            weight_growth = _weight_growth(ancestor, weight_growth)
        return True

    def best_pocket(self, item: Item, nested: bool = False) -> Pocket | None:
        """
        The best container pocket for ``item``, or None if no pocket accepts it.

        With ``nested`` set, container pockets of contained items are
        considered too, as long as the holder's growth still fits every
        ancestor. The earliest candidate wins ties.
        """
        best: Pocket | None = None
        for pocket in self._candidates(item, nested):
            if best is None or pocket.better_pocket(best, item):
                best = pocket
        return best

    def _container_rejection(self, item: Item) -> ContainResult:
        containers = self.pockets_of(PocketKind.CONTAINER)
        if not containers:
            return ContainResult.reject(AcceptCode.REJECTED_WRONG_KIND, "item has no container pockets")
        return containers[0].can_contain(item)

    def can_contain(self, item: Item) -> ContainResult:
        pocket = self.best_pocket(item)
        if pocket is None:
            return self._container_rejection(item)
        return ContainResult.ok(pocket)

    def can_contain_liquid(self) -> bool:
        return any(pocket.template.watertight for pocket in self.pockets_of(PocketKind.CONTAINER))

    def insert_item(self, item: Item, kind: PocketKind = PocketKind.CONTAINER, *, nested: bool = False) -> ContainResult:
        """
        Insert ``item`` into the best container pocket, or the single pocket of a singular kind.

        Returns the rejection of the first container pocket when none accepts
        the item, and REJECTED_WRONG_KIND when no pocket of ``kind`` exists.
        """
        if kind is PocketKind.CONTAINER:
            pocket = self.best_pocket(item, nested)
            if pocket is None:
                result = self._container_rejection(item)
                logger.debug("No pocket accepted item", item=item, code=result.code.value)
                return result
            return pocket.insert_item(item)

        pocket = self.pocket_of_kind(kind)
        if pocket is None:
            return ContainResult.reject(AcceptCode.REJECTED_WRONG_KIND, f"item has no {kind.value} pocket")
        return pocket.insert_item(item)

    def insert_cost(self, item: Item) -> int | None:
        pocket = self.best_pocket(item)
        return None if pocket is None else pocket.moves()

    def fill_with(self, prototype: Item, limit: int | None = None) -> int:
        """
        Insert as much of ``prototype`` as fits.

        Charge-counted prototypes are inserted one charge at a time and lose
        the charges that went in. Other prototypes are copied.

        Returns:
            Number of charges or copies inserted.
        """
        inserted = 0
        if prototype.count_by_charges():
            while prototype.charges > 0 and (limit is None or inserted < limit):
                charge = prototype.split_charges(1)
                pocket = self.best_pocket(charge)
                if pocket is None:
                    prototype.charges += 1
                    break
                pocket.insert_item(charge)
                inserted += 1
        else:
            if limit is None and prototype.volume() == 0 and prototype.weight() == 0:
                limit = 1
            while limit is None or inserted < limit:
                if not self.insert_item(prototype.duplicate()):
                    break
                inserted += 1

        if inserted:
            logger.info("Filled container", item=prototype, inserted=inserted)
        return inserted

    # --- aggregates --------------------------------------------------------

    def item_size_modifier(self) -> int:
        return sum(pocket.item_size_modifier() for pocket in self._pockets)

    def item_weight_modifier(self) -> int:
        return sum(pocket.item_weight_modifier() for pocket in self._pockets)

    def total_container_capacity(self) -> int:
        return sum(pocket.volume_capacity() for pocket in self.pockets_of(PocketKind.CONTAINER))

    def remaining_container_capacity(self) -> int:
        return sum(pocket.remaining_volume() for pocket in self.pockets_of(PocketKind.CONTAINER))

    def total_contained_volume(self) -> int:
        return sum(pocket.contains_volume() for pocket in self.pockets_of(PocketKind.CONTAINER))

    def total_contained_weight(self) -> int:
        return sum(pocket.contains_weight() for pocket in self.pockets_of(PocketKind.CONTAINER))

    def num_item_stacks(self) -> int:
        return sum(pocket.num_item_stacks() for pocket in self.pockets_of(PocketKind.CONTAINER))

    def remaining_capacity_for_liquid(self, liquid: Item) -> int:
        """Charges of ``liquid`` the watertight container pockets could still take."""
        total = sum(
            pocket.charges_that_fit(liquid)
            for pocket in self.pockets_of(PocketKind.CONTAINER)
            if pocket.template.watertight
        )
        return min(total, sys.maxsize)

    def obtain_cost(self, item: Item) -> int:
        return sum(pocket.obtain_cost(item) for pocket in self._pockets)

    # --- traversal ---------------------------------------------------------

    def all_items_top(self, kind: PocketKind | None = None) -> list[Item]:
        """Direct contents of every pocket of ``kind`` (container pockets by default)."""
        kind = kind or PocketKind.CONTAINER
        return [item for pocket in self.pockets_of(kind) for item in pocket.items()]

    def all_items(self, kind: PocketKind | None = None) -> list[Item]:
        """Every contained item in pre-order; ``kind`` filters the top-level pockets only."""
        found: list[Item] = []
        for pocket in self._pockets:
            if kind is not None and pocket.kind is not kind:
                continue
            for item in pocket.items():
                found.append(item)
                child = item.child_tree()
                if child is not None:
                    found.extend(child.all_items())
        return found

    def gunmods(self) -> list[Item]:
        return self.all_items_top(PocketKind.MOD_SLOT)

    def magazine_current(self) -> Item | None:
        """First top-level item that is itself a magazine."""
        for pocket in self._pockets:
            for item in pocket.items():
                if item.is_magazine():
                    return item
        return None

    def first_ammo(self) -> Item | None:
        """First round in the magazine pocket, or in the current magazine."""
        magazine = self.pocket_of_kind(PocketKind.MAGAZINE)
        if magazine is not None and not magazine.empty():
            return magazine.front()
        current = self.magazine_current()
        if current is not None and current.contents is not None:
            return current.contents.first_ammo()
        return None

    def get_item_with(self, predicate: ItemFilter) -> Item | None:
        for pocket in self._pockets:
            found = pocket.get_item_with(predicate)
            if found is not None:
                return found
        return None

    def has_any_with(self, predicate: ItemFilter, kind: PocketKind | None = None) -> bool:
        for pocket in self._pockets:
            if kind is not None and pocket.kind is not kind:
                continue
            if pocket.has_any_with(predicate):
                return True
        return False

    def has_item(self, item: Item) -> bool:
        return any(pocket.has_item(item) for pocket in self._pockets)

    def walk(self, parent: Item | None = None) -> Iterator[ContentLocation]:
        return walk(self, parent)

    def visit_contents(self, visitor: Visitor, parent: Item | None = None) -> VisitResponse:
        return visit_contents(self, visitor, parent)

    # --- batch edits -------------------------------------------------------

    def remove_items_if(
        self, predicate: ItemFilter, parent: Item | None = None, depth: int = 0
    ) -> list[ContentLocation]:
        removed: list[ContentLocation] = []
        for pocket in self._pockets:
            removed.extend(pocket.remove_items_if(predicate, parent, depth))
        return removed

    def remove_internal(self, predicate: ItemFilter, count: int | None = None) -> list[ContentLocation]:
        """
        Remove matching items anywhere in the subtree, at most ``count`` entries.

        Contents of a matching item are not searched; the item leaves with them.
        """
        plan = EditPlan()

        def collect(location: ContentLocation) -> VisitResponse:
            if count is not None and len(plan.removals) >= count:
                return VisitResponse.ABORT
            if predicate(location.item):
                plan.remove(location)
                return VisitResponse.SKIP
            return VisitResponse.NEXT

        self.visit_contents(collect)
        removed = plan.apply().removed
        if removed:
            logger.info("Removed items from container", removed=[location.item for location in removed])
        return removed

    def migrate_item(self, migrations: Mapping[str, ItemType]) -> list[MigrationRecord]:
        """Convert every item whose type id has a replacement in ``migrations``."""
        plan = EditPlan()
        for location in self.walk():
            replacement = migrations.get(location.item.item_type.type_id)
            if replacement is not None:
                plan.substitute(location, replacement)
        return plan.apply().migrated

    def restack(self) -> int:
        return sum(pocket.restack() for pocket in self._pockets)

    def stacks_with(self, other: ContainerTree) -> bool:
        if len(self._pockets) != len(other._pockets):
            return False
        return all(mine.stacks_with(theirs) for mine, theirs in zip(self._pockets, other._pockets))

    def same_contents(self, other: ContainerTree) -> bool:
        if len(self._pockets) != len(other._pockets):
            return False
        return all(mine.same_contents(theirs) for mine, theirs in zip(self._pockets, other._pockets))

    # --- forced removal and simulation -------------------------------------

    def overflow(self, position: Any) -> list[SpilledItem]:
        spilled: list[SpilledItem] = []
        for pocket in self._pockets:
            spilled.extend(pocket.overflow(position))
        return spilled

    def spill_contents(self, position: Any) -> list[SpilledItem]:
        spilled: list[SpilledItem] = []
        for pocket in self._pockets:
            spilled.extend(pocket.spill_contents(position))
        return spilled

    def spill_open_pockets(self, position: Any) -> list[SpilledItem]:
        """Spill every open-container pocket that holds anything."""
        spilled: list[SpilledItem] = []
        for pocket in self._pockets:
            if pocket.will_spill():
                spilled.extend(pocket.spill_contents(position))
        return spilled

    def remove_rotten(self, position: Any) -> list[ContentLocation]:
        removed: list[ContentLocation] = []
        for pocket in self._pockets:
            removed.extend(pocket.remove_rotten(position))
        return removed

    def heat_up(self, temperature: float | None = None) -> None:
        for pocket in self._pockets:
            pocket.heat_up(temperature)

    def will_explode_in_a_fire(self) -> bool:
        return any(pocket.will_explode_in_a_fire() for pocket in self._pockets)

    def process(
        self,
        ambient: AmbientConditions,
        spoil_multiplier: float = 1.0,
        parent: Item | None = None,
        depth: int = 0,
    ) -> list[ContentLocation]:
        """Process every pocket in order; returns where each destroyed item was."""
        destroyed: list[ContentLocation] = []
        for pocket in self._pockets:
            destroyed.extend(pocket.process(ambient, spoil_multiplier, parent, depth))
        return destroyed
