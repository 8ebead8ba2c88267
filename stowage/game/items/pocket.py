"""A single storage compartment inside an item.

A ``Pocket`` references an immutable ``PocketTemplate`` and owns an ordered
sequence of items. The last item in the sequence is the most recently
inserted one. Aggregates (contained volume, weight, stack count) are computed
on demand from the contents, so they can never drift out of date.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from stowage.config import get_config
from stowage.game.items.constants import KIND_RULES, AcceptCode, KindRules, Phase, PocketKind
from stowage.game.items.models import PocketTemplate
from stowage.game.items.results import ContainResult, SpilledItem
from stowage.game.items.visitation import ContentLocation
from stowage.structured_logging.enhanced_logging_config import get_logger

if TYPE_CHECKING:
    from stowage.game.items.item_instance import AmbientConditions, Item

logger = get_logger(__name__)

ItemFilter = Callable[["Item"], bool]


class Pocket:  # pylint: disable=too-many-public-methods  # Reason: Pocket is the unit every container query is answered by
    """Runtime storage compartment governed by one template."""

    def __init__(
        self,
        template: PocketTemplate,
        *,
        saved_kind: PocketKind | None = None,
        sealed: bool = False,
        disturbed: bool = False,
    ):
        self.template = template
        # kind recorded in persisted state; compared with the template on load
        self.saved_kind = saved_kind or template.kind
        self._contents: list[Item] = []
        self._sealed = sealed
        # a non-resealable pocket that has been opened or changed can never be sealed again
        self._disturbed = disturbed
        self._capacity_adjustment = 0

    def __repr__(self) -> str:
        return f"Pocket({self.kind.value}, items={len(self._contents)}, sealed={self._sealed})"

    @property
    def kind(self) -> PocketKind:
        return self.template.kind

    @property
    def rules(self) -> KindRules:
        return KIND_RULES[self.template.kind]

    # --- contents ----------------------------------------------------------

    def items(self) -> list[Item]:
        """Snapshot of the contents, oldest first."""
        return list(self._contents)

    def size(self) -> int:
        return len(self._contents)

    def empty(self) -> bool:
        return not self._contents

    def full(self) -> bool:
        if self.remaining_volume() == 0 or self.remaining_weight() == 0:
            return True
        override = self.template.item_count_override
        return override is not None and self._counted_items(override.item_stacks) >= override.num_items

    def front(self) -> Item | None:
        return self._contents[0] if self._contents else None

    def back(self) -> Item | None:
        return self._contents[-1] if self._contents else None

    def pop_back(self) -> Item:
        """Remove and return the most recently inserted item.

        Raises:
            IndexError: If the pocket is empty.
        """
        item = self._contents.pop()
        self.on_contents_changed()
        logger.info("Item removed from pocket", pocket_kind=self.kind.value, item=item)
        return item

    def add(self, item: Item) -> None:
        """Append without any acceptance check or seal bookkeeping.

        Used when rebuilding persisted state and by legacy consolidation.
        """
        self._contents.append(item)

    def remove_item(self, item: Item) -> Item | None:
        for index, entry in enumerate(self._contents):
            if entry is item:
                del self._contents[index]
                self.on_contents_changed()
                logger.info("Item removed from pocket", pocket_kind=self.kind.value, item=item)
                return item
        return None

    def clear_items(self) -> list[Item]:
        removed, self._contents = self._contents, []
        if removed:
            self.on_contents_changed()
            logger.info("Pocket cleared", pocket_kind=self.kind.value, removed=removed)
        return removed

    def has_item(self, item: Item) -> bool:
        """Whether ``item`` is anywhere inside this pocket, nested containers included."""
        for entry in self._contents:
            if entry is item:
                return True
            tree = entry.child_tree()
            if tree is not None and tree.has_item(item):
                return True
        return False

    def get_item_with(self, predicate: ItemFilter) -> Item | None:
        for entry in self._contents:
            if predicate(entry):
                return entry
            tree = entry.child_tree()
            if tree is not None:
                found = tree.get_item_with(predicate)
                if found is not None:
                    return found
        return None

    def has_any_with(self, predicate: ItemFilter) -> bool:
        return self.get_item_with(predicate) is not None

    def remove_items_if(
        self, predicate: ItemFilter, parent: Item | None = None, depth: int = 0
    ) -> list[ContentLocation]:
        """
        Remove every matching item, searching inside non-matching containers too.

        A matching container is removed whole; its contents are not searched.
        ``parent`` and ``depth`` describe this pocket in the reported locations.

        Returns:
            Where each removed item was, in pre-order.
        """
        removed: list[ContentLocation] = []
        survivors: list[Item] = []
        for entry in self._contents:
            if predicate(entry):
                removed.append(ContentLocation(self, entry, parent, depth))
                continue
            survivors.append(entry)
            tree = entry.child_tree()
            if tree is not None:
                removed.extend(tree.remove_items_if(predicate, entry, depth + 1))

        if len(survivors) != len(self._contents):
            self._contents = survivors
            self.on_contents_changed()
        if removed:
            logger.info(
                "Items removed from pocket",
                pocket_kind=self.kind.value,
                removed=[location.item for location in removed],
            )
        return removed

    # --- aggregates --------------------------------------------------------

    def contains_volume(self) -> int:
        return sum(item.volume() for item in self._contents)

    def contains_weight(self) -> int:
        return sum(item.weight() for item in self._contents)

    @property
    def capacity_adjustment(self) -> int:
        return self._capacity_adjustment

    def set_capacity_adjustment(self, delta: int) -> None:
        """Shrink (negative) or stretch (positive) the volume capacity at runtime.

        Contents are not touched; call ``overflow`` to resolve any excess.
        """
        self._capacity_adjustment = delta

    def volume_capacity(self) -> int:
        return max(0, self.template.max_volume + self._capacity_adjustment)

    def weight_capacity(self) -> int:
        return self.template.max_weight

    def remaining_volume(self) -> int:
        return max(0, self.volume_capacity() - self.contains_volume())

    def remaining_weight(self) -> int:
        return max(0, self.weight_capacity() - self.contains_weight())

    def _volume_overage(self) -> int:
        return self.contains_volume() - self.volume_capacity()

    def _weight_overage(self) -> int:
        return self.contains_weight() - self.weight_capacity()

    def item_size_modifier(self) -> int:
        """Volume this pocket adds to the owning item's external size."""
        if self.template.rigid or not self.rules.adds_volume:
            return 0
        return max(0, self.contains_volume() - self.template.magazine_well)

    def item_weight_modifier(self) -> int:
        """Weight this pocket adds to the owning item."""
        if not self.rules.adds_weight:
            return 0
        return round(self.contains_weight() * self.template.weight_multiplier)

    def num_item_stacks(self) -> int:
        """Number of merge groups; mutually stackable entries count once."""
        representatives: list[Item] = []
        for entry in self._contents:
            if not any(entry.is_stackable_with(rep) for rep in representatives):
                representatives.append(entry)
        return len(representatives)

    def _counted_items(self, by_stacks: bool) -> int:
        if by_stacks:
            return self.num_item_stacks()
        return sum(item.count() for item in self._contents)

    def moves(self) -> int:
        return self.template.base_move_cost

    def obtain_cost(self, item: Item) -> int:
        """Move cost to take ``item`` out, through every pocket on the way; 0 if absent."""
        for entry in self._contents:
            if entry is item:
                return self.moves()
            tree = entry.child_tree()
            if tree is not None:
                nested = tree.obtain_cost(item)
                if nested:
                    return self.moves() + nested
        return 0

    # --- acceptance --------------------------------------------------------

    def can_contain(self, item: Item) -> ContainResult:
        """
        Decide whether ``item`` could be inserted right now.

        Checks run in a fixed order and the first failure is returned:
        kind, phase, size, weight, flag restriction, ammo restriction.
        Never raises.
        """
        for check in (
            self._check_kind,
            self._check_phase,
            self._check_size,
            self._check_weight,
            self._check_restrictions,
        ):
            rejection = check(item)
            if rejection is not None:
                return rejection
        return ContainResult.ok(self)

    def _static_rejection(self, item: Item) -> ContainResult | None:
        """Rules that do not depend on the other contents or on capacity."""
        for check in (self._check_kind, self._check_phase, self._check_min_volume, self._check_restrictions):
            rejection = check(item)
            if rejection is not None:
                return rejection
        return None

    def _check_kind(self, item: Item) -> ContainResult | None:
        if self.rules.mods_only and not item.is_mod():
            return ContainResult.reject(AcceptCode.REJECTED_WRONG_KIND, "only mods can go into mod pockets")
        return None

    def _check_phase(self, item: Item) -> ContainResult | None:
        if item.made_of(Phase.LIQUID) and not self.template.watertight:
            return ContainResult.reject(
                AcceptCode.REJECTED_LIQUID_NEEDS_WATERTIGHT, "can't contain liquid in a pocket that isn't watertight"
            )
        if item.made_of(Phase.GAS) and not self.template.gastight:
            return ContainResult.reject(
                AcceptCode.REJECTED_GAS_NEEDS_GASTIGHT, "can't contain gas in a pocket that isn't gastight"
            )
        return None

    def _check_min_volume(self, item: Item) -> ContainResult | None:
        if item.volume() < self.template.min_item_volume:
            return ContainResult.reject(AcceptCode.REJECTED_BELOW_MIN_VOLUME, "item is too small for this pocket")
        return None

    def _check_size(self, item: Item) -> ContainResult | None:
        rejection = self._check_min_volume(item)
        if rejection is not None:
            return rejection

        volume = item.volume()
        if volume > self.volume_capacity():
            return ContainResult.reject(AcceptCode.REJECTED_TOO_BIG, "item is too big for this pocket")
        if volume > self.remaining_volume():
            return ContainResult.reject(AcceptCode.REJECTED_NO_SPACE_LEFT, "pocket holds too much already")

        override = self.template.item_count_override
        if override is not None:
            if override.item_stacks:
                merges = item.count_by_charges() and self.has_item_stacks_with(item)
                incoming = 0 if merges else 1
            else:
                incoming = item.count()
            if self._counted_items(override.item_stacks) + incoming > override.num_items:
                return ContainResult.reject(AcceptCode.REJECTED_NO_SPACE_LEFT, "pocket holds too many items")
        return None

    def _check_weight(self, item: Item) -> ContainResult | None:
        weight = item.weight()
        if weight > self.weight_capacity():
            return ContainResult.reject(AcceptCode.REJECTED_TOO_HEAVY, "item is too heavy for this pocket")
        if weight > self.remaining_weight():
            return ContainResult.reject(AcceptCode.REJECTED_OVER_WEIGHT, "pocket is holding too much weight")
        return None

    def _check_restrictions(self, item: Item) -> ContainResult | None:
        flags = self.template.flag_restriction
        if flags and not item.has_any_flag(flags):
            return ContainResult.reject(AcceptCode.REJECTED_MISSING_FLAG, "item does not have the correct flag")
        ammo = self.template.ammo_restriction
        if ammo and item.ammo_type() not in ammo:
            return ContainResult.reject(AcceptCode.REJECTED_WRONG_AMMO_TYPE, "item is not the correct ammo type")
        return None

    def insert_item(self, item: Item) -> ContainResult:
        """
        Insert ``item`` if ``can_contain`` allows it; otherwise change nothing.

        Items counted by charges merge into the first stackable entry, which
        leaves the passed item with zero charges. Anything else is appended.
        """
        result = self.can_contain(item)
        if not result:
            logger.debug(
                "Pocket rejected item", pocket_kind=self.kind.value, item=item, code=result.code.value
            )
            return result

        if item.count_by_charges():
            for entry in self._contents:
                if entry.count_by_charges() and entry.is_stackable_with(item):
                    entry.merge_charges(item)
                    self.on_contents_changed()
                    return ContainResult.ok(self)

        self._contents.append(item)
        self.on_contents_changed()
        return ContainResult.ok(self)

    def charges_that_fit(self, item: Item) -> int:
        """
        How many charges of ``item`` this pocket could take right now.

        Items not counted by charges fit either once or not at all.
        Returns ``sys.maxsize`` when nothing bounds the amount.
        """
        if not item.count_by_charges():
            return 1 if self.can_contain(item) else 0
        for check in (self._check_kind, self._check_phase, self._check_restrictions):
            if check(item) is not None:
                return 0

        item_type = item.item_type
        limit = sys.maxsize
        if item_type.volume:
            limit = min(limit, self.remaining_volume() * item_type.stack_size // item_type.volume)
        if item_type.weight:
            limit = min(limit, self.remaining_weight() // item_type.weight)

        override = self.template.item_count_override
        if override is not None:
            if not override.item_stacks:
                limit = min(limit, max(0, override.num_items - self._counted_items(False)))
            elif not self.has_item_stacks_with(item) and self.num_item_stacks() >= override.num_items:
                limit = 0

        if limit and item_type.volume * limit < self.template.min_item_volume * item_type.stack_size:
            return 0
        return limit

    # --- stacking ----------------------------------------------------------

    def has_item_stacks_with(self, item: Item) -> bool:
        return any(entry.is_stackable_with(item) for entry in self._contents)

    def stacks_with(self, other: Pocket) -> bool:
        """Whether two pockets hold interchangeable contents, in the same order."""
        if self.template != other.template or self._sealed != other._sealed:
            return False
        if len(self._contents) != len(other._contents):
            return False
        return all(mine.is_stackable_with(theirs) for mine, theirs in zip(self._contents, other._contents))

    def same_contents(self, other: Pocket) -> bool:
        """Same item types and counts in the same order, recursively."""
        if len(self._contents) != len(other._contents):
            return False
        for mine, theirs in zip(self._contents, other._contents):
            if mine.item_type.type_id != theirs.item_type.type_id or mine.count() != theirs.count():
                return False
            mine_tree, theirs_tree = mine.child_tree(), theirs.child_tree()
            if (mine_tree is None) != (theirs_tree is None):
                return False
            if mine_tree is not None and theirs_tree is not None and not mine_tree.same_contents(theirs_tree):
                return False
        return True

    def restack(self) -> int:
        """Merge stackable charge-counted entries into the first-seen one.

        The pocket holds the same charges afterwards, so the seal is left alone.

        Returns:
            Number of entries merged away.
        """
        merges = 0
        survivors: list[Item] = []
        for entry in self._contents:
            target = None
            if entry.count_by_charges():
                target = next(
                    (kept for kept in survivors if kept.count_by_charges() and kept.is_stackable_with(entry)), None
                )
            if target is None:
                survivors.append(entry)
            else:
                target.merge_charges(entry)
                merges += 1
        if merges:
            self._contents = survivors
            logger.debug("Pocket restacked", pocket_kind=self.kind.value, merges=merges)
        return merges

    def better_pocket(self, other: Pocket, item: Item) -> bool:
        """
        Whether this pocket is a strictly better home for ``item`` than ``other``.

        Precedence: already holds a stack the item merges with, watertight for
        liquids, least remaining volume, lower move cost.
        """
        mine, theirs = self.has_item_stacks_with(item), other.has_item_stacks_with(item)
        if mine != theirs:
            return mine

        if item.made_of(Phase.LIQUID) and self.template.watertight != other.template.watertight:
            return self.template.watertight

        my_room, their_room = self.remaining_volume(), other.remaining_volume()
        if my_room != their_room:
            return my_room < their_room

        return self.moves() < other.moves()

    # --- sealing -----------------------------------------------------------

    def sealed(self) -> bool:
        return self._sealed

    def disturbed(self) -> bool:
        """Whether the pocket has been opened or had its contents changed."""
        return self._disturbed

    def seal(self) -> bool:
        """Seal the pocket. Returns False if it was already opened and cannot reseal."""
        if self._sealed:
            return True
        if not self.template.resealable and self._disturbed:
            logger.debug("Pocket cannot be resealed", pocket_kind=self.kind.value)
            return False
        self._sealed = True
        return True

    def unseal(self) -> None:
        self._sealed = False
        self._disturbed = True

    def on_contents_changed(self) -> None:
        """Seal bookkeeping after any change to the contents."""
        self._disturbed = True
        if not self.template.resealable:
            self._sealed = False

    def spoil_multiplier(self) -> float:
        """Effective spoilage rate; sealed pockets suspend spoilage."""
        return 0.0 if self._sealed else self.template.spoil_multiplier

    # --- forced removal ----------------------------------------------------

    def will_spill(self) -> bool:
        return self.template.open_container and bool(self._contents)

    def spill_contents(self, position: Any) -> list[SpilledItem]:
        """Eject everything at ``position``."""
        spilled = [SpilledItem(item, position, self.kind, "spilled") for item in self._contents]
        if spilled:
            self._contents = []
            self.on_contents_changed()
            logger.info(
                "Pocket spilled", pocket_kind=self.kind.value, position=position, spilled=[s.item for s in spilled]
            )
        return spilled

    def overflow(self, position: Any) -> list[SpilledItem]:
        """
        Eject whatever the pocket can no longer hold.

        Items that break the pocket's static rules go first. Then the largest
        item is evicted while volume is over capacity and the heaviest while
        weight is over capacity. Equal candidates leave in insertion order.
        """
        if not self.rules.can_overflow or not self._contents:
            return []

        spilled: list[SpilledItem] = []
        for item in list(self._contents):
            rejection = self._static_rejection(item)
            if rejection is not None:
                self._evict(item, position, rejection.code.value, spilled)

        while self._contents and self._volume_overage() > 0:
            self._evict(max(self._contents, key=lambda entry: entry.volume()), position, "over volume", spilled)

        while self._contents and self._weight_overage() > 0:
            self._evict(max(self._contents, key=lambda entry: entry.weight()), position, "over weight", spilled)

        override = self.template.item_count_override
        if override is not None:
            while self._contents and self._counted_items(override.item_stacks) > override.num_items:
                self._evict(self._contents[-1], position, "too many items", spilled)

        if spilled:
            self.on_contents_changed()
            logger.info(
                "Pocket overflowed",
                pocket_kind=self.kind.value,
                position=position,
                spilled=[entry.item for entry in spilled],
            )
        return spilled

    def _evict(self, item: Item, position: Any, reason: str, spilled: list[SpilledItem]) -> None:
        for index, entry in enumerate(self._contents):
            if entry is item:
                del self._contents[index]
                spilled.append(SpilledItem(item, position, self.kind, reason))
                return

    def remove_rotten(self, position: Any) -> list[ContentLocation]:
        """Remove rotten items that rot away, nested ones included."""
        removed = self.remove_items_if(lambda entry: entry.item_type.rots_away and entry.is_rotten())
        if removed:
            logger.info(
                "Rotten items removed",
                pocket_kind=self.kind.value,
                position=position,
                removed=[location.item for location in removed],
            )
        return removed

    # --- simulation --------------------------------------------------------

    def heat_up(self, temperature: float | None = None) -> None:
        """Set every contained item, recursively, to ``temperature`` (hot by default)."""
        if temperature is None:
            temperature = get_config().simulation.hot_temperature
        for entry in self._contents:
            entry.set_temperature(temperature)
            tree = entry.child_tree()
            if tree is not None:
                tree.heat_up(temperature)

    def will_explode_in_a_fire(self) -> bool:
        if self.template.fire_protection:
            return False
        for entry in self._contents:
            if entry.item_type.explodes_in_fire:
                return True
            tree = entry.child_tree()
            if tree is not None and tree.will_explode_in_a_fire():
                return True
        return False

    def process(
        self,
        ambient: AmbientConditions,
        spoil_multiplier: float = 1.0,
        parent: Item | None = None,
        depth: int = 0,
    ) -> list[ContentLocation]:
        """
        Advance spoilage and temperature of everything in this pocket.

        Nested contents are processed first. Items reporting self-destruction
        are collected during the walk and dropped afterwards, which counts as
        a content change for the seal.

        Returns:
            Where each destroyed item was, nested ones included.
        """
        multiplier = spoil_multiplier * self.spoil_multiplier()
        destroyed: list[ContentLocation] = []
        doomed: set[int] = set()

        for entry in list(self._contents):
            tree = entry.child_tree()
            if tree is not None:
                destroyed.extend(tree.process(ambient, multiplier, entry, depth + 1))
            if entry.process(ambient, multiplier):
                doomed.add(id(entry))
                destroyed.append(ContentLocation(self, entry, parent, depth))

        if doomed:
            self._contents = [entry for entry in self._contents if id(entry) not in doomed]
            self.on_contents_changed()
            logger.info(
                "Items destroyed during processing",
                pocket_kind=self.kind.value,
                destroyed=[location.item for location in destroyed if location.pocket is self],
            )
        return destroyed
