"""Runtime item representation.

An ``Item`` is one physical object (or one stack of charges) created from an
``ItemType``. If the type declares pockets, the item exclusively owns a
``ContainerTree`` built from them, and that tree may hold further items.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass

from stowage.config import SimulationConfig, get_config
from stowage.game.items.constants import Phase, PocketKind
from stowage.game.items.container_tree import ContainerTree
from stowage.game.items.legacy import consolidate_items
from stowage.game.items.models import ItemType
from stowage.structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AmbientConditions:
    """Conditions applied during one processing pass."""

    temperature: float
    turns: int = 1
    # values above 1 slow down heat exchange
    insulation: float = 1.0

    @classmethod
    def from_config(cls, turns: int = 1, insulation: float = 1.0) -> AmbientConditions:
        return cls(get_config().simulation.ambient_temperature, turns, insulation)


class Item:  # pylint: disable=too-many-public-methods  # Reason: Item is the collaborator contract consumed by the whole pocket system
    """A runtime item, possibly a container of further items."""

    def __init__(
        self,
        item_type: ItemType,
        *,
        charges: int | None = None,
        temperature: float | None = None,
        rot: float = 0.0,
        variables: dict[str, str] | None = None,
        item_instance_id: str | None = None,
    ):
        self.item_type = item_type
        self.charges = item_type.default_charges if charges is None else charges
        self._temperature = get_config().simulation.ambient_temperature if temperature is None else temperature
        self.rot = rot
        self.variables: dict[str, str] = dict(variables or {})
        self.item_instance_id = item_instance_id or str(uuid.uuid4())
        self.contents: ContainerTree | None = ContainerTree(item_type.pockets) if item_type.pockets else None

    def __repr__(self) -> str:
        return f"Item({self.item_type.type_id!r}, charges={self.charges}, id={self.item_instance_id[:8]})"

    # --- collaborator contract -------------------------------------------------

    def base_volume(self) -> int:
        """Volume of the item itself, without anything it contains."""
        if not self.item_type.count_by_charges:
            return self.item_type.volume
        return math.ceil(self.item_type.volume * self.charges / self.item_type.stack_size)

    def volume(self) -> int:
        total = self.base_volume()
        if self.contents is not None:
            total += self.contents.item_size_modifier()
        return total

    def base_weight(self) -> int:
        return self.item_type.weight * self.count()

    def weight(self) -> int:
        total = self.base_weight()
        if self.contents is not None:
            total += self.contents.item_weight_modifier()
        return total

    def phase(self) -> Phase:
        return self.item_type.phase

    def made_of(self, phase: Phase) -> bool:
        return self.item_type.phase is phase

    def temperature(self) -> float:
        return self._temperature

    def set_temperature(self, temperature: float) -> None:
        self._temperature = temperature

    def tags(self) -> frozenset[str]:
        return self.item_type.tags

    def has_any_flag(self, flags: frozenset[str]) -> bool:
        return not self.item_type.tags.isdisjoint(flags)

    def ammo_type(self) -> str | None:
        return self.item_type.ammo_type

    def child_tree(self) -> ContainerTree | None:
        return self.contents

    def count_by_charges(self) -> bool:
        return self.item_type.count_by_charges

    def count(self) -> int:
        return self.charges if self.item_type.count_by_charges else 1

    def is_mod(self) -> bool:
        return self.item_type.is_mod

    def is_container(self) -> bool:
        return self.contents is not None

    def is_magazine(self) -> bool:
        return self.contents is not None and self.contents.has_pocket_type(PocketKind.MAGAZINE)

    def is_rotten(self) -> bool:
        return self.item_type.spoils_in is not None and self.rot >= self.item_type.spoils_in

    def temperature_band(self, simulation: SimulationConfig | None = None) -> str:
        """Band name (hot, cold or normal); pass ``simulation`` to reuse loaded thresholds."""
        if simulation is None:
            simulation = get_config().simulation
        if self._temperature >= simulation.hot_temperature:
            return "hot"
        if self._temperature <= simulation.cold_temperature:
            return "cold"
        return "normal"

    def is_stackable_with(self, other: Item) -> bool:
        """
        Whether two items are interchangeable and may share one stack entry.

        Stack-relevant state is the type, item variables, temperature band,
        rotten/fresh state and identical contents.
        """
        if other is self:
            return False
        if other.item_type.type_id != self.item_type.type_id:
            return False
        if other.variables != self.variables:
            return False
        if other.is_rotten() != self.is_rotten():
            return False
        simulation = get_config().simulation
        if other.temperature_band(simulation) != self.temperature_band(simulation):
            return False
        if self.contents is None or other.contents is None:
            return self.contents is other.contents
        return self.contents.stacks_with(other.contents)

    # --- charges ---------------------------------------------------------------

    def merge_charges(self, other: Item) -> None:
        """Absorb all charges of a stackable item; the other item is left empty."""
        if not self.count_by_charges() or not self.is_stackable_with(other):
            raise ValueError(f"{other!r} cannot be merged into {self!r}")
        total = self.charges + other.charges
        if total:
            self._temperature = (self._temperature * self.charges + other._temperature * other.charges) / total
        self.rot = max(self.rot, other.rot)
        self.charges = total
        other.charges = 0

    def split_charges(self, quantity: int) -> Item:
        """Take ``quantity`` charges off this stack as a new item."""
        if not self.count_by_charges():
            raise ValueError(f"{self!r} is not counted by charges")
        if quantity <= 0 or quantity > self.charges:
            raise ValueError(f"Cannot split {quantity} charges from a stack of {self.charges}")
        self.charges -= quantity
        return Item(
            self.item_type,
            charges=quantity,
            temperature=self._temperature,
            rot=self.rot,
            variables=self.variables,
        )

    def duplicate(self) -> Item:
        """Deep copy with a fresh instance id, contents included."""
        clone = Item(
            self.item_type,
            charges=self.charges,
            temperature=self._temperature,
            rot=self.rot,
            variables=self.variables,
        )
        if self.contents is not None and clone.contents is not None:
            for source, target in zip(self.contents.pockets(), clone.contents.pockets(), strict=True):
                for contained in source.items():
                    target.add(contained.duplicate())
                if source.sealed():
                    target.seal()
        return clone

    # --- processing ------------------------------------------------------------

    def process(self, ambient: AmbientConditions, spoil_multiplier: float = 1.0) -> bool:
        """
        Advance this item's own spoilage and temperature.

        Contents are processed by the pockets that hold them, not here.

        Returns:
            True when the item has destroyed itself and must be removed.
        """
        if self.item_type.spoils_in is not None:
            self.rot += ambient.turns * spoil_multiplier

        rate = min(1.0, get_config().simulation.heat_exchange_rate / max(ambient.insulation, 1.0))
        gap = self._temperature - ambient.temperature
        self._temperature = ambient.temperature + gap * (1.0 - rate) ** ambient.turns

        return self.item_type.rots_away and self.is_rotten()

    def convert(self, new_type: ItemType) -> list[Item]:
        """
        Substitute this item's type in place.

        Contents are consolidated into the new type's pockets.

        Returns:
            Contained items that no longer fit anywhere in the new layout.
        """
        old_contents: list[Item] = []
        if self.contents is not None:
            for pocket in self.contents.pockets():
                old_contents.extend(pocket.items())

        old_type_id = self.item_type.type_id
        self.item_type = new_type
        if not new_type.count_by_charges:
            self.charges = 0
        elif self.charges <= 0:
            self.charges = new_type.default_charges
        self.contents = ContainerTree(new_type.pockets) if new_type.pockets else None

        displaced = consolidate_items(self.contents, old_contents) if self.contents is not None else old_contents
        logger.info(
            "Item type converted",
            item=self,
            old_type_id=old_type_id,
            new_type_id=new_type.type_id,
            displaced=len(displaced),
        )
        return displaced
