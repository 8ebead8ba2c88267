"""Result records returned by pocket and container operations.

Acceptance never raises; every removal and spill is reported through one of
these records so callers can always account for what moved where.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from stowage.game.items.constants import AcceptCode, PocketKind

if TYPE_CHECKING:
    from stowage.game.items.item_instance import Item
    from stowage.game.items.pocket import Pocket


@dataclass(frozen=True)
class ContainResult:
    """Outcome of a can_contain or insert_item call."""

    code: AcceptCode
    message: str = ""
    # the pocket that accepted (or would accept) the item
    pocket: Pocket | None = field(default=None, compare=False)

    @property
    def success(self) -> bool:
        return self.code is AcceptCode.OK

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, pocket: Pocket | None = None) -> ContainResult:
        return cls(AcceptCode.OK, "", pocket)

    @classmethod
    def reject(cls, code: AcceptCode, message: str) -> ContainResult:
        return cls(code, message)


@dataclass(frozen=True)
class SpilledItem:
    """An item forced out of a pocket, and where it ended up."""

    item: Item
    # opaque world position supplied by the caller
    position: Any
    pocket_kind: PocketKind
    reason: str


@dataclass(frozen=True)
class MigrationRecord:
    """One in-place type substitution performed by migrate_item()."""

    item: Item
    old_type_id: str
    new_type_id: str
    # contents that no longer fit the new type's pockets
    displaced: tuple[Item, ...] = ()
