"""Enumerations and per-kind behaviour tables for the pocket system.

Pocket kinds are a plain enumeration. Everything that differs between kinds
lives in ``KIND_RULES`` rather than in pocket subclasses.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple


class PocketKind(str, Enum):
    """Kind of a pocket, persisted as the pocket's saved kind."""

    CONTAINER = "container"
    MAGAZINE = "magazine"
    MOD_SLOT = "mod_slot"
    CORPSE_CAVITY = "corpse_cavity"
    SOFTWARE_SLOT = "software_slot"


class Phase(str, Enum):
    """Physical phase of an item's material."""

    SOLID = "solid"
    LIQUID = "liquid"
    GAS = "gas"


class AcceptCode(str, Enum):
    """Outcome of asking a pocket whether it can hold an item."""

    OK = "ok"
    # only mods can go into mod pockets
    REJECTED_WRONG_KIND = "rejected_wrong_kind"
    REJECTED_LIQUID_NEEDS_WATERTIGHT = "rejected_liquid_needs_watertight"
    REJECTED_GAS_NEEDS_GASTIGHT = "rejected_gas_needs_gastight"
    # would not fit even if the pocket were empty
    REJECTED_TOO_BIG = "rejected_too_big"
    REJECTED_TOO_HEAVY = "rejected_too_heavy"
    REJECTED_BELOW_MIN_VOLUME = "rejected_below_min_volume"
    # would fit an empty pocket, but not this one
    REJECTED_NO_SPACE_LEFT = "rejected_no_space_left"
    REJECTED_OVER_WEIGHT = "rejected_over_weight"
    REJECTED_MISSING_FLAG = "rejected_missing_flag"
    REJECTED_WRONG_AMMO_TYPE = "rejected_wrong_ammo_type"


class KindRules(NamedTuple):
    """Behaviour switches for one pocket kind."""

    # only items flagged as mods are accepted
    mods_only: bool
    # at most one pocket of this kind per item; insertion targets it directly
    singular: bool
    # contents enlarge the owning item (unless the pocket is rigid)
    adds_volume: bool
    # contents add to the owning item's weight
    adds_weight: bool
    # overflow() may eject contents
    can_overflow: bool


KIND_RULES: dict[PocketKind, KindRules] = {
    PocketKind.CONTAINER: KindRules(
        mods_only=False, singular=False, adds_volume=True, adds_weight=True, can_overflow=True
    ),
    PocketKind.MAGAZINE: KindRules(
        mods_only=False, singular=True, adds_volume=True, adds_weight=True, can_overflow=True
    ),
    PocketKind.MOD_SLOT: KindRules(
        mods_only=True, singular=True, adds_volume=True, adds_weight=True, can_overflow=False
    ),
    PocketKind.CORPSE_CAVITY: KindRules(
        mods_only=False, singular=True, adds_volume=False, adds_weight=True, can_overflow=False
    ),
    PocketKind.SOFTWARE_SLOT: KindRules(
        mods_only=False, singular=True, adds_volume=False, adds_weight=False, can_overflow=True
    ),
}

SINGULAR_KINDS = frozenset(kind for kind, rules in KIND_RULES.items() if rules.singular)

# Kinds that may carry an ammo restriction.
AMMO_RESTRICTABLE_KINDS = frozenset({PocketKind.CONTAINER, PocketKind.MAGAZINE})

DEFAULT_MOVE_COST = 100
