"""Shared item type, pocket and container fixtures for stowage tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from stowage.game.items.item_instance import Item
from stowage.game.items.models import ItemType, PocketTemplate
from stowage.game.items.pocket import Pocket

STANDARD_POCKET = {"max_volume": "2 L", "max_weight": "5 kg"}


@pytest.fixture
def make_item_type() -> Callable[..., ItemType]:
    """Build item types from a few overrides; volume and weight default to 100."""

    def build(type_id: str = "widget", **fields: Any) -> ItemType:
        payload: dict[str, Any] = {"type_id": type_id, "name": type_id.replace("_", " "), "volume": 100, "weight": 100}
        payload.update(fields)
        return ItemType.model_validate(payload)

    return build


@pytest.fixture
def make_item(make_item_type) -> Callable[..., Item]:
    """Build a fresh item of a new type; ``charges`` is passed to the item, not the type."""

    def build(type_id: str = "widget", *, charges: int | None = None, **fields: Any) -> Item:
        return Item(make_item_type(type_id, **fields), charges=charges)

    return build


@pytest.fixture
def make_pocket() -> Callable[..., Pocket]:
    """Build a pocket from template overrides on top of a 2 L / 5 kg container."""

    def build(**fields: Any) -> Pocket:
        return Pocket(PocketTemplate.load({**STANDARD_POCKET, **fields}))

    return build


@pytest.fixture
def round_type(make_item_type) -> ItemType:
    """A 9mm round: 3 charges per 500 ml stack, 10 g each."""
    return make_item_type(
        "round_9mm",
        volume=500,
        weight=10,
        stack_size=3,
        count_by_charges=True,
        ammo_type="9mm",
    )


@pytest.fixture
def water_type(make_item_type) -> ItemType:
    """Clean water, 250 ml and 250 g per charge."""
    return make_item_type("water_clean", volume=250, weight=250, count_by_charges=True, phase="liquid")


@pytest.fixture
def apple_type(make_item_type) -> ItemType:
    """Food that rots away after ten turns."""
    return make_item_type("apple", volume=200, weight=150, spoils_in=10, rots_away=True)


@pytest.fixture
def bag_type(make_item_type) -> ItemType:
    """A soft bag with one 500 ml pocket."""
    return make_item_type(
        "cloth_bag",
        volume=100,
        weight=50,
        pockets=[{"max_volume": "500 ml", "max_weight": "2 kg"}],
    )


@pytest.fixture
def backpack_type(make_item_type) -> ItemType:
    """A backpack with a large main pocket and a small side pocket."""
    return make_item_type(
        "backpack",
        volume=500,
        weight=800,
        pockets=[
            {"max_volume": "3 L", "max_weight": "10 kg"},
            {"max_volume": "1 L", "max_weight": "5 kg"},
        ],
    )


@pytest.fixture
def pistol_type(make_item_type) -> ItemType:
    """A pistol with an internal magazine and a mod slot."""
    return make_item_type(
        "pistol",
        volume=400,
        weight=900,
        pockets=[
            {"kind": "magazine", "max_volume": "200 ml", "max_weight": "1 kg", "ammo_restriction": ["9mm"]},
            {"kind": "mod_slot", "max_volume": "300 ml", "max_weight": "1 kg"},
        ],
    )
