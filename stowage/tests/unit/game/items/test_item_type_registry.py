import json
from pathlib import Path

import pytest

from stowage.game.items.item_type_registry import ItemTypeRegistry, ItemTypeRegistryError


def write_item_type(directory: Path, name: str, payload) -> Path:
    file_path = directory / f"{name}.json"
    file_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return file_path


@pytest.fixture()
def canteen_payload():
    return {
        "type_id": "canteen",
        "name": "plastic canteen",
        "volume": "1.2 L",
        "weight": "150 g",
        "tags": ["WATER_CONTAINER"],
        "pockets": [{"max_volume": "1 L", "max_weight": "2 kg", "watertight": True, "rigid": True}],
    }


def test_registry_loads_valid_item_types(tmp_path: Path, canteen_payload: dict):
    write_item_type(tmp_path, "canteen", canteen_payload)

    registry = ItemTypeRegistry.load_from_path(tmp_path)

    canteen = registry.get("canteen")
    assert canteen.volume == 1200
    assert canteen.pockets[0].watertight
    assert "canteen" in registry
    assert registry.find_by_tag("WATER_CONTAINER") == [canteen]


def test_registry_loads_lists_of_item_types(tmp_path: Path, canteen_payload: dict):
    rock = {"type_id": "rock", "name": "rock", "volume": 250, "weight": 600}
    write_item_type(tmp_path, "misc", [canteen_payload, rock])

    registry = ItemTypeRegistry.load_from_path(tmp_path)

    assert sorted(item_type.type_id for item_type in registry.all()) == ["canteen", "rock"]


def test_registry_skips_item_type_with_bad_pockets(tmp_path: Path, canteen_payload: dict):
    broken = dict(canteen_payload, type_id="broken_rifle")
    broken["pockets"] = [{"kind": "magazine", "max_volume": 10, "max_weight": 10}] * 2
    write_item_type(tmp_path, "canteen", canteen_payload)
    write_item_type(tmp_path, "broken_rifle", broken)

    registry = ItemTypeRegistry.load_from_path(tmp_path)

    assert "canteen" in registry
    assert "broken_rifle" not in registry
    invalid = registry.invalid_entries()
    assert [entry["type_id"] for entry in invalid] == ["broken_rifle"]


def test_registry_skips_invalid_payloads(tmp_path: Path):
    write_item_type(tmp_path, "nameless", {"type_id": "nameless", "volume": 10, "weight": 10})
    (tmp_path / "garbled.json").write_text("{not json", encoding="utf-8")

    registry = ItemTypeRegistry.load_from_path(tmp_path)

    assert list(registry.all()) == []
    assert sorted(entry["type_id"] for entry in registry.invalid_entries()) == ["garbled", "nameless"]


def test_registry_missing_directory(tmp_path: Path):
    with pytest.raises(ItemTypeRegistryError):
        ItemTypeRegistry.load_from_path(tmp_path / "missing")


def test_get_unknown_type_raises(canteen_payload: dict):
    registry = ItemTypeRegistry.from_payloads([canteen_payload])

    with pytest.raises(ItemTypeRegistryError):
        registry.get("flask")


def test_migrations_follow_renames(tmp_path: Path, canteen_payload: dict):
    write_item_type(tmp_path, "canteen", canteen_payload)
    write_item_type(tmp_path, "migrations", {"water_bottle": "flask_old", "flask_old": "canteen", "lost": "gone"})

    registry = ItemTypeRegistry.load_from_path(tmp_path)

    assert registry.migration_for("water_bottle") is registry.get("canteen")
    assert registry.migration_for("lost") is None
    assert registry.migration_for("canteen") is None
    assert set(registry.migration_map()) == {"water_bottle", "flask_old"}
