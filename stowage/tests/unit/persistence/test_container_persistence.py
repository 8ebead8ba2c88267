import json

import pytest

from stowage.exceptions import DataIntegrityError
from stowage.game.items import (
    AcceptCode,
    ContainerTree,
    Item,
    ItemFactory,
    ItemTypeRegistry,
    PocketKind,
    load_pocket_templates,
)
from stowage.persistence import ContainerTreeLoader, serialize_item, serialize_tree

ITEM_TYPES = [
    {
        "type_id": "backpack",
        "name": "backpack",
        "volume": "500 ml",
        "weight": 800,
        "pockets": [
            {"max_volume": "3 L", "max_weight": "10 kg"},
            {"max_volume": "1 L", "max_weight": "5 kg"},
        ],
    },
    {
        "type_id": "tin_can",
        "name": "tin can",
        "volume": 300,
        "weight": 50,
        "pockets": [{"max_volume": 250, "max_weight": 500, "watertight": True, "rigid": True}],
    },
    {
        "type_id": "satchel",
        "name": "satchel",
        "volume": 200,
        "weight": 200,
        "pockets": [{"max_volume": "2 L", "max_weight": "5 kg"}],
    },
    {"type_id": "soup", "name": "soup", "volume": 250, "weight": 250, "phase": "liquid", "count_by_charges": True},
    {"type_id": "pencil", "name": "pencil", "volume": 10, "weight": 5},
    {"type_id": "apple", "name": "apple", "volume": 200, "weight": 150, "spoils_in": 100},
]


@pytest.fixture()
def registry() -> ItemTypeRegistry:
    return ItemTypeRegistry.from_payloads(ITEM_TYPES, migrations={"old_sack": "satchel"})


@pytest.fixture()
def factory(registry) -> ItemFactory:
    return ItemFactory(registry)


@pytest.fixture()
def packed_backpack(factory) -> Item:
    """backpack[main: tin_can[soup], pencil; side (sealed): apple]"""
    backpack = factory.create_item("backpack")
    main, side = backpack.contents.pockets()
    can = factory.create_item("tin_can")
    can.contents.insert_item(factory.create_item("soup"))
    main.insert_item(can)
    main.insert_item(factory.create_item("pencil"))
    apple = factory.create_item("apple")
    apple.rot = 12.5
    side.insert_item(apple)
    side.seal()
    return backpack


def test_round_trip_preserves_order_aggregates_and_rejections(registry, factory, packed_backpack):
    document = json.loads(json.dumps(serialize_tree(packed_backpack.contents)))

    result = ContainerTreeLoader(registry).load_tree(document, registry.get("backpack").pockets)

    assert result.ok
    original, restored = packed_backpack.contents, result.tree
    assert [item.item_instance_id for item in restored.all_items()] == [
        item.item_instance_id for item in original.all_items()
    ]
    assert restored.item_size_modifier() == original.item_size_modifier()
    assert restored.item_weight_modifier() == original.item_weight_modifier()
    assert restored.pockets()[1].sealed()
    assert restored.all_items()[-1].rot == 12.5

    for candidate in (factory.create_item("soup"), factory.create_item("satchel"), factory.create_item("pencil")):
        assert restored.can_contain(candidate).code is original.can_contain(candidate).code


def test_serialized_item_records_contents(packed_backpack):
    record = serialize_item(packed_backpack)

    assert record["type_id"] == "backpack"
    main, side = record["contents"]["pockets"]
    assert main["saved_kind"] == "container"
    assert [entry["type_id"] for entry in main["contents"]] == ["tin_can", "pencil"]
    assert main["contents"][0]["contents"]["pockets"][0]["contents"][0]["charges"] == 1
    assert "contents" not in main["contents"][1]
    assert side["sealed"] is True


def test_unknown_nested_type_fails_only_that_item(registry, packed_backpack):
    document = serialize_tree(packed_backpack.contents)
    document["pockets"][0]["contents"][0]["contents"]["pockets"][0]["contents"][0]["type_id"] = "mystery_stew"

    result = ContainerTreeLoader(registry).load_tree(document, registry.get("backpack").pockets)

    assert not result.ok
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert failure.record_path == "pockets[0].contents[0].contents.pockets[0].contents[0]"
    assert failure.error.type_id == "mystery_stew"
    assert [item.item_type.type_id for item in result.tree.all_items()] == ["tin_can", "pencil", "apple"]


def test_unknown_top_level_item_raises(registry):
    loader = ContainerTreeLoader(registry)

    with pytest.raises(DataIntegrityError):
        loader.load_item({"type_id": "mystery_stew", "charges": 0})


def test_saved_kind_mismatch_is_integrity_error(registry, packed_backpack):
    document = serialize_tree(packed_backpack.contents)
    document["pockets"][1]["saved_kind"] = PocketKind.MAGAZINE.value

    with pytest.raises(DataIntegrityError):
        ContainerTreeLoader(registry).load_tree(document, registry.get("backpack").pockets)


def test_unrecognized_saved_kind_is_integrity_error(registry, packed_backpack):
    document = serialize_tree(packed_backpack.contents)
    document["pockets"][0]["saved_kind"] = "hammerspace"

    with pytest.raises(DataIntegrityError):
        ContainerTreeLoader(registry).load_tree(document, registry.get("backpack").pockets)


def test_pocket_count_mismatch_fails_the_owning_item(registry, packed_backpack):
    record = serialize_item(packed_backpack)
    record["contents"]["pockets"][0]["contents"][0]["contents"]["pockets"].append(
        {"saved_kind": "container", "sealed": False, "contents": []}
    )
    failures = []

    backpack = ContainerTreeLoader(registry).load_item(record, failures)

    assert [failure.record_path for failure in failures] == ["contents.pockets[0].contents[0]"]
    assert [item.item_type.type_id for item in backpack.contents.all_items()] == ["pencil", "apple"]


def test_obsolete_type_migrates_through_registry(registry):
    record = {
        "type_id": "old_sack",
        "item_instance_id": "sack-1",
        "charges": 0,
        "contents": {
            "pockets": [
                {"saved_kind": "container", "sealed": False, "contents": [{"type_id": "pencil", "charges": 0}]},
                {"saved_kind": "container", "sealed": False, "contents": [{"type_id": "pencil", "charges": 0}]},
            ]
        },
    }

    sack = ContainerTreeLoader(registry).load_item(record)

    assert sack.item_type.type_id == "satchel"
    assert sack.item_instance_id == "sack-1"
    assert [item.item_type.type_id for item in sack.contents.all_items()] == ["pencil", "pencil"]
    assert len(sack.contents.pockets()) == 1


def test_custom_migration_hook(registry):
    loader = ContainerTreeLoader(registry, migration_hook=lambda type_id: registry.get("pencil"))

    item = loader.load_item({"type_id": "quill"})

    assert item.item_type.type_id == "pencil"


def test_migrations_are_reported_in_load_result(registry):
    document = {
        "pockets": [
            {"saved_kind": "container", "sealed": False, "contents": [{"type_id": "old_sack", "charges": 0}]},
        ]
    }

    result = ContainerTreeLoader(registry).load_tree(document, registry.get("satchel").pockets)

    assert result.ok
    assert [(entry.old_type_id, entry.new_type_id) for entry in result.migrated] == [("old_sack", "satchel")]


def test_legacy_flat_contents_are_consolidated(registry):
    record = {
        "type_id": "backpack",
        "contents": [{"type_id": "pencil"}, {"type_id": "soup", "charges": 2}, {"type_id": "apple"}],
    }

    backpack = ContainerTreeLoader(registry).load_item(record)

    main, side = backpack.contents.pockets()
    assert [item.item_type.type_id for item in main.items()] == ["pencil", "apple", "soup"]
    assert side.empty()
    assert main.can_contain(Item(registry.get("pencil"))).code is AcceptCode.OK


def test_malformed_record_is_integrity_error(registry):
    loader = ContainerTreeLoader(registry)

    with pytest.raises(DataIntegrityError):
        loader.load_item({"name": "no type id"})
    with pytest.raises(DataIntegrityError):
        loader.load_item({"type_id": "soup", "charges": "lots"})


def test_opened_non_resealable_pocket_stays_unsealable_after_reload(registry):
    templates = load_pocket_templates([{"max_volume": "1 L", "max_weight": "1 kg", "resealable": False}] * 2)
    tree = ContainerTree(templates)
    opened, pristine = tree.pockets()
    assert opened.seal()
    opened.unseal()
    assert not opened.seal()
    assert pristine.seal()
    document = json.loads(json.dumps(serialize_tree(tree)))

    restored_opened, restored_pristine = ContainerTreeLoader(registry).load_tree(document, templates).tree.pockets()

    assert document["pockets"][0]["disturbed"] is True
    assert restored_opened.disturbed()
    assert not restored_opened.seal()
    assert restored_pristine.sealed()
    assert not restored_pristine.disturbed()


def test_records_without_disturbed_field_load_as_pristine(registry):
    templates = load_pocket_templates([{"max_volume": "1 L", "max_weight": "1 kg", "resealable": False}])
    document = {"pockets": [{"saved_kind": "container", "sealed": False, "contents": []}]}

    pocket = ContainerTreeLoader(registry).load_tree(document, templates).tree.pockets()[0]

    assert pocket.seal()
