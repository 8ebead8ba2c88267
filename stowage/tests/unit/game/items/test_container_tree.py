import pytest

from stowage.game.items.constants import AcceptCode, PocketKind
from stowage.game.items.container_tree import ContainerTree
from stowage.game.items.item_instance import Item
from stowage.game.items.models import load_pocket_templates


def build_tree(*configs):
    return ContainerTree(load_pocket_templates(configs))


def test_best_pocket_prefers_pocket_holding_matching_stack(round_type):
    tree = build_tree({"max_volume": "1 L", "max_weight": "5 kg"}, {"max_volume": "3 L", "max_weight": "5 kg"})
    stacked, roomy = tree.pockets()
    stacked.insert_item(Item(round_type, charges=3))

    assert tree.best_pocket(Item(round_type, charges=1)) is stacked
    assert roomy.remaining_volume() > stacked.remaining_volume()


def test_matching_stack_outranks_tighter_fit(round_type):
    tree = build_tree({"max_volume": "1 L", "max_weight": "5 kg"}, {"max_volume": "3 L", "max_weight": "5 kg"})
    tight, stacked = tree.pockets()
    stacked.insert_item(Item(round_type, charges=3))

    assert tree.best_pocket(Item(round_type, charges=1)) is stacked
    assert tight.remaining_volume() < stacked.remaining_volume()


def test_best_pocket_picks_tightest_fit(make_item):
    tree = build_tree({"max_volume": "3 L", "max_weight": "5 kg"}, {"max_volume": "1 L", "max_weight": "5 kg"})

    assert tree.best_pocket(make_item()) is tree.pockets()[1]


def test_best_pocket_keeps_earliest_on_ties(make_item):
    tree = build_tree(*[{"max_volume": "1 L", "max_weight": "5 kg"}] * 3)

    assert tree.best_pocket(make_item()) is tree.pockets()[0]


def test_best_pocket_returns_none_when_nothing_fits(make_item):
    tree = build_tree({"max_volume": "1 L", "max_weight": "5 kg"})

    assert tree.best_pocket(make_item("boulder", volume="20 L")) is None


def test_singular_kinds_go_to_their_own_pocket(pistol_type, round_type, make_item):
    pistol = Item(pistol_type)

    assert pistol.contents.insert_item(Item(round_type, charges=1), PocketKind.MAGAZINE)
    assert pistol.contents.insert_item(make_item("red_dot", volume=50, is_mod=True), PocketKind.MOD_SLOT)
    assert pistol.contents.pocket_of_kind(PocketKind.MAGAZINE).size() == 1


def test_missing_pocket_kind_is_wrong_kind(pistol_type, make_item):
    pistol = Item(pistol_type)

    assert pistol.contents.insert_item(make_item(), PocketKind.CORPSE_CAVITY).code is AcceptCode.REJECTED_WRONG_KIND
    assert pistol.contents.insert_item(make_item()).code is AcceptCode.REJECTED_WRONG_KIND


def test_insert_reports_first_container_rejection(backpack_type, make_item):
    backpack = Item(backpack_type)

    result = backpack.contents.insert_item(make_item("tent", volume="4 L"))

    assert result.code is AcceptCode.REJECTED_TOO_BIG
    assert backpack.contents.empty()


def test_nested_search_finds_pocket_inside_contained_bag(bag_type, make_item):
    tree = build_tree({"max_volume": "1 L", "max_weight": "10 kg"})
    outer = tree.pockets()[0]
    bag = Item(bag_type)
    outer.insert_item(bag)
    candidate = make_item("sock", volume=300)

    assert tree.best_pocket(candidate) is outer
    assert tree.best_pocket(candidate, nested=True) is bag.contents.pockets()[0]


def test_nested_search_requires_holder_growth_to_fit_ancestors(bag_type, make_item):
    tree = build_tree({"max_volume": "1 L", "max_weight": "10 kg"})
    outer = tree.pockets()[0]
    bag = Item(bag_type)
    outer.insert_item(bag)
    outer.insert_item(make_item("towel", volume=750))
    candidate = make_item("sock", volume=300)

    assert bag.contents.pockets()[0].can_contain(candidate)
    assert tree.best_pocket(candidate, nested=True) is None
    assert tree.insert_item(candidate, nested=True).code is AcceptCode.REJECTED_NO_SPACE_LEFT


def _nest_sack_with_pouch(tree, make_item):
    sack = make_item(
        "heavy_sack",
        volume=100,
        weight=10,
        pockets=[{"max_volume": "5 L", "max_weight": "5 kg", "weight_multiplier": 3}],
    )
    pouch = make_item("pouch", volume=100, weight=10, pockets=[{"max_volume": "2 L", "max_weight": "2 kg"}])
    tree.pockets()[0].insert_item(sack)
    sack.contents.pockets()[0].insert_item(pouch)
    return sack, pouch


def test_nested_search_applies_intermediate_weight_multiplier(make_item):
    tree = build_tree({"max_volume": "10 L", "max_weight": 1000})
    outer = tree.pockets()[0]
    sack, pouch = _nest_sack_with_pouch(tree, make_item)
    assert outer.contains_weight() == 40
    stone = make_item("stone", volume=100, weight=900)

    assert pouch.contents.pockets()[0].can_contain(stone)
    assert tree.best_pocket(stone, nested=True) is outer
    assert tree.insert_item(stone, nested=True)
    assert outer.contains_weight() == 940
    assert sack.contents.all_items() == [pouch]


def test_nested_search_allows_multiplied_growth_that_fits(make_item):
    tree = build_tree({"max_volume": "10 L", "max_weight": 1000})
    outer = tree.pockets()[0]
    _, pouch = _nest_sack_with_pouch(tree, make_item)
    pebble = make_item("pebble", volume=50, weight=300)

    assert tree.insert_item(pebble, nested=True)
    assert pouch.contents.all_items() == [pebble]
    assert outer.contains_weight() == 940
    assert outer.contains_weight() <= outer.weight_capacity()


def test_fill_with_charges_inserts_one_charge_at_a_time(make_item_type):
    sand_type = make_item_type("sand", volume=100, weight=10, count_by_charges=True)
    tree = build_tree({"max_volume": 500, "max_weight": "5 kg"})
    prototype = Item(sand_type, charges=10)

    assert tree.fill_with(prototype) == 5

    assert prototype.charges == 5
    pocket = tree.pockets()[0]
    assert pocket.size() == 1
    assert pocket.front().charges == 5


def test_fill_with_copies_respects_limit(make_item):
    tree = build_tree({"max_volume": 500, "max_weight": "5 kg"})

    assert tree.fill_with(make_item("pebble"), limit=3) == 3
    assert tree.fill_with(make_item("pebble")) == 2
    assert tree.size() == 5


def test_aggregates_flow_up_into_item_size(backpack_type, make_item):
    backpack = Item(backpack_type)
    backpack.contents.pockets()[0].insert_item(make_item("jacket", volume=500, weight=700))

    assert backpack.contents.total_container_capacity() == 4000
    assert backpack.contents.remaining_container_capacity() == 3500
    assert backpack.contents.total_contained_volume() == 500
    assert backpack.contents.total_contained_weight() == 700
    assert backpack.volume() == 1000
    assert backpack.weight() == 1500


def test_traversal_orders(backpack_type, bag_type, make_item):
    backpack = Item(backpack_type)
    main, side = backpack.contents.pockets()
    bag, coin, knife = Item(bag_type), make_item("coin", volume=5), make_item("knife")
    bag.contents.insert_item(coin)
    main.insert_item(bag)
    side.insert_item(knife)

    assert backpack.contents.all_items_top() == [bag, knife]
    assert backpack.contents.all_items() == [bag, coin, knife]
    assert backpack.contents.get_item_with(lambda item: item.item_type.type_id == "coin") is coin
    assert backpack.contents.has_any_with(lambda item: item is knife)
    assert not backpack.contents.has_any_with(lambda item: item is knife, PocketKind.MAGAZINE)
    assert backpack.contents.has_item(coin)


def test_gunmods_and_ammo(pistol_type, round_type, make_item):
    pistol = Item(pistol_type)
    round_ = Item(round_type, charges=1)
    scope = make_item("scope", volume=50, is_mod=True)
    pistol.contents.insert_item(round_, PocketKind.MAGAZINE)
    pistol.contents.insert_item(scope, PocketKind.MOD_SLOT)

    assert pistol.contents.gunmods() == [scope]
    assert pistol.contents.first_ammo() is round_
    assert pistol.contents.magazine_current() is None


def test_first_ammo_looks_inside_detachable_magazine(make_item_type, round_type):
    magazine_type = make_item_type(
        "magazine_9mm",
        volume=100,
        weight=100,
        pockets=[{"kind": "magazine", "max_volume": "1 L", "max_weight": "1 kg", "ammo_restriction": ["9mm"]}],
    )
    tree = build_tree({"max_volume": "1 L", "max_weight": "5 kg"})
    magazine = Item(magazine_type)
    round_ = Item(round_type, charges=2)
    magazine.contents.insert_item(round_, PocketKind.MAGAZINE)
    tree.insert_item(magazine)

    assert magazine.is_magazine()
    assert tree.magazine_current() is magazine
    assert tree.first_ammo() is round_


def test_spill_open_pockets_only(make_item):
    tree = build_tree(
        {"max_volume": "1 L", "max_weight": "5 kg", "open_container": True},
        {"max_volume": "1 L", "max_weight": "5 kg"},
    )
    open_pocket, closed_pocket = tree.pockets()
    cup, pen = make_item("cup"), make_item("pen")
    open_pocket.insert_item(cup)
    closed_pocket.insert_item(pen)

    spilled = tree.spill_open_pockets("table")

    assert [entry.item for entry in spilled] == [cup]
    assert tree.all_items() == [pen]


def test_identical_empty_containers_stack(backpack_type, make_item):
    first, second = Item(backpack_type), Item(backpack_type)

    assert first.is_stackable_with(second)
    assert first.contents.stacks_with(second.contents)

    first.contents.insert_item(make_item())

    assert not first.is_stackable_with(second)


def test_remaining_capacity_for_liquid(water_type):
    tree = build_tree(
        {"max_volume": "1 L", "max_weight": "5 kg", "watertight": True},
        {"max_volume": "1 L", "max_weight": "5 kg"},
    )

    assert tree.can_contain_liquid()
    assert tree.remaining_capacity_for_liquid(Item(water_type)) == 4


def test_insert_cost_and_can_contain(make_item):
    tree = build_tree({"max_volume": "1 L", "max_weight": "5 kg", "base_move_cost": 40})

    assert tree.insert_cost(make_item()) == 40
    assert tree.insert_cost(make_item("crate", volume="5 L")) is None
    assert tree.can_contain(make_item()).pocket is tree.pockets()[0]


@pytest.mark.parametrize("count", [1, 3])
def test_restack_across_pockets(make_item_type, count):
    nail_type = make_item_type("nail", volume=10, weight=1, stack_size=100, count_by_charges=True)
    tree = build_tree({"max_volume": "1 L", "max_weight": "5 kg"}, {"max_volume": "1 L", "max_weight": "5 kg"})
    for pocket in tree.pockets():
        for _ in range(count + 1):
            pocket.add(Item(nail_type, charges=1))

    assert tree.restack() == 2 * count
    assert tree.num_item_stacks() == 2
