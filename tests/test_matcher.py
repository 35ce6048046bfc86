from conftest import make_drink

from services import matcher
from services.ingredient_types import IngredientCategory, category_icon, is_significant


def test_match_keeps_drinks_within_tolerance_ordered_by_rating():
    owned = matcher.ingredient_set(["rum-001", "lime-002"])
    candidates = [
        make_drink("daiquiri", 70, ("rum-001", "rum"), ("lime-002", "fruits"), ("sugar", "others")),
        make_drink("mojito", 90, ("rum-001", "rum"), ("mint", "spices-herbs"), ("soda", "mixers")),
        make_drink("zombie", 95, ("rum-001", "rum"), ("gin-1", "gin"), ("brandy-1", "brandy")),
    ]

    ranked = matcher.match(candidates, owned, tolerance=1)

    assert [drink.id for drink in ranked] == ["mojito", "daiquiri"]


def test_match_with_zero_tolerance_requires_every_significant_ingredient():
    owned = matcher.ingredient_set(["vodka-1"])
    candidates = [
        make_drink("screwdriver", 50, ("vodka-1", "vodka"), ("orange", "fruits"), ("ice", "ice")),
        make_drink("martini", 80, ("vodka-1", "vodka"), ("vermouth", "spirits-other")),
    ]

    assert [drink.id for drink in matcher.match(candidates, owned, tolerance=0)] == ["screwdriver"]


def test_match_ties_keep_candidate_order():
    owned = matcher.ingredient_set(["rum-001"])
    candidates = [make_drink(f"drink-{idx}", 50, ("rum-001", "rum")) for idx in range(4)]

    assert [drink.id for drink in matcher.match(candidates, owned, 0)] == [
        "drink-0",
        "drink-1",
        "drink-2",
        "drink-3",
    ]


def test_unknown_category_counts_as_significant():
    drink = make_drink("mystery", 10, ("rum-001", "rum"), ("thing", "space-dust"))
    owned = matcher.ingredient_set(["rum-001"])

    assert is_significant("space-dust") is True
    assert matcher.unmatched_count(drink, owned) == 1
    assert matcher.match([drink], owned, tolerance=0) == []


def test_empty_candidates_and_empty_owned():
    assert matcher.match([], matcher.ingredient_set(["rum-001"]), 1) == []
    drink = make_drink("garnish-only", 10, ("ice", "ice"), ("lemon", "fruits"))
    assert matcher.match([drink], matcher.ingredient_set([]), 0) == [drink]


def test_dedupe_candidates_keeps_first_occurrence():
    first = make_drink("mojito", 90, ("rum-001", "rum"))
    second = make_drink("mojito", 10, ("rum-001", "rum"))
    other = make_drink("daiquiri", 70, ("rum-001", "rum"))

    assert matcher.dedupe_candidates([first, other, second]) == [first, other]


def test_split_by_ownership():
    drink = make_drink("daiquiri", 70, ("rum-001", "rum"), ("lime-002", "fruits"), ("sugar", "others"))

    have, need = matcher.split_by_ownership(drink, matcher.ingredient_set(["rum-001"]))

    assert [item.id for item in have] == ["rum-001"]
    assert [item.id for item in need] == ["lime-002", "sugar"]


def test_category_table_lookup():
    assert IngredientCategory.parse("spices-herbs") is IngredientCategory.SPICES_HERBS
    assert IngredientCategory.parse("nope") is None
    assert is_significant("ice") is False
    assert is_significant("whisky") is True
    assert category_icon("berries") == "🍓"
    assert category_icon("unknown") == ""
