"""Drink matching: filter catalog candidates against what a chat owns.

All functions here are pure. ``match`` is the only ranking entry point; the
catalog may return candidates in any order.
"""
from __future__ import annotations

from typing import FrozenSet, Iterable, List, Sequence, Tuple

from services.ingredient_types import is_significant
from services.models import Drink, DrinkIngredient

IngredientSet = FrozenSet[str]


def ingredient_set(codes: Iterable[str]) -> IngredientSet:
    return frozenset(str(code) for code in codes if code)


def unmatched_count(drink: Drink, owned: IngredientSet) -> int:
    """Number of significant ingredients of ``drink`` that are not in ``owned``.

    An ingredient whose category is unknown counts as significant.
    """
    return sum(
        1
        for item in drink.ingredients
        if item.id not in owned and is_significant(item.category)
    )


def match(candidates: Sequence[Drink], owned: IngredientSet, tolerance: int) -> List[Drink]:
    """Drinks missing at most ``tolerance`` significant ingredients, best rated first.

    ``sorted`` is stable, so drinks with equal ratings keep their input order.
    """
    kept = [drink for drink in candidates if unmatched_count(drink, owned) <= tolerance]
    return sorted(kept, key=lambda drink: drink.rating, reverse=True)


def dedupe_candidates(candidates: Iterable[Drink]) -> List[Drink]:
    seen = set()
    unique: List[Drink] = []
    for drink in candidates:
        if drink.id in seen:
            continue
        seen.add(drink.id)
        unique.append(drink)
    return unique


def split_by_ownership(
    drink: Drink, owned: IngredientSet
) -> Tuple[List[DrinkIngredient], List[DrinkIngredient]]:
    have: List[DrinkIngredient] = []
    need: List[DrinkIngredient] = []
    for item in drink.ingredients:
        (have if item.id in owned else need).append(item)
    return have, need
