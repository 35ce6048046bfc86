"""Catalog ingredient categories.

Each category says whether a missing ingredient of that kind counts against a
drink. Ice, decoration, fruit and the like are assumed to be easy to get.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class IngredientCategory(Enum):
    BASE_SPIRIT = ("BaseSpirit", True, "")
    BERRIES = ("berries", False, "🍓")
    BRANDY = ("brandy", True, "")
    DECORATION = ("decoration", False, "")
    FRUITS = ("fruits", False, "🍐")
    GIN = ("gin", True, "")
    ICE = ("ice", False, "")
    MIXERS = ("mixers", False, "")
    OTHERS = ("others", False, "")
    RUM = ("rum", True, "")
    SPICES_HERBS = ("spices-herbs", True, "")
    SPIRITS_OTHER = ("spirits-other", True, "")
    TEQUILA = ("tequila", True, "")
    VODKA = ("vodka", True, "")
    WHISKY = ("whisky", True, "")

    def __init__(self, code: str, significant: bool, icon: str):
        self.code = code
        self.significant = significant
        self.icon = icon

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["IngredientCategory"]:
        return _BY_CODE.get(str(raw or "").strip())


_BY_CODE = {category.code: category for category in IngredientCategory}


def validate_categories() -> None:
    seen = set()
    for category in IngredientCategory:
        if not category.code:
            raise ValueError(f"Ingredient category {category.name} has an empty catalog code")
        if category.code in seen:
            raise ValueError(f"Duplicate ingredient category code: {category.code}")
        if not isinstance(category.significant, bool):
            raise ValueError(f"Ingredient category {category.name} needs a boolean significance flag")
        seen.add(category.code)


def is_significant(raw_category: Optional[str]) -> bool:
    """Whether a missing ingredient of this catalog category counts against a drink.

    Categories the catalog reports but this table does not know are treated as
    significant, so an unexpected category makes matching stricter, never looser.
    """
    category = IngredientCategory.parse(raw_category)
    if category is None:
        logger.debug("Unknown ingredient category %r treated as significant", raw_category)
        return True
    return category.significant


def category_icon(raw_category: Optional[str]) -> str:
    category = IngredientCategory.parse(raw_category)
    return category.icon if category else ""


validate_categories()
