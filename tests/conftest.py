import asyncio
from typing import Dict, List

import pytest

from services import storage
from services.errors import FatalError
from services.models import CatalogIngredient, Drink, DrinkIngredient, SearchPage


@pytest.fixture(autouse=True)
def temp_db(tmp_path):
    original = storage.DB_PATH
    storage.DB_PATH = tmp_path / "test.db"
    storage.init_db()
    yield storage.DB_PATH
    storage.DB_PATH = original


class FakeTransport:
    """Records outgoing traffic. Set ``fail_on_message`` to make the Nth send raise."""

    def __init__(self):
        self.messages: List[Dict] = []
        self.inline_answers: List[Dict] = []
        self.commands = None
        self.fail_on_message = None
        self.failure = RuntimeError("send failed")
        self.updates: List[tuple] = []
        self.polled_offsets: List = []

    async def deliver_message(self, chat_id, text, reply_markup=None, reply_to=None, link_preview=False):
        if self.fail_on_message is not None and len(self.messages) == self.fail_on_message:
            self.fail_on_message = None
            raise self.failure
        self.messages.append(
            {"chat_id": chat_id, "text": text, "reply_markup": reply_markup, "reply_to": reply_to}
        )

    async def deliver_inline_answer(self, query_id, items, help_prompt=None, next_cursor=None):
        self.inline_answers.append(
            {"query_id": query_id, "items": list(items), "help_prompt": help_prompt, "next_cursor": next_cursor}
        )

    async def get_updates(self, offset, *, timeout=10):
        self.polled_offsets.append(offset)
        await asyncio.sleep(0)
        if self.updates:
            return self.updates.pop(0)
        return [], offset

    async def set_commands(self, commands):
        self.commands = list(commands)

    @property
    def texts(self) -> List[str]:
        return [message["text"] for message in self.messages]


class FakeCatalog:
    def __init__(self, ingredients=None, drinks=None):
        self.ingredients: Dict[str, CatalogIngredient] = {item.id: item for item in ingredients or []}
        self.drinks: List[Drink] = list(drinks or [])
        self.calls: List[tuple] = []

    def get_ingredient(self, code):
        self.calls.append(("get_ingredient", code))
        if code not in self.ingredients:
            raise FatalError(f"Ingredient {code!r} not found in catalog")
        return self.ingredients[code]

    def find_drinks_with_any(self, codes):
        codes = list(codes)
        self.calls.append(("find_drinks_with_any", codes))
        return [drink for drink in self.drinks if any(item.id in codes for item in drink.ingredients)]

    def search_ingredients(self, text, offset, page_size):
        self.calls.append(("search_ingredients", text, offset, page_size))
        found = [item for item in self.ingredients.values() if text.lower() in item.name.lower()]
        return SearchPage(items=found[offset : offset + page_size], total=len(found))

    def search_drinks(self, text, offset, page_size):
        self.calls.append(("search_drinks", text, offset, page_size))
        found = [drink for drink in self.drinks if text.lower() in drink.name.lower()]
        return SearchPage(items=found[offset : offset + page_size], total=len(found))


def make_drink(drink_id, rating, *ingredients, name=None):
    """``ingredients`` are ``(code, category)`` pairs."""
    return Drink(
        id=drink_id,
        name=name or drink_id.replace("-", " ").title(),
        rating=rating,
        story=f"Mix the {drink_id}.",
        ingredients=[DrinkIngredient(id=code, category=category, text=code) for code, category in ingredients],
    )


