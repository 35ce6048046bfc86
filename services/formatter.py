"""User-facing text and markup. Messages are sent with HTML parse mode."""
import html
import random
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    InlineQueryResultArticle,
    InputTextMessageContent,
    LinkPreviewOptions,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
)
from telegram.constants import ParseMode

from services.ingredient_types import category_icon, is_significant
from services.matcher import IngredientSet, split_by_ownership
from services.models import CatalogIngredient, Chat, Drink, OwnedIngredient

SAMPLE_SEARCHES = ("orange", "vodka", "lime", "rum", "ice", "mint", "cinnamon", "aperol", "syrup")
THUMBNAIL_SIZE = 200


def tg_escape(text: object) -> str:
    return html.escape("" if text is None else str(text), quote=True)


def tg_link(label: object, url: str) -> str:
    return f'<a href="{tg_escape(url)}">{tg_escape(label)}</a>'


def ingredient_url(code: str) -> str:
    return f"http://www.absolutdrinks.com/en/drinks/with/{code}/"


def ingredient_thumbnail_url(code: str) -> str:
    return f"http://assets.absolutdrinks.com/ingredients/200x200/{code}.png"


def drink_url(drink_id: str) -> str:
    return f"http://www.absolutdrinks.com/en/drinks/{drink_id}"


def drink_image_url(drink_id: str) -> str:
    return f"http://assets.absolutdrinks.com/drinks/{drink_id}.png"


def drink_thumbnail_url(drink_id: str) -> str:
    return f"http://assets.absolutdrinks.com/drinks/200x200/{drink_id}.png"


def random_sample() -> str:
    return random.choice(SAMPLE_SEARCHES)


def ingredient_search_help(chat: Chat, bot_name: str) -> Tuple[str, Optional[InlineKeyboardMarkup]]:
    sample = random_sample()
    message = f"in the message field type '@{tg_escape(bot_name)} {sample}' as an example."
    if not chat.is_private:
        return message, None
    message += " Or press the button below 👇"
    markup = InlineKeyboardMarkup(
        [[InlineKeyboardButton(f"💡 Try it now: {sample}", switch_inline_query=sample)]]
    )
    return message, markup


def introduction_message(help_message: str) -> str:
    return (
        "Hey! I'm here to help you to come up with party drink ideas based on which "
        "ingredients you have in your bar. Add me to the group chat and I'll suggest you "
        "recipes for ingredients people have on hand.\n"
        "And yes, you have to be at least 18 years old and drink responsibly 🍸🍷🍹"
        f"\n\nTo try, {help_message}"
    )


def no_ingredients_message(help_message: str) -> str:
    return f"No ingredients are chosen currently. To add one, {help_message}"


def no_drinks_found_message(help_message: str) -> str:
    return (
        "I'm sorry, but I couldn't find any matching drinks. "
        "Try the different set of ingredients. "
        f"To add an ingredient, {help_message}"
    )


def added_ingredient_message(name: str) -> str:
    return (
        f"Added {tg_escape(name)}. You may add more ingredients or use /search to find "
        "matching drinks. To check already chosen ingredients use /list."
    )


def ingredient_exists_message() -> str:
    return "You already have one. You may check your ingredients with /list."


def too_many_ingredients_message(limit: int) -> str:
    return f"You already have {int(limit)} ingredients in this chat. I can't handle more."


def cleared_ingredients_message() -> str:
    return "Cleared available ingredients."


def remove_ingredient_prompt() -> str:
    return "Which ingredient you would like to remove?"


def removed_ingredient_message(name: str) -> str:
    return f"Removed {tg_escape(name)}."


def no_more_results_message() -> str:
    return "No more search results. Modify your ingredients list and do /search again."


def next_page_help_message() -> str:
    return "To view other results tap /next."


def inline_help_message() -> str:
    return "Start typing an ingredient or drink name. Tap for help."


def chosen_ingredient_message(code: str, bot_name: str) -> str:
    return f"/add@{tg_escape(bot_name)} <b>{tg_escape(code)}</b>"


def ingredient_list_message(items: Sequence[OwnedIngredient], is_private: bool) -> str:
    lines: List[str] = []
    for item in items:
        icon = category_icon(item.category)
        prefix = f"{icon} " if icon else ""
        details = tg_link("(details)", ingredient_url(item.code))
        line = f"- {prefix}<b>{tg_escape(item.name)}</b> {details}"
        if not is_private and item.owner.full_name:
            line += f" by {tg_escape(item.owner.full_name)}"
        lines.append(line)
    return (
        "📋 Currently chosen ingredients:\n"
        + "\n".join(lines)
        + "\nHit /search to find matching drink recipes.\n"
        "You may want to remove individual ingredients with /remove or start over with /clear."
    )


def _join_or_nothing(parts: Iterable[str]) -> str:
    values = [part for part in parts if part]
    return ", ".join(values) if values else "nothing"


def drink_message(drink: Drink, owned: IngredientSet, *, with_next_hint: bool = True) -> str:
    have, need = split_by_ownership(drink, owned)
    need_parts = [
        tg_link(item.text, ingredient_url(item.id)) if is_significant(item.category) else tg_escape(item.text)
        for item in need
    ]
    links = []
    if drink.video_url:
        links.append(tg_link("(video)", drink.video_url))
    links.append(tg_link("(picture)", drink_image_url(drink.id)))
    links.append(tg_link("(details)", drink_url(drink.id)))
    text = (
        f"🍸 <b>{tg_escape(drink.name)}</b> {' '.join(links)}\n"
        f"<b>You have:</b> {_join_or_nothing(tg_escape(item.text) for item in have)}; "
        f"<b>you'll need to get:</b> {_join_or_nothing(need_parts)}\n"
        f"<b>Directions:</b> {tg_escape(drink.story)}"
    )
    if with_next_hint:
        text += "\n" + next_page_help_message()
    return text


def removal_choices(items: Sequence[OwnedIngredient]) -> Dict[str, str]:
    """Button label -> ingredient code. Labels stay unique even when names repeat."""
    name_counts: Dict[str, int] = {}
    for item in items:
        name_counts[item.name] = name_counts.get(item.name, 0) + 1
    choices: Dict[str, str] = {}
    for item in items:
        label = item.name if name_counts[item.name] == 1 else f"{item.name} ({item.code})"
        choices[label] = item.code
    return choices


def removal_keyboard(labels: Iterable[str]) -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        [[label] for label in labels],
        resize_keyboard=True,
        one_time_keyboard=True,
        selective=True,
    )


def hide_keyboard() -> ReplyKeyboardRemove:
    return ReplyKeyboardRemove(selective=True)


def ingredient_inline_result(ingredient: CatalogIngredient, bot_name: str) -> InlineQueryResultArticle:
    return InlineQueryResultArticle(
        id=f"i:{ingredient.id}"[:64],
        title=ingredient.name,
        description=ingredient.description[:200] or None,
        url=ingredient_url(ingredient.id),
        thumbnail_url=ingredient_thumbnail_url(ingredient.id),
        thumbnail_width=THUMBNAIL_SIZE,
        thumbnail_height=THUMBNAIL_SIZE,
        input_message_content=InputTextMessageContent(
            chosen_ingredient_message(ingredient.id, bot_name),
            parse_mode=ParseMode.HTML,
            link_preview_options=LinkPreviewOptions(is_disabled=True),
        ),
    )


def drink_inline_result(drink: Drink) -> InlineQueryResultArticle:
    return InlineQueryResultArticle(
        id=f"d:{drink.id}"[:64],
        title=f"🍸 {drink.name}",
        description=drink.story[:200] or None,
        url=drink_url(drink.id),
        thumbnail_url=drink_thumbnail_url(drink.id),
        thumbnail_width=THUMBNAIL_SIZE,
        thumbnail_height=THUMBNAIL_SIZE,
        input_message_content=InputTextMessageContent(
            drink_message(drink, frozenset(), with_next_hint=False),
            parse_mode=ParseMode.HTML,
            link_preview_options=LinkPreviewOptions(is_disabled=True),
        ),
    )
