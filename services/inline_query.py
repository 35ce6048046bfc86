import asyncio
import logging
from typing import Any, List

from boozy_bot.config import BotSettings
from services import formatter
from services.inline_pagination import DONE, PaginationCursor, advance, decode_cursor, encode_cursor

logger = logging.getLogger(__name__)


async def handle_inline_query(
    query_id: str,
    query: str,
    raw_offset: str,
    *,
    transport: Any,
    catalog: Any,
    settings: BotSettings,
) -> PaginationCursor:
    """Answer one round of inline search and return the cursor for the next round.

    Ingredients and drinks are searched separately, each from its own offset
    and with its own page size, so one sequence running out does not change how
    much of the other is shown.
    """
    if not query:
        await transport.deliver_inline_answer(query_id, [], help_prompt=formatter.inline_help_message())
        return PaginationCursor(DONE, DONE)

    cursor = decode_cursor(raw_offset)
    page_size = settings.inline_page_size
    results: List[Any] = []

    ingredients_offset = cursor.ingredients_offset
    if ingredients_offset != DONE:
        page = await asyncio.to_thread(catalog.search_ingredients, query, int(ingredients_offset), page_size)
        results.extend(formatter.ingredient_inline_result(item, settings.bot_name) for item in page.items)
        ingredients_offset = advance(ingredients_offset, page_size, page.total, len(page.items))

    recipes_offset = cursor.recipes_offset
    if recipes_offset != DONE:
        page = await asyncio.to_thread(catalog.search_drinks, query, int(recipes_offset), page_size)
        results.extend(formatter.drink_inline_result(drink) for drink in page.items)
        recipes_offset = advance(recipes_offset, page_size, page.total, len(page.items))

    next_cursor = PaginationCursor(ingredients_offset, recipes_offset)
    logger.debug(
        "Inline query %r from %r: %s results, next cursor %r",
        query,
        raw_offset,
        len(results),
        encode_cursor(next_cursor),
    )
    await transport.deliver_inline_answer(
        query_id,
        results,
        help_prompt=None if results else formatter.inline_help_message(),
        next_cursor=encode_cursor(next_cursor),
    )
    return next_cursor
