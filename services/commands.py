import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from boozy_bot.config import BotSettings
from services import audit_log, formatter, ingredients, result_cache, session_mode
from services.commands_registry import resolve_root, validate_registry
from services.ingredients import AddResult
from services.matcher import IngredientSet, dedupe_candidates, ingredient_set, match
from services.models import Chat, Drink, OwnedIngredient, User
from services.session_mode import ChatMode

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    UNHANDLED = "unhandled"
    IGNORED = "ignored"
    HELP_SENT = "help_sent"
    NO_INGREDIENTS = "no_ingredients"
    LISTED = "listed"
    ADDED = "added"
    ALREADY_OWNED = "already_owned"
    TOO_MANY_INGREDIENTS = "too_many_ingredients"
    REMOVAL_PROMPTED = "removal_prompted"
    REMOVED = "removed"
    CLEARED = "cleared"
    RESULTS_SENT = "results_sent"
    NO_DRINKS_FOUND = "no_drinks_found"
    NO_MORE_RESULTS = "no_more_results"


@dataclass(frozen=True)
class CommandContext:
    chat: Chat
    user: User
    message_id: int
    event_key: str


CommandHandler = Callable[[str, CommandContext], Awaitable[Outcome]]


class CommandDispatcher:
    """Routes one command to one handler and audits the call exactly once.

    ``transport`` is expected to be the per-event ``LedgeredTransport`` so a
    retried event does not repeat replies it already delivered.
    """

    def __init__(self, transport: Any, catalog: Any, settings: BotSettings):
        self.transport = transport
        self.catalog = catalog
        self.settings = settings
        self._handlers: Dict[str, CommandHandler] = {
            "start": self._start,
            "add": self._add,
            "list": self._list,
            "remove": self._remove,
            "clear": self._clear,
            "search": self._search,
            "next": self._next,
        }
        issues = validate_registry(self._handlers)
        if issues:
            raise ValueError("Command registry is inconsistent: " + "; ".join(issues))

    async def dispatch(self, command: str, argument: str, context: CommandContext) -> Outcome:
        root = resolve_root(command)
        try:
            handler = self._handlers.get(root)
            if handler is None:
                logger.warning("Unrecognized command %r in chat %s", command, context.chat.id)
                return Outcome.UNHANDLED
            outcome = await handler(argument or "", context)
            logger.info("Command /%s in chat %s -> %s", root, context.chat.id, outcome.value)
            return outcome
        except Exception as exc:
            logger.warning("Command /%s in chat %s failed: %s", root, context.chat.id, exc)
            raise
        finally:
            # Runs on success and failure alike; the unique key absorbs retries.
            audit_log.record_command(
                dispatch_key=context.event_key,
                command=root or command,
                parameter=argument,
                user=context.user,
            )

    async def _catalog(self, method: str, *args: Any) -> Any:
        # The catalog client is blocking; keep the event loop free for the job timeout.
        return await asyncio.to_thread(getattr(self.catalog, method), *args)

    async def _reply(self, context: CommandContext, text: str, markup: Any = None, *, quote: bool = False) -> None:
        await self.transport.deliver_message(
            context.chat.id,
            text,
            reply_markup=markup,
            reply_to=context.message_id if quote else None,
        )

    async def _send_help(self, context: CommandContext, render: Callable[[str], str]) -> None:
        help_message, markup = formatter.ingredient_search_help(context.chat, self.settings.bot_name)
        await self._reply(context, render(help_message), markup)

    async def _send_no_ingredients(self, context: CommandContext) -> Outcome:
        await self._send_help(context, formatter.no_ingredients_message)
        return Outcome.NO_INGREDIENTS

    async def _start(self, argument: str, context: CommandContext) -> Outcome:
        await self._send_help(context, formatter.introduction_message)
        return Outcome.HELP_SENT

    async def _list(self, argument: str, context: CommandContext) -> Outcome:
        items = ingredients.list_ingredients(context.chat.id)
        if not items:
            return await self._send_no_ingredients(context)
        await self._reply(context, formatter.ingredient_list_message(items, context.chat.is_private))
        return Outcome.LISTED

    async def _add(self, argument: str, context: CommandContext) -> Outcome:
        code = argument.split()[0] if argument.split() else ""
        if not code:
            await self._send_help(context, lambda help_message: f"To add an ingredient, {help_message}")
            return Outcome.HELP_SENT

        ingredient = await self._catalog("get_ingredient", code)
        result = ingredients.add_ingredient(
            context.chat.id,
            ingredient,
            context.user,
            limit=self.settings.max_ingredients_per_chat,
            source_event=context.event_key,
        )
        if result is AddResult.ALREADY_OWNED:
            await self._reply(context, formatter.ingredient_exists_message(), quote=True)
            return Outcome.ALREADY_OWNED
        if result is AddResult.TOO_MANY:
            await self._reply(
                context,
                formatter.too_many_ingredients_message(self.settings.max_ingredients_per_chat),
                quote=True,
            )
            return Outcome.TOO_MANY_INGREDIENTS
        await self._reply(context, formatter.added_ingredient_message(ingredient.name), quote=True)
        return Outcome.ADDED

    async def _remove(self, argument: str, context: CommandContext) -> Outcome:
        items = ingredients.list_ingredients(context.chat.id)
        if not items:
            return await self._send_no_ingredients(context)
        choices = formatter.removal_choices(items)
        session_mode.set_mode(context.chat.id, ChatMode.AWAITING_REMOVAL_CHOICE, choices)
        try:
            await self._reply(
                context,
                formatter.remove_ingredient_prompt(),
                formatter.removal_keyboard(choices.keys()),
                quote=True,
            )
        except Exception:
            # No prompt reached the chat, so there is no choice to wait for.
            session_mode.reset(context.chat.id)
            raise
        return Outcome.REMOVAL_PROMPTED

    async def _clear(self, argument: str, context: CommandContext) -> Outcome:
        removed = ingredients.clear_ingredients(context.chat.id)
        # A removal prompt shown before the clear has nothing left to remove.
        session_mode.reset(context.chat.id)
        logger.info("Cleared %s ingredients in chat %s", removed, context.chat.id)
        await self._reply(context, formatter.cleared_ingredients_message())
        return Outcome.CLEARED

    async def _search(self, argument: str, context: CommandContext) -> Outcome:
        items = ingredients.list_ingredients(context.chat.id)
        if not items:
            return await self._send_no_ingredients(context)

        owned = ingredient_set(item.code for item in items)
        candidates = await self._catalog("find_drinks_with_any", sorted(owned))
        ranked = match(dedupe_candidates(candidates), owned, self.settings.match_tolerance)
        logger.info(
            "Chat %s search: %s candidates, %s matched", context.chat.id, len(candidates), len(ranked)
        )
        if not ranked:
            result_cache.drop(context.chat.id)
            await self._send_help(context, formatter.no_drinks_found_message)
            return Outcome.NO_DRINKS_FOUND

        page_size = self.settings.search_page_size
        visible, overflow = ranked[:page_size], ranked[page_size:]
        result_cache.store(context.chat.id, overflow)
        await self._deliver_drinks(context, visible, owned, more=bool(overflow))
        return Outcome.RESULTS_SENT

    async def _next(self, argument: str, context: CommandContext) -> Outcome:
        page = result_cache.take_page(
            context.chat.id, self.settings.search_page_size, claim_key=context.event_key
        )
        if not page:
            await self._reply(context, formatter.no_more_results_message())
            return Outcome.NO_MORE_RESULTS
        owned = ingredient_set(item.code for item in ingredients.list_ingredients(context.chat.id))
        more = result_cache.count(context.chat.id) > 0
        await self._deliver_drinks(context, page, owned, more=more)
        return Outcome.RESULTS_SENT

    async def _deliver_drinks(
        self, context: CommandContext, drinks: List[Drink], owned: IngredientSet, *, more: bool
    ) -> None:
        for index, drink in enumerate(drinks):
            last = index == len(drinks) - 1
            await self._reply(context, formatter.drink_message(drink, owned, with_next_hint=more and last))


async def handle_free_text(text: str, context: CommandContext, transport: Any) -> Outcome:
    """Interpret a plain message according to the chat's session mode.

    Only a chat waiting for a removal choice reacts to free text. The removal
    runs in a fixed order: delete the ingredient, then return the chat to idle,
    then notify. If a step fails the later ones do not run and the failure
    surfaces once to the caller.
    """
    state = session_mode.get_state(context.chat.id)
    if state.mode is not ChatMode.AWAITING_REMOVAL_CHOICE:
        logger.debug("Ignoring free text in chat %s, not awaiting a choice", context.chat.id)
        return Outcome.IGNORED

    code = state.resolve_choice(text)
    if code is None:
        logger.debug("Free text in chat %s did not match a removal choice", context.chat.id)
        return Outcome.IGNORED

    owned: Optional[OwnedIngredient] = ingredients.get_ingredient(context.chat.id, code)
    if owned is None:
        logger.debug("Chat %s does not own %s; ignoring", context.chat.id, code)
        return Outcome.IGNORED

    ingredients.remove_ingredient(context.chat.id, code)
    session_mode.reset(context.chat.id)
    await transport.deliver_message(
        context.chat.id,
        formatter.removed_ingredient_message(owned.name),
        reply_markup=formatter.hide_keyboard(),
        reply_to=context.message_id,
    )
    return Outcome.REMOVED
