import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from telegram import (
    Bot,
    BotCommand,
    InlineQueryResultsButton,
    LinkPreviewOptions,
    ReplyParameters,
)
from telegram.constants import ParseMode
from telegram.error import (
    BadRequest,
    ChatMigrated,
    Conflict,
    Forbidden,
    InvalidToken,
    NetworkError,
    RetryAfter,
    TelegramError,
    TimedOut,
)
from telegram.request import HTTPXRequest

from services.errors import FatalError, TransientError

logger = logging.getLogger(__name__)

HELP_START_PARAMETER = "hint"
ALLOWED_UPDATES = ["message", "inline_query"]


def translate_telegram_error(exc: TelegramError) -> Exception:
    # BadRequest is a NetworkError subclass, so the client-class checks go first.
    if isinstance(exc, (BadRequest, Forbidden, InvalidToken, ChatMigrated)):
        return FatalError(f"Telegram rejected the request: {exc.message}")
    if isinstance(exc, RetryAfter):
        return TransientError(f"Telegram flood control, retry after {exc.retry_after}")
    if isinstance(exc, (TimedOut, NetworkError, Conflict)):
        return TransientError(f"Telegram unavailable: {exc.message}")
    return TransientError(f"Telegram API error: {exc.message}")


class TelegramTransport:
    """Thin async wrapper over ``telegram.Bot``.

    The polling offset is never kept on the instance: ``get_updates`` takes the
    offset to resume from and returns the offset for the next call.
    """

    def __init__(self, token: str, *, bot: Optional[Bot] = None, inline_cache_seconds: int = 300):
        if not token and bot is None:
            raise ValueError("Bot API token is not provided")
        self.inline_cache_seconds = inline_cache_seconds
        self.bot = bot or Bot(
            token,
            request=HTTPXRequest(connect_timeout=30, read_timeout=60, write_timeout=60, pool_timeout=30),
            get_updates_request=HTTPXRequest(connect_timeout=30, read_timeout=60),
        )

    async def __aenter__(self) -> "TelegramTransport":
        await self.bot.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.bot.shutdown()

    async def get_updates(
        self, offset: Optional[int], *, timeout: int = 10
    ) -> Tuple[List[Dict[str, Any]], Optional[int]]:
        try:
            updates = await self.bot.get_updates(
                offset=offset,
                timeout=timeout,
                allowed_updates=ALLOWED_UPDATES,
            )
        except TelegramError as exc:
            raise translate_telegram_error(exc) from exc
        if not updates:
            return [], offset
        next_offset = updates[-1].update_id + 1
        logger.debug("Received %s updates, next offset %s", len(updates), next_offset)
        return [update.to_dict() for update in updates], next_offset

    async def deliver_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: Any = None,
        reply_to: Optional[int] = None,
        link_preview: bool = False,
    ) -> None:
        logger.debug("Sending message to chat %s", chat_id)
        try:
            await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=ParseMode.HTML,
                reply_markup=reply_markup,
                reply_parameters=(
                    ReplyParameters(message_id=reply_to, allow_sending_without_reply=True)
                    if reply_to
                    else None
                ),
                link_preview_options=LinkPreviewOptions(is_disabled=not link_preview),
            )
        except TelegramError as exc:
            raise translate_telegram_error(exc) from exc

    async def deliver_inline_answer(
        self,
        query_id: str,
        items: Sequence[Any],
        help_prompt: Optional[str] = None,
        next_cursor: Optional[str] = None,
        *,
        cache_time: Optional[int] = None,
    ) -> None:
        button = (
            InlineQueryResultsButton(text=help_prompt, start_parameter=HELP_START_PARAMETER)
            if help_prompt
            else None
        )
        try:
            await self.bot.answer_inline_query(
                inline_query_id=query_id,
                results=list(items),
                cache_time=self.inline_cache_seconds if cache_time is None else cache_time,
                next_offset=next_cursor or "",
                button=button,
            )
        except TelegramError as exc:
            raise translate_telegram_error(exc) from exc

    async def set_commands(self, commands: Sequence[BotCommand]) -> None:
        try:
            await self.bot.set_my_commands(list(commands))
        except TelegramError as exc:
            raise translate_telegram_error(exc) from exc
