"""Outbound delivery that is safe to repeat.

Each event numbers its outgoing messages 0, 1, 2, ... A retried attempt of the
same event walks the same sequence and skips the numbers already recorded as
delivered, so a user never sees the same reply twice because a later step
failed.
"""
import logging
from typing import Any, Optional, Sequence

from services import storage

logger = logging.getLogger(__name__)


def _already_delivered(event_key: str, seq: int) -> bool:
    with storage.connection() as con:
        row = con.execute(
            "SELECT 1 FROM delivery_log WHERE event_key = ? AND seq = ?", (event_key, seq)
        ).fetchone()
    return row is not None


def _mark_delivered(event_key: str, seq: int) -> None:
    with storage.transaction() as con:
        con.execute(
            "INSERT OR IGNORE INTO delivery_log (event_key, seq) VALUES (?, ?)", (event_key, seq)
        )


class LedgeredTransport:
    """Wraps a transport for the duration of one event."""

    def __init__(self, transport: Any, event_key: str):
        self.transport = transport
        self.event_key = event_key
        self._seq = 0

    def _next_seq(self) -> int:
        seq = self._seq
        self._seq += 1
        return seq

    async def deliver_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: Any = None,
        reply_to: Optional[int] = None,
        link_preview: bool = False,
    ) -> bool:
        seq = self._next_seq()
        if _already_delivered(self.event_key, seq):
            logger.info("Skipping message %s of %s, delivered by an earlier attempt", seq, self.event_key)
            return False
        await self.transport.deliver_message(
            chat_id, text, reply_markup=reply_markup, reply_to=reply_to, link_preview=link_preview
        )
        _mark_delivered(self.event_key, seq)
        return True

    async def deliver_inline_answer(
        self,
        query_id: str,
        items: Sequence[Any],
        help_prompt: Optional[str] = None,
        next_cursor: Optional[str] = None,
    ) -> bool:
        seq = self._next_seq()
        if _already_delivered(self.event_key, seq):
            return False
        await self.transport.deliver_inline_answer(
            query_id, items, help_prompt=help_prompt, next_cursor=next_cursor
        )
        _mark_delivered(self.event_key, seq)
        return True
