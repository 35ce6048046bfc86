"""Compound cursor for inline search.

Inline answers mix two independently paginated searches, ingredients and
drinks. Telegram hands back a single ``offset`` string, so both positions are
packed into it as ``"<ingredients>:<drinks>"`` with ``-`` marking a finished
sequence. A cursor whose sequences are both finished encodes to ``None``,
which tells Telegram there is no next page.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from services.errors import InvariantViolation

DONE = "done"
_DONE_TOKEN = "-"
_SEPARATOR = ":"

Offset = Union[int, str]


@dataclass(frozen=True)
class PaginationCursor:
    ingredients_offset: Offset = 0
    recipes_offset: Offset = 0

    @property
    def is_finished(self) -> bool:
        return self.ingredients_offset == DONE and self.recipes_offset == DONE


def _decode_offset(token: str) -> Offset:
    token = token.strip()
    if token == _DONE_TOKEN:
        return DONE
    if not token.isdigit():
        raise InvariantViolation(f"Malformed inline cursor offset: {token!r}")
    return int(token)


def _encode_offset(offset: Offset) -> str:
    if offset == DONE:
        return _DONE_TOKEN
    if not isinstance(offset, int) or offset < 0:
        raise InvariantViolation(f"Inline cursor offset must be a non-negative int or DONE, got {offset!r}")
    return str(offset)


def decode_cursor(raw: Optional[str]) -> PaginationCursor:
    if raw is None or not str(raw).strip():
        return PaginationCursor(0, 0)
    parts = str(raw).split(_SEPARATOR)
    if len(parts) != 2:
        raise InvariantViolation(f"Malformed inline cursor: {raw!r}")
    return PaginationCursor(_decode_offset(parts[0]), _decode_offset(parts[1]))


def encode_cursor(cursor: PaginationCursor) -> Optional[str]:
    if cursor.is_finished:
        return None
    return _SEPARATOR.join(
        (_encode_offset(cursor.ingredients_offset), _encode_offset(cursor.recipes_offset))
    )


def advance(offset: Offset, page_size: int, total: int, returned: int) -> Offset:
    """Position after serving a page that started at ``offset``.

    A sequence is finished once the page reaches ``total`` or comes back short.
    """
    if offset == DONE:
        return DONE
    next_offset = int(offset) + int(page_size)
    if returned < page_size or next_offset >= int(total):
        return DONE
    return next_offset
