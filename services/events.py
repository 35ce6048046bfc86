"""Normalize raw Telegram updates into the event envelope handlers consume."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from services.errors import InvariantViolation
from services.models import Chat, User

EVENT_KEY_PREFIX = "upd-"


class EventType(str, Enum):
    COMMAND = "command"
    FREE_TEXT = "free_text"
    INLINE_QUERY = "inline_query"


@dataclass(frozen=True)
class Event:
    type: EventType
    key: str
    user: User
    chat: Optional[Chat] = None
    payload: Dict[str, Any] = field(default_factory=dict)


def event_key(update_id: int) -> str:
    return f"{EVENT_KEY_PREFIX}{int(update_id)}"


def _user(data: Optional[Dict[str, Any]]) -> User:
    data = data or {}
    return User(
        id=int(data.get("id") or 0),
        username=str(data.get("username") or ""),
        first_name=str(data.get("first_name") or ""),
        last_name=str(data.get("last_name") or ""),
    )


def parse_command(text: str, entities: Any) -> Optional[Dict[str, str]]:
    """Split ``/name@bot argument`` using the leading ``bot_command`` entity."""
    if not entities:
        return None
    first = entities[0]
    if not isinstance(first, dict) or first.get("type") != "bot_command":
        return None
    offset = int(first.get("offset") or 0)
    length = int(first.get("length") or 0)
    if offset != 0 or length < 2:
        return None
    full_command = text[offset + 1 : offset + length]
    name, _, addressee = full_command.partition("@")
    argument = text[offset + length :].strip()
    return {"command": name.strip().lower(), "argument": argument, "addressee": addressee.strip()}


def from_update(update: Dict[str, Any]) -> Optional[Event]:
    """Build an event from an update dict, or None for updates the bot ignores."""
    if "update_id" not in update:
        raise InvariantViolation("Update without update_id")
    key = event_key(update["update_id"])

    inline_query = update.get("inline_query")
    if isinstance(inline_query, dict):
        return Event(
            type=EventType.INLINE_QUERY,
            key=key,
            user=_user(inline_query.get("from")),
            payload={
                "query_id": str(inline_query.get("id") or ""),
                "query": str(inline_query.get("query") or "").strip(),
                "offset": str(inline_query.get("offset") or ""),
            },
        )

    message = update.get("message")
    if not isinstance(message, dict):
        return None
    text = message.get("text")
    if not isinstance(text, str) or not text.strip():
        return None
    chat_data = message.get("chat") or {}
    if "id" not in chat_data:
        raise InvariantViolation(f"Message in update {update['update_id']} has no chat")
    chat = Chat(id=int(chat_data["id"]), type=str(chat_data.get("type") or "private"))
    user = _user(message.get("from"))
    message_id = int(message.get("message_id") or 0)

    command = parse_command(text, message.get("entities"))
    if command is not None:
        return Event(
            type=EventType.COMMAND,
            key=key,
            user=user,
            chat=chat,
            payload={**command, "message_id": message_id},
        )

    return Event(
        type=EventType.FREE_TEXT,
        key=key,
        user=user,
        chat=chat,
        payload={"text": text.strip(), "message_id": message_id},
    )
