"""Per-chat input mode.

A chat is either idle or waiting for the user to pick an ingredient to
remove. The removal prompt stores the exact labels it offered, so a reply is
resolved by lookup instead of by re-parsing the button text.
"""
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from services import storage

logger = logging.getLogger(__name__)


class ChatMode(str, Enum):
    IDLE = "idle"
    AWAITING_REMOVAL_CHOICE = "awaiting_removal_choice"


@dataclass(frozen=True)
class SessionState:
    mode: ChatMode = ChatMode.IDLE
    removal_choices: Dict[str, str] = field(default_factory=dict)

    def resolve_choice(self, text: str) -> Optional[str]:
        value = str(text or "").strip()
        if not value:
            return None
        # Anything else is taken as a typed code; the caller checks ownership.
        return self.removal_choices.get(value, value)


def get_state(chat_id: int) -> SessionState:
    with storage.connection() as con:
        row = con.execute(
            "SELECT mode, choices_json FROM chat_modes WHERE chat_id = ?", (int(chat_id),)
        ).fetchone()
    if not row:
        return SessionState()
    try:
        mode = ChatMode(row["mode"])
    except ValueError:
        logger.warning("Chat %s has unknown mode %r; treating as idle", chat_id, row["mode"])
        return SessionState()
    choices = json.loads(row["choices_json"]) if row["choices_json"] else {}
    return SessionState(mode=mode, removal_choices=dict(choices))


def get_mode(chat_id: int) -> ChatMode:
    return get_state(chat_id).mode


def set_mode(chat_id: int, mode: ChatMode, removal_choices: Optional[Dict[str, str]] = None) -> None:
    choices_json = json.dumps(removal_choices, ensure_ascii=False) if removal_choices else None
    with storage.transaction() as con:
        con.execute(
            """
            INSERT INTO chat_modes (chat_id, mode, choices_json, updated_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(chat_id) DO UPDATE SET
                mode = excluded.mode,
                choices_json = excluded.choices_json,
                updated_at = CURRENT_TIMESTAMP
            """,
            (int(chat_id), ChatMode(mode).value, choices_json),
        )


def reset(chat_id: int) -> None:
    set_mode(chat_id, ChatMode.IDLE)
