from __future__ import annotations

from typing import List

from telegram import BotCommand

from services.commands_registry import menu_commands


def bot_commands() -> List[BotCommand]:
    """Commands shown in the Telegram client's command menu, in registry order."""
    return [BotCommand(spec.name, spec.description) for spec in menu_commands()]
