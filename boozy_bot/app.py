from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List, Optional

from boozy_bot.config import BotSettings, get_secret, load_config
from boozy_bot.logging import configure_logging
from boozy_bot.telegram.commands import bot_commands
from services.addb_client import AddbClient
from services.listener import UpdateListener
from services.telegram_client import TelegramTransport
from services.worker import UpdateWorker

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="boozy-bot", description="Telegram drink recommendation bot")
    parser.add_argument(
        "role",
        choices=["listen", "work"],
        help="listen: poll Telegram and queue updates; work: process queued updates",
    )
    return parser


async def _listen(settings: BotSettings, token: str) -> None:
    async with TelegramTransport(token, inline_cache_seconds=settings.inline_cache_seconds) as transport:
        listener = UpdateListener(transport, settings, commands=bot_commands())
        await listener.start()


async def _work(settings: BotSettings, token: str, api_key: str) -> None:
    catalog = AddbClient(
        api_key,
        api_root=settings.addb_base_url,
        timeout_seconds=settings.addb_timeout_seconds,
    )
    async with TelegramTransport(token, inline_cache_seconds=settings.inline_cache_seconds) as transport:
        worker = UpdateWorker(transport, catalog, settings)
        await worker.start()


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    config = load_config()
    configure_logging(config, role=args.role)
    settings = BotSettings.from_config(config)

    token = get_secret("telegram", "TELEGRAM_BOT_TOKEN", config)
    if not token:
        raise SystemExit("Telegram bot token is not set (telegram.token_env_var)")

    try:
        if args.role == "listen":
            asyncio.run(_listen(settings, token))
        else:
            api_key = get_secret("addb", "ADDB_API_KEY", config)
            if not api_key:
                raise SystemExit("ADDB API key is not set (addb.key_env_var)")
            asyncio.run(_work(settings, token, api_key))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down %s", args.role)


if __name__ == "__main__":
    main()
