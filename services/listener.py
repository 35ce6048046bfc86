import asyncio
import logging
from typing import Any, Optional

from boozy_bot.config import BotSettings
from services import storage, update_queue
from services.errors import FailureKind, classify_failure
from services.retry import backoff_delay, retry_with_backoff_async

logger = logging.getLogger(__name__)

OUTAGE_MAX_DELAY_SECONDS = 300.0


class UpdateListener:
    """Long-polls Telegram and hands every update to the durable queue.

    The offset only advances after the whole batch is queued, so a crash
    between polling and queueing re-fetches the batch instead of losing it.
    Duplicates are absorbed by the queue's unique ``update_id``.

    A poll that still fails after its own retries is logged and polled again
    after a backoff. Only a fatal failure (a revoked token, say) ends the loop.
    """

    def __init__(self, transport: Any, settings: BotSettings, *, commands: Optional[list] = None):
        self.transport = transport
        self.settings = settings
        self.commands = commands
        self.running = False
        self._stop_event = asyncio.Event()

    @retry_with_backoff_async(max_retries=5, base_delay=1.0, max_delay=60.0)
    async def _poll(self, offset: Optional[int]):
        return await self.transport.get_updates(offset, timeout=self.settings.poll_timeout_seconds)

    async def poll_once(self, offset: Optional[int]) -> Optional[int]:
        """Fetch one batch, queue it and return the offset to poll from next."""
        updates, next_offset = await self._poll(offset)
        queued = sum(1 for update in updates if update_queue.enqueue(update))
        if updates:
            logger.info("Queued %s of %s updates", queued, len(updates))
        return next_offset

    async def _pause(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def start(self) -> None:
        storage.init_db()
        if self.commands:
            await self.transport.set_commands(self.commands)
            logger.info("Registered %s bot commands", len(self.commands))
        self.running = True
        logger.info("Update listener started as @%s", self.settings.bot_name)
        offset: Optional[int] = None
        failures = 0
        try:
            while not self._stop_event.is_set():
                try:
                    offset = await self.poll_once(offset)
                except Exception as exc:
                    if classify_failure(exc) is FailureKind.FATAL:
                        logger.error("Polling stopped on fatal error: %s", exc)
                        raise
                    failures += 1
                    delay = backoff_delay(failures, max_delay=OUTAGE_MAX_DELAY_SECONDS)
                    logger.warning(
                        "Polling failed (%s in a row): %s. Polling again in %.1fs", failures, exc, delay
                    )
                    await self._pause(delay)
                    continue
                if failures:
                    logger.info("Polling recovered after %s failures", failures)
                    failures = 0
        finally:
            self.running = False
            logger.info("Update listener stopped")

    def stop(self) -> None:
        self.running = False
        self._stop_event.set()
