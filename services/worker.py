import asyncio
import logging
import time
from typing import Any, Optional

from boozy_bot.config import BotSettings
from boozy_bot.logging import update_context
from services import storage, update_queue
from services.commands import CommandContext, CommandDispatcher, Outcome, handle_free_text
from services.delivery import LedgeredTransport
from services.errors import FailureKind, InvariantViolation, classify_failure
from services.events import Event, EventType, event_key, from_update
from services.inline_query import handle_inline_query

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = 600


def _addressed_to_someone_else(addressee: str, bot_name: str) -> bool:
    return bool(addressee) and addressee.lower() != bot_name.lower()


async def handle_event(event: Event, transport: Any, catalog: Any, settings: BotSettings) -> Optional[Any]:
    """Run the handler for one event. Replies go through the event's delivery ledger."""
    ledgered = LedgeredTransport(transport, event.key)

    if event.type is EventType.INLINE_QUERY:
        return await handle_inline_query(
            event.payload["query_id"],
            event.payload["query"],
            event.payload["offset"],
            transport=ledgered,
            catalog=catalog,
            settings=settings,
        )

    if event.chat is None:
        raise InvariantViolation(f"{event.type.value} event {event.key} has no chat")
    context = CommandContext(
        chat=event.chat,
        user=event.user,
        message_id=int(event.payload.get("message_id") or 0),
        event_key=event.key,
    )

    if event.type is EventType.COMMAND:
        if _addressed_to_someone_else(event.payload.get("addressee", ""), settings.bot_name):
            logger.debug("Command for @%s ignored", event.payload["addressee"])
            return Outcome.IGNORED
        dispatcher = CommandDispatcher(ledgered, catalog, settings)
        return await dispatcher.dispatch(event.payload["command"], event.payload["argument"], context)

    return await handle_free_text(event.payload["text"], context, ledgered)


async def process_job(job: update_queue.Job, transport: Any, catalog: Any, settings: BotSettings) -> str:
    """Process one claimed job and record its outcome in the queue.

    Returns the status the job was left in: ``done``, ``failed``, ``pending``
    (retry scheduled) or ``abandoned``.
    """
    with update_context(event_key(job.update_id), job.attempts):
        try:
            event = from_update(job.payload)
            if event is None:
                logger.debug("Update %s carries nothing to handle", job.update_id)
            else:
                outcome = await asyncio.wait_for(
                    handle_event(event, transport, catalog, settings),
                    timeout=settings.queue_job_timeout_seconds,
                )
                logger.debug("Update %s handled: %r", job.update_id, outcome)
        except Exception as exc:
            kind = classify_failure(exc)
            error = f"{type(exc).__name__}: {exc}"
            if kind is FailureKind.IGNORE:
                logger.warning("Dropping update %s: %s", job.update_id, error)
                update_queue.complete(job)
                return "done"
            if kind is FailureKind.FATAL:
                logger.error("Update %s failed permanently: %s", job.update_id, error)
                update_queue.fail_fatal(job, error)
                return "failed"
            logger.warning("Update %s attempt %s failed: %s", job.update_id, job.attempts, error)
            retried = update_queue.fail_retryable(
                job,
                error,
                max_attempts=settings.queue_max_attempts,
                base_delay=settings.queue_backoff_base_seconds,
                max_delay=settings.queue_backoff_max_seconds,
            )
            if not retried:
                logger.error("Update %s abandoned after %s attempts", job.update_id, job.attempts)
            return "pending" if retried else "abandoned"
        update_queue.complete(job)
        return "done"


class UpdateWorker:
    """Claims queued updates one at a time and processes them until stopped."""

    def __init__(self, transport: Any, catalog: Any, settings: BotSettings):
        self.transport = transport
        self.catalog = catalog
        self.settings = settings
        self.running = False
        self._stop_event = asyncio.Event()
        self._last_cleanup = 0.0

    @property
    def stall_timeout(self) -> float:
        # A processing job older than this belongs to a worker that died.
        return self.settings.queue_job_timeout_seconds * 2

    def _maybe_clean(self) -> None:
        now = time.time()
        if now - self._last_cleanup < CLEANUP_INTERVAL_SECONDS:
            return
        self._last_cleanup = now
        update_queue.clean(self.settings.queue_cleanup_after_hours * 3600, now=now)

    async def run_once(self) -> Optional[str]:
        """Claim and process at most one job. Returns its final status, or None when idle."""
        job = update_queue.claim(stall_timeout=self.stall_timeout)
        if job is None:
            return None
        return await process_job(job, self.transport, self.catalog, self.settings)

    async def start(self) -> None:
        storage.init_db()
        self.running = True
        logger.info("Update worker started. Poll interval: %ss", self.settings.queue_poll_interval_seconds)
        try:
            while not self._stop_event.is_set():
                self._maybe_clean()
                if await self.run_once() is not None:
                    continue
                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(), timeout=self.settings.queue_poll_interval_seconds
                    )
                except asyncio.TimeoutError:
                    continue
        finally:
            self.running = False
            logger.info("Update worker stopped")

    def stop(self) -> None:
        self.running = False
        self._stop_event.set()
