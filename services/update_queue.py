"""Durable queue of Telegram updates, stored in sqlite.

Lifecycle of a job::

    pending -> processing -> done
                          -> pending (retry, with backoff)  -> ... -> abandoned
                          -> failed (fatal, never retried)

``claim`` runs under ``BEGIN IMMEDIATE`` so concurrent workers never take the
same job. A job left in ``processing`` longer than the stall timeout (worker
crashed mid-job) can be claimed again.
"""
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from services import storage
from services.events import EVENT_KEY_PREFIX
from services.retry import backoff_delay

logger = logging.getLogger(__name__)

ERROR_TEXT_LIMIT = 1000


@dataclass(frozen=True)
class Job:
    id: int
    update_id: int
    payload: Dict[str, Any]
    attempts: int


def enqueue(update: Dict[str, Any]) -> bool:
    """Add an update; returns False when this ``update_id`` is already queued."""
    update_id = int(update["update_id"])
    with storage.transaction() as con:
        cur = con.execute(
            """
            INSERT OR IGNORE INTO update_jobs (update_id, payload, status, next_attempt_at)
            VALUES (?, ?, 'pending', ?)
            """,
            (update_id, json.dumps(update, ensure_ascii=False), time.time()),
        )
        added = cur.rowcount > 0
    if not added:
        logger.debug("Update %s already queued", update_id)
    return added


def claim(*, stall_timeout: float, now: Optional[float] = None) -> Optional[Job]:
    now = time.time() if now is None else now
    with storage.transaction() as con:
        row = con.execute(
            """
            SELECT id, update_id, payload, attempts
            FROM update_jobs
            WHERE (status = 'pending' AND next_attempt_at <= ?)
               OR (status = 'processing' AND locked_at <= ?)
            ORDER BY next_attempt_at ASC, id ASC
            LIMIT 1
            """,
            (now, now - stall_timeout),
        ).fetchone()
        if not row:
            return None
        con.execute(
            """
            UPDATE update_jobs
            SET status = 'processing',
                attempts = attempts + 1,
                locked_at = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (now, int(row["id"])),
        )
    return Job(
        id=int(row["id"]),
        update_id=int(row["update_id"]),
        payload=json.loads(row["payload"]),
        attempts=int(row["attempts"]) + 1,
    )


def _finish(job_id: int, status: str, error: Optional[str] = None) -> None:
    with storage.transaction() as con:
        con.execute(
            """
            UPDATE update_jobs
            SET status = ?,
                last_error = COALESCE(?, last_error),
                locked_at = NULL,
                finished_at = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (status, (error or None) and error[:ERROR_TEXT_LIMIT], time.time(), int(job_id)),
        )


def complete(job: Job) -> None:
    _finish(job.id, "done")


def fail_fatal(job: Job, error: str) -> None:
    _finish(job.id, "failed", error)


def fail_retryable(
    job: Job,
    error: str,
    *,
    max_attempts: int,
    base_delay: float,
    max_delay: float,
) -> bool:
    """Schedule another attempt, or abandon the job once ``max_attempts`` is used up.

    Returns True when a retry was scheduled.
    """
    if job.attempts >= max_attempts:
        _finish(job.id, "abandoned", error)
        return False
    delay = backoff_delay(job.attempts, base_delay=base_delay, max_delay=max_delay)
    with storage.transaction() as con:
        con.execute(
            """
            UPDATE update_jobs
            SET status = 'pending',
                last_error = ?,
                locked_at = NULL,
                next_attempt_at = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (error[:ERROR_TEXT_LIMIT], time.time() + delay, job.id),
        )
    logger.info("Update %s scheduled for retry in %.1fs", job.update_id, delay)
    return True


def clean(older_than_seconds: float, *, now: Optional[float] = None) -> int:
    """Delete finished jobs (and their delivery records) older than the cutoff."""
    cutoff = (time.time() if now is None else now) - older_than_seconds
    with storage.transaction() as con:
        con.execute(
            """
            DELETE FROM delivery_log
            WHERE event_key IN (
                SELECT ? || update_id FROM update_jobs
                WHERE status IN ('done', 'failed', 'abandoned') AND finished_at <= ?
            )
            """,
            (EVENT_KEY_PREFIX, cutoff),
        )
        con.execute(
            """
            DELETE FROM search_result_claims
            WHERE claim_key IN (
                SELECT ? || update_id FROM update_jobs
                WHERE status IN ('done', 'failed', 'abandoned') AND finished_at <= ?
            )
            """,
            (EVENT_KEY_PREFIX, cutoff),
        )
        cur = con.execute(
            "DELETE FROM update_jobs WHERE status IN ('done', 'failed', 'abandoned') AND finished_at <= ?",
            (cutoff,),
        )
        removed = int(cur.rowcount)
    if removed:
        logger.info("Cleaned %s finished update jobs", removed)
    return removed


def get_status(update_id: int) -> Optional[Dict[str, Any]]:
    with storage.connection() as con:
        row = con.execute("SELECT * FROM update_jobs WHERE update_id = ?", (int(update_id),)).fetchone()
    return dict(row) if row else None
