"""Per-chat cache of search results that did not fit the first page.

The rows for a chat are always the unshown tail of exactly one ranked search:
``store`` replaces the whole set, ``take_page`` consumes from the front.
Storage errors propagate; this module never retries.
"""
import json
import logging
from typing import List, Optional, Sequence

from services import storage
from services.models import Drink

logger = logging.getLogger(__name__)


def store(chat_id: int, ranked: Sequence[Drink]) -> None:
    rows = [
        (int(chat_id), rank, int(drink.rating), json.dumps(drink.to_dict(), ensure_ascii=False))
        for rank, drink in enumerate(ranked)
    ]
    with storage.transaction() as con:
        con.execute("DELETE FROM search_results WHERE chat_id = ?", (int(chat_id),))
        if rows:
            con.executemany(
                "INSERT INTO search_results (chat_id, rank, rating, drink_json) VALUES (?, ?, ?, ?)",
                rows,
            )
    logger.debug("Cached %s search results for chat %s", len(rows), chat_id)


def take_page(chat_id: int, page_size: int, claim_key: Optional[str] = None) -> List[Drink]:
    """Remove and return up to ``page_size`` results in rank order.

    With a ``claim_key`` the taken page is remembered, and a repeated call with
    the same key returns that page again instead of consuming the next one.
    """
    if page_size <= 0:
        return []
    with storage.transaction() as con:
        if claim_key:
            claimed = con.execute(
                "SELECT drink_json FROM search_result_claims WHERE claim_key = ? ORDER BY position ASC",
                (claim_key,),
            ).fetchall()
            if claimed:
                logger.debug("Replaying claimed page %s for chat %s", claim_key, chat_id)
                return [Drink.from_dict(json.loads(row["drink_json"])) for row in claimed]
        rows = con.execute(
            """
            SELECT id, drink_json
            FROM search_results
            WHERE chat_id = ?
            ORDER BY rank ASC
            LIMIT ?
            """,
            (int(chat_id), int(page_size)),
        ).fetchall()
        if rows:
            con.executemany(
                "DELETE FROM search_results WHERE id = ?",
                [(int(row["id"]),) for row in rows],
            )
            if claim_key:
                con.executemany(
                    """
                    INSERT INTO search_result_claims (claim_key, position, chat_id, drink_json)
                    VALUES (?, ?, ?, ?)
                    """,
                    [(claim_key, pos, int(chat_id), row["drink_json"]) for pos, row in enumerate(rows)],
                )
    return [Drink.from_dict(json.loads(row["drink_json"])) for row in rows]


def drop(chat_id: int) -> None:
    with storage.transaction() as con:
        con.execute("DELETE FROM search_results WHERE chat_id = ?", (int(chat_id),))


def count(chat_id: int) -> int:
    with storage.connection() as con:
        row = con.execute(
            "SELECT COUNT(*) AS n FROM search_results WHERE chat_id = ?", (int(chat_id),)
        ).fetchone()
    return int(row["n"])
