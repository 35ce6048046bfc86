import logging
from enum import Enum
from typing import List, Optional

from services import storage
from services.models import CatalogIngredient, OwnedIngredient, User

logger = logging.getLogger(__name__)


class AddResult(str, Enum):
    ADDED = "added"
    ALREADY_OWNED = "already_owned"
    TOO_MANY = "too_many"


def _row_to_ingredient(row) -> OwnedIngredient:
    return OwnedIngredient(
        code=row["ingredient_code"],
        name=row["ingredient_name"],
        category=row["ingredient_type"] or "",
        chat_id=int(row["chat_id"]),
        owner=User(
            id=int(row["user_id"] or 0),
            username=row["username"] or "",
            first_name=row["user_first_name"] or "",
            last_name=row["user_last_name"] or "",
        ),
    )


def list_ingredients(chat_id: int) -> List[OwnedIngredient]:
    with storage.connection() as con:
        rows = con.execute(
            "SELECT * FROM ingredients WHERE chat_id = ? ORDER BY id ASC", (int(chat_id),)
        ).fetchall()
    return [_row_to_ingredient(row) for row in rows]


def get_ingredient(chat_id: int, code: str) -> Optional[OwnedIngredient]:
    with storage.connection() as con:
        row = con.execute(
            "SELECT * FROM ingredients WHERE chat_id = ? AND ingredient_code = ? LIMIT 1",
            (int(chat_id), str(code)),
        ).fetchone()
    return _row_to_ingredient(row) if row else None


def add_ingredient(
    chat_id: int,
    ingredient: CatalogIngredient,
    owner: User,
    *,
    limit: int,
    source_event: Optional[str] = None,
) -> AddResult:
    """Insert an ingredient unless the chat already has it or is full.

    A row created earlier by the same ``source_event`` counts as ``ADDED`` so a
    redelivered update reports the same outcome as the first attempt.
    """
    with storage.transaction() as con:
        existing = con.execute(
            "SELECT source_event FROM ingredients WHERE chat_id = ? AND ingredient_code = ? LIMIT 1",
            (int(chat_id), ingredient.id),
        ).fetchone()
        if existing:
            if source_event and existing["source_event"] == source_event:
                return AddResult.ADDED
            return AddResult.ALREADY_OWNED

        total = con.execute(
            "SELECT COUNT(*) AS n FROM ingredients WHERE chat_id = ?", (int(chat_id),)
        ).fetchone()["n"]
        if int(total) >= int(limit):
            return AddResult.TOO_MANY

        con.execute(
            """
            INSERT INTO ingredients (
                chat_id, ingredient_code, ingredient_name, ingredient_type, ingredient_description,
                user_id, username, user_first_name, user_last_name, source_event
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                int(chat_id),
                ingredient.id,
                ingredient.name,
                ingredient.category,
                (ingredient.description or "")[:512],
                int(owner.id),
                owner.username,
                owner.first_name,
                owner.last_name,
                source_event,
            ),
        )
    logger.info("Chat %s added ingredient %s", chat_id, ingredient.id)
    return AddResult.ADDED


def remove_ingredient(chat_id: int, code: str) -> int:
    with storage.transaction() as con:
        cur = con.execute(
            "DELETE FROM ingredients WHERE chat_id = ? AND ingredient_code = ?",
            (int(chat_id), str(code)),
        )
        return int(cur.rowcount)


def clear_ingredients(chat_id: int) -> int:
    with storage.transaction() as con:
        cur = con.execute("DELETE FROM ingredients WHERE chat_id = ?", (int(chat_id),))
        return int(cur.rowcount)
