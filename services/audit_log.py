from typing import Optional

from services import storage
from services.models import User


def record_command(
    *,
    dispatch_key: str,
    command: str,
    parameter: Optional[str],
    user: User,
) -> bool:
    """Append one audit row per logical dispatch.

    Returns False when ``dispatch_key`` was already recorded by an earlier
    attempt of the same update.
    """
    with storage.transaction() as con:
        cur = con.execute(
            """
            INSERT OR IGNORE INTO logged_commands (
                dispatch_key,
                command,
                parameter,
                user_id,
                username,
                user_first_name,
                user_last_name
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(dispatch_key),
                str(command or "").strip(),
                str(parameter or "")[:512],
                int(user.id or 0),
                user.username or None,
                user.first_name or None,
                user.last_name or None,
            ),
        )
        return cur.rowcount > 0


def count_commands(command: Optional[str] = None) -> int:
    with storage.connection() as con:
        if command is None:
            row = con.execute("SELECT COUNT(*) AS n FROM logged_commands").fetchone()
        else:
            row = con.execute(
                "SELECT COUNT(*) AS n FROM logged_commands WHERE command = ?", (command,)
            ).fetchone()
    return int(row["n"])
