import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from boozy_bot.config import get_db_path as _configured_db_path

DB_PATH = _configured_db_path()


def get_db_path() -> Path:
    return DB_PATH


def get_conn() -> sqlite3.Connection:
    """Get a database connection."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(DB_PATH, timeout=30, isolation_level=None)
    con.row_factory = sqlite3.Row
    con.execute("PRAGMA journal_mode=WAL;")
    con.execute("PRAGMA foreign_keys=ON;")
    return con


@contextmanager
def transaction(immediate: bool = True) -> Iterator[sqlite3.Connection]:
    """Run a block in one sqlite transaction; commit on success, roll back on error.

    ``BEGIN IMMEDIATE`` takes the write lock up front so read-then-write
    sequences (existence checks, queue claims) are atomic across processes.
    """
    con = get_conn()
    try:
        con.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        try:
            yield con
        except BaseException:
            con.execute("ROLLBACK")
            raise
        con.execute("COMMIT")
    finally:
        con.close()


@contextmanager
def connection() -> Iterator[sqlite3.Connection]:
    con = get_conn()
    try:
        yield con
    finally:
        con.close()


def init_db() -> None:
    con = get_conn()
    try:
        con.executescript(
            """
            CREATE TABLE IF NOT EXISTS ingredients (
                id INTEGER PRIMARY KEY,
                chat_id INTEGER NOT NULL,
                ingredient_code TEXT NOT NULL,
                ingredient_name TEXT NOT NULL,
                ingredient_type TEXT,
                ingredient_description TEXT,
                user_id INTEGER,
                username TEXT,
                user_first_name TEXT,
                user_last_name TEXT,
                source_event TEXT,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            );
            CREATE INDEX IF NOT EXISTS idx_ingredients_chat ON ingredients(chat_id);
            CREATE INDEX IF NOT EXISTS idx_ingredients_code ON ingredients(chat_id, ingredient_code);

            CREATE TABLE IF NOT EXISTS chat_modes (
                chat_id INTEGER PRIMARY KEY,
                mode TEXT NOT NULL,
                choices_json TEXT,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS search_results (
                id INTEGER PRIMARY KEY,
                chat_id INTEGER NOT NULL,
                rank INTEGER NOT NULL,
                rating INTEGER,
                drink_json TEXT NOT NULL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            );
            CREATE INDEX IF NOT EXISTS idx_search_results_chat ON search_results(chat_id, rank);

            CREATE TABLE IF NOT EXISTS search_result_claims (
                claim_key TEXT NOT NULL,
                position INTEGER NOT NULL,
                chat_id INTEGER NOT NULL,
                drink_json TEXT NOT NULL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (claim_key, position)
            );

            CREATE TABLE IF NOT EXISTS logged_commands (
                id INTEGER PRIMARY KEY,
                dispatch_key TEXT UNIQUE NOT NULL,
                command TEXT NOT NULL,
                parameter TEXT,
                user_id INTEGER,
                username TEXT,
                user_first_name TEXT,
                user_last_name TEXT,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            );
            CREATE INDEX IF NOT EXISTS idx_logged_commands_command ON logged_commands(command);
            CREATE INDEX IF NOT EXISTS idx_logged_commands_user ON logged_commands(user_id);

            CREATE TABLE IF NOT EXISTS update_jobs (
                id INTEGER PRIMARY KEY,
                update_id INTEGER UNIQUE NOT NULL,
                payload TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending'
                    CHECK(status IN ('pending', 'processing', 'done', 'failed', 'abandoned')),
                attempts INTEGER NOT NULL DEFAULT 0,
                last_error TEXT,
                next_attempt_at REAL NOT NULL DEFAULT 0,
                locked_at REAL,
                finished_at REAL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            );
            CREATE INDEX IF NOT EXISTS idx_update_jobs_ready ON update_jobs(status, next_attempt_at);

            CREATE TABLE IF NOT EXISTS delivery_log (
                event_key TEXT NOT NULL,
                seq INTEGER NOT NULL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (event_key, seq)
            );
            """
        )
    finally:
        con.close()
