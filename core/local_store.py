"""
core/local_store.py — Ledgerline
==================================
Keyed JSON document store backed by SQLite. No UI, no network, no math.

This is the device-local persistence layer for edited datasets and the
bet-history ledger. Each key holds one JSON array of row dicts, written
wholesale on every save (never appended at the storage layer).

Responsibilities:
- storage_key(): the single slug → key mapping used by every read AND write
- Initialize SQLite schema (WAL mode, same settings as the rest of core/)
- get_data() / save_data() / clear_data()

Schema: local_store table
  key         TEXT PRIMARY KEY   -- e.g. "bet_history_data"
  value       TEXT NOT NULL      -- JSON array of row dicts
  updated_at  TEXT NOT NULL      -- ISO 8601 UTC of last overwrite

DO NOT add API calls or Streamlit calls to this file.
"""

import json
import logging
import os
import re
import sqlite3
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

# Default DB path, overridable via LEDGER_DB_PATH env var (tests pass db_path).
_DEFAULT_DB_PATH = os.path.join(
    os.path.dirname(__file__), "..", "data", "ledger.db"
)

BET_HISTORY_SLUG = "bet-history"
STORAGE_SUFFIX = "_data"

# Each dash or whitespace character becomes one "_".
_SEPARATOR_RE = re.compile(r"[-\s]")

_SCHEMA_SQL = """
PRAGMA journal_mode = WAL;
PRAGMA synchronous = NORMAL;

CREATE TABLE IF NOT EXISTS local_store (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""


class PersistenceError(RuntimeError):
    """A write to the local store failed; in-memory state was not committed."""


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def storage_key(slug: str) -> str:
    """
    Map a dataset slug to its persisted storage key.

    Each ``-`` or whitespace character is replaced by ``_`` one-for-one,
    then the fixed ``_data`` marker is appended. Slugs that differ in
    separator count or position get distinct keys; ``-`` and ``_`` are
    the same separator, so "bet_history" and "bet-history" share one.

    >>> storage_key("bet-history")
    'bet_history_data'
    >>> storage_key("value--bets")
    'value__bets_data'
    """
    normalized = _SEPARATOR_RE.sub("_", slug)
    return f"{normalized}{STORAGE_SUFFIX}"


LEDGER_KEY = storage_key(BET_HISTORY_SLUG)


# ---------------------------------------------------------------------------
# Connection management
# ---------------------------------------------------------------------------

def _db_path() -> str:
    return os.environ.get("LEDGER_DB_PATH", _DEFAULT_DB_PATH)


def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    """
    Open a SQLite connection with WAL mode and sqlite3.Row rows.

    Creates the parent directory if needed.
    """
    path = db_path or _db_path()
    if path != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)

    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.executescript(_SCHEMA_SQL)
    return conn


def init_store(db_path: Optional[str] = None) -> None:
    """
    Initialize the local_store schema. Safe to call multiple times.

    Called once at app startup.
    """
    conn = get_connection(db_path)
    try:
        conn.commit()
        logger.info("Local store initialized: %s", db_path or _db_path())
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Read / write
# ---------------------------------------------------------------------------

def get_data(key: str, db_path: Optional[str] = None) -> list[dict]:
    """
    Return the rows stored under key, or [] if the key is absent.

    A corrupt or non-list payload is logged and treated as absent so a
    bad write can never take down dataset loading.
    """
    conn = get_connection(db_path)
    try:
        row = conn.execute(
            "SELECT value FROM local_store WHERE key = ?", (key,)
        ).fetchone()
    finally:
        conn.close()

    if row is None:
        return []

    try:
        rows = json.loads(row["value"])
    except json.JSONDecodeError as exc:
        logger.error("Corrupt payload under %s: %s", key, exc)
        return []

    if not isinstance(rows, list):
        logger.error("Payload under %s is %s, expected list", key, type(rows).__name__)
        return []
    return rows


def save_data(key: str, rows: list[dict], db_path: Optional[str] = None) -> None:
    """
    Overwrite the value stored under key with rows.

    Raises:
        PersistenceError: serialization or SQLite failure. Nothing is
            written in that case.
    """
    try:
        payload = json.dumps(rows, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        logger.error("Cannot serialize rows for %s: %s", key, exc)
        raise PersistenceError(f"cannot serialize rows for {key}: {exc}") from exc

    now = datetime.now(timezone.utc).isoformat()
    try:
        conn = get_connection(db_path)
    except sqlite3.Error as exc:
        logger.error("save_data(%s) could not open store: %s", key, exc)
        raise PersistenceError(f"cannot open store for {key}: {exc}") from exc

    try:
        conn.execute(
            """
            INSERT INTO local_store (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, payload, now),
        )
        conn.commit()
    except sqlite3.Error as exc:
        logger.error("save_data(%s) failed: %s", key, exc)
        raise PersistenceError(f"write failed for {key}: {exc}") from exc
    finally:
        conn.close()

    logger.debug("Saved %d rows under %s", len(rows), key)


def clear_data(key: str, db_path: Optional[str] = None) -> None:
    """
    Remove key from the store. No-op if absent.

    Maintenance helper: the app never deletes stored rows, tests use it to
    reset a key between cases.
    """
    conn = get_connection(db_path)
    try:
        conn.execute("DELETE FROM local_store WHERE key = ?", (key,))
        conn.commit()
    finally:
        conn.close()
