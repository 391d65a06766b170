"""
core/history.py — Ledgerline
==============================
Bet-history ledger: entry construction, append, in-place field edits.

Ledger = ordered list of HistoryEntry dicts persisted under LEDGER_KEY.
Entries are appended from any other dataset's record and edited in place;
this module never deletes entries.

Write rule (every mutation):
  1. validate
  2. persist a copy carrying the new value (whole-ledger overwrite)
  3. only then mutate the caller's list in place
A failed write therefore leaves memory and storage in agreement.

DO NOT add Streamlit calls to this file.
"""

import copy
import logging
from typing import Optional

from core.local_store import LEDGER_KEY, get_data, save_data

logger = logging.getLogger(__name__)

HISTORY_FIELDS = (
    "Date",
    "League",
    "Fixture",
    "Market",
    "Odds Taken",
    "Stake",
    "Result",
    "Profit",
)

RESULT_VALUES = ("", "win", "loss", "void")


class InvalidResultError(ValueError):
    """Result value outside RESULT_VALUES."""


class LedgerIndexError(IndexError):
    """Entry reference does not point into the ledger."""


# ---------------------------------------------------------------------------
# Entry construction
# ---------------------------------------------------------------------------

def _text(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _first(record: dict, *keys: str) -> str:
    for key in keys:
        value = _text(record.get(key))
        if value:
            return value
    return ""


def fixture_name(record: dict) -> str:
    """
    "{Home} vs {Away}" when both sides are present, else any existing
    Fixture value, else "".

    >>> fixture_name({"Home": "A", "Away": "B"})
    'A vs B'
    >>> fixture_name({"Home": "A"})
    ''
    """
    home = _text(record.get("Home")).strip()
    away = _text(record.get("Away")).strip()
    if home and away:
        return f"{home} vs {away}"
    return _text(record.get("Fixture"))


def build_history_entry(record: dict) -> dict:
    """Build a fresh ledger entry from a record of another dataset."""
    return {
        "Date": _first(record, "DateUTC (date)", "Date"),
        "League": _first(record, "League"),
        "Fixture": fixture_name(record),
        "Market": _first(record, "Market"),
        "Odds Taken": _first(record, "Bookmaker Odds", "Odds Taken"),
        "Stake": "",
        "Result": "",
        "Profit": "",
    }


# ---------------------------------------------------------------------------
# Ledger I/O
# ---------------------------------------------------------------------------

def load_ledger(db_path: Optional[str] = None) -> list[dict]:
    return get_data(LEDGER_KEY, db_path)


def append_to_history(record: dict, db_path: Optional[str] = None) -> dict:
    """
    Append a new entry built from record and persist the whole ledger.

    No deduplication: adding the same record twice yields two entries.

    Returns:
        The appended entry.
    """
    ledger = load_ledger(db_path)
    entry = build_history_entry(record)
    ledger.append(entry)
    save_data(LEDGER_KEY, ledger, db_path)
    logger.info("History entry added: %s (%s)", entry["Fixture"], entry["Market"])
    return entry


# ---------------------------------------------------------------------------
# In-place edits
# ---------------------------------------------------------------------------

def validate_result(value) -> str:
    if value not in RESULT_VALUES:
        raise InvalidResultError(
            f"invalid result {value!r}; expected one of {RESULT_VALUES}"
        )
    return value


def _check_index(ledger: list[dict], index: int) -> None:
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(ledger):
        raise LedgerIndexError(f"no ledger entry at {index!r} (size {len(ledger)})")


def _commit_field(
    ledger: list[dict],
    index: int,
    field: str,
    value: str,
    db_path: Optional[str],
) -> dict:
    updated = copy.deepcopy(ledger)
    updated[index][field] = value
    save_data(LEDGER_KEY, updated, db_path)
    ledger[index][field] = value
    return ledger[index]


def set_result(
    ledger: list[dict],
    index: int,
    value: str,
    db_path: Optional[str] = None,
) -> dict:
    """
    Set ledger[index]["Result"] and persist the full ledger.

    Raises:
        InvalidResultError: value not in RESULT_VALUES (nothing written).
        LedgerIndexError:   index out of range (nothing written).
        PersistenceError:   write failed (ledger left unchanged).
    """
    validate_result(value)
    _check_index(ledger, index)
    entry = _commit_field(ledger, index, "Result", value, db_path)
    logger.info("Result set: entry %d → %r", index, value)
    return entry


def set_stake(
    ledger: list[dict],
    index: int,
    value,
    db_path: Optional[str] = None,
) -> dict:
    """
    Set ledger[index]["Stake"] and persist the full ledger.

    The stake is stored as entered; non-numeric text is kept and counts as 0
    in stats.
    """
    _check_index(ledger, index)
    return _commit_field(ledger, index, "Stake", _text(value).strip(), db_path)
