"""
core/grid_controller.py — Ledgerline
======================================
Application state + command interface between the UI and the core.

The UI never mutates records directly. It calls:
  select_dataset(slug)                   → reload grid state
  add_to_history(record)                 → append to the ledger
  apply_result_edit(entry_index, value)  → EditOutcome
  apply_stake_edit(entry_index, value)   → EditOutcome

and reads three independent outputs: grid(), history_stats(),
history_series(). None of them touch Streamlit.

Result transitions: any member of RESULT_VALUES may move to any other
member, in either direction. Every successful edit persists the whole
ledger before stats and series are recomputed, so the caller never renders
stale aggregates.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from core.datasets import Dataset, DatasetLoadError, load_dataset, load_manifest
from core.history import (
    InvalidResultError,
    LedgerIndexError,
    append_to_history,
    set_result,
    set_stake,
)
from core.local_store import BET_HISTORY_SLUG, PersistenceError
from core.stats_engine import (
    BankrollPoint,
    DerivedStats,
    bankroll_series,
    calculate_history_stats,
)

logger = logging.getLogger(__name__)


class EditError(Exception):
    """A rejected grid edit. code is one of the EDIT_* constants."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


EDIT_INVALID_VALUE = "invalid_value"
EDIT_BAD_INDEX = "bad_index"
EDIT_NOT_EDITABLE = "not_editable"
EDIT_PERSISTENCE = "persistence"


@dataclass
class AppState:
    datasets: list[Dataset] = field(default_factory=list)
    current: Optional[Dataset] = None
    columns: list[str] = field(default_factory=list)
    records: list[dict] = field(default_factory=list)
    load_error: bool = False


@dataclass
class EditOutcome:
    ok: bool
    snapshot: list[dict] = field(default_factory=list)
    stats: Optional[DerivedStats] = None
    series: list[BankrollPoint] = field(default_factory=list)
    error: Optional[EditError] = None


class GridController:
    """Mediates dataset selection and ledger edits for one AppState."""

    def __init__(self, state: Optional[AppState] = None, db_path: Optional[str] = None) -> None:
        self.state = state if state is not None else AppState()
        self.db_path = db_path

    # ------------------------------------------------------------------
    # Dataset selection
    # ------------------------------------------------------------------

    def load_manifest(self, source: Optional[str] = None) -> list[Dataset]:
        """Load the manifest and auto-select its first dataset."""
        self.state.datasets = load_manifest(source)
        if self.state.datasets:
            self.select_dataset(self.state.datasets[0].slug)
        else:
            logger.warning("Manifest is empty, nothing to display")
        return self.state.datasets

    def select_dataset(self, slug: str) -> bool:
        """
        Make slug the current dataset and load its grid.

        Returns False (state untouched) for an unknown slug.
        """
        dataset = next((d for d in self.state.datasets if d.slug == slug), None)
        if dataset is None:
            logger.warning("Unknown dataset slug: %s", slug)
            return False

        self.state.current = dataset
        self._reload()
        return True

    def _reload(self) -> None:
        try:
            columns, records = load_dataset(self.state.current, self.db_path)
        except DatasetLoadError as exc:
            logger.error("Dataset load error (%s): %s", self.state.current.slug, exc)
            self.state.columns, self.state.records = [], []
            self.state.load_error = True
            return
        self.state.columns = columns
        self.state.records = records
        self.state.load_error = False

    @property
    def is_history_view(self) -> bool:
        return self.state.current is not None and self.state.current.slug == BET_HISTORY_SLUG

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def add_to_history(self, record: dict) -> dict:
        """
        Append record to the ledger. Refreshes the grid when the ledger is
        the dataset on screen.

        Raises:
            PersistenceError: ledger write failed.
        """
        entry = append_to_history(record, self.db_path)
        if self.is_history_view:
            self._reload()
        return entry

    def apply_result_edit(self, entry_index: int, new_value: str) -> EditOutcome:
        return self._apply_edit(entry_index, new_value, set_result)

    def apply_stake_edit(self, entry_index: int, new_value) -> EditOutcome:
        return self._apply_edit(entry_index, new_value, set_stake)

    def _apply_edit(self, entry_index, new_value, setter) -> EditOutcome:
        if not self.is_history_view:
            return self._rejected(EDIT_NOT_EDITABLE, "only the bet history grid is editable")

        try:
            setter(self.state.records, entry_index, new_value, self.db_path)
        except InvalidResultError as exc:
            return self._rejected(EDIT_INVALID_VALUE, str(exc))
        except LedgerIndexError as exc:
            return self._rejected(EDIT_BAD_INDEX, str(exc))
        except PersistenceError as exc:
            logger.error("Edit of entry %s not saved: %s", entry_index, exc)
            return self._rejected(EDIT_PERSISTENCE, str(exc))

        return EditOutcome(
            ok=True,
            snapshot=[dict(r) for r in self.state.records],
            stats=self.history_stats(),
            series=self.history_series(),
        )

    @staticmethod
    def _rejected(code: str, message: str) -> EditOutcome:
        logger.warning("Edit rejected (%s): %s", code, message)
        return EditOutcome(ok=False, error=EditError(code, message))

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    def grid(self) -> tuple[list[str], list[dict]]:
        return self.state.columns, self.state.records

    def history_stats(self) -> DerivedStats:
        return calculate_history_stats(self.state.records)

    def history_series(self) -> list[BankrollPoint]:
        return bankroll_series(self.state.records)
