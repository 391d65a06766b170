"""
tests/test_grid_controller.py — Ledgerline
============================================
Tests for core/grid_controller.py: dataset selection, append, result/stake
edits and the EditOutcome contract.

Fixtures build a small manifest + sources under tmp_path.
Run: pytest tests/test_grid_controller.py -v
"""

import json
import sys
import os
from unittest.mock import patch

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.grid_controller import (
    EDIT_BAD_INDEX,
    EDIT_INVALID_VALUE,
    EDIT_NOT_EDITABLE,
    EDIT_PERSISTENCE,
    AppState,
    GridController,
)
from core.history import load_ledger
from core.local_store import PersistenceError


VALUE_ROWS = [
    {"DateUTC (date)": "2024-01-02", "League": "EPL", "Home": "A", "Away": "B",
     "Market": "1X2", "Bookmaker Odds": "2.5"},
    {"DateUTC (date)": "2024-01-01", "League": "EPL", "Home": "C", "Away": "D",
     "Market": "O2.5", "Bookmaker Odds": "1.9"},
]


@pytest.fixture
def env(tmp_path):
    (tmp_path / "sets").mkdir()
    (tmp_path / "sets" / "value.json").write_text(
        json.dumps({"columns": list(VALUE_ROWS[0].keys()), "rows": VALUE_ROWS})
    )
    (tmp_path / "sets" / "history.json").write_text(
        json.dumps({"columns": ["Date", "League", "Fixture", "Market",
                                "Odds Taken", "Stake", "Result", "Profit"],
                    "rows": []})
    )
    manifest = tmp_path / "datasets.json"
    manifest.write_text(json.dumps([
        {"slug": "value-bets", "name": "Value Bets", "file": "sets/value.json"},
        {"slug": "bet-history", "name": "Bet History", "file": "sets/history.json"},
    ]))
    return {"manifest": str(manifest), "db": str(tmp_path / "ledger.db")}


@pytest.fixture
def controller(env) -> GridController:
    ctl = GridController(AppState(), db_path=env["db"])
    ctl.load_manifest(env["manifest"])
    return ctl


@pytest.fixture
def history(controller) -> GridController:
    """Controller showing a ledger with both value rows appended."""
    for row in VALUE_ROWS:
        controller.add_to_history(row)
    controller.select_dataset("bet-history")
    return controller


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

class TestSelection:
    def test_first_dataset_auto_selected(self, controller):
        assert controller.state.current.slug == "value-bets"
        columns, records = controller.grid()
        assert records == VALUE_ROWS
        assert columns == list(VALUE_ROWS[0].keys())

    def test_unknown_slug_leaves_state(self, controller):
        assert controller.select_dataset("nope") is False
        assert controller.state.current.slug == "value-bets"

    def test_history_view_flag(self, controller):
        assert controller.is_history_view is False
        controller.select_dataset("bet-history")
        assert controller.is_history_view is True

    def test_empty_history_uses_declared_columns(self, controller):
        controller.select_dataset("bet-history")
        columns, records = controller.grid()
        assert records == []
        assert "Result" in columns
        assert controller.state.load_error is False

    def test_empty_manifest(self, tmp_path):
        ctl = GridController(db_path=str(tmp_path / "l.db"))
        assert ctl.load_manifest(str(tmp_path / "missing.json")) == []
        assert ctl.state.current is None

    def test_load_failure_sets_flag(self, env, tmp_path):
        os.remove(tmp_path / "sets" / "value.json")
        ctl = GridController(db_path=env["db"])
        ctl.load_manifest(env["manifest"])
        assert ctl.grid() == ([], [])
        assert ctl.state.load_error is True

    def test_load_failure_is_logged(self, env, tmp_path, caplog):
        os.remove(tmp_path / "sets" / "value.json")
        ctl = GridController(db_path=env["db"])
        with caplog.at_level("ERROR", logger="core.grid_controller"):
            ctl.load_manifest(env["manifest"])
        assert "value-bets" in caplog.text

    def test_empty_source_is_not_a_failure(self, env, tmp_path):
        (tmp_path / "sets" / "value.json").write_text(json.dumps({"columns": [], "rows": []}))
        ctl = GridController(db_path=env["db"])
        ctl.load_manifest(env["manifest"])
        assert ctl.grid() == ([], [])
        assert ctl.state.load_error is False

    def test_successful_reload_clears_flag(self, env, tmp_path):
        os.remove(tmp_path / "sets" / "history.json")
        ctl = GridController(db_path=env["db"])
        ctl.load_manifest(env["manifest"])
        ctl.select_dataset("bet-history")
        assert ctl.state.load_error is True
        ctl.select_dataset("value-bets")
        assert ctl.state.load_error is False
        assert ctl.grid()[1] == VALUE_ROWS

    def test_states_are_independent(self, env):
        a = GridController(db_path=env["db"])
        b = GridController(db_path=env["db"])
        a.load_manifest(env["manifest"])
        assert b.state.current is None


# ---------------------------------------------------------------------------
# add_to_history
# ---------------------------------------------------------------------------

class TestAddToHistory:
    def test_appends_entry(self, controller, env):
        entry = controller.add_to_history(VALUE_ROWS[0])
        assert entry["Fixture"] == "A vs B"
        assert entry["Odds Taken"] == "2.5"
        assert load_ledger(env["db"]) == [entry]

    def test_other_view_not_reloaded(self, controller):
        controller.add_to_history(VALUE_ROWS[0])
        assert controller.state.current.slug == "value-bets"
        assert controller.grid()[1] == VALUE_ROWS

    def test_history_view_reloaded(self, controller):
        controller.select_dataset("bet-history")
        controller.add_to_history(VALUE_ROWS[0])
        controller.add_to_history(VALUE_ROWS[0])
        assert len(controller.grid()[1]) == 2

    def test_history_overrides_source_after_append(self, history):
        columns, records = history.grid()
        assert columns[:3] == ["Date", "League", "Fixture"]
        assert [r["Fixture"] for r in records] == ["A vs B", "C vs D"]


# ---------------------------------------------------------------------------
# apply_result_edit
# ---------------------------------------------------------------------------

class TestApplyResultEdit:
    def test_success_recomputes(self, history, env):
        history.apply_stake_edit(0, "10")
        outcome = history.apply_result_edit(0, "win")
        assert outcome.ok is True
        assert outcome.error is None
        assert outcome.snapshot[0]["Result"] == "win"
        assert outcome.stats.total_bets == 1
        assert outcome.stats.total_profit == pytest.approx(15.0)
        assert load_ledger(env["db"])[0]["Result"] == "win"

    def test_series_date_ordered(self, history):
        history.apply_stake_edit(0, "10")
        history.apply_stake_edit(1, "4")
        history.apply_result_edit(0, "win")   # 2024-01-02, +15
        outcome = history.apply_result_edit(1, "loss")  # 2024-01-01, -4
        assert [p.label for p in outcome.series] == ["2024-01-01", "2024-01-02"]
        assert [p.running_total for p in outcome.series] == pytest.approx([-4.0, 11.0])

    def test_unrestricted_transitions(self, history, env):
        for value in ("loss", "void", "", "win", ""):
            assert history.apply_result_edit(0, value).ok
            assert load_ledger(env["db"])[0]["Result"] == value

    def test_invalid_value_rejected(self, history, env):
        before = load_ledger(env["db"])
        outcome = history.apply_result_edit(0, "draw")
        assert outcome.ok is False
        assert outcome.error.code == EDIT_INVALID_VALUE
        assert history.grid()[1][0]["Result"] == ""
        assert load_ledger(env["db"]) == before

    def test_bad_index_rejected(self, history):
        outcome = history.apply_result_edit(99, "win")
        assert outcome.ok is False
        assert outcome.error.code == EDIT_BAD_INDEX

    def test_not_editable_outside_history(self, controller):
        outcome = controller.apply_result_edit(0, "win")
        assert outcome.ok is False
        assert outcome.error.code == EDIT_NOT_EDITABLE
        assert "Result" not in controller.grid()[1][0]

    def test_persistence_failure_reported(self, history, env):
        with patch("core.history.save_data", side_effect=PersistenceError("locked")):
            outcome = history.apply_result_edit(0, "win")
        assert outcome.ok is False
        assert outcome.error.code == EDIT_PERSISTENCE
        assert history.grid()[1][0]["Result"] == ""
        assert load_ledger(env["db"])[0]["Result"] == ""

    def test_snapshot_is_a_copy(self, history):
        outcome = history.apply_result_edit(0, "void")
        outcome.snapshot[0]["Result"] = "win"
        assert history.grid()[1][0]["Result"] == "void"

    def test_edit_survives_reload(self, history):
        history.apply_result_edit(1, "loss")
        history.select_dataset("value-bets")
        history.select_dataset("bet-history")
        assert history.grid()[1][1]["Result"] == "loss"


class TestApplyStakeEdit:
    def test_stake_feeds_stats(self, history):
        history.apply_result_edit(1, "loss")
        outcome = history.apply_stake_edit(1, "20")
        assert outcome.ok
        assert outcome.stats.total_profit == -20.0

    def test_bad_index(self, history):
        assert history.apply_stake_edit(-1, "5").error.code == EDIT_BAD_INDEX


class TestOutputs:
    def test_outputs_independently_callable(self, history):
        stats = history.history_stats()
        series = history.history_series()
        assert stats.total_bets == 0
        assert len(series) == 2
        assert all(p.running_total == 0 for p in series)
