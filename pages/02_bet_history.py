"""
pages/02_bet_history.py — Bet History Tab

Displays:
1. Summary line + metric tiles (total bets, win rate, avg odds, profit)
2. Editable ledger grid: Result (WIN/LOSS/VOID/unset) and Stake columns
3. Dual-axis bankroll chart (bars = per-bet P&L, line = running bank)

Edits go through GridController.apply_result_edit / apply_stake_edit.
Each accepted edit is persisted before the page reruns, so the tiles and
chart always reflect the stored ledger. Rejected edits reset the grid.
"""

import sys
from pathlib import Path

import pandas as pd
import streamlit as st

ROOT = Path(__file__).parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.bankroll_chart import build_bankroll_figure
from core.history import HISTORY_FIELDS, RESULT_VALUES
from core.local_store import BET_HISTORY_SLUG
from core.stats_engine import format_stats_line

controller = st.session_state["controller"]
state = controller.state

EDITABLE = ("Result", "Stake")


def _cell(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value)


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------
st.title("📋 Bet History")

if not controller.is_history_view and not controller.select_dataset(BET_HISTORY_SLUG):
    st.warning(f"The manifest has no '{BET_HISTORY_SLUG}' dataset.")
    st.stop()

if st.session_state.get("edit_error"):
    st.error(st.session_state.pop("edit_error"))

stats = controller.history_stats()

st.markdown(f"`{format_stats_line(stats)}`")

s1, s2, s3, s4 = st.columns(4)
with s1:
    st.metric("Total Bets", stats.total_bets)
with s2:
    st.metric("Win Rate", f"{stats.win_rate}%" if stats.total_bets else "—")
with s3:
    st.metric("Avg Odds", f"{stats.avg_odds}" if stats.total_bets else "—")
with s4:
    st.metric("Profit", f"£{stats.total_profit:+.2f}")

st.markdown("---")

columns, records = controller.grid()
if not records:
    st.info("No bets yet. Add rows from the Datasets tab.")
    st.stop()

columns = columns or list(HISTORY_FIELDS)
df = pd.DataFrame(records, columns=columns).fillna("")

version = st.session_state.setdefault("history_editor_version", 0)
edited = st.data_editor(
    df,
    key=f"history_editor_{version}",
    use_container_width=True,
    hide_index=True,
    disabled=[c for c in columns if c not in EDITABLE],
    column_config={
        "Result": st.column_config.SelectboxColumn(
            "Result",
            options=list(RESULT_VALUES),
            required=False,
            width=90,
        ),
        "Stake": st.column_config.TextColumn("Stake", width=80),
    },
)

changed = False
for idx, row in enumerate(edited.to_dict("records")):
    original = records[idx]
    for col in EDITABLE:
        if col not in columns:
            continue
        new_value = _cell(row.get(col))
        if new_value == _cell(original.get(col)):
            continue
        if col == "Result":
            outcome = controller.apply_result_edit(idx, new_value)
        else:
            outcome = controller.apply_stake_edit(idx, new_value)
        changed = True
        if not outcome.ok:
            st.session_state["edit_error"] = f"Edit rejected: {outcome.error.message}"

if changed:
    st.session_state["history_editor_version"] = version + 1
    st.rerun()

# --- Bankroll chart ---
st.subheader("Bankroll")
series = controller.history_series()
st.plotly_chart(build_bankroll_figure(series), use_container_width=True)
