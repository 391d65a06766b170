"""
pages/01_datasets.py — Datasets Tab

Displays:
1. Dataset picker (manifest order; first dataset selected at startup)
2. Read-only grid of the selected dataset
3. Row details: every column: value pair of the chosen row
4. "Add to history" appends the chosen row to the bet-history ledger

The bet-history dataset itself is edited on the Bet History tab.
"""

import html
import sys
from pathlib import Path

import pandas as pd
import streamlit as st

ROOT = Path(__file__).parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.local_store import BET_HISTORY_SLUG, PersistenceError

controller = st.session_state["controller"]
state = controller.state


def _row_label(idx: int, row: dict) -> str:
    home, away = row.get("Home"), row.get("Away")
    if home and away:
        return f"#{idx + 1} · {home} vs {away}"
    first = next(iter(row.values()), "")
    return f"#{idx + 1} · {first}"


def _details_card(row: dict) -> str:
    lines = "".join(
        f'<div><span style="color:#6b7280;">{html.escape(str(k))}:</span> '
        f'<span style="color:#e5e7eb;">{html.escape("" if v is None else str(v))}</span></div>'
        for k, v in row.items()
    )
    return f"""
    <div style="
        background:#1a1d23; border:1px solid #2d3139;
        border-left:4px solid #f59e0b; border-radius:8px;
        padding:12px 16px; font-size:0.8rem; line-height:1.7;
    ">{lines}</div>
    """


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------
st.title("🗂️ Datasets")

browsable = [d for d in state.datasets if d.slug != BET_HISTORY_SLUG]
if not browsable:
    st.warning("No datasets found in the manifest.")
    st.stop()

slugs = [d.slug for d in browsable]
names = {d.slug: d.name for d in browsable}
current_slug = state.current.slug if state.current and state.current.slug in slugs else slugs[0]

chosen = st.selectbox(
    "Dataset",
    slugs,
    index=slugs.index(current_slug),
    format_func=lambda s: names[s],
    key="ds_picker",
)
if state.current is None or state.current.slug != chosen:
    controller.select_dataset(chosen)

columns, records = controller.grid()

if state.load_error:
    st.error("Could not load this dataset. See logs/error.log for details.")
    st.stop()

if not columns:
    st.info("This dataset has no columns.")
    st.stop()

st.dataframe(
    pd.DataFrame(records, columns=columns),
    use_container_width=True,
    hide_index=True,
)

if not records:
    st.stop()

st.markdown("---")

detail_col, action_col = st.columns([3, 1], gap="large")
with detail_col:
    row_idx = st.selectbox(
        "Row",
        list(range(len(records))),
        format_func=lambda i: _row_label(i, records[i]),
        key=f"row_{chosen}",
    )
    with st.expander("Details", expanded=False):
        st.html(_details_card(records[row_idx]))

with action_col:
    st.write("")
    if st.button("Add to history", use_container_width=True, type="primary"):
        try:
            entry = controller.add_to_history(records[row_idx])
            st.success(f"Added to history: {entry['Fixture'] or entry['Market'] or 'entry'}")
        except PersistenceError as exc:
            st.error(f"Failed to save history: {exc}")
