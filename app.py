"""
app.py — Ledgerline Streamlit Entry Point

Multi-page navigation via st.navigation() (Streamlit 1.36+).
One GridController per browser session, held in st.session_state and
created on first run (dataset manifest loaded, first dataset selected).

Design principles:
- Dark terminal aesthetic: #0e1117 bg, amber accent (#f59e0b)
- st.html() for custom cards (not st.markdown; style tags are sandboxed)
- All ledger math lives in core/; pages only render controller outputs

Run: streamlit run app.py
"""

import logging
import sys
from pathlib import Path

import streamlit as st

# ---------------------------------------------------------------------------
# Path setup: allow 'from core.xxx import' regardless of cwd
# ---------------------------------------------------------------------------
ROOT = Path(__file__).parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# ---------------------------------------------------------------------------
# Logging setup: write to logs/error.log
# ---------------------------------------------------------------------------
LOG_DIR = ROOT / "logs"
LOG_DIR.mkdir(exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    handlers=[
        logging.FileHandler(LOG_DIR / "error.log"),
        logging.StreamHandler(),
    ],
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Page config: must be first Streamlit call
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Ledgerline",
    page_icon="📒",
    layout="wide",
    initial_sidebar_state="expanded",
    menu_items={
        "Get Help": None,
        "Report a bug": None,
        "About": "Ledgerline: dataset browser and bet history ledger",
    },
)


# ---------------------------------------------------------------------------
# Controller initialization, guarded against Streamlit reruns
# ---------------------------------------------------------------------------
def _init_controller() -> None:
    """
    Create the session's GridController exactly once.
    The session_state entry survives reruns but not new sessions.
    """
    if "controller" in st.session_state:
        return

    from core.grid_controller import GridController
    from core.local_store import init_store

    try:
        init_store()
    except Exception as exc:  # noqa: BLE001
        logger.error("Local store init failed: %s", exc)
        st.session_state["store_error"] = str(exc)

    controller = GridController()
    controller.load_manifest()
    st.session_state["controller"] = controller
    logger.info(
        "Controller initialized with %d datasets", len(controller.state.datasets)
    )


_init_controller()

st.markdown(
    """
    <style>
    [data-testid="stSidebar"] {
        background-color: #13161d;
    }
    .block-container {
        padding-top: 1.5rem;
        padding-bottom: 2rem;
    }
    [data-testid="stMetricValue"] {
        font-size: 1.6rem !important;
        font-weight: 700 !important;
    }
    footer { visibility: hidden; }
    </style>
    """,
    unsafe_allow_html=True,
)

# ---------------------------------------------------------------------------
# Sidebar: store status
# ---------------------------------------------------------------------------
with st.sidebar:
    st.html(
        """
        <div style="
            padding: 12px 0 8px 0;
            border-bottom: 1px solid #2d3139;
            margin-bottom: 12px;
        ">
            <span style="
                font-size: 1.1rem;
                font-weight: 700;
                color: #f59e0b;
                letter-spacing: 0.03em;
            ">📒 LEDGERLINE</span>
        </div>
        """
    )

    _controller = st.session_state["controller"]
    _store_error = st.session_state.get("store_error")
    _n_datasets = len(_controller.state.datasets)
    _dot = "#ef4444" if _store_error or not _n_datasets else "#22c55e"
    st.html(
        f"""
        <div style="
            background:#1a1d23; border:1px solid #2d3139;
            border-radius:6px; padding:8px 10px; margin-bottom:8px;
            font-size:0.65rem; color:#6b7280; line-height:1.7;
        ">
            <div style="color:{_dot}; font-weight:700; letter-spacing:0.1em;">
                {'STORE ERROR' if _store_error else 'STORE OK'}
            </div>
            <div>Datasets: <span style="color:#d1d5db;">{_n_datasets}</span></div>
        </div>
        """
    )

# ---------------------------------------------------------------------------
# Multi-page navigation
# ---------------------------------------------------------------------------
pages = [
    st.Page("pages/01_datasets.py",    title="Datasets",    icon="🗂️", default=True),
    st.Page("pages/02_bet_history.py", title="Bet History", icon="📋"),
]

pg = st.navigation(pages)
pg.run()
