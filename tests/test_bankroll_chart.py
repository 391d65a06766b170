"""
tests/test_bankroll_chart.py — Ledgerline

Smoke tests for core/bankroll_chart.py figure construction.
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.bankroll_chart import build_bankroll_figure
from core.stats_engine import BankrollPoint


SERIES = [
    BankrollPoint("2024-01-01", -3.0, -3.0),
    BankrollPoint("2024-01-01", 5.0, 2.0),
    BankrollPoint("2024-01-03", 0.0, 2.0),
]


class TestBuildBankrollFigure:
    def test_two_traces(self):
        fig = build_bankroll_figure(SERIES)
        assert [t.type for t in fig.data] == ["bar", "scatter"]
        assert [t.name for t in fig.data] == ["Profit/Loss", "Bank"]

    def test_values(self):
        fig = build_bankroll_figure(SERIES)
        assert list(fig.data[0].y) == [-3.0, 5.0, 0.0]
        assert list(fig.data[1].y) == [-3.0, 2.0, 2.0]

    def test_line_on_secondary_axis(self):
        fig = build_bankroll_figure(SERIES)
        assert fig.data[0].yaxis == "y"
        assert fig.data[1].yaxis == "y2"
        assert fig.layout.yaxis2.overlaying == "y"
        assert fig.layout.yaxis2.side == "right"

    def test_duplicate_dates_kept_separate(self):
        fig = build_bankroll_figure(SERIES)
        assert len(fig.data[0].x) == 3
        assert list(fig.layout.xaxis.ticktext) == ["2024-01-01", "2024-01-01", "2024-01-03"]

    def test_empty_series(self):
        fig = build_bankroll_figure([])
        assert len(fig.data[0].x) == 0
