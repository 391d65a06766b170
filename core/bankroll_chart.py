"""
core/bankroll_chart.py — Ledgerline

Plotly figure for the bankroll series: profit/loss bars on the left axis,
running bank line on the right axis. Pure figure construction; rendering
is the page's job.
"""

import plotly.graph_objects as go

from core.stats_engine import BankrollPoint

BAR_COLOR = "rgba(75,192,192,0.6)"
LINE_COLOR = "rgb(255,99,132)"

PLOTLY_LAYOUT = dict(
    paper_bgcolor="#0e1117",
    plot_bgcolor="#13161d",
    font=dict(color="#d1d5db", size=11, family="monospace"),
    margin=dict(l=40, r=40, t=30, b=40),
    hoverlabel=dict(bgcolor="#1a1d23", bordercolor="#2d3139", font_color="#f3f4f6"),
    showlegend=True,
    legend=dict(
        bgcolor="rgba(0,0,0,0)",
        bordercolor="#2d3139",
        font=dict(size=10, color="#9ca3af"),
    ),
)


def build_bankroll_figure(series: list[BankrollPoint]) -> go.Figure:
    # Positional x so entries sharing a date stay separate bars.
    xs = list(range(len(series)))
    labels = [p.label for p in series]

    fig = go.Figure()
    fig.add_trace(
        go.Bar(
            x=xs,
            y=[p.point_profit for p in series],
            name="Profit/Loss",
            marker_color=BAR_COLOR,
            yaxis="y",
        )
    )
    fig.add_trace(
        go.Scatter(
            x=xs,
            y=[p.running_total for p in series],
            name="Bank",
            mode="lines+markers",
            line=dict(color=LINE_COLOR, width=2),
            yaxis="y2",
        )
    )
    fig.update_layout(
        **PLOTLY_LAYOUT,
        xaxis=dict(
            tickmode="array", tickvals=xs, ticktext=labels,
            gridcolor="#2d3139", linecolor="#2d3139",
        ),
        yaxis=dict(title="Profit/Loss", side="left", gridcolor="#2d3139"),
        yaxis2=dict(title="Bank", side="right", overlaying="y", showgrid=False),
    )
    return fig
