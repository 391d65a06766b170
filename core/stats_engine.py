"""
core/stats_engine.py — Ledgerline
===================================
Pure functions over a ledger snapshot. No I/O, no UI, no persistence.

- calculate_history_stats(): totals, win rate, avg odds, total profit
- bankroll_series():         date-sorted per-entry profit + running bankroll

Profit formula (decimal odds):
    win:  stake × (odds − 1)
    loss: −stake
    void / pending / anything else: 0

Only entries with a non-empty Result are "valid" for the aggregate stats;
pending entries are excluded, not counted as losses. The bankroll series
includes every entry so the timeline is complete.

Dates that cannot be parsed sort as datetime.min (earliest instant).
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

_DATE_FORMATS = (
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
)


@dataclass(frozen=True)
class DerivedStats:
    total_bets: int
    wins: int
    win_rate: float
    avg_odds: float
    total_profit: float


@dataclass(frozen=True)
class BankrollPoint:
    label: str
    point_profit: float
    running_total: float


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def parse_number(value) -> float:
    """
    Lenient numeric parse. Anything non-numeric (or NaN/inf) → 0.0.

    >>> parse_number("2.5")
    2.5
    >>> parse_number("abc")
    0.0
    >>> parse_number(None)
    0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def parse_date(value) -> datetime:
    """
    Parse an entry Date into a naive UTC datetime.

    Accepts ISO 8601 (date or datetime, "Z" suffix allowed) and dd/mm/YYYY
    with optional HH:MM. Anything else returns datetime.min.
    """
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        return datetime.min

    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return datetime.min
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def round_half_up(value: float, places: str) -> float:
    """
    Round to the quantum in places ("0.1", "0.01"), ties away from zero.

    Decimal(float) is exact, so 2.125 rounds to 2.13 where round() gives 2.12.

    >>> round_half_up(6.25, "0.1")
    6.3
    """
    return float(Decimal(value).quantize(Decimal(places), rounding=ROUND_HALF_UP))


# ---------------------------------------------------------------------------
# Profit
# ---------------------------------------------------------------------------

def entry_profit(entry: dict) -> float:
    result = entry.get("Result")
    stake = parse_number(entry.get("Stake"))
    if result == "win":
        return stake * (parse_number(entry.get("Odds Taken")) - 1)
    if result == "loss":
        return -stake
    return 0.0


# ---------------------------------------------------------------------------
# Stats engine
# ---------------------------------------------------------------------------

def calculate_history_stats(ledger: list[dict]) -> DerivedStats:
    """
    Aggregate metrics for the ledger.

    win_rate is 0-100 rounded to 1 dp; avg_odds rounded to 2 dp; both 0
    when there are no valid entries. total_profit is not rounded.

    >>> calculate_history_stats([]).win_rate
    0
    """
    valid = [e for e in ledger if e.get("Result")]
    total_bets = len(valid)
    wins = sum(1 for e in valid if e.get("Result") == "win")

    if total_bets:
        win_rate = round_half_up(wins / total_bets * 100, "0.1")
        avg_odds = round_half_up(
            sum(parse_number(e.get("Odds Taken")) for e in valid) / total_bets, "0.01"
        )
    else:
        win_rate = 0
        avg_odds = 0

    total_profit = sum(entry_profit(e) for e in valid)

    return DerivedStats(
        total_bets=total_bets,
        wins=wins,
        win_rate=win_rate,
        avg_odds=avg_odds,
        total_profit=total_profit,
    )


def format_stats_line(stats: DerivedStats, currency: str = "£") -> str:
    """One-line summary shown above the history grid."""
    return (
        f"Total Bets: {stats.total_bets} | "
        f"Win Rate: {stats.win_rate}% | "
        f"Avg Odds: {stats.avg_odds} | "
        f"Profit: {currency}{stats.total_profit:.2f}"
    )


# ---------------------------------------------------------------------------
# Bankroll reconstructor
# ---------------------------------------------------------------------------

def bankroll_series(ledger: list[dict]) -> list[BankrollPoint]:
    """
    Sort the ledger by Date ascending (stable) and fold profit into a
    running total. One point per entry, pending entries included.
    """
    ordered = sorted(ledger, key=lambda e: parse_date(e.get("Date")))

    series = []
    running = 0.0
    for entry in ordered:
        profit = entry_profit(entry)
        running += profit
        series.append(
            BankrollPoint(
                label=str(entry.get("Date") or ""),
                point_profit=profit,
                running_total=running,
            )
        )
    return series
