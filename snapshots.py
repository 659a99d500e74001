"""Portfolio snapshot derivation, stats and display series."""

from __future__ import annotations

from typing import Any

import pandas as pd

from parsing import normalize_entries, normalize_snapshots


def derive_snapshots(entries) -> list[dict[str, Any]]:
    """Running total of signed effect per distinct entry date, ascending.

    Only a function of the ledger, so deriving twice yields identical rows.
    """
    ledger = normalize_entries(entries)
    if ledger.empty:
        return []
    daily = ledger.groupby(ledger["Date"].dt.normalize())["Effect"].sum().sort_index()
    running = daily.cumsum()
    return [
        {
            "snapshot_date": pd.Timestamp(day).strftime("%Y-%m-%d"),
            "total_value_usd": float(value),
            "derived": True,
        }
        for day, value in running.items()
    ]


def resolve_snapshots(recorded, entries) -> tuple[pd.DataFrame, str]:
    """Recorded snapshots when any exist, otherwise the series derived from ``entries``."""
    frame = normalize_snapshots(recorded)
    if not frame.empty:
        return frame, "recorded"
    return normalize_snapshots(derive_snapshots(entries)), "derived"


def portfolio_stats(snapshots) -> dict[str, float]:
    """Latest value and change since the first snapshot."""
    frame = normalize_snapshots(snapshots)
    if frame.empty:
        return {"total_value": 0.0, "change_value": 0.0, "change_percent": 0.0}
    first = float(frame["Value"].iloc[0])
    last = float(frame["Value"].iloc[-1])
    change = last - first
    return {
        "total_value": last,
        "change_value": change,
        "change_percent": change / first * 100.0 if first else 0.0,
    }


def portfolio_series(snapshots) -> list[dict[str, object]]:
    frame = normalize_snapshots(snapshots)
    return [
        {"date": f"{stamp:%b}", "snapshot_date": f"{stamp:%Y-%m-%d}", "value": float(value)}
        for stamp, value in zip(frame["Date"], frame["Value"])
    ]
