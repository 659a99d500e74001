"""Goal progress evaluation over a goal's own date window."""

from __future__ import annotations

from typing import Any, Iterable

import pandas as pd

from analytics import calculate_totals
from parsing import filter_by_date_range, normalize_entries, normalize_goals, normalize_snapshots


def portfolio_value_in_range(snapshots: pd.DataFrame, start_date, end_date) -> float:
    """Last snapshot value inside the inclusive window, 0.0 when none."""
    if snapshots.empty:
        return 0.0
    scoped = filter_by_date_range(snapshots, start_date, end_date)
    if scoped.empty:
        return 0.0
    return float(scoped.sort_values("Date", kind="mergesort")["Value"].iloc[-1])


def achieved_value(target_type: str, totals: dict[str, float], portfolio_value: float) -> float:
    if target_type == "income":
        return float(totals["income"])
    if target_type == "net":
        return float(totals["net"])
    if target_type == "portfolio_growth":
        return float(portfolio_value)
    return 0.0


def goal_progress(goal: dict[str, Any], entries: pd.DataFrame, snapshots: pd.DataFrame) -> dict[str, float]:
    """Return achieved value and unclamped progress ratio for one goal.

    A progress above 1.0 means the target was exceeded; a negative value
    means net went negative. A zero target yields progress 0.
    """
    scoped = filter_by_date_range(entries, goal["start_date"], goal["end_date"])
    totals = calculate_totals(scoped)
    portfolio_value = portfolio_value_in_range(snapshots, goal["start_date"], goal["end_date"])
    achieved = achieved_value(goal["target_type"], totals, portfolio_value)
    target = abs(float(goal.get("target_value_usd") or 0.0))
    progress = achieved / target if target else 0.0
    return {"achieved": achieved, "progress": progress, "target": target}


def _intersects(goal: dict[str, Any], start, end) -> bool:
    return goal["start_date"] <= pd.Timestamp(end).normalize() and goal["end_date"] >= pd.Timestamp(start).normalize()


def goal_title(goal: dict[str, Any]) -> str:
    if goal.get("name"):
        return str(goal["name"])
    if goal.get("timeframe") == "year":
        return f"Target for {goal['start_date'].year}"
    end = goal["end_date"]
    return f"Target until {end:%b} {end.day}"


def goal_subtitle(goal: dict[str, Any]) -> str:
    if goal.get("purpose"):
        return str(goal["purpose"])
    if goal.get("category"):
        return f"{goal['category']} focus"
    return str(goal.get("timeframe") or "")


def evaluate_goals(
    goals: Iterable[dict[str, Any]] | None,
    entries,
    snapshots=None,
    overlapping: tuple[Any, Any] | None = None,
) -> list[dict[str, object]]:
    """Evaluate every goal against the full entry and snapshot sets.

    With ``overlapping=(start, end)`` only goals whose window intersects that
    range are returned.
    """
    ledger = normalize_entries(entries)
    snapshot_frame = normalize_snapshots(snapshots)
    rows: list[dict[str, object]] = []
    for goal in normalize_goals(goals):
        if overlapping is not None and not _intersects(goal, *overlapping):
            continue
        result = goal_progress(goal, ledger, snapshot_frame)
        rows.append(
            {
                "id": goal["id"],
                "title": goal_title(goal),
                "subtitle": goal_subtitle(goal),
                "progress": result["progress"],
                "current_value": result["achieved"],
                "target_value": result["target"],
                "timeframe": goal["timeframe"],
                "target_type": goal["target_type"],
                "start_date": goal["start_date"].strftime("%Y-%m-%d"),
                "end_date": goal["end_date"].strftime("%Y-%m-%d"),
                "category_id": goal["category_id"],
                "category_name": goal["category"],
            }
        )
    return rows

