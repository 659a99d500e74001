"""Composite analytics and year-dashboard views over a raw ledger."""

from __future__ import annotations

import logging
from typing import Any, Iterable

import pandas as pd

from analytics import (
    UNCATEGORIZED,
    calculate_totals,
    category_breakdown,
    choose_grouping,
    financial_ratios,
    income_breakdown,
    monthly_trends,
    source_breakdown,
    source_expense_breakdown,
    tag_breakdown,
    time_series,
    top_entries,
    transaction_stats,
)
from goals import evaluate_goals
from heatmap import annotate_heatmap, build_heatmap
from parsing import EXPENSE_TYPES, INCOME_TYPES, filter_by_window, normalize_entries, normalize_snapshots
from periods import resolve_period
from snapshots import derive_snapshots, portfolio_series, portfolio_stats, resolve_snapshots

logger = logging.getLogger(__name__)

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
RECENT_ENTRY_LIMIT = 5


def compute_analytics(
    entries,
    goals: Iterable[dict[str, Any]] | None = None,
    snapshots=None,
    period: str = "30d",
    custom_start=None,
    custom_end=None,
    now=None,
    top_n: int = 10,
) -> dict[str, object]:
    """Totals, series and breakdowns for one period plus its comparison window."""
    ledger = normalize_entries(entries)
    earliest = ledger["Date"].min() if not ledger.empty else None
    latest = ledger["Date"].max() if not ledger.empty else None
    window = resolve_period(period, custom_start, custom_end, now=now, earliest_entry=earliest, latest_entry=latest)

    current = filter_by_window(ledger, window.start, window.end)
    totals: dict[str, object] = dict(calculate_totals(current))
    if window.has_previous:
        previous = calculate_totals(filter_by_window(ledger, window.previous_start, window.previous_end))
        totals.update(prev_income=previous["income"], prev_expenses=previous["expenses"], prev_net=previous["net"])
    else:
        totals.update(prev_income=None, prev_expenses=None, prev_net=None)

    grouping = choose_grouping(window.start, window.end)
    trends, insights = monthly_trends(current)
    goal_snapshots, _ = resolve_snapshots(snapshots, ledger)
    logger.debug("Analytics for %s: %d of %d entries in window", period, len(current), len(ledger))

    return {
        "totals": totals,
        "chart_data": time_series(current, window.start, window.end, grouping),
        "category_breakdown": category_breakdown(current, top_n=top_n),
        "income_breakdown": income_breakdown(current, top_n=top_n),
        "source_breakdown": source_breakdown(current),
        "source_expense_breakdown": source_expense_breakdown(current, top_n=top_n),
        "tag_breakdown": tag_breakdown(current, top_n=top_n),
        "top_entries": {
            "income": top_entries(current, INCOME_TYPES),
            "expenses": top_entries(current, EXPENSE_TYPES),
        },
        "transaction_stats": transaction_stats(current),
        "financial_ratios": financial_ratios(totals),
        "monthly_trends": trends,
        "insights": insights,
        "goals": evaluate_goals(goals, ledger, goal_snapshots, overlapping=(window.start, window.end)),
        "meta": {
            "grouping": grouping,
            "start": window.start.isoformat(),
            "end": window.end.isoformat(),
            "has_prev_period": window.has_previous,
            "entry_count": int(len(current)),
        },
    }


def pnl_totals(df: pd.DataFrame) -> dict[str, float]:
    """Profit, loss, fees and taxes kept apart, plus net."""
    by_type = df.groupby("EntryType")["Amount"].sum() if not df.empty else pd.Series(dtype=float)
    profit = float(by_type.get("profit", 0.0))
    loss = float(by_type.get("loss", 0.0))
    fees = float(by_type.get("fee", 0.0))
    taxes = float(by_type.get("tax", 0.0))
    return {"net": profit - loss - fees - taxes, "profit": profit, "loss": loss, "fees": fees, "taxes": taxes}


def average_monthly_net(df: pd.DataFrame) -> float:
    """Mean net over months that have at least one non-transfer entry."""
    active = df[df["EntryType"] != "transfer"]
    if active.empty:
        return 0.0
    monthly = active.groupby(active["Date"].dt.month)["Effect"].sum()
    return float(monthly.mean())


def category_contribution(df: pd.DataFrame) -> list[dict[str, object]]:
    """Income share per category as a rounded integer percent."""
    income = df[df["EntryType"].isin(INCOME_TYPES)]
    if income.empty:
        return []
    labels = income["Category"].fillna(UNCATEGORIZED)
    sums = income.groupby(labels, sort=False)["Amount"].sum()
    total = float(sums.sum())
    return [
        {"name": str(name), "value": int(round(float(value) / total * 100)) if total else 0}
        for name, value in sums.items()
    ]


def net_series(df: pd.DataFrame, year: int) -> dict[str, list[dict[str, object]]]:
    """Net per month, quarter and half of ``year`` plus the yearly roll-up."""
    months = df.groupby(df["Date"].dt.month)["Effect"].sum() if not df.empty else pd.Series(dtype=float)
    monthly = [{"date": label, "net": float(months.get(index + 1, 0.0))} for index, label in enumerate(MONTH_LABELS)]
    quarterly = [
        {"date": f"Q{q + 1}", "net": sum(row["net"] for row in monthly[q * 3 : q * 3 + 3])} for q in range(4)
    ]
    half_year = [
        {"date": f"H{h + 1}", "net": sum(row["net"] for row in monthly[h * 6 : h * 6 + 6])} for h in range(2)
    ]
    total = float(df["Effect"].sum()) if not df.empty else 0.0
    return {
        "monthly": monthly,
        "quarterly": quarterly,
        "half_year": half_year,
        "yearly": [{"date": str(year), "net": total}],
        "all": [{"date": str(year), "net": total}],
    }


def recent_entries(df: pd.DataFrame, limit: int = RECENT_ENTRY_LIMIT) -> list[dict[str, object]]:
    ordered = df.sort_values("Date", ascending=False, kind="mergesort").head(int(limit))
    rows = []
    for _, row in ordered.iterrows():
        rows.append(
            {
                "id": row["Id"],
                "type": row["EntryType"],
                "category": row["Category"] if isinstance(row["Category"], str) else UNCATEGORIZED,
                "source": row["Source"] if isinstance(row["Source"], str) else "-",
                "amount": float(row["Effect"]),
                "date": row["Date"].strftime("%Y-%m-%d"),
                "notes": row["Notes"] if isinstance(row["Notes"], str) else "",
            }
        )
    return rows


def compute_dashboard(entries, goals, snapshots, year: int) -> dict[str, object]:
    """Year view: P&L, goals, portfolio, net series, recent entries and heatmap."""
    year = int(year)
    ledger = normalize_entries(entries)
    year_entries = ledger[ledger["Date"].dt.year == year]
    pnl = pnl_totals(year_entries)

    recorded = normalize_snapshots(snapshots)
    year_snapshots = recorded[recorded["Date"].dt.year == year]
    if not year_snapshots.empty:
        resolved, portfolio_source = year_snapshots, "recorded"
    else:
        resolved, portfolio_source = normalize_snapshots(derive_snapshots(year_entries)), "derived"
    goal_snapshots, _ = resolve_snapshots(recorded, ledger)

    year_start = pd.Timestamp(year=year, month=1, day=1)
    year_end = pd.Timestamp(year=year, month=12, day=31)
    heatmap_days, thresholds = annotate_heatmap(build_heatmap(year_entries, year))

    return {
        "year": year,
        "targets": evaluate_goals(goals, ledger, goal_snapshots, overlapping=(year_start, year_end)),
        "portfolio": portfolio_stats(resolved),
        "pnl": pnl,
        "average_monthly_net": average_monthly_net(year_entries),
        "category_contribution": category_contribution(year_entries),
        "net_series": net_series(year_entries, year),
        "portfolio_series": portfolio_series(resolved),
        "portfolio_source": portfolio_source,
        "recent_entries": recent_entries(year_entries),
        "heatmap_days": heatmap_days,
        "heatmap_thresholds": thresholds,
        "has_tax_or_fee": pnl["fees"] > 0 or pnl["taxes"] > 0,
    }


def available_years(entries, recorded_years: Iterable[Any] = ()) -> list[int]:
    """Sorted union of recorded financial years and years seen in the ledger."""
    years = {int(year) for year in recorded_years if year is not None}
    ledger = normalize_entries(entries)
    if not ledger.empty:
        years.update(int(year) for year in ledger["Date"].dt.year.unique())
    return sorted(years)
