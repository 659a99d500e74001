"""Aggregation helpers for ledger KPIs, breakdowns and time series."""

from __future__ import annotations

import logging

import pandas as pd

from parsing import EXPENSE_TYPES, INCOME_TYPES

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"
DIRECT_SOURCE = "Direct"


def calculate_totals(df: pd.DataFrame) -> dict[str, float]:
    """Return income, expenses and net for a normalized ledger frame."""
    if df.empty:
        return {"income": 0.0, "expenses": 0.0, "net": 0.0}
    income = float(df["Income"].sum())
    expenses = float(df["Expense"].sum())
    return {"income": income, "expenses": expenses, "net": income - expenses}


def format_share(part: float, total: float) -> str:
    """Percent-of-total label with one decimal; ``"0%"`` when total is zero."""
    if not total:
        return "0%"
    return f"{part / total * 100.0:.1f}%"


def transaction_stats(df: pd.DataFrame) -> dict[str, float]:
    """Counts, averages and largest values per direction."""
    income = df.loc[df["EntryType"].isin(INCOME_TYPES), "Amount"]
    expenses = df.loc[df["EntryType"].isin(EXPENSE_TYPES), "Amount"]
    return {
        "total_transactions": int(len(df)),
        "income_count": int(len(income)),
        "expense_count": int(len(expenses)),
        "avg_income": float(income.mean()) if len(income) else 0.0,
        "avg_expense": float(expenses.mean()) if len(expenses) else 0.0,
        "largest_income": float(income.max()) if len(income) else 0.0,
        "largest_expense": float(expenses.max()) if len(expenses) else 0.0,
    }


def financial_ratios(totals: dict[str, float]) -> dict[str, float]:
    income = float(totals.get("income", 0.0))
    if not income:
        return {"savings_rate": 0.0, "expense_ratio": 0.0}
    return {
        "savings_rate": float(totals["net"]) / income * 100.0,
        "expense_ratio": float(totals["expenses"]) / income * 100.0,
    }


def choose_grouping(start: pd.Timestamp, end: pd.Timestamp) -> str:
    """Pick the bucket size for a window: month beyond a year, week beyond 90 days."""
    span_days = (pd.Timestamp(end) - pd.Timestamp(start)) / pd.Timedelta(days=1)
    if span_days > 365:
        return "month"
    if span_days > 90:
        return "week"
    return "day"


def bucket_keys(dates: pd.Series, grouping: str) -> pd.Series:
    """Map timestamps to the representative start date of their bucket."""
    dates = pd.to_datetime(dates)
    if grouping == "day":
        return dates.dt.normalize()
    if grouping == "week":
        return dates.dt.to_period("W-SUN").dt.start_time
    if grouping == "month":
        return dates.dt.to_period("M").dt.start_time
    raise ValueError(f"Unsupported grouping: {grouping}")


def bucket_dates(start: pd.Timestamp, end: pd.Timestamp, grouping: str) -> list[pd.Timestamp]:
    """Representative bucket dates covering ``[start, end]``.

    Falls back to the two points ``[start, end]`` when no interval can be
    generated (for instance when ``end`` precedes ``start``).
    """
    start = pd.Timestamp(start)
    end = pd.Timestamp(end)
    try:
        first = bucket_keys(pd.Series([start]), grouping).iloc[0]
        freq = {"day": "D", "week": "W-MON", "month": "MS"}[grouping]
        dates = list(pd.date_range(first, end, freq=freq))
    except (KeyError, ValueError, OverflowError) as exc:
        logger.warning("Interval generation failed for %s..%s (%s): %s", start, end, grouping, exc)
        dates = []
    if not dates:
        return [start, end]
    return dates


def _bucket_label(stamp: pd.Timestamp, grouping: str) -> str:
    if grouping == "month":
        return f"{stamp:%b %Y}"
    return f"{stamp:%b} {stamp.day}"


def time_series(df: pd.DataFrame, start, end, grouping: str | None = None) -> list[dict[str, object]]:
    """Income/expenses/net per bucket across the window, zero-filled."""
    grouping = grouping or choose_grouping(start, end)
    buckets = bucket_dates(start, end, grouping)

    per_bucket: dict[pd.Timestamp, dict[str, float]] = {}
    if not df.empty:
        keys = bucket_keys(df["Date"], grouping)
        for key, group in df.groupby(keys, sort=False):
            per_bucket[pd.Timestamp(key)] = calculate_totals(group)

    bucket_index = bucket_keys(pd.Series(buckets), grouping)
    rows: list[dict[str, object]] = []
    for stamp, key in zip(buckets, bucket_index):
        totals = per_bucket.get(pd.Timestamp(key), calculate_totals(df.iloc[0:0]))
        rows.append(
            {
                "date": pd.Timestamp(stamp).isoformat(),
                "label": _bucket_label(pd.Timestamp(stamp), grouping),
                "income": totals["income"],
                "expenses": totals["expenses"],
                "net": totals["net"],
            }
        )
    return rows


def _label_series(df: pd.DataFrame, column: str) -> pd.Series:
    fallback = DIRECT_SOURCE if column == "Source" else UNCATEGORIZED
    return df[column].fillna(fallback).astype(str).str.strip().replace("", fallback)


def label_breakdown(
    df: pd.DataFrame,
    column: str = "Category",
    top_n: int = 10,
    entry_types: tuple[str, ...] = EXPENSE_TYPES,
) -> list[dict[str, object]]:
    """Rank labels by summed magnitude, descending; ties keep first-seen order."""
    work = df[df["EntryType"].isin(entry_types)].copy()
    if work.empty:
        return []
    total = float(work["Amount"].sum())

    if column == "Tags":
        work = work.explode("Tags").reset_index(drop=True)
        work = work[work["Tags"].notna()]
        if work.empty:
            return []
        labels = work["Tags"].astype(str)
    else:
        labels = _label_series(work, column)

    grouped = (
        work.groupby(labels, sort=False)["Amount"]
        .sum()
        .sort_values(ascending=False, kind="mergesort")
        .head(max(int(top_n), 1))
    )
    return [
        {"name": str(name), "value": float(value), "percent": format_share(float(value), total)}
        for name, value in grouped.items()
    ]


def category_breakdown(df: pd.DataFrame, top_n: int = 10) -> list[dict[str, object]]:
    """Where the money went: expense magnitude by category."""
    return label_breakdown(df, "Category", top_n=top_n)


def income_breakdown(df: pd.DataFrame, top_n: int = 10) -> list[dict[str, object]]:
    return label_breakdown(df, "Category", top_n=top_n, entry_types=INCOME_TYPES)


def tag_breakdown(df: pd.DataFrame, top_n: int = 10) -> list[dict[str, object]]:
    return label_breakdown(df, "Tags", top_n=top_n)


def source_expense_breakdown(df: pd.DataFrame, top_n: int = 10) -> list[dict[str, object]]:
    """Expense magnitude by source; entries without one count as Direct."""
    return label_breakdown(df, "Source", top_n=top_n)


def source_breakdown(df: pd.DataFrame) -> list[dict[str, object]]:
    """Income, expenses and net per source, best net first."""
    if df.empty:
        return []
    work = df.copy()
    work["_source"] = _label_series(work, "Source")
    grouped = work.groupby("_source", sort=False).agg(income=("Income", "sum"), expenses=("Expense", "sum"))
    grouped["net"] = grouped["income"] - grouped["expenses"]
    grouped = grouped.sort_values("net", ascending=False, kind="mergesort")
    return [
        {
            "name": str(name),
            "income": float(row["income"]),
            "expenses": float(row["expenses"]),
            "net": float(row["net"]),
        }
        for name, row in grouped.iterrows()
    ]


def _text(value, fallback=None):
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return fallback
    return str(value)


def entry_record(row: pd.Series, signed: bool = False) -> dict[str, object]:
    """Plain dict view of one ledger row."""
    tags = row.get("Tags")
    return {
        "id": row.get("Id"),
        "date": pd.Timestamp(row["Date"]).strftime("%Y-%m-%d"),
        "type": row["EntryType"],
        "amount": float(row["Effect"] if signed else row["Amount"]),
        "category": _text(row.get("Category"), UNCATEGORIZED),
        "source": _text(row.get("Source")),
        "notes": _text(row.get("Notes"), ""),
        "tags": list(tags) if isinstance(tags, list) else [],
    }


def top_entries(df: pd.DataFrame, entry_types: tuple[str, ...], limit: int = 5) -> list[dict[str, object]]:
    """Largest entries of the given types by magnitude."""
    subset = df[df["EntryType"].isin(entry_types)]
    ordered = subset.sort_values("Amount", ascending=False, kind="mergesort").head(int(limit))
    return [entry_record(row) for _, row in ordered.iterrows()]


def monthly_cashflow(df: pd.DataFrame) -> pd.DataFrame:
    """Aggregate income/expenses/net by calendar month."""
    if df.empty:
        return pd.DataFrame(columns=["Income", "Expenses", "Net"], dtype=float)
    out = df.copy()
    out["Month"] = out["Date"].dt.to_period("M").astype(str)
    summary = (
        out.groupby("Month", dropna=True)
        .agg(Income=("Income", "sum"), Expenses=("Expense", "sum"))
        .sort_index()
    )
    summary["Net"] = summary["Income"] - summary["Expenses"]
    return summary


def monthly_trends(df: pd.DataFrame) -> tuple[list[dict[str, object]], dict[str, object]]:
    """Monthly trend rows plus best and worst month by net."""
    monthly = monthly_cashflow(df)
    rows = [
        {
            "month": str(month),
            "income": float(row["Income"]),
            "expenses": float(row["Expenses"]),
            "net": float(row["Net"]),
        }
        for month, row in monthly.iterrows()
    ]
    best = None
    worst = None
    for row in rows:
        if best is None or row["net"] > best["net"]:
            best = row
        if worst is None or row["net"] < worst["net"]:
            worst = row
    return rows, {"best_month": best, "worst_month": worst}
