"""Ledger row loading and normalization helpers."""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable

import pandas as pd

logger = logging.getLogger(__name__)

ENTRY_TYPES = ("profit", "loss", "fee", "tax", "transfer")
INCOME_TYPES = ("profit",)
EXPENSE_TYPES = ("loss", "fee", "tax")

_UTC_OFFSET = r"(\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)\s*(?:[Zz]|[+-]\d{2}(?::?\d{2})?)$"

ENTRY_COLUMNS = [
    "Id",
    "Date",
    "EntryType",
    "Amount",
    "Effect",
    "Income",
    "Expense",
    "Category",
    "Source",
    "Notes",
    "Tags",
]


def to_number(value: Any) -> float:
    """Coerce a raw numeric field to float; anything unusable becomes 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def signed_effect(entry_type: str, amount: Any) -> float:
    """Signed P&L contribution of one entry.

    profit adds the magnitude, loss/fee/tax subtract it and transfers are
    capital movements that never touch P&L.
    """
    magnitude = abs(to_number(amount))
    kind = str(entry_type or "").strip().lower()
    if kind in INCOME_TYPES:
        return magnitude
    if kind in EXPENSE_TYPES:
        return -magnitude
    return 0.0


def first_label(value: Any, *keys: str) -> str | None:
    """Resolve a joined one-to-one relation to a single optional label."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    if isinstance(value, dict):
        for key in keys or ("name",):
            label = value.get(key)
            if label is not None and str(label).strip():
                return str(label).strip()
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


def tag_labels(value: Any) -> list[str]:
    """Flatten tag joins (strings, ``{name}`` dicts or ``{tags: {name}}`` rows)."""
    if value is None:
        return []
    if isinstance(value, (str, dict)):
        value = [value]
    labels: list[str] = []
    for item in value:
        if isinstance(item, dict) and "tags" in item:
            item = item["tags"]
        label = first_label(item, "name")
        if label and label not in labels:
            labels.append(label)
    return labels


def _pick(row: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in row:
            return row[key]
    return None


def _parse_dates(values: pd.Series) -> pd.Series:
    """Parse ISO timestamps on their own wall clock; a trailing UTC offset is dropped, not applied."""
    local = values.str.replace(_UTC_OFFSET, r"\1", regex=True)
    return pd.to_datetime(local, errors="coerce", format="ISO8601")


def _empty_entries() -> pd.DataFrame:
    out = pd.DataFrame(columns=ENTRY_COLUMNS)
    out["Date"] = pd.to_datetime(out["Date"])
    for col in ["Amount", "Effect", "Income", "Expense"]:
        out[col] = out[col].astype(float)
    return out


def _records(rows: Iterable[dict[str, Any]] | pd.DataFrame | None) -> list[dict[str, Any]]:
    if rows is None:
        return []
    if isinstance(rows, pd.DataFrame):
        return rows.to_dict(orient="records")
    return [dict(row) for row in rows]


def normalize_entries(rows: Iterable[dict[str, Any]] | pd.DataFrame | None) -> pd.DataFrame:
    """Canonicalize raw entry rows into the ledger frame used by every stage."""
    if isinstance(rows, pd.DataFrame) and "Effect" in rows.columns:
        return rows

    records = _records(rows)
    if not records:
        return _empty_entries()

    df = pd.DataFrame(
        {
            "Id": [_pick(r, "id", "Id") for r in records],
            "RawDate": [_pick(r, "entry_date", "entryDate", "Date") for r in records],
            "EntryType": [
                str(_pick(r, "entry_type", "entryType", "EntryType") or "").strip().lower()
                for r in records
            ],
            "Amount": [
                abs(to_number(_pick(r, "amount_usd_base", "amountUsdBase", "Amount")))
                for r in records
            ],
            "Category": [
                first_label(_pick(r, "category", "categories", "Category"), "name")
                for r in records
            ],
            "Source": [
                first_label(_pick(r, "source", "sources", "Source"), "platform", "name")
                for r in records
            ],
            "Notes": [first_label(_pick(r, "notes", "Notes")) for r in records],
            "Tags": [tag_labels(_pick(r, "tags", "entry_tags", "tag_refs", "Tags")) for r in records],
        }
    )

    df["Date"] = _parse_dates(df["RawDate"].astype("string"))
    dropped = int(df["Date"].isna().sum())
    if dropped:
        logger.warning("Dropped %d ledger row(s) with unparseable entry_date", dropped)
    df = df[df["Date"].notna()].drop(columns=["RawDate"]).reset_index(drop=True)
    unknown = int((~df["EntryType"].isin(ENTRY_TYPES)).sum())
    if unknown:
        logger.warning("%d ledger row(s) have an unknown entry_type and count as zero", unknown)

    df["Effect"] = [signed_effect(kind, amount) for kind, amount in zip(df["EntryType"], df["Amount"])]
    df["Income"] = df["Amount"].where(df["EntryType"].isin(INCOME_TYPES), 0.0)
    df["Expense"] = df["Amount"].where(df["EntryType"].isin(EXPENSE_TYPES), 0.0)
    for col in ["Amount", "Effect", "Income", "Expense"]:
        df[col] = df[col].astype(float)
    return df[ENTRY_COLUMNS]


def filter_by_date_range(df: pd.DataFrame, start_date, end_date) -> pd.DataFrame:
    """Filter rows in an inclusive calendar-date range."""
    if df.empty:
        return df.copy()
    start = pd.Timestamp(start_date).date()
    end = pd.Timestamp(end_date).date()
    mask = df["Date"].dt.date.between(start, end)
    return df.loc[mask].copy()


def filter_by_window(df: pd.DataFrame, start, end) -> pd.DataFrame:
    """Filter rows whose timestamp falls in ``[start, end]`` exactly."""
    if df.empty:
        return df.copy()
    mask = (df["Date"] >= pd.Timestamp(start)) & (df["Date"] <= pd.Timestamp(end))
    return df.loc[mask].copy()


def _calendar_day(value: Any) -> pd.Timestamp | None:
    stamp = pd.to_datetime(value, errors="coerce")
    if stamp is None or pd.isna(stamp):
        return None
    if stamp.tzinfo is not None:
        stamp = stamp.tz_localize(None)
    return stamp.normalize()


def normalize_goals(rows: Iterable[dict[str, Any]] | pd.DataFrame | None) -> list[dict[str, Any]]:
    """Normalize goal rows (numeric target, parsed dates, resolved category)."""
    goals: list[dict[str, Any]] = []
    for row in _records(rows):
        start = _calendar_day(_pick(row, "start_date", "startDate"))
        end = _calendar_day(_pick(row, "end_date", "endDate"))
        if start is None or end is None:
            logger.warning("Skipping goal %s with unparseable date window", _pick(row, "id"))
            continue
        goals.append(
            {
                "id": _pick(row, "id"),
                "name": first_label(_pick(row, "name")),
                "purpose": first_label(_pick(row, "purpose")),
                "timeframe": str(_pick(row, "timeframe") or "year").strip().lower(),
                "target_type": str(_pick(row, "target_type", "targetType") or "net").strip().lower(),
                "target_value_usd": abs(to_number(_pick(row, "target_value_usd", "targetValueUsd"))),
                "start_date": start,
                "end_date": end,
                "category_id": _pick(row, "category_id", "categoryRef"),
                "category": first_label(_pick(row, "category", "categories"), "name"),
            }
        )
    return goals


def normalize_snapshots(rows: Iterable[dict[str, Any]] | pd.DataFrame | None) -> pd.DataFrame:
    """Normalize portfolio snapshot rows into a date-sorted frame."""
    if isinstance(rows, pd.DataFrame) and "Value" in rows.columns:
        return rows
    records = _records(rows)
    if not records:
        return pd.DataFrame(
            {
                "Date": pd.Series(dtype="datetime64[ns]"),
                "Value": pd.Series(dtype=float),
                "Derived": pd.Series(dtype=bool),
            }
        )
    df = pd.DataFrame(
        {
            "Date": _parse_dates(
                pd.Series([_pick(r, "snapshot_date", "snapshotDate") for r in records], dtype="string")
            ),
            "Value": [to_number(_pick(r, "total_value_usd", "totalValueUsd")) for r in records],
            "Derived": [bool(r.get("derived", False)) for r in records],
        }
    )
    df = df[df["Date"].notna()]
    return df.sort_values("Date", kind="mergesort").reset_index(drop=True)
