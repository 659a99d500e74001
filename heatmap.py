"""Calendar heatmap rollups and colour-scale helpers."""

from __future__ import annotations

import math

import pandas as pd

from analytics import UNCATEGORIZED
from parsing import normalize_entries

UNKNOWN_SOURCE = "Unknown"
HEATMAP_PERCENTILES = (0.25, 0.5, 0.75, 1.0)


def _top_label(day: pd.DataFrame, column: str, fallback: str) -> str | None:
    active = day[day["Effect"] != 0]
    if active.empty:
        return None
    labels = active[column].fillna(fallback).astype(str).str.strip().replace("", fallback)
    sums = active.groupby(labels, sort=False)["Effect"].sum()
    best_label = None
    best_value = 0.0
    for label, value in sums.items():
        if abs(value) > best_value:
            best_label = str(label)
            best_value = abs(value)
    return best_label


def build_heatmap(entries, year: int) -> list[dict[str, object]]:
    """One record per calendar day of ``year``, zero-filled.

    ``top_category`` and ``top_source`` are the labels with the largest
    absolute summed contribution that day (first seen wins a tie).
    """
    ledger = normalize_entries(entries)
    ledger = ledger[ledger["Date"].dt.year == int(year)]

    per_day: dict[pd.Timestamp, dict[str, object]] = {}
    if not ledger.empty:
        for day, group in ledger.groupby(ledger["Date"].dt.normalize(), sort=False):
            effects = group["Effect"]
            per_day[pd.Timestamp(day)] = {
                "net": float(effects.sum()),
                "profit": float(effects[effects > 0].sum()),
                "loss": float(effects[effects < 0].abs().sum()),
                "top_category": _top_label(group, "Category", UNCATEGORIZED),
                "top_source": _top_label(group, "Source", UNKNOWN_SOURCE),
            }

    days: list[dict[str, object]] = []
    for day in pd.date_range(f"{int(year)}-01-01", f"{int(year)}-12-31", freq="D"):
        rollup = per_day.get(day)
        if rollup is None:
            rollup = {"net": 0.0, "profit": 0.0, "loss": 0.0, "top_category": None, "top_source": None}
        days.append({"date": day.strftime("%Y-%m-%d"), **rollup})
    return days


def heatmap_thresholds(days: list[dict[str, object]]) -> list[float]:
    """Quartile cutoffs over the non-zero ``|net|`` values of ``days``."""
    magnitudes = sorted(abs(float(day["net"])) for day in days if float(day["net"]) != 0)
    if not magnitudes:
        return [0.0, 0.0, 0.0, 0.0]
    n = len(magnitudes)
    return [magnitudes[max(math.ceil(n * p) - 1, 0)] for p in HEATMAP_PERCENTILES]


def heatmap_intensity(net: float, thresholds: list[float]) -> int:
    """Colour level 0-4 for one day.

    Levels that share a cutoff collapse onto the highest of them, so a sparse
    year with a single active day still renders it at full intensity.
    """
    magnitude = abs(float(net))
    if magnitude == 0:
        return 0
    level = len(thresholds)
    for index, cutoff in enumerate(thresholds):
        if magnitude <= cutoff:
            level = index + 1
            while level < len(thresholds) and thresholds[level] == cutoff:
                level += 1
            break
    return level


def heatmap_palette(net: float) -> str:
    if net > 0:
        return "profit"
    if net < 0:
        return "loss"
    return "neutral"


def annotate_heatmap(days: list[dict[str, object]]) -> tuple[list[dict[str, object]], list[float]]:
    """Attach ``intensity`` and ``palette`` to each day and return the cutoffs used."""
    thresholds = heatmap_thresholds(days)
    annotated = [
        {
            **day,
            "intensity": heatmap_intensity(float(day["net"]), thresholds),
            "palette": heatmap_palette(float(day["net"])),
        }
        for day in days
    ]
    return annotated, thresholds
