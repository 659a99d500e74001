"""Fetch-then-compute orchestration over a data store."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import pandas as pd

from dashboard_views import available_years, compute_analytics, compute_dashboard
from snapshots import derive_snapshots
from store import StoreError

logger = logging.getLogger(__name__)


class AnalyticsFetchError(RuntimeError):
    """The data store failed while loading analytics inputs."""


def _fetch_all(store, owner_id: str, **ranges: tuple[Any, Any]) -> dict[str, Any]:
    """Run entries, goals and snapshots queries in parallel and wait for all of them."""
    calls = {
        "entries": store.fetch_entries,
        "goals": store.fetch_goals,
        "snapshots": store.fetch_snapshots,
    }
    try:
        with ThreadPoolExecutor(max_workers=len(calls)) as pool:
            futures = {
                name: pool.submit(fetch, owner_id, *ranges.get(name, (None, None)))
                for name, fetch in calls.items()
            }
            return {name: future.result() for name, future in futures.items()}
    except StoreError as exc:
        logger.error("Analytics fetch failed for owner %s: %s", owner_id, exc)
        raise AnalyticsFetchError("failed to fetch analytics") from exc


def load_analytics(
    store,
    owner_id: str,
    period: str = "30d",
    custom_start=None,
    custom_end=None,
    now=None,
    top_n: int = 10,
):
    data = _fetch_all(store, owner_id)
    return compute_analytics(
        data["entries"],
        data["goals"],
        data["snapshots"],
        period=period,
        custom_start=custom_start,
        custom_end=custom_end,
        now=now,
        top_n=top_n,
    )


def load_dashboard(store, owner_id: str, year: int):
    """Year dashboard; goals and snapshots are fetched in full for goal scoping."""
    start = pd.Timestamp(year=int(year), month=1, day=1)
    end = pd.Timestamp(year=int(year), month=12, day=31)
    data = _fetch_all(store, owner_id, goals=(start, end))
    return compute_dashboard(data["entries"], data["goals"], data["snapshots"], int(year))


def refresh_snapshots(store, owner_id: str) -> list[dict[str, Any]]:
    """Derive snapshots from the full ledger and upsert them; safe to repeat."""
    try:
        entries = store.fetch_entries(owner_id)
        rows = derive_snapshots(entries)
        store.upsert_snapshots(owner_id, rows)
    except StoreError as exc:
        raise AnalyticsFetchError("failed to fetch analytics") from exc
    return rows


def load_years(store, owner_id: str) -> list[int]:
    """Known years for an owner; years seen only in entries are recorded too."""
    try:
        recorded = store.fetch_years(owner_id)
        entries = store.fetch_entries(owner_id)
        years = available_years(entries, recorded)
        known = set(recorded)
        missing = [year for year in years if year not in known]
        if missing:
            store.upsert_years(owner_id, missing)
    except StoreError as exc:
        raise AnalyticsFetchError("failed to fetch analytics") from exc
    return years


def load_ledger(store, owner_id: str) -> dict[str, Any]:
    """Raw entries, goals and snapshots for an owner, fetched in parallel."""
    return _fetch_all(store, owner_id)
