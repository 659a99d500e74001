"""PostgREST (Supabase) data-store client for entries, goals and snapshots."""

from __future__ import annotations

import logging
from typing import Any, Iterable

import requests

logger = logging.getLogger(__name__)

ENTRY_SELECT = (
    "id, entry_date, entry_type, amount_usd_base, notes, "
    "category:categories(name), source:sources(platform), tags:entry_tags(tags(name))"
)
GOAL_SELECT = (
    "id, name, purpose, timeframe, target_type, target_value_usd, "
    "start_date, end_date, category_id, category:categories(name)"
)
SNAPSHOT_SELECT = "snapshot_date, total_value_usd"


class StoreError(RuntimeError):
    """Raised when the data store cannot be reached or returns an unusable response."""


def _day(value: Any) -> str:
    return str(value)[:10]


class SupabaseStore:
    """Thin REST client scoped by owner id.

    ``session`` may be any object with a ``requests.Session``-compatible
    ``request`` method, which keeps tests free of network access.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        session: requests.Session | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.base_url = str(base_url).rstrip("/")
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        headers.update(extra or {})
        return headers

    def _request(
        self,
        method: str,
        table: str,
        params: list[tuple[str, str]] | None = None,
        payload: Any = None,
        extra_headers: dict[str, str] | None = None,
    ) -> Any:
        url = f"{self.base_url}/rest/v1/{table}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=payload,
                headers=self._headers(extra_headers),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise StoreError(f"{method} {table} failed: {exc}") from exc
        if not response.content:
            return []
        try:
            return response.json()
        except ValueError as exc:
            raise StoreError(f"{method} {table} returned invalid JSON") from exc

    def _select(self, table: str, params: list[tuple[str, str]]) -> list[dict[str, Any]]:
        rows = self._request("GET", table, params=params)
        if not isinstance(rows, list):
            raise StoreError(f"GET {table} returned {type(rows).__name__}, expected a list")
        logger.debug("Fetched %d row(s) from %s", len(rows), table)
        return rows

    def fetch_entries(self, owner_id: str, start: Any = None, end: Any = None) -> list[dict[str, Any]]:
        params = [("select", ENTRY_SELECT), ("user_id", f"eq.{owner_id}")]
        if start is not None:
            params.append(("entry_date", f"gte.{_day(start)}"))
        if end is not None:
            params.append(("entry_date", f"lte.{_day(end)}"))
        params.append(("order", "entry_date.asc"))
        return self._select("entries", params)

    def fetch_goals(self, owner_id: str, start: Any = None, end: Any = None) -> list[dict[str, Any]]:
        """Goals whose window overlaps ``[start, end]`` (all goals when unbounded)."""
        params = [("select", GOAL_SELECT), ("user_id", f"eq.{owner_id}")]
        if end is not None:
            params.append(("start_date", f"lte.{_day(end)}"))
        if start is not None:
            params.append(("end_date", f"gte.{_day(start)}"))
        params.append(("order", "start_date.asc"))
        return self._select("goals", params)

    def fetch_snapshots(self, owner_id: str, start: Any = None, end: Any = None) -> list[dict[str, Any]]:
        params = [("select", SNAPSHOT_SELECT), ("user_id", f"eq.{owner_id}")]
        if start is not None:
            params.append(("snapshot_date", f"gte.{_day(start)}"))
        if end is not None:
            params.append(("snapshot_date", f"lte.{_day(end)}"))
        params.append(("order", "snapshot_date.asc"))
        return self._select("portfolio_snapshots", params)

    def fetch_years(self, owner_id: str) -> list[int]:
        rows = self._select(
            "financial_years",
            [("select", "year"), ("user_id", f"eq.{owner_id}"), ("order", "year.asc")],
        )
        return [int(row["year"]) for row in rows if row.get("year") is not None]

    def _upsert(self, table: str, conflict: str, rows: list[dict[str, Any]]) -> int:
        if not rows:
            return 0
        self._request(
            "POST",
            table,
            params=[("on_conflict", conflict)],
            payload=rows,
            extra_headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )
        logger.info("Upserted %d row(s) into %s", len(rows), table)
        return len(rows)

    def upsert_snapshots(self, owner_id: str, rows: Iterable[dict[str, Any]]) -> int:
        """Insert or replace snapshots keyed by ``(user_id, snapshot_date)``."""
        payload = [
            {
                "user_id": owner_id,
                "snapshot_date": _day(row["snapshot_date"]),
                "total_value_usd": float(row["total_value_usd"]),
            }
            for row in rows
        ]
        return self._upsert("portfolio_snapshots", "user_id,snapshot_date", payload)

    def upsert_years(self, owner_id: str, years: Iterable[int]) -> int:
        payload = [{"user_id": owner_id, "year": int(year)} for year in years]
        return self._upsert("financial_years", "user_id,year", payload)
