"""Local JSON persistence for portfolio snapshots (upsert by owner and date)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from parsing import to_number

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_STORE_PATH = "data/portfolio_snapshots.json"


def _normalize_rows(raw: Any) -> dict[str, dict[str, Any]]:
    if not isinstance(raw, dict):
        return {}
    out: dict[str, dict[str, Any]] = {}
    for key, value in raw.items():
        date_text = str(key).strip()[:10]
        if not date_text or not isinstance(value, dict):
            continue
        out[date_text] = {
            "total_value_usd": to_number(value.get("total_value_usd")),
            "derived": bool(value.get("derived", False)),
        }
    return out


def _read_payload(target: Path) -> dict[str, dict[str, dict[str, Any]]]:
    if not target.exists():
        return {}
    payload = json.loads(target.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        return {}
    return {str(owner): _normalize_rows(rows) for owner, rows in payload.items()}


def load_snapshots(path: str, owner: str) -> list[dict[str, Any]]:
    """Load one owner's snapshot rows from disk, oldest first."""
    rows = _read_payload(Path(path).expanduser()).get(str(owner), {})
    return [{"snapshot_date": date, **rows[date]} for date in sorted(rows)]


def upsert_snapshots(path: str, owner: str, rows: Iterable[dict[str, Any]]) -> Path:
    """Insert or replace rows keyed by ``(owner, snapshot_date)`` and return saved path."""
    target = Path(path).expanduser()
    payload = _read_payload(target)
    owned = payload.setdefault(str(owner), {})
    written = 0
    for row in rows:
        date_text = str(row.get("snapshot_date") or "").strip()[:10]
        if not date_text:
            continue
        owned[date_text] = {
            "total_value_usd": to_number(row.get("total_value_usd")),
            "derived": bool(row.get("derived", False)),
        }
        written += 1
    target.parent.mkdir(parents=True, exist_ok=True)
    ordered = {owner_id: dict(sorted(items.items())) for owner_id, items in sorted(payload.items())}
    target.write_text(json.dumps(ordered, indent=2, ensure_ascii=True), encoding="utf-8")
    logger.info("Upserted %d snapshot row(s) for owner %s into %s", written, owner, target)
    return target
