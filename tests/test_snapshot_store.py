import json
from pathlib import Path

from snapshot_store import load_snapshots, upsert_snapshots
from snapshots import derive_snapshots

ENTRIES = [
    {"entry_date": "2025-01-05", "entry_type": "profit", "amount_usd_base": 1000},
    {"entry_date": "2025-01-10", "entry_type": "loss", "amount_usd_base": 300},
]


def test_upsert_twice_leaves_the_same_rows(tmp_path: Path) -> None:
    target = tmp_path / "snapshots.json"
    rows = derive_snapshots(ENTRIES)

    upsert_snapshots(str(target), "user-1", rows)
    first = target.read_text(encoding="utf-8")
    upsert_snapshots(str(target), "user-1", derive_snapshots(ENTRIES))

    assert target.read_text(encoding="utf-8") == first
    assert load_snapshots(str(target), "user-1") == [
        {"snapshot_date": "2025-01-05", "total_value_usd": 1000.0, "derived": True},
        {"snapshot_date": "2025-01-10", "total_value_usd": 700.0, "derived": True},
    ]


def test_upsert_replaces_by_date_and_keeps_owners_apart(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "snapshots.json"
    upsert_snapshots(str(target), "user-1", [{"snapshot_date": "2025-01-05", "total_value_usd": 1}])
    upsert_snapshots(str(target), "user-2", [{"snapshot_date": "2025-01-05", "total_value_usd": 2}])
    upsert_snapshots(str(target), "user-1", [{"snapshot_date": "2025-01-05T00:00:00", "total_value_usd": 3}])

    assert load_snapshots(str(target), "user-1")[0]["total_value_usd"] == 3.0
    assert load_snapshots(str(target), "user-2")[0]["total_value_usd"] == 2.0
    payload = json.loads(target.read_text(encoding="utf-8"))
    assert sorted(payload) == ["user-1", "user-2"]


def test_missing_store_returns_empty(tmp_path: Path) -> None:
    assert load_snapshots(str(tmp_path / "missing.json"), "user-1") == []
