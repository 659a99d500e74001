"""Local filesystem ledger export helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".json", ".csv")
LEDGER_KINDS = ("entries", "goals", "snapshots")


def collect_ledger_paths(
    folder_path: str,
    recursive: bool = False,
    supported_extensions: Iterable[str] = (),
) -> list[Path]:
    """Collect ledger export file paths from a folder, sorted by name."""
    root = Path(folder_path).expanduser()
    if not root.exists():
        raise FileNotFoundError(f"Folder does not exist: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Not a folder: {root}")

    exts = {str(ext).lower() for ext in supported_extensions} or set(SUPPORTED_EXTENSIONS)
    iterator = root.rglob("*") if recursive else root.glob("*")
    paths = [path for path in iterator if path.is_file() and path.suffix.lower() in exts]
    return sorted(paths)


def _kind_for(path: Path) -> str | None:
    stem = path.stem.lower()
    for kind in LEDGER_KINDS:
        if stem.startswith(kind):
            return kind
    return None


def read_rows(path: Path) -> list[dict[str, Any]]:
    """Read one export file into plain dict rows.

    CSV ``tags`` cells hold ``;``-separated labels.
    """
    if path.suffix.lower() == ".json":
        payload = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(payload, dict):
            payload = payload.get("data", payload.get("rows", []))
        if not isinstance(payload, list):
            raise ValueError(f"Expected a list of rows in {path}")
        return [dict(row) for row in payload if isinstance(row, dict)]

    frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    rows = frame.to_dict(orient="records")
    for row in rows:
        tags = row.get("tags")
        if isinstance(tags, str):
            row["tags"] = [tag.strip() for tag in tags.split(";") if tag.strip()]
        for key, value in list(row.items()):
            if value == "":
                row[key] = None
    return rows


def load_ledger_folder(folder_path: str, recursive: bool = False) -> dict[str, list[dict[str, Any]]]:
    """Load entries, goals and snapshots exports from a folder.

    Files are matched by name prefix (``entries*.json``, ``goals.csv``, ...);
    rows from several files of the same kind are concatenated in name order.
    """
    loaded: dict[str, list[dict[str, Any]]] = {kind: [] for kind in LEDGER_KINDS}
    for path in collect_ledger_paths(folder_path, recursive=recursive):
        kind = _kind_for(path)
        if kind is None:
            logger.debug("Ignoring %s (no ledger kind prefix)", path)
            continue
        rows = read_rows(path)
        loaded[kind].extend(rows)
        logger.info("Loaded %d %s row(s) from %s", len(rows), kind, path.name)
    return loaded
