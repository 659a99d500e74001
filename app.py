#!/usr/bin/env python3
"""TallyBoard command-line entrypoint: analytics, dashboards and reports as JSON."""

from __future__ import annotations

import argparse
import datetime as dt
import json
import logging
import sys
from pathlib import Path
from typing import Any

from config import Settings, get_settings
from dashboard_views import compute_analytics, compute_dashboard
from heatmap import annotate_heatmap, build_heatmap
from local_sources import load_ledger_folder
from log_config import setup_logging
from periods import SUPPORTED_PERIODS
from reports import EXPORT_FORMATS, REPORT_TYPES, build_report, build_report_pack, export_report, tax_fee_summary
from service import AnalyticsFetchError, load_analytics, load_dashboard, load_ledger, refresh_snapshots
from snapshot_store import load_snapshots, upsert_snapshots
from snapshots import derive_snapshots
from store import SupabaseStore

logger = logging.getLogger("tallyboard")


def _build_store(settings: Settings) -> SupabaseStore:
    if not settings.has_store:
        raise SystemExit("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set to use --owner")
    return SupabaseStore(
        settings.supabase_url,
        settings.supabase_key,
        timeout=settings.request_timeout_seconds,
    )


def _local_inputs(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    folder = args.ledger or settings.ledger_dir
    data = load_ledger_folder(folder)
    if not data["snapshots"] and args.owner:
        data["snapshots"] = load_snapshots(args.store_path or settings.snapshot_store_path, args.owner)
    return data


def _uses_store(args: argparse.Namespace, settings: Settings) -> bool:
    return not (args.ledger or settings.ledger_dir)


def _store_owner(args: argparse.Namespace, settings: Settings) -> str | None:
    """Owner id to fetch from the remote store, or None when a ledger folder is set."""
    if not _uses_store(args, settings):
        return None
    if not args.owner:
        raise SystemExit("Pass --ledger FOLDER or --owner ID")
    return args.owner


def _inputs(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    owner = _store_owner(args, settings)
    if owner:
        return load_ledger(_build_store(settings), owner)
    return _local_inputs(args, settings)


def _emit(payload: Any, output: str | None = None) -> None:
    text = payload if isinstance(payload, str) else json.dumps(payload, indent=2, default=str)
    if output:
        Path(output).expanduser().write_text(text, encoding="utf-8")
        print(f"[saved] {output}")
        return
    print(text)


def cmd_analytics(args: argparse.Namespace, settings: Settings) -> Any:
    period = args.period or settings.default_period
    owner = _store_owner(args, settings)
    if owner:
        return load_analytics(_build_store(settings), owner, period, args.start, args.end, top_n=args.top)
    data = _local_inputs(args, settings)
    return compute_analytics(
        data["entries"],
        data["goals"],
        data["snapshots"],
        period=period,
        custom_start=args.start,
        custom_end=args.end,
        top_n=args.top,
    )


def cmd_dashboard(args: argparse.Namespace, settings: Settings) -> Any:
    owner = _store_owner(args, settings)
    if owner:
        return load_dashboard(_build_store(settings), owner, args.year)
    data = _local_inputs(args, settings)
    return compute_dashboard(data["entries"], data["goals"], data["snapshots"], args.year)


def cmd_heatmap(args: argparse.Namespace, settings: Settings) -> Any:
    days, thresholds = annotate_heatmap(build_heatmap(_inputs(args, settings)["entries"], args.year))
    return {"year": args.year, "thresholds": thresholds, "days": days}


def cmd_snapshots(args: argparse.Namespace, settings: Settings) -> Any:
    if args.save and _uses_store(args, settings) and args.owner:
        return refresh_snapshots(_build_store(settings), args.owner)
    rows = derive_snapshots(_inputs(args, settings)["entries"])
    if args.save:
        if not args.owner:
            raise SystemExit("--save needs --owner to key the stored snapshots")
        upsert_snapshots(args.store_path or settings.snapshot_store_path, args.owner, rows)
    return rows


def cmd_report(args: argparse.Namespace, settings: Settings) -> Any:
    entries = _inputs(args, settings)["entries"]
    if args.format == "pack":
        markdown, zip_bytes = build_report_pack(entries, args.start, args.end)
        target = Path(args.output or f"tallyboard_report_{args.start}_{args.end}.zip").expanduser()
        target.write_bytes(zip_bytes)
        print(f"[saved] {target}")
        return markdown
    report = build_report(entries, args.start, args.end, args.type)
    return export_report(report, args.format)


def cmd_tax_fees(args: argparse.Namespace, settings: Settings) -> Any:
    return tax_fee_summary(_inputs(args, settings)["entries"], args.year)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compute ledger analytics, dashboards and reports.")
    parser.add_argument("--ledger", help="Folder with entries/goals/snapshots exports (JSON or CSV).")
    parser.add_argument("--owner", help="Owner id for the remote store or the local snapshot store.")
    parser.add_argument("--store-path", help="Local snapshot store JSON file.")
    parser.add_argument("--log-level", help="Logging level (default from TALLYBOARD_LOG_LEVEL).")
    sub = parser.add_subparsers(dest="command", required=True)

    analytics = sub.add_parser("analytics", help="Totals, series and breakdowns for a period.")
    analytics.add_argument("--period", choices=SUPPORTED_PERIODS)
    analytics.add_argument("--start", help="Custom window start (YYYY-MM-DD).")
    analytics.add_argument("--end", help="Custom window end (YYYY-MM-DD).")
    analytics.add_argument("--top", type=int, default=10, help="Breakdown rows to keep.")
    analytics.add_argument("--output", help="Write JSON here instead of stdout.")
    analytics.set_defaults(handler=cmd_analytics)

    this_year = dt.date.today().year
    dashboard = sub.add_parser("dashboard", help="Year dashboard.")
    dashboard.add_argument("--year", type=int, default=this_year)
    dashboard.add_argument("--output")
    dashboard.set_defaults(handler=cmd_dashboard)

    heatmap = sub.add_parser("heatmap", help="Daily heatmap for a year.")
    heatmap.add_argument("--year", type=int, default=this_year)
    heatmap.add_argument("--output")
    heatmap.set_defaults(handler=cmd_heatmap)

    snapshots = sub.add_parser("snapshots", help="Derive portfolio snapshots from the ledger.")
    snapshots.add_argument("--save", action="store_true", help="Upsert the derived rows.")
    snapshots.add_argument("--output")
    snapshots.set_defaults(handler=cmd_snapshots)

    report = sub.add_parser("report", help="Summary/detailed report or a zip report pack.")
    report.add_argument("--start", required=True)
    report.add_argument("--end", required=True)
    report.add_argument("--type", choices=REPORT_TYPES, default="summary")
    report.add_argument("--format", choices=EXPORT_FORMATS + ("pack",), default="csv")
    report.add_argument("--output")
    report.set_defaults(handler=cmd_report)

    tax_fees = sub.add_parser("tax-fees", help="Tax and fee summary.")
    tax_fees.add_argument("--year", type=int, help="Limit to one year (default: all time).")
    tax_fees.add_argument("--output")
    tax_fees.set_defaults(handler=cmd_tax_fees)

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()
    setup_logging(args.log_level or settings.log_level)
    try:
        payload = args.handler(args, settings)
    except AnalyticsFetchError as exc:
        logger.error("%s: %s", exc, exc.__cause__)
        return 1
    except (FileNotFoundError, NotADirectoryError, ValueError) as exc:
        logger.error("%s", exc)
        return 2
    if args.command == "report" and args.format == "pack":
        print(payload)
        return 0
    _emit(payload, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
