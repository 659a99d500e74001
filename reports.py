"""Report building and export (summary/detailed, tax and fees, zip pack)."""

from __future__ import annotations

import io
import json
import logging
import zipfile

import pandas as pd

from analytics import (
    UNCATEGORIZED,
    calculate_totals,
    category_breakdown,
    entry_record,
    format_share,
    income_breakdown,
    monthly_cashflow,
    monthly_trends,
)
from parsing import filter_by_date_range, normalize_entries

logger = logging.getLogger(__name__)

REPORT_TYPES = ("summary", "detailed")
EXPORT_FORMATS = ("csv", "json")
CSV_COLUMNS = ["Date", "Type", "Category", "Amount (USD)", "Notes"]
TAX_FEE_TYPES = ("tax", "fee")


def build_report(entries, start_date, end_date, report_type: str = "summary") -> dict[str, object]:
    """Summarize entries dated inside ``[start_date, end_date]``."""
    if report_type not in REPORT_TYPES:
        raise ValueError(f"Unsupported report type: {report_type}")
    ledger = normalize_entries(entries)
    scoped = filter_by_date_range(ledger, start_date, end_date)
    scoped = scoped.sort_values("Date", kind="mergesort")

    report: dict[str, object] = {
        "type": report_type,
        "period": {
            "start": pd.Timestamp(start_date).strftime("%Y-%m-%d"),
            "end": pd.Timestamp(end_date).strftime("%Y-%m-%d"),
        },
        "totals": calculate_totals(scoped),
        "entries_count": int(len(scoped)),
        "entries": [entry_record(row) for _, row in scoped.iterrows()],
    }
    if report_type == "detailed":
        trends, insights = monthly_trends(scoped)
        report["category_breakdown"] = category_breakdown(scoped)
        report["income_breakdown"] = income_breakdown(scoped)
        report["monthly_trends"] = trends
        report["insights"] = insights
    return report


def report_frame(report: dict[str, object]) -> pd.DataFrame:
    """Flat entry table used for CSV export."""
    rows = [
        {
            "Date": entry["date"],
            "Type": entry["type"],
            "Category": entry["category"] or "",
            "Amount (USD)": entry["amount"],
            "Notes": entry["notes"] or "",
        }
        for entry in report.get("entries", [])
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def report_to_csv(report: dict[str, object]) -> str:
    return report_frame(report).to_csv(index=False)


def report_to_json(report: dict[str, object]) -> str:
    return json.dumps(report, indent=2, default=str)


def export_report(report: dict[str, object], export_format: str = "csv") -> str:
    if export_format == "csv":
        return report_to_csv(report)
    if export_format == "json":
        return report_to_json(report)
    raise ValueError(f"Unsupported export format: {export_format}")


def tax_fee_summary(entries, year: int | None = None) -> dict[str, object]:
    """Tax and fee totals with a per-category split, newest entries first.

    Without ``year`` every dated entry is included.
    """
    ledger = normalize_entries(entries)
    scoped = ledger[ledger["EntryType"].isin(TAX_FEE_TYPES)]
    if year is not None:
        scoped = scoped[scoped["Date"].dt.year == int(year)]
    scoped = scoped.sort_values("Date", ascending=False, kind="mergesort")

    tax = float(scoped.loc[scoped["EntryType"] == "tax", "Amount"].sum())
    fees = float(scoped.loc[scoped["EntryType"] == "fee", "Amount"].sum())
    combined = tax + fees

    breakdown: list[dict[str, object]] = []
    if not scoped.empty:
        work = scoped.assign(
            _category=scoped["Category"].fillna(UNCATEGORIZED),
            _tax=scoped["Amount"].where(scoped["EntryType"] == "tax", 0.0),
            _fee=scoped["Amount"].where(scoped["EntryType"] == "fee", 0.0),
        )
        grouped = work.groupby("_category", sort=False).agg(tax=("_tax", "sum"), fee=("_fee", "sum"))
        grouped["total"] = grouped["tax"] + grouped["fee"]
        grouped = grouped.sort_values("total", ascending=False, kind="mergesort")
        breakdown = [
            {"name": str(name), "tax": float(row["tax"]), "fee": float(row["fee"]), "total": float(row["total"])}
            for name, row in grouped.iterrows()
        ]

    return {
        "year": int(year) if year is not None else None,
        "totals": {"tax": tax, "fees": fees, "combined": combined},
        "shares": {"tax": format_share(tax, combined), "fees": format_share(fees, combined)},
        "category_breakdown": breakdown,
        "entries": [entry_record(row) for _, row in scoped.iterrows()],
    }


def build_report_pack(entries, start_date, end_date) -> tuple[str, bytes]:
    """Build markdown summary and a zip pack for the date range."""
    report = build_report(entries, start_date, end_date, report_type="detailed")
    scoped = filter_by_date_range(normalize_entries(entries), start_date, end_date)
    totals = report["totals"]
    taxes = tax_fee_summary(scoped)
    period = report["period"]

    markdown = (
        f"# TallyBoard Report\n\n"
        f"- Period: {period['start']} to {period['end']}\n"
        f"- Entries: {int(report['entries_count']):,}\n"
        f"- Income (USD): {totals['income']:,.2f}\n"
        f"- Expenses (USD): {totals['expenses']:,.2f}\n"
        f"- Net (USD): {totals['net']:,.2f}\n"
        f"- Tax and fees (USD): {taxes['totals']['combined']:,.2f}\n"
    )

    output = io.BytesIO()
    with zipfile.ZipFile(output, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("summary.md", markdown)
        zf.writestr("entries.csv", report_to_csv(report))
        zf.writestr("monthly.csv", monthly_cashflow(scoped).to_csv())
        zf.writestr("totals.json", json.dumps(totals, indent=2))
        zf.writestr("tax_fees.csv", report_to_csv(taxes))
        zf.writestr(
            "tax_fee_categories.csv",
            pd.DataFrame(taxes["category_breakdown"], columns=["name", "tax", "fee", "total"]).to_csv(index=False),
        )
    logger.info("Built report pack for %s..%s with %d entries", period["start"], period["end"], report["entries_count"])
    return markdown, output.getvalue()
