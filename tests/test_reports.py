import io
import json
import zipfile

import pandas as pd
import pytest

from reports import build_report, build_report_pack, export_report, report_to_csv, report_to_json, tax_fee_summary

ENTRIES = [
    {"id": 1, "entry_date": "2025-01-05", "entry_type": "profit", "amount_usd_base": 1000,
     "category": {"name": "Trading"}},
    {"id": 2, "entry_date": "2025-01-10", "entry_type": "loss", "amount_usd_base": 300,
     "category": {"name": "Trading"}, "notes": 'closed "AAPL", early'},
    {"id": 3, "entry_date": "2025-01-10", "entry_type": "fee", "amount_usd_base": 50,
     "category": {"name": "Broker"}},
    {"id": 4, "entry_date": "2025-04-15", "entry_type": "tax", "amount_usd_base": 120},
    {"id": 5, "entry_date": "2024-04-15", "entry_type": "tax", "amount_usd_base": 80,
     "category": {"name": "Broker"}},
]


def test_summary_report_scopes_entries_inclusively() -> None:
    report = build_report(ENTRIES, "2025-01-05", "2025-01-10")
    assert report["type"] == "summary"
    assert report["entries_count"] == 3
    assert report["totals"] == {"income": 1000.0, "expenses": 350.0, "net": 650.0}
    assert report["period"] == {"start": "2025-01-05", "end": "2025-01-10"}
    assert "category_breakdown" not in report


def test_detailed_report_adds_breakdowns() -> None:
    report = build_report(ENTRIES, "2025-01-01", "2025-12-31", report_type="detailed")
    assert report["category_breakdown"][0]["name"] == "Trading"
    assert [row["month"] for row in report["monthly_trends"]] == ["2025-01", "2025-04"]
    assert report["insights"]["worst_month"]["month"] == "2025-04"


def test_unknown_report_type_and_format_are_rejected() -> None:
    with pytest.raises(ValueError):
        build_report(ENTRIES, "2025-01-01", "2025-12-31", report_type="weekly")
    with pytest.raises(ValueError):
        export_report(build_report(ENTRIES, "2025-01-01", "2025-12-31"), "xlsx")


def test_report_csv_has_expected_headers_and_quoting() -> None:
    text = report_to_csv(build_report(ENTRIES, "2025-01-01", "2025-01-31"))
    assert text.splitlines()[0] == "Date,Type,Category,Amount (USD),Notes"
    frame = pd.read_csv(io.StringIO(text))
    assert list(frame["Type"]) == ["profit", "loss", "fee"]
    assert frame.loc[1, "Notes"] == 'closed "AAPL", early'


def test_report_json_round_trips_totals() -> None:
    payload = json.loads(report_to_json(build_report(ENTRIES, "2025-01-01", "2025-01-31")))
    assert payload["totals"]["net"] == 650.0
    assert payload["entries"][0]["date"] == "2025-01-05"


def test_tax_fee_summary_for_year() -> None:
    summary = tax_fee_summary(ENTRIES, 2025)
    assert summary["totals"] == {"tax": 120.0, "fees": 50.0, "combined": 170.0}
    assert summary["shares"] == {"tax": "70.6%", "fees": "29.4%"}
    assert summary["category_breakdown"] == [
        {"name": "Uncategorized", "tax": 120.0, "fee": 0.0, "total": 120.0},
        {"name": "Broker", "tax": 0.0, "fee": 50.0, "total": 50.0},
    ]
    assert [row["id"] for row in summary["entries"]] == [4, 3]


def test_tax_fee_summary_all_time_and_empty() -> None:
    assert tax_fee_summary(ENTRIES)["totals"]["combined"] == 250.0
    empty = tax_fee_summary([], 2025)
    assert empty["totals"] == {"tax": 0.0, "fees": 0.0, "combined": 0.0}
    assert empty["shares"] == {"tax": "0%", "fees": "0%"}
    assert empty["category_breakdown"] == []


def test_build_report_pack_contains_expected_files() -> None:
    markdown, zip_bytes = build_report_pack(ENTRIES, "2025-01-01", "2025-12-31")
    assert "# TallyBoard Report" in markdown
    assert "Net (USD): 530.00" in markdown

    with zipfile.ZipFile(io.BytesIO(zip_bytes)) as zf:
        names = set(zf.namelist())
        totals = json.loads(zf.read("totals.json"))
    assert {"summary.md", "entries.csv", "monthly.csv", "totals.json", "tax_fees.csv", "tax_fee_categories.csv"} <= names
    assert totals["expenses"] == 470.0
