import logging

import pandas as pd

from parsing import (
    filter_by_date_range,
    filter_by_window,
    first_label,
    normalize_entries,
    normalize_goals,
    normalize_snapshots,
    signed_effect,
    tag_labels,
    to_number,
)


def test_signed_effect_sign_follows_entry_type() -> None:
    assert signed_effect("profit", 100) == 100.0
    assert signed_effect("profit", -100) == 100.0
    assert signed_effect("loss", 40) == -40.0
    assert signed_effect("fee", "5.5") == -5.5
    assert signed_effect("tax", 12) == -12.0
    assert signed_effect("transfer", 500) == 0.0
    assert signed_effect("dividend", 10) == 0.0


def test_to_number_fails_closed_to_zero() -> None:
    assert to_number("1,250.50") == 1250.5
    assert to_number("abc") == 0.0
    assert to_number("") == 0.0
    assert to_number(None) == 0.0
    assert to_number(float("nan")) == 0.0
    assert to_number(float("inf")) == 0.0


def test_first_label_handles_join_shapes() -> None:
    assert first_label([{"name": "Trading"}]) == "Trading"
    assert first_label([]) is None
    assert first_label({"name": "Salary"}) == "Salary"
    assert first_label({"platform": "Binance"}, "platform", "name") == "Binance"
    assert first_label(" Fees ") == "Fees"
    assert first_label(None) is None


def test_tag_labels_flattens_nested_tag_rows() -> None:
    raw = [{"tags": {"name": "crypto"}}, {"name": "swing"}, "crypto", "  "]
    assert tag_labels(raw) == ["crypto", "swing"]
    assert tag_labels("solo") == ["solo"]
    assert tag_labels(None) == []


def test_normalize_entries_derives_effect_and_preserves_order() -> None:
    rows = [
        {"id": "b", "entry_date": "2025-01-10", "entry_type": "loss", "amount_usd_base": "300",
         "category": [{"name": "Trading"}], "source": [{"platform": "IBKR"}]},
        {"id": "a", "entry_date": "2025-01-05T09:30:00Z", "entry_type": "profit", "amount_usd_base": 1000,
         "category": {"name": "Salary"}, "source": None, "tags": [{"tags": {"name": "q1"}}]},
        {"id": "c", "entry_date": "2025-01-06", "entry_type": "transfer", "amount_usd_base": "oops"},
    ]

    df = normalize_entries(rows)

    assert list(df["Id"]) == ["b", "a", "c"]
    assert list(df["Effect"]) == [-300.0, 1000.0, 0.0]
    assert list(df["Income"]) == [0.0, 1000.0, 0.0]
    assert list(df["Expense"]) == [300.0, 0.0, 0.0]
    assert df.loc[0, "Category"] == "Trading"
    assert df.loc[0, "Source"] == "IBKR"
    assert df.loc[1, "Tags"] == ["q1"]
    assert df.loc[1, "Date"] == pd.Timestamp("2025-01-05 09:30:00")
    assert df.loc[2, "Amount"] == 0.0


def test_normalize_entries_keeps_wall_clock_of_offset_timestamps() -> None:
    df = normalize_entries(
        [
            {"entry_date": "2025-01-10T23:30:00-05:00", "entry_type": "loss", "amount_usd_base": 5},
            {"entry_date": "2025-03-01 00:15:00+02", "entry_type": "fee", "amount_usd_base": 1},
        ]
    )
    assert list(df["Date"]) == [pd.Timestamp("2025-01-10 23:30:00"), pd.Timestamp("2025-03-01 00:15:00")]


def test_normalize_entries_drops_unparseable_dates_with_warning(caplog) -> None:
    rows = [
        {"id": 1, "entry_date": "not-a-date", "entry_type": "profit", "amount_usd_base": 10},
        {"id": 2, "entry_date": "2025-03-01", "entry_type": "profit", "amount_usd_base": 20},
    ]
    with caplog.at_level(logging.WARNING, logger="parsing"):
        df = normalize_entries(rows)

    assert list(df["Id"]) == [2]
    assert "Dropped 1 ledger row" in caplog.text


def test_normalize_entries_empty_input_has_columns() -> None:
    df = normalize_entries([])
    assert df.empty
    assert "Effect" in df.columns
    assert normalize_entries(None).empty


def test_filter_helpers_are_inclusive() -> None:
    df = normalize_entries(
        [
            {"entry_date": "2025-01-01T23:00:00", "entry_type": "profit", "amount_usd_base": 1},
            {"entry_date": "2025-01-02T00:00:00", "entry_type": "profit", "amount_usd_base": 2},
        ]
    )
    assert len(filter_by_date_range(df, "2025-01-01", "2025-01-01")) == 1
    assert len(filter_by_window(df, "2025-01-01T23:00:00", "2025-01-02T00:00:00")) == 2
    assert len(filter_by_window(df, "2025-01-01T23:00:01", "2025-01-02T00:00:00")) == 1


def test_normalize_goals_coerces_target_and_dates() -> None:
    goals = normalize_goals(
        [
            {"id": "g1", "target_type": "net", "target_value_usd": "-1000", "start_date": "2025-01-01",
             "end_date": "2025-12-31", "category": [{"name": "Trading"}]},
            {"id": "g2", "start_date": "garbage", "end_date": "2025-12-31"},
        ]
    )
    assert len(goals) == 1
    goal = goals[0]
    assert goal["target_value_usd"] == 1000.0
    assert goal["timeframe"] == "year"
    assert goal["category"] == "Trading"
    assert goal["end_date"] == pd.Timestamp("2025-12-31")


def test_normalize_snapshots_sorts_by_date() -> None:
    frame = normalize_snapshots(
        [
            {"snapshot_date": "2025-02-01", "total_value_usd": "200"},
            {"snapshot_date": "2025-01-01", "total_value_usd": 100, "derived": True},
        ]
    )
    assert list(frame["Value"]) == [100.0, 200.0]
    assert list(frame["Derived"]) == [True, False]
    assert normalize_snapshots(None).empty
