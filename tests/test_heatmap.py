from heatmap import annotate_heatmap, build_heatmap, heatmap_intensity, heatmap_palette, heatmap_thresholds

ENTRIES = [
    {"entry_date": "2025-01-05", "entry_type": "profit", "amount_usd_base": 1000,
     "category": {"name": "Trading"}, "source": {"platform": "IBKR"}},
    {"entry_date": "2025-01-10", "entry_type": "loss", "amount_usd_base": 300,
     "category": {"name": "Trading"}, "source": {"platform": "IBKR"}},
    {"entry_date": "2025-01-10", "entry_type": "fee", "amount_usd_base": 50,
     "category": {"name": "Fees"}},
    {"entry_date": "2025-01-12", "entry_type": "transfer", "amount_usd_base": 5000,
     "category": {"name": "Deposit"}},
    {"entry_date": "2024-01-10", "entry_type": "profit", "amount_usd_base": 77},
]


def test_build_heatmap_covers_every_day_of_the_year() -> None:
    days = build_heatmap(ENTRIES, 2025)
    dates = [day["date"] for day in days]
    assert len(days) == 365
    assert len(set(dates)) == 365
    assert dates[0] == "2025-01-01"
    assert dates[-1] == "2025-12-31"

    leap = build_heatmap([], 2024)
    assert len(leap) == 366
    assert "2024-02-29" in {day["date"] for day in leap}


def test_build_heatmap_day_rollup_matches_worked_example() -> None:
    days = {day["date"]: day for day in build_heatmap(ENTRIES, 2025)}
    jan10 = days["2025-01-10"]
    assert jan10["net"] == -350.0
    assert jan10["profit"] == 0.0
    assert jan10["loss"] == 350.0
    assert jan10["top_category"] == "Trading"
    assert jan10["top_source"] == "IBKR"

    assert days["2025-01-05"]["net"] == 1000.0
    assert days["2025-01-02"] == {
        "date": "2025-01-02",
        "net": 0.0,
        "profit": 0.0,
        "loss": 0.0,
        "top_category": None,
        "top_source": None,
    }


def test_offset_timestamp_stays_on_its_local_day() -> None:
    days = {
        day["date"]: day
        for day in build_heatmap(
            [{"entry_date": "2025-01-10T23:30:00-05:00", "entry_type": "loss", "amount_usd_base": 5}], 2025
        )
    }
    assert days["2025-01-10"]["net"] == -5.0
    assert days["2025-01-11"]["net"] == 0.0


def test_transfer_only_day_has_no_top_labels() -> None:
    days = {day["date"]: day for day in build_heatmap(ENTRIES, 2025)}
    assert days["2025-01-12"]["net"] == 0.0
    assert days["2025-01-12"]["top_category"] is None


def test_top_source_falls_back_to_unknown() -> None:
    rows = [{"entry_date": "2025-03-01", "entry_type": "tax", "amount_usd_base": 10}]
    day = [d for d in build_heatmap(rows, 2025) if d["date"] == "2025-03-01"][0]
    assert day["top_category"] == "Uncategorized"
    assert day["top_source"] == "Unknown"


def test_heatmap_thresholds_use_ceil_index_percentiles() -> None:
    days = [{"net": value} for value in [0, 10, -20, 30, -40, 50, 60, 70, 80]]
    # 8 non-zero magnitudes: indexes 1, 3, 5, 7
    assert heatmap_thresholds(days) == [20.0, 40.0, 60.0, 80.0]
    assert heatmap_thresholds([{"net": 0.0}] * 3) == [0.0, 0.0, 0.0, 0.0]


def test_heatmap_intensity_levels() -> None:
    thresholds = [20.0, 40.0, 60.0, 80.0]
    assert heatmap_intensity(0.0, thresholds) == 0
    assert heatmap_intensity(-15.0, thresholds) == 1
    assert heatmap_intensity(40.0, thresholds) == 2
    assert heatmap_intensity(55.0, thresholds) == 3
    assert heatmap_intensity(75.0, thresholds) == 4


def test_sparse_year_collapses_to_highest_shared_level() -> None:
    thresholds = heatmap_thresholds([{"net": 0.0}, {"net": -350.0}])
    assert thresholds == [350.0, 350.0, 350.0, 350.0]
    assert heatmap_intensity(-350.0, thresholds) == 4

    two = heatmap_thresholds([{"net": 100.0}, {"net": 200.0}])
    assert two == [100.0, 100.0, 200.0, 200.0]
    assert heatmap_intensity(100.0, two) == 2
    assert heatmap_intensity(200.0, two) == 4


def test_palette_follows_sign_and_annotation() -> None:
    assert heatmap_palette(5.0) == "profit"
    assert heatmap_palette(-5.0) == "loss"
    assert heatmap_palette(0.0) == "neutral"

    days, thresholds = annotate_heatmap(build_heatmap(ENTRIES, 2025))
    by_date = {day["date"]: day for day in days}
    assert thresholds == [350.0, 350.0, 1000.0, 1000.0]
    assert by_date["2025-01-10"]["palette"] == "loss"
    assert by_date["2025-01-10"]["intensity"] == 2
    assert by_date["2025-01-05"]["intensity"] == 4
    assert by_date["2025-01-01"]["intensity"] == 0
