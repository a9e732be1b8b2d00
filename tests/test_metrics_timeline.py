"""Tests for the stacked series and danger-event series."""

from dataclasses import replace

import pytest

from heritage.data import CATEGORIES, DangerEvent
from heritage.filters import filter_sites
from heritage.metrics_timeline import (
    build_danger_series,
    build_stacked_series,
    compute_timeline,
    group_keys_for,
)

from tests.conftest import make_site


def by_year(records):
    return {r["year"]: r for r in records}


def test_stacked_series_covers_full_extent(scenario_sites):
    series = build_stacked_series(scenario_sites, CATEGORIES, year_extent=(1978, 2024), view_mode="category")
    assert len(series) == 2024 - 1978 + 1
    assert [r["year"] for r in series] == list(range(1978, 2025))
    rows = by_year(series)
    assert rows[1980]["Cultural"] == 1
    assert rows[1995]["Natural"] == 1
    assert rows[1990] == {"year": 1990, "Cultural": 0, "Natural": 0, "Mixed": 0, "Other": 0, "total": 0}


def test_stacked_series_total_is_sum_of_groups():
    sites = [
        make_site(year=2000, category="Cultural"),
        make_site(year=2000, category="Cultural"),
        make_site(year=2000, category="Mixed"),
        make_site(year=2001, category="Other"),
    ]
    series = build_stacked_series(sites, CATEGORIES, year_extent=(1999, 2002), view_mode="category")
    for record in series:
        assert record["total"] == sum(record[k] for k in CATEGORIES)
    assert by_year(series)[2000]["total"] == 3


def test_stacked_series_by_region():
    sites = [
        make_site(year=2000, region="Africa"),
        make_site(year=2000, region="Arab States"),
        make_site(year=2001, region="Africa"),
    ]
    keys = group_keys_for("region", ["Africa", "Arab States"])
    series = build_stacked_series(sites, keys, year_extent=(2000, 2001), view_mode="region")
    assert series == [
        {"year": 2000, "Africa": 1, "Arab States": 1, "total": 2},
        {"year": 2001, "Africa": 1, "Arab States": 0, "total": 1},
    ]


def test_stacked_series_requires_explicit_view_mode():
    sites = [make_site(year=2000, region="Africa")]
    with pytest.raises(TypeError):
        build_stacked_series(sites, ["Africa"], year_extent=(2000, 2000))
    with pytest.raises(ValueError):
        build_stacked_series(sites, ["Africa"], year_extent=(2000, 2000), view_mode="country")


def test_stacked_series_empty_input_is_zero_filled():
    series = build_stacked_series([], CATEGORIES, year_extent=(2000, 2002), view_mode="category")
    assert len(series) == 3
    assert all(r["total"] == 0 for r in series)


def test_danger_series_scenario(scenario_sites, scenario_state):
    filtered = filter_sites(scenario_sites, scenario_state)
    danger = build_danger_series(filtered, 1999, year_extent=(1978, 2024))
    ys = {p["year"]: p["value"] for p in danger["Y"]}
    assert ys[1999] == 1
    assert all(ys[y] == 0 for y in range(1978, 1999))
    assert all(ys[y] is None for y in range(2000, 2025))
    assert all(p["value"] in (0, None) for p in danger["R"])


def test_danger_series_counts_per_year_not_running_total():
    sites = [
        make_site(year=1980, danger_events=(DangerEvent("Y", 1990), DangerEvent("R", 1995), DangerEvent("Y", 1997))),
        make_site(year=2010, danger_events=(DangerEvent("Y", 1990), DangerEvent("P", 1990))),
    ]
    danger = build_danger_series(sites, 2000, year_extent=(1985, 2005))
    ys = {p["year"]: p["value"] for p in danger["Y"]}
    rs = {p["year"]: p["value"] for p in danger["R"]}
    assert ys[1990] == 2
    assert ys[1991] == 0
    assert ys[1997] == 1
    assert rs[1995] == 1
    assert set(danger) == {"Y", "R"}


def test_danger_series_ignores_events_after_cursor_or_outside_extent():
    sites = [make_site(danger_events=(DangerEvent("Y", 1970), DangerEvent("Y", 2001), DangerEvent("R", 1999)))]
    danger = build_danger_series(sites, 2000, year_extent=(1978, 2005))
    assert sum(p["value"] or 0 for p in danger["Y"]) == 0
    assert {p["year"]: p["value"] for p in danger["R"]}[1999] == 1


def test_danger_series_future_years_are_none_never_zero():
    danger = build_danger_series([], 1990, year_extent=(1985, 1995))
    for points in danger.values():
        assert [p["value"] for p in points if p["year"] > 1990] == [None] * 5
        assert [p["value"] for p in points if p["year"] <= 1990] == [0] * 6


def test_compute_timeline_payload(scenario_sites, scenario_state):
    state = replace(scenario_state, brush_range=(1980, 1982))
    ctx = {
        "filtered_sites": filter_sites(scenario_sites, state),
        "year_extent": (1978, 2024),
        "regions": ["Europe"],
    }
    payload = compute_timeline(state, ctx)
    assert payload["keys"] == list(CATEGORIES)
    assert payload["max_total"] == 1
    assert payload["brushed_years"] == [1980, 1981, 1982]
    assert "danger_events" in payload["charts"]
    assert "bar" in str(payload["charts"]["stacked"]["mark"])
    labels = [item["label"] for item in payload["legend"]]
    assert labels[-2:] == ["Added to danger list (Y)", "Removed from danger (R)"]
    assert labels[3] == "Other / Unspecified"


def test_compute_timeline_region_mode_without_danger(scenario_sites, scenario_state):
    state = replace(scenario_state, view_mode="region", show_danger_events=False)
    ctx = {"filtered_sites": scenario_sites, "year_extent": (1978, 2024), "regions": ["Europe"]}
    payload = compute_timeline(state, ctx)
    assert payload["keys"] == ["Europe"]
    assert "danger_events" not in payload["charts"]
    assert [item["label"] for item in payload["legend"]] == ["Europe"]
    assert payload["danger_series"]["Y"][0]["year"] == 1978


@pytest.mark.parametrize("view_mode", ["category", "region"])
def test_compute_timeline_empty(scenario_state, view_mode):
    state = replace(scenario_state, view_mode=view_mode)
    payload = compute_timeline(state, {"filtered_sites": [], "year_extent": (1978, 2024), "regions": []})
    assert len(payload["series"]) == 47
    assert payload["max_total"] == 0
