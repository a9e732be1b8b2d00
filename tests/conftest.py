"""Shared test fixtures for heritage engine tests."""

import pytest

from heritage.data import DangerEvent, Site
from heritage.filters import SelectionState


def make_site(**overrides):
    base = dict(
        id="s",
        name="Site",
        region="Europe",
        year=1980,
        category="Cultural",
        criteria=(),
        countries=("A",),
        lat=0.0,
        lon=0.0,
        danger=False,
        danger_events=(),
    )
    base.update(overrides)
    return Site(**base)


class FakeHandle:
    def __init__(self, callback):
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Stand-in for loop.call_later; tests fire pending callbacks by hand."""

    def __init__(self):
        self.calls = []

    def __call__(self, delay, callback):
        handle = FakeHandle(callback)
        self.calls.append((delay, handle))
        return handle

    @property
    def pending(self):
        return [h for _, h in self.calls if not h.cancelled and h.callback is not None]

    def fire(self):
        """Run the most recently armed callback once (even if it was cancelled)."""
        _, handle = self.calls[-1]
        callback, handle.callback = handle.callback, None
        if callback is not None:
            callback()


@pytest.fixture()
def scenario_sites():
    """Two sites: a single-country cultural one and a two-country natural one in danger."""
    return [
        make_site(id=1, name="Old Town", year=1980, category="Cultural", countries=("A",), criteria=("i",)),
        make_site(
            id=2,
            name="Great Reef",
            year=1995,
            category="Natural",
            countries=("A", "B"),
            criteria=("vii", "ix"),
            danger=True,
            danger_events=(DangerEvent("Y", 1999),),
        ),
    ]


@pytest.fixture()
def scenario_state():
    return SelectionState(cursor_year=1999, year_extent=(1978, 2024))


@pytest.fixture()
def raw_records():
    return [
        {
            "uuid": "u-1",
            "name_en": "Old Town",
            "region": "Europe and North America",
            "date_inscribed": "1980",
            "category": "Cultural",
            "criteria_txt": "(ii)(IV)",
            "states_names": ["Alpha"],
            "coordinates": {"lat": 45.1, "lon": 7.2},
            "danger": "False",
            "short_description_en": "A walled town.",
            "main_image_url": {"url": "https://example.org/a.jpg"},
            "iso_codes": "al",
        },
        {
            "id_no": 77,
            "name_en": "Great Reef",
            "region": "Asia and the Pacific",
            "date_inscribed": None,
            "secondary_dates": "Extended 1995-12-01",
            "category": "Natural",
            "criteria_txt": "(vii)(ix)(x)",
            "states_names": ["Alpha", "Beta"],
            "coordinates": {"lat": -18.0, "lon": 147.0},
            "danger": "true",
            "danger_list": "Y 1999 R2004 P 2010",
        },
        {
            "uuid": "u-3",
            "name_en": "No Year",
            "date_inscribed": "unknown",
            "coordinates": {"lat": 1.0, "lon": 1.0},
        },
        {
            "uuid": "u-4",
            "name_en": "No Coords",
            "date_inscribed": "2001",
            "coordinates": {"lat": None, "lon": 3.0},
        },
        {
            "uuid": "u-5",
            "name_en": "Odd Category",
            "date_inscribed": "1978-09-08",
            "category": "Industrial",
            "coordinates": {"lat": 10, "lon": 20},
        },
    ]
