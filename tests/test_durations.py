import pytest

from parsely.store.durations import parse_time_to_minutes


@pytest.mark.parametrize("value,expected", [
    ("PT1H30M", 90),
    ("PT45M", 45),
    ("PT2H", 120),
    ("P1DT2H", 1560),
    ("pt20m", 20),
    ("PT10M30S", 10),
    ("45 min", 45),
    ("20 minutes", 20),
])
def test_parses_durations(value, expected):
    assert parse_time_to_minutes(value) == expected


@pytest.mark.parametrize("value", [None, "", "tonight", "P", "about an hour", "min"])
def test_unparseable_durations_are_absent(value):
    assert parse_time_to_minutes(value) is None
