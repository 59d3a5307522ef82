from datetime import datetime, timedelta, timezone

import pytest

from core.duration import as_utc, parse_duration, whole_days_between


@pytest.mark.parametrize(
    "value,expected",
    [
        ("60s", timedelta(seconds=60)),
        ("15m", timedelta(minutes=15)),
        ("2h", timedelta(hours=2)),
        ("1d", timedelta(days=1)),
        (" 20S ", timedelta(seconds=20)),
    ],
)
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["", "60", "1w", "-5s", "abc"])
def test_parse_duration_rejects(value):
    with pytest.raises(ValueError):
        parse_duration(value)


def test_whole_days_between():
    start = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    assert whole_days_between(start, start) == 0
    assert whole_days_between(start, start + timedelta(hours=23, minutes=59)) == 0
    assert whole_days_between(start, start + timedelta(days=1)) == 1
    assert whole_days_between(start, start + timedelta(days=32, hours=5)) == 32
    assert whole_days_between(start, start - timedelta(days=3)) == 0


def test_as_utc():
    naive = datetime(2025, 1, 1, 9, 0)
    assert as_utc(naive).tzinfo == timezone.utc

    kst = timezone(timedelta(hours=9))
    assert as_utc(datetime(2025, 1, 1, 9, 0, tzinfo=kst)) == datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)
