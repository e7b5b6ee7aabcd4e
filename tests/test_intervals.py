from __future__ import annotations

from datetime import date

import pytest

from siteplan.scheduling.errors import ErrorKind, InvalidIntervalError
from siteplan.scheduling.intervals import Interval, duration_days, overlaps, require_days


def test_interval_rejects_start_after_end() -> None:
    with pytest.raises(InvalidIntervalError) as exc_info:
        Interval(date(2026, 3, 2), date(2026, 3, 1))

    assert exc_info.value.kind == ErrorKind.INVALID_INTERVAL
    assert isinstance(exc_info.value, ValueError)


def test_overlap_is_symmetric() -> None:
    cases = [
        (Interval(date(2026, 1, 1), date(2026, 1, 10)), Interval(date(2026, 1, 5), date(2026, 1, 20))),
        (Interval(date(2026, 1, 1), date(2026, 1, 10)), Interval(date(2026, 2, 1), date(2026, 2, 10))),
        (Interval(date(2026, 1, 1)), Interval(date(2026, 6, 1), date(2026, 6, 2))),
        (Interval(date(2026, 1, 1), date(2026, 1, 10)), Interval(date(2026, 1, 10), date(2026, 1, 20))),
    ]
    for first, second in cases:
        assert overlaps(first, second) == overlaps(second, first)


def test_interval_overlaps_itself_when_it_has_length() -> None:
    interval = Interval(date(2026, 1, 1), date(2026, 1, 2))

    assert overlaps(interval, interval) is True
    assert interval.overlaps(interval) is True


def test_touching_intervals_do_not_overlap() -> None:
    first = Interval(date(2026, 1, 1), date(2026, 1, 10))
    second = Interval(date(2026, 1, 10), date(2026, 1, 20))

    assert overlaps(first, second) is False
    assert overlaps(second, first) is False


def test_unbounded_interval_overlaps_everything_after_start() -> None:
    ongoing = Interval(date(2026, 1, 1))

    assert overlaps(ongoing, Interval(date(2030, 5, 1), date(2030, 5, 2))) is True
    assert overlaps(ongoing, Interval(date(2025, 12, 1), date(2026, 1, 1))) is False
    assert overlaps(ongoing, Interval(date(2025, 12, 1))) is True


def test_contains_uses_exclusive_end() -> None:
    interval = Interval(date(2026, 1, 1), date(2026, 1, 10))

    assert interval.contains(date(2026, 1, 1)) is True
    assert interval.contains(date(2026, 1, 9)) is True
    assert interval.contains(date(2026, 1, 10)) is False
    assert interval.contains(date(2025, 12, 31)) is False


def test_single_day_window() -> None:
    window = Interval.day(date(2026, 1, 31))

    assert window.end == date(2026, 2, 1)
    assert window.to_dict() == {"start": "2026-01-31", "end": "2026-02-01"}


def test_duration_counts_covered_days() -> None:
    assert duration_days(Interval.day(date(2026, 1, 1))) == 1
    assert duration_days(Interval(date(2026, 1, 1), date(2026, 1, 10))) == 9
    assert duration_days(Interval(date(2026, 1, 1), date(2026, 3, 1))) == 59


def test_duration_of_unbounded_interval_is_rejected() -> None:
    with pytest.raises(InvalidIntervalError):
        duration_days(Interval(date(2026, 1, 1)))


def test_empty_interval_overlaps_nothing() -> None:
    empty = Interval(date(2026, 1, 5), date(2026, 1, 5))

    assert empty.is_empty is True
    assert overlaps(empty, Interval(date(2026, 1, 1), date(2026, 1, 10))) is False
    assert overlaps(Interval(date(2026, 1, 1)), empty) is False


def test_require_days_rejects_empty_interval() -> None:
    with pytest.raises(InvalidIntervalError) as exc_info:
        require_days(Interval(date(2026, 1, 5), date(2026, 1, 5)))

    assert exc_info.value.kind == ErrorKind.INVALID_INTERVAL
    assert require_days(Interval.day(date(2026, 1, 5))).end == date(2026, 1, 6)
    assert require_days(Interval(date(2026, 1, 5))).is_bounded is False


def test_month_window() -> None:
    assert Interval.month(2026, 2) == Interval(date(2026, 2, 1), date(2026, 3, 1))
    assert Interval.month(2026, 12) == Interval(date(2026, 12, 1), date(2027, 1, 1))
