"""Date intervals with inclusive start and exclusive, possibly unbounded, end.

Two intervals overlap only when they share at least one day: a phase
ending on day N and another starting on day N are adjacent, not
conflicting. Stored rows use the same convention, so a one-day assignment
on day N is saved as ``[N, N + 1)``. ``duration_days`` counts the calendar
days covered, first day through ``end - 1`` inclusive.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from siteplan.scheduling.errors import InvalidIntervalError


@dataclass(frozen=True, slots=True)
class Interval:
    start: date
    end: date | None = None

    def __post_init__(self) -> None:
        if self.end is not None and self.start > self.end:
            raise InvalidIntervalError(
                f"Interval start {self.start.isoformat()} is after end {self.end.isoformat()}."
            )

    @classmethod
    def day(cls, value: date) -> Interval:
        """One calendar day, ``[value, value + 1)``."""

        return cls(value, value + timedelta(days=1))

    @classmethod
    def month(cls, year: int, month: int) -> Interval:
        first = date(year, month, 1)
        following = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        return cls(first, following)

    @property
    def is_bounded(self) -> bool:
        return self.end is not None

    @property
    def is_empty(self) -> bool:
        return self.end is not None and self.end == self.start

    def contains(self, value: date) -> bool:
        if value < self.start:
            return False
        return self.end is None or value < self.end

    def overlaps(self, other: Interval) -> bool:
        return overlaps(self, other)

    def to_dict(self) -> dict[str, str | None]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat() if self.end is not None else None,
        }


def _before_end(value: date, interval: Interval) -> bool:
    return interval.end is None or value < interval.end


def overlaps(a: Interval, b: Interval) -> bool:
    """True iff ``a.start < b.end and b.start < a.end`` (unbounded end = +inf).

    An empty interval shares no day with anything, itself included.
    """

    if a.is_empty or b.is_empty:
        return False
    return _before_end(a.start, b) and _before_end(b.start, a)


def require_days(interval: Interval) -> Interval:
    """Reject a bounded interval that covers no day at all."""

    if interval.is_empty:
        raise InvalidIntervalError(
            f"Interval ending {interval.end.isoformat()} must end after its start; "
            "a single day runs to the following date."
        )
    return interval


def duration_days(interval: Interval) -> int:
    if interval.end is None:
        raise InvalidIntervalError("Duration of an unbounded interval is undefined.")
    return (interval.end - interval.start).days
