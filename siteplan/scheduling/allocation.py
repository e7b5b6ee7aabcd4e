"""Workload accumulation for team members.

An assignment counts at its full declared percentage anywhere inside its
interval; the percentage already means "share of available time within
this interval", so no weighting by overlap fraction is applied.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from siteplan.scheduling.intervals import Interval, overlaps
from siteplan.scheduling.records import AssignmentSpan

CAPACITY_PERCENT = 100


@dataclass(frozen=True, slots=True)
class WorkloadSnapshot:
    team_member_id: UUID
    interval: Interval
    total_percentage: int
    is_overallocated: bool


@dataclass(frozen=True, slots=True)
class WorkloadSegment:
    """Constant workload between two consecutive assignment boundaries."""

    interval: Interval
    total_percentage: int
    is_overallocated: bool
    assignment_ids: tuple[UUID, ...]


def is_overallocated(total: int) -> bool:
    return total > CAPACITY_PERCENT


def member_assignments(assignments: Iterable[AssignmentSpan], team_member_id: UUID) -> list[AssignmentSpan]:
    """Active assignments of one member, input order preserved."""

    return [row for row in assignments if row.team_member_id == team_member_id and row.active]


def overlapping_assignments(
    assignments: Iterable[AssignmentSpan],
    team_member_id: UUID,
    query: Interval,
) -> list[AssignmentSpan]:
    return [row for row in member_assignments(assignments, team_member_id) if overlaps(row.interval, query)]


def total_allocation(assignments: Iterable[AssignmentSpan], team_member_id: UUID, query: Interval) -> int:
    return sum(
        row.working_percentage for row in overlapping_assignments(assignments, team_member_id, query)
    )


def workload_snapshot(
    assignments: Iterable[AssignmentSpan],
    team_member_id: UUID,
    query: Interval,
) -> WorkloadSnapshot:
    total = total_allocation(assignments, team_member_id, query)
    return WorkloadSnapshot(
        team_member_id=team_member_id,
        interval=query,
        total_percentage=total,
        is_overallocated=is_overallocated(total),
    )


def breakpoints(assignments: Sequence[AssignmentSpan]) -> list[date]:
    """Sorted distinct dates where a member's total can change."""

    points: set[date] = set()
    for row in assignments:
        points.add(row.interval.start)
        if row.interval.end is not None:
            points.add(row.interval.end)
    return sorted(points)


def workload_timeline(assignments: Iterable[AssignmentSpan], team_member_id: UUID) -> list[WorkloadSegment]:
    """Step function of a member's total load.

    The total only changes at an assignment start or end, so every
    assignment overlapping a segment between consecutive breakpoints covers
    that segment entirely. Segments without load are omitted.
    """

    rows = member_assignments(assignments, team_member_id)
    points = breakpoints(rows)

    segments: list[WorkloadSegment] = []
    for index, point in enumerate(points):
        next_point = points[index + 1] if index + 1 < len(points) else None
        window = Interval(point, next_point)
        covering = [row for row in rows if overlaps(row.interval, window)]
        if not covering:
            continue
        total = sum(row.working_percentage for row in covering)
        segments.append(
            WorkloadSegment(
                interval=window,
                total_percentage=total,
                is_overallocated=is_overallocated(total),
                assignment_ids=tuple(row.id for row in covering),
            )
        )
    return segments


def peak_allocation(
    assignments: Iterable[AssignmentSpan],
    team_member_id: UUID,
    within: Interval | None = None,
) -> int:
    """Highest total on the member's timeline, optionally restricted to ``within``."""

    segments = workload_timeline(assignments, team_member_id)
    if within is not None:
        segments = [segment for segment in segments if overlaps(segment.interval, within)]
    return max((segment.total_percentage for segment in segments), default=0)
