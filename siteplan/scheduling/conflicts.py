"""Schedule conflict detection over phases and assignments.

Both checks are pure and recompute from their inputs on every call. Output
order is deterministic: phase pairs by ascending phase start, then team
members in order of first appearance in the assignment list, then
workload breakpoints in date order.
"""

from __future__ import annotations

import enum
from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass
from itertools import combinations
from uuid import UUID

from siteplan.scheduling.allocation import workload_timeline
from siteplan.scheduling.intervals import Interval, overlaps
from siteplan.scheduling.records import AssignmentSpan, PhaseSpan


class ConflictType(str, enum.Enum):
    PHASE_OVERLAP = "phase_overlap"
    RESOURCE_OVERALLOCATION = "resource_overallocation"


@dataclass(frozen=True, slots=True)
class Conflict:
    type: ConflictType
    description: str
    involved_ids: tuple[UUID, ...]
    project_id: UUID | None = None
    team_member_id: UUID | None = None
    percentage: int | None = None
    window: Interval | None = None


def _format_interval(interval: Interval) -> str:
    end = interval.end.isoformat() if interval.end is not None else "ongoing"
    return f"{interval.start.isoformat()} - {end}"


def _phase_sort_key(phase: PhaseSpan) -> tuple:
    return (phase.interval.start, phase.phase_order, str(phase.id))


def detect_phase_overlaps(phases: Iterable[PhaseSpan]) -> list[Conflict]:
    """Report every pair of overlapping phases within the same project."""

    by_project: dict[UUID, list[PhaseSpan]] = {}
    for phase in phases:
        by_project.setdefault(phase.project_id, []).append(phase)

    conflicts: list[Conflict] = []
    for project_id, project_phases in by_project.items():
        ordered = sorted(project_phases, key=_phase_sort_key)
        for first, second in combinations(ordered, 2):
            if not overlaps(first.interval, second.interval):
                continue
            conflicts.append(
                Conflict(
                    type=ConflictType.PHASE_OVERLAP,
                    description=(
                        f"Phase '{first.name}' ({_format_interval(first.interval)}) overlaps "
                        f"phase '{second.name}' ({_format_interval(second.interval)})."
                    ),
                    involved_ids=(first.id, second.id),
                    project_id=project_id,
                )
            )
    return conflicts


def _team_members_in_order(assignments: Sequence[AssignmentSpan]) -> list[UUID]:
    return list(dict.fromkeys(row.team_member_id for row in assignments if row.active))


def detect_overallocation(
    assignments: Iterable[AssignmentSpan],
    *,
    scope: Collection[UUID] | None = None,
) -> list[Conflict]:
    """Report each workload step where a member's total exceeds capacity.

    With a `scope` of assignment ids, only steps that include at least one
    of those assignments are reported; the load itself still counts every
    assignment passed in.
    """

    rows = list(assignments)
    phase_by_assignment = {row.id: row.phase_id for row in rows}

    conflicts: list[Conflict] = []
    for team_member_id in _team_members_in_order(rows):
        for segment in workload_timeline(rows, team_member_id):
            if not segment.is_overallocated:
                continue
            if scope is not None and not any(item in scope for item in segment.assignment_ids):
                continue
            phase_count = len({phase_by_assignment[assignment_id] for assignment_id in segment.assignment_ids})
            conflicts.append(
                Conflict(
                    type=ConflictType.RESOURCE_OVERALLOCATION,
                    description=(
                        f"Team member {team_member_id} is allocated {segment.total_percentage}% "
                        f"from {_format_interval(segment.interval)} across "
                        f"{len(segment.assignment_ids)} assignments in {phase_count} phases."
                    ),
                    involved_ids=(team_member_id, *segment.assignment_ids),
                    team_member_id=team_member_id,
                    percentage=segment.total_percentage,
                    window=segment.interval,
                )
            )
    return conflicts


def detect_conflicts(
    phases: Iterable[PhaseSpan],
    assignments: Iterable[AssignmentSpan],
    *,
    scope: Collection[UUID] | None = None,
) -> list[Conflict]:
    return [*detect_phase_overlaps(phases), *detect_overallocation(assignments, scope=scope)]


def serialize_conflict(conflict: Conflict) -> dict[str, object]:
    return {
        "type": conflict.type.value,
        "description": conflict.description,
        "involved_ids": [str(item) for item in conflict.involved_ids],
        "project_id": str(conflict.project_id) if conflict.project_id else None,
        "team_member_id": str(conflict.team_member_id) if conflict.team_member_id else None,
        "percentage": conflict.percentage,
        "window": conflict.window.to_dict() if conflict.window is not None else None,
    }
