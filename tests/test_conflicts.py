from __future__ import annotations

import uuid
from datetime import date

import pytest

from siteplan.scheduling.conflicts import (
    ConflictType,
    detect_conflicts,
    detect_overallocation,
    detect_phase_overlaps,
    serialize_conflict,
)
from siteplan.scheduling.errors import InvalidIntervalError
from siteplan.scheduling.intervals import Interval
from siteplan.scheduling.records import AssignmentSpan, PhaseSpan


def _phase(project_id: uuid.UUID, name: str, start: date, end: date | None, order: int = 0) -> PhaseSpan:
    return PhaseSpan(
        id=uuid.uuid4(),
        project_id=project_id,
        name=name,
        interval=Interval(start, end),
        phase_order=order,
    )


def _assignment(member_id: uuid.UUID, percentage: int, start: date, end: date | None) -> AssignmentSpan:
    return AssignmentSpan(
        id=uuid.uuid4(),
        phase_id=uuid.uuid4(),
        team_member_id=member_id,
        working_percentage=percentage,
        interval=Interval(start, end),
    )


def test_overlapping_phases_produce_single_conflict() -> None:
    project_id = uuid.uuid4()
    phase_a = _phase(project_id, "Foundations", date(2026, 1, 1), date(2026, 3, 1), 1)
    phase_b = _phase(project_id, "Framing", date(2026, 2, 1), date(2026, 4, 1), 2)

    conflicts = detect_phase_overlaps([phase_b, phase_a])

    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert conflict.type == ConflictType.PHASE_OVERLAP
    assert conflict.involved_ids == (phase_a.id, phase_b.id)
    assert conflict.project_id == project_id
    assert "Foundations" in conflict.description
    assert "Framing" in conflict.description


def test_adjacent_phases_and_other_projects_do_not_conflict() -> None:
    project_id = uuid.uuid4()
    phases = [
        _phase(project_id, "Design", date(2026, 1, 1), date(2026, 2, 1)),
        _phase(project_id, "Build", date(2026, 2, 1), date(2026, 5, 1)),
        _phase(uuid.uuid4(), "Elsewhere", date(2026, 1, 15), date(2026, 3, 1)),
    ]

    assert detect_phase_overlaps(phases) == []


def test_open_ended_phase_overlaps_later_phases() -> None:
    project_id = uuid.uuid4()
    phases = [
        _phase(project_id, "Site setup", date(2026, 1, 1), None),
        _phase(project_id, "Roofing", date(2026, 6, 1), date(2026, 7, 1)),
        _phase(project_id, "Finishing", date(2026, 8, 1), date(2026, 9, 1)),
    ]

    conflicts = detect_phase_overlaps(phases)

    assert [conflict.involved_ids for conflict in conflicts] == [
        (phases[0].id, phases[1].id),
        (phases[0].id, phases[2].id),
    ]


def test_overallocation_reports_each_overloaded_step() -> None:
    member_id = uuid.uuid4()
    first = _assignment(member_id, 60, date(2026, 1, 1), date(2026, 1, 31))
    second = _assignment(member_id, 50, date(2026, 1, 15), date(2026, 2, 15))

    conflicts = detect_overallocation([first, second])

    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert conflict.type == ConflictType.RESOURCE_OVERALLOCATION
    assert conflict.team_member_id == member_id
    assert conflict.percentage == 110
    assert conflict.window == Interval(date(2026, 1, 15), date(2026, 1, 31))
    assert conflict.involved_ids == (member_id, first.id, second.id)


def test_full_capacity_is_not_a_conflict() -> None:
    member_id = uuid.uuid4()
    assignments = [
        _assignment(member_id, 50, date(2026, 1, 1), None),
        _assignment(member_id, 50, date(2026, 1, 1), None),
    ]

    assert detect_overallocation(assignments) == []


def test_members_are_reported_in_first_appearance_order() -> None:
    member_b = uuid.uuid4()
    member_a = uuid.uuid4()
    assignments = [
        _assignment(member_b, 80, date(2026, 3, 1), None),
        _assignment(member_a, 80, date(2026, 1, 1), None),
        _assignment(member_a, 80, date(2026, 1, 1), None),
        _assignment(member_b, 80, date(2026, 3, 1), None),
    ]

    conflicts = detect_overallocation(assignments)

    assert [conflict.team_member_id for conflict in conflicts] == [member_b, member_a]


def test_detection_is_deterministic() -> None:
    project_id = uuid.uuid4()
    member_id = uuid.uuid4()
    phases = [
        _phase(project_id, "A", date(2026, 1, 1), date(2026, 3, 1)),
        _phase(project_id, "B", date(2026, 2, 1), date(2026, 4, 1)),
        _phase(project_id, "C", date(2026, 2, 15), None),
    ]
    assignments = [
        _assignment(member_id, 70, date(2026, 1, 1), date(2026, 2, 1)),
        _assignment(member_id, 70, date(2026, 1, 20), date(2026, 3, 1)),
        _assignment(member_id, 70, date(2026, 1, 25), None),
    ]

    first_run = detect_conflicts(phases, assignments)
    second_run = detect_conflicts(phases, assignments)

    assert first_run == second_run
    assert [conflict.type for conflict in first_run][:3] == [ConflictType.PHASE_OVERLAP] * 3
    assert [serialize_conflict(item) for item in first_run] == [serialize_conflict(item) for item in second_run]


def test_serialize_conflict() -> None:
    member_id = uuid.uuid4()
    first = _assignment(member_id, 70, date(2026, 1, 1), None)
    second = _assignment(member_id, 70, date(2026, 1, 1), None)

    payload = serialize_conflict(detect_overallocation([first, second])[0])

    assert payload["type"] == "resource_overallocation"
    assert payload["involved_ids"] == [str(member_id), str(first.id), str(second.id)]
    assert payload["percentage"] == 140
    assert payload["window"] == {"start": "2026-01-01", "end": None}
    assert payload["project_id"] is None


def test_single_day_assignments_overload_that_day() -> None:
    member_id = uuid.uuid4()
    day = Interval.day(date(2026, 1, 5))
    first = _assignment(member_id, 80, day.start, day.end)
    second = _assignment(member_id, 80, day.start, day.end)

    conflicts = detect_overallocation([first, second])

    assert len(conflicts) == 1
    assert conflicts[0].percentage == 160
    assert conflicts[0].window == day


def test_empty_spans_are_rejected() -> None:
    with pytest.raises(InvalidIntervalError):
        _assignment(uuid.uuid4(), 80, date(2026, 1, 5), date(2026, 1, 5))
    with pytest.raises(InvalidIntervalError):
        _phase(uuid.uuid4(), "Survey", date(2026, 1, 5), date(2026, 1, 5))


def test_scope_keeps_only_steps_touching_scoped_assignments() -> None:
    member_id = uuid.uuid4()
    here = _assignment(member_id, 60, date(2026, 1, 1), date(2026, 2, 1))
    elsewhere = _assignment(member_id, 60, date(2026, 1, 1), date(2026, 2, 1))
    later_a = _assignment(member_id, 60, date(2026, 5, 1), date(2026, 6, 1))
    later_b = _assignment(member_id, 60, date(2026, 5, 1), date(2026, 6, 1))
    assignments = [here, elsewhere, later_a, later_b]

    scoped = detect_overallocation(assignments, scope={here.id})

    assert len(detect_overallocation(assignments)) == 2
    assert len(scoped) == 1
    assert scoped[0].percentage == 120
    assert scoped[0].involved_ids == (member_id, here.id, elsewhere.id)
    assert detect_overallocation(assignments, scope=set()) == []
