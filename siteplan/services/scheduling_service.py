"""Read-side service: workload views, conflict lists and project timeline.

Everything here is recomputed from current rows on each call; nothing is
cached or persisted, so deleting or ending an assignment is reflected by
the next read.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.orm import Session

from siteplan.core.errors import HTTP_422_UNPROCESSABLE
from siteplan.core.logging import get_logger
from siteplan.models.entities import Assignment, Project, Task
from siteplan.repositories.planning_repository import PlanningRepository
from siteplan.scheduling.allocation import (
    WorkloadSegment,
    WorkloadSnapshot,
    is_overallocated,
    overlapping_assignments,
    peak_allocation,
    workload_snapshot,
    workload_timeline,
)
from siteplan.scheduling.conflicts import Conflict, ConflictType, detect_conflicts, serialize_conflict
from siteplan.scheduling.intervals import Interval, overlaps
from siteplan.services.planning_service import PlanningService, assignment_span, phase_span

logger = get_logger(__name__)


@dataclass(slots=True)
class MemberAllocation:
    team_member_id: UUID
    display_name: str
    snapshot: WorkloadSnapshot
    assignments: list[Assignment]


@dataclass(slots=True)
class TeamAllocationSummary:
    window: Interval
    total_team_members: int
    allocated_members: int
    overallocated_members: int
    allocations: list[MemberAllocation]


def query_window(start_date: date | None, end_date: date | None) -> Interval:
    """Half-open query window; a lone start date means that single day."""

    start = start_date or date.today()
    if end_date is None:
        return Interval.day(start)
    if end_date <= start:
        raise HTTPException(
            status_code=HTTP_422_UNPROCESSABLE,
            detail="end_date must be after start_date.",
        )
    return Interval(start, end_date)


def serialize_snapshot(snapshot: WorkloadSnapshot) -> dict[str, object]:
    return {
        "team_member_id": str(snapshot.team_member_id),
        "window": snapshot.interval.to_dict(),
        "total_percentage": snapshot.total_percentage,
        "is_overallocated": snapshot.is_overallocated,
    }


def serialize_segment(segment: WorkloadSegment) -> dict[str, object]:
    return {
        "window": segment.interval.to_dict(),
        "total_percentage": segment.total_percentage,
        "is_overallocated": segment.is_overallocated,
        "assignment_ids": [str(item) for item in segment.assignment_ids],
    }


class SchedulingService:
    """Workload and conflict views over live assignments and phases."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PlanningRepository(db)
        self.planning = PlanningService(db)

    # ---------- Workload ----------
    def member_workload(
        self,
        team_member_id: UUID,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> tuple[WorkloadSnapshot, list[Assignment]]:
        self.planning.get_team_member(team_member_id)
        window = query_window(start_date, end_date)

        rows = self.repo.list_assignments_for_team_member(team_member_id)
        spans = [assignment_span(row) for row in rows]
        snapshot = workload_snapshot(spans, team_member_id, window)
        contributing = {span.id for span in overlapping_assignments(spans, team_member_id, window)}
        return snapshot, [row for row in rows if row.id in contributing]

    def member_timeline(self, team_member_id: UUID) -> list[WorkloadSegment]:
        self.planning.get_team_member(team_member_id)
        spans = [assignment_span(row) for row in self.repo.list_assignments_for_team_member(team_member_id)]
        return workload_timeline(spans, team_member_id)

    def team_allocation(
        self,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        project_id: UUID | None = None,
    ) -> TeamAllocationSummary:
        if project_id is not None:
            self.planning.get_project(project_id)
        window = query_window(start_date, end_date)

        rows = self.repo.list_active_assignments(project_id=project_id)
        spans = [assignment_span(row) for row in rows]
        rows_by_id = {row.id: row for row in rows}

        allocations: list[MemberAllocation] = []
        for member in self.repo.list_team_members(active_only=True):
            snapshot = workload_snapshot(spans, member.id, window)
            contributing = overlapping_assignments(spans, member.id, window)
            allocations.append(
                MemberAllocation(
                    team_member_id=member.id,
                    display_name=member.display_name,
                    snapshot=snapshot,
                    assignments=[rows_by_id[span.id] for span in contributing],
                )
            )

        summary = TeamAllocationSummary(
            window=window,
            total_team_members=len(allocations),
            allocated_members=sum(1 for row in allocations if row.snapshot.total_percentage > 0),
            overallocated_members=sum(1 for row in allocations if row.snapshot.is_overallocated),
            allocations=allocations,
        )
        logger.info(
            "team_allocation_calculated",
            total_team_members=summary.total_team_members,
            allocated_members=summary.allocated_members,
            overallocated_members=summary.overallocated_members,
        )
        return summary

    def allocation_preview(self, assignment: Assignment) -> dict[str, object]:
        """Member load inside the new assignment's window; a warning, never a block."""

        spans = [
            assignment_span(row) for row in self.repo.list_assignments_for_team_member(assignment.team_member_id)
        ]
        window = Interval(assignment.start_date, assignment.end_date)
        snapshot = workload_snapshot(spans, assignment.team_member_id, window)
        peak = peak_allocation(spans, assignment.team_member_id, within=window)
        return {
            **serialize_snapshot(snapshot),
            "peak_percentage": peak,
            "is_peak_overallocated": is_overallocated(peak),
        }

    @staticmethod
    def serialize_team_allocation(summary: TeamAllocationSummary) -> dict[str, object]:
        return {
            "window": summary.window.to_dict(),
            "total_team_members": summary.total_team_members,
            "allocated_members": summary.allocated_members,
            "overallocated_members": summary.overallocated_members,
            "allocations": [
                {
                    "team_member_id": str(row.team_member_id),
                    "display_name": row.display_name,
                    "total_percentage": row.snapshot.total_percentage,
                    "is_overallocated": row.snapshot.is_overallocated,
                    "assignments": [PlanningService.serialize_assignment(item) for item in row.assignments],
                }
                for row in summary.allocations
            ],
        }

    # ---------- Conflicts ----------
    def _conflicts_for(self, project: Project) -> list[Conflict]:
        """Phase overlaps inside the project, plus member overload that touches its assignments.

        A member's load is summed over every project they work on, so 60% here and
        60% elsewhere is reported on this project.
        """

        phases = [phase_span(row) for row in self.repo.list_phases(project.id)]
        own = self.repo.list_active_assignments(project_id=project.id)
        own_ids = {row.id for row in own}
        elsewhere = self.repo.list_active_assignments_for_team_members({row.team_member_id for row in own})
        rows = [*own, *(row for row in elsewhere if row.id not in own_ids)]
        return detect_conflicts(phases, [assignment_span(row) for row in rows], scope=own_ids)

    def project_conflicts(self, project_id: UUID) -> list[Conflict]:
        project = self.planning.get_project(project_id)
        conflicts = self._conflicts_for(project)
        logger.info("project_conflicts_detected", project_id=str(project_id), conflict_count=len(conflicts))
        return conflicts

    def global_conflicts(self) -> list[Conflict]:
        phases = [phase_span(row) for row in self.repo.list_all_phases()]
        assignments = [assignment_span(row) for row in self.repo.list_active_assignments()]
        conflicts = detect_conflicts(phases, assignments)
        logger.info("global_conflicts_detected", conflict_count=len(conflicts))
        return conflicts

    # ---------- Timeline ----------
    def _project_view(
        self,
        project: Project,
        *,
        window: Interval | None,
        team_member_id: UUID | None,
    ) -> dict[str, object]:
        phase_rows = []
        phase_ids: set[UUID] = set()
        for phase in self.repo.list_phases(project.id):
            if window is not None and not overlaps(phase_span(phase).interval, window):
                continue
            phase_ids.add(phase.id)
            tasks = [
                task
                for task in self.repo.list_tasks_for_phase(phase.id)
                if window is None or _within(task_interval(task), window)
            ]
            assignments = [
                row
                for row in self.repo.list_assignments_for_phase(phase.id)
                if (team_member_id is None or row.team_member_id == team_member_id)
                and (window is None or overlaps(assignment_span(row).interval, window))
            ]
            phase_rows.append(
                {
                    **self.planning.serialize_phase(phase),
                    "tasks": [self.planning.serialize_task(task) for task in tasks],
                    "assignments": [self.planning.serialize_assignment(row) for row in assignments],
                }
            )

        conflicts = [
            conflict
            for conflict in self._conflicts_for(project)
            if _conflict_in_view(conflict, phase_ids=phase_ids, window=window, team_member_id=team_member_id)
        ]
        return {
            "project": self.planning.serialize_project(project),
            "phases": phase_rows,
            "conflicts": [serialize_conflict(conflict) for conflict in conflicts],
        }

    def _project_matches(self, project: Project, *, window: Interval | None, team_member_id: UUID | None) -> bool:
        if team_member_id is not None and not any(
            row.team_member_id == team_member_id for row in self.repo.list_assignments_for_project(project.id)
        ):
            return False
        if window is None or overlaps(project_interval(project), window):
            return True
        return any(overlaps(phase_span(phase).interval, window) for phase in self.repo.list_phases(project.id))

    def project_timeline(
        self,
        project_id: UUID,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        team_member_id: UUID | None = None,
    ) -> dict[str, object]:
        project = self.planning.get_project(project_id)
        window = timeline_window(start_date, end_date)
        return self._project_view(project, window=window, team_member_id=team_member_id)

    def timeline(
        self,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        project_id: UUID | None = None,
        team_member_id: UUID | None = None,
    ) -> list[dict[str, object]]:
        """Projects with their phases, tasks, assignments and conflicts, narrowed by the filters."""

        window = timeline_window(start_date, end_date)
        if team_member_id is not None:
            self.planning.get_team_member(team_member_id)
        projects = [self.planning.get_project(project_id)] if project_id is not None else self.repo.list_projects()

        items = [
            self._project_view(project, window=window, team_member_id=team_member_id)
            for project in projects
            if self._project_matches(project, window=window, team_member_id=team_member_id)
        ]
        logger.info(
            "timeline_built",
            project_count=len(items),
            conflict_count=sum(len(item["conflicts"]) for item in items),
            window=window.to_dict() if window is not None else None,
            team_member_id=str(team_member_id) if team_member_id else None,
        )
        return items

    def calendar_events(self, year: int, month: int) -> list[dict[str, object]]:
        """Projects, phases and dated tasks that touch the given month, in that order."""

        window = Interval.month(year, month)
        projects = self.repo.list_projects()

        events = [
            _calendar_event("project", project.id, project.name, project_interval(project))
            for project in projects
            if overlaps(project_interval(project), window)
        ]
        for project in projects:
            for phase in self.repo.list_phases(project.id):
                interval = phase_span(phase).interval
                if overlaps(interval, window):
                    events.append(_calendar_event("phase", phase.id, phase.name, interval))
        for project in projects:
            for task in self.repo.list_tasks(project.id):
                interval = task_interval(task)
                if interval is not None and overlaps(interval, window):
                    events.append(_calendar_event("task", task.id, _short_title(task.description), interval))

        logger.info("calendar_events_built", year=year, month=month, event_count=len(events))
        return events


def timeline_window(start_date: date | None, end_date: date | None) -> Interval | None:
    """Optional half-open filter window; either bound may be left open."""

    if start_date is None and end_date is None:
        return None
    start = start_date or date.min
    if end_date is not None and end_date <= start:
        raise HTTPException(
            status_code=HTTP_422_UNPROCESSABLE,
            detail="end_date must be after start_date.",
        )
    return Interval(start, end_date)


def project_interval(project: Project) -> Interval:
    return Interval(project.start_date, project.estimated_end_date)


def task_interval(task: Task) -> Interval | None:
    """A dated task's span; a task with only a start date covers that one day."""

    if task.start_date is None:
        return None
    if task.end_date is None:
        return Interval.day(task.start_date)
    return Interval(task.start_date, task.end_date)


def _within(interval: Interval | None, window: Interval) -> bool:
    # Undated tasks stay with their phase.
    return interval is None or overlaps(interval, window)


def _conflict_in_view(
    conflict: Conflict,
    *,
    phase_ids: set[UUID],
    window: Interval | None,
    team_member_id: UUID | None,
) -> bool:
    if conflict.type is ConflictType.PHASE_OVERLAP:
        return any(item in phase_ids for item in conflict.involved_ids)
    if team_member_id is not None and conflict.team_member_id != team_member_id:
        return False
    return window is None or conflict.window is None or overlaps(conflict.window, window)


def _short_title(text: str, limit: int = 50) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


def _calendar_event(resource_type: str, resource_id: UUID, title: str, interval: Interval) -> dict[str, object]:
    return {
        "id": f"{resource_type}-{resource_id}",
        "title": title,
        "start": interval.start.isoformat(),
        "end": interval.end.isoformat() if interval.end is not None else None,
        "resource_id": str(resource_id),
        "resource_type": resource_type,
    }
