"""Application service for projects, phases, tasks, team members and assignments.

Project, Phase and Task updates go through the optimistic version guard:
the caller supplies the version it read, the guard validates it and the
repository persists with a conditional update on id and version.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from siteplan.core.config import get_settings
from siteplan.core.errors import HTTP_422_UNPROCESSABLE, to_http_exception
from siteplan.core.logging import get_logger
from siteplan.models.entities import (
    Assignment,
    AssignmentRole,
    Phase,
    PhaseStatus,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    TeamMember,
    TeamRole,
    utcnow,
)
from siteplan.repositories.planning_repository import PlanningRepository
from siteplan.scheduling.errors import SchedulingError
from siteplan.scheduling.intervals import Interval, duration_days, require_days
from siteplan.scheduling.records import AssignmentSpan, PhaseSpan
from siteplan.scheduling.versioning import VersionedEntity, apply_update

logger = get_logger(__name__)

PROJECT_FIELDS = (
    "contract_code",
    "name",
    "description",
    "status",
    "start_date",
    "estimated_end_date",
    "modification_allowed_times",
    "modification_days_per_time",
)
PHASE_FIELDS = ("name", "phase_order", "status", "start_date", "end_date")
TASK_FIELDS = (
    "phase_id",
    "description",
    "duration_days",
    "status",
    "start_date",
    "end_date",
    "assigned_team_member_id",
)


@dataclass(slots=True)
class ProjectCreateData:
    contract_code: str
    name: str
    description: str | None
    start_date: date
    estimated_end_date: date
    status: ProjectStatus = ProjectStatus.PLANNED
    modification_allowed_times: int | None = None
    modification_days_per_time: int | None = None


@dataclass(slots=True)
class ProjectUpdateData:
    version: int
    contract_code: str | None = None
    name: str | None = None
    description: str | None = None
    status: ProjectStatus | None = None
    start_date: date | None = None
    estimated_end_date: date | None = None
    modification_allowed_times: int | None = None
    modification_days_per_time: int | None = None


@dataclass(slots=True)
class PhaseCreateData:
    name: str
    phase_order: int
    start_date: date
    end_date: date | None = None
    status: PhaseStatus = PhaseStatus.PLANNED


@dataclass(slots=True)
class PhaseUpdateData:
    version: int
    name: str | None = None
    phase_order: int | None = None
    status: PhaseStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    cleared: frozenset[str] = frozenset()


@dataclass(slots=True)
class TaskCreateData:
    phase_id: UUID
    description: str
    duration_days: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    assigned_team_member_id: UUID | None = None
    status: TaskStatus = TaskStatus.TODO


@dataclass(slots=True)
class TaskUpdateData:
    version: int
    phase_id: UUID | None = None
    description: str | None = None
    duration_days: int | None = None
    status: TaskStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    assigned_team_member_id: UUID | None = None
    cleared: frozenset[str] = frozenset()


@dataclass(slots=True)
class TeamMemberCreateData:
    display_name: str
    email: str
    role: TeamRole = TeamRole.TEAM_MEMBER
    active: bool = True


@dataclass(slots=True)
class TeamMemberUpdateData:
    display_name: str | None = None
    role: TeamRole | None = None
    active: bool | None = None


@dataclass(slots=True)
class AssignmentCreateData:
    team_member_id: UUID
    working_percentage: int
    start_date: date
    end_date: date | None = None
    role: AssignmentRole = AssignmentRole.TEAM_MEMBER


@dataclass(slots=True)
class AssignmentUpdateData:
    role: AssignmentRole | None = None
    working_percentage: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    active: bool | None = None
    cleared: frozenset[str] = frozenset()


def _provided(cleared: frozenset[str] = frozenset(), **values: object) -> dict[str, object]:
    """Changed fields: every non-null value, plus the fields explicitly set to null."""

    changes = {name: value for name, value in values.items() if value is not None}
    changes.update(dict.fromkeys(cleared.intersection(values)))
    return changes


def _interval_or_422(start: date, end: date | None, *, label: str) -> Interval:
    try:
        return require_days(Interval(start, end))
    except SchedulingError as exc:
        raise HTTPException(
            status_code=HTTP_422_UNPROCESSABLE,
            detail={**exc.to_detail(), "message": f"{label} end date must be after start_date."},
        ) from exc


def phase_span(phase: Phase) -> PhaseSpan:
    return PhaseSpan(
        id=phase.id,
        project_id=phase.project_id,
        name=phase.name,
        interval=Interval(phase.start_date, phase.end_date),
        phase_order=phase.phase_order,
        status=phase.status.value,
    )


def assignment_span(assignment: Assignment) -> AssignmentSpan:
    return AssignmentSpan(
        id=assignment.id,
        phase_id=assignment.phase_id,
        team_member_id=assignment.team_member_id,
        working_percentage=assignment.working_percentage,
        interval=Interval(assignment.start_date, assignment.end_date),
        role=assignment.role.value,
        active=assignment.active,
    )


class PlanningService:
    """Service implementing project structure lifecycle with versioned writes."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PlanningRepository(db)
        self.settings = get_settings()

    def _fail(self, exc: SchedulingError) -> HTTPException:
        self.db.rollback()
        logger.warning("scheduling_write_rejected", **exc.to_detail())
        return to_http_exception(exc)

    def _versioned_write(
        self,
        current: VersionedEntity,
        supplied_version: int,
        changes: dict[str, object],
    ) -> VersionedEntity:
        try:
            updated = apply_update(current, supplied_version, changes)
        except SchedulingError as exc:
            raise self._fail(exc) from exc
        return updated

    def _persist(self, current: VersionedEntity, updated: VersionedEntity, *, duplicate_detail: str) -> None:
        try:
            self.repo.cas_update(current, updated)
            self.db.commit()
        except SchedulingError as exc:
            raise self._fail(exc) from exc
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=duplicate_detail) from exc
        logger.info(
            "versioned_entity_updated",
            entity=current.entity,
            entity_id=str(current.entity_id),
            version=updated.version,
        )

    # ---------- Lookups ----------
    def get_project(self, project_id: UUID) -> Project:
        project = self.repo.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return project

    def get_phase(self, project_id: UUID, phase_id: UUID) -> Phase:
        phase = self.repo.get_phase(phase_id)
        if phase is None or phase.project_id != project_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Phase not found.")
        return phase

    def get_task(self, project_id: UUID, task_id: UUID) -> Task:
        task = self.repo.get_task(task_id)
        phase = self.repo.get_phase(task.phase_id) if task is not None else None
        if task is None or phase is None or phase.project_id != project_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")
        return task

    def get_team_member(self, team_member_id: UUID) -> TeamMember:
        member = self.repo.get_team_member(team_member_id)
        if member is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team member not found.")
        return member

    def get_assignment(self, project_id: UUID, assignment_id: UUID) -> Assignment:
        assignment = self.repo.get_assignment(assignment_id)
        phase = self.repo.get_phase(assignment.phase_id) if assignment is not None else None
        if assignment is None or phase is None or phase.project_id != project_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found.")
        return assignment

    # ---------- Serialization ----------
    @staticmethod
    def serialize_project(project: Project) -> dict[str, object]:
        return {
            "id": str(project.id),
            "contract_code": project.contract_code,
            "name": project.name,
            "description": project.description,
            "status": project.status.value,
            "start_date": project.start_date.isoformat(),
            "estimated_end_date": project.estimated_end_date.isoformat(),
            "modification_allowed_times": project.modification_allowed_times,
            "modification_days_per_time": project.modification_days_per_time,
            "version": project.version,
            "created_at": project.created_at.isoformat(),
            "updated_at": project.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_phase(phase: Phase) -> dict[str, object]:
        interval = Interval(phase.start_date, phase.end_date)
        return {
            "id": str(phase.id),
            "project_id": str(phase.project_id),
            "name": phase.name,
            "phase_order": phase.phase_order,
            "status": phase.status.value,
            "start_date": phase.start_date.isoformat(),
            "end_date": phase.end_date.isoformat() if phase.end_date else None,
            "duration_days": duration_days(interval) if interval.is_bounded else None,
            "version": phase.version,
        }

    @staticmethod
    def serialize_task(task: Task) -> dict[str, object]:
        return {
            "id": str(task.id),
            "phase_id": str(task.phase_id),
            "description": task.description,
            "duration_days": task.duration_days,
            "status": task.status.value,
            "start_date": task.start_date.isoformat() if task.start_date else None,
            "end_date": task.end_date.isoformat() if task.end_date else None,
            "assigned_team_member_id": (
                str(task.assigned_team_member_id) if task.assigned_team_member_id else None
            ),
            "version": task.version,
        }

    @staticmethod
    def serialize_team_member(member: TeamMember) -> dict[str, object]:
        return {
            "id": str(member.id),
            "display_name": member.display_name,
            "email": member.email,
            "role": member.role.value,
            "active": member.active,
        }

    @staticmethod
    def serialize_assignment(assignment: Assignment) -> dict[str, object]:
        return {
            "id": str(assignment.id),
            "phase_id": str(assignment.phase_id),
            "team_member_id": str(assignment.team_member_id),
            "role": assignment.role.value,
            "working_percentage": assignment.working_percentage,
            "start_date": assignment.start_date.isoformat(),
            "end_date": assignment.end_date.isoformat() if assignment.end_date else None,
            "active": assignment.active,
        }

    # ---------- Project CRUD ----------
    def list_projects(self) -> list[Project]:
        return self.repo.list_projects()

    def create_project(self, data: ProjectCreateData) -> Project:
        _interval_or_422(data.start_date, data.estimated_end_date, label="Project estimated")

        allowed = data.modification_allowed_times
        if allowed is None:
            allowed = self.settings.default_modification_allowed_times
        days_per_time = data.modification_days_per_time
        if days_per_time is None:
            days_per_time = self.settings.default_modification_days_per_time

        now = utcnow()
        project = Project(
            contract_code=data.contract_code.strip(),
            name=data.name.strip(),
            description=data.description.strip() if data.description else None,
            status=data.status,
            start_date=data.start_date,
            estimated_end_date=data.estimated_end_date,
            modification_allowed_times=allowed,
            modification_days_per_time=days_per_time,
            version=1,
            created_at=now,
            updated_at=now,
        )
        try:
            self.repo.add_project(project)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Project contract code already exists.",
            ) from exc

        self.db.refresh(project)
        logger.info("project_created", project_id=str(project.id), contract_code=project.contract_code)
        return project

    def update_project(self, project_id: UUID, data: ProjectUpdateData) -> Project:
        project = self.get_project(project_id)
        current = VersionedEntity.of(project, entity="Project", fields=PROJECT_FIELDS)
        changes = _provided(
            contract_code=data.contract_code.strip() if data.contract_code else None,
            name=data.name.strip() if data.name else None,
            description=data.description.strip() if data.description else None,
            status=data.status,
            start_date=data.start_date,
            estimated_end_date=data.estimated_end_date,
            modification_allowed_times=data.modification_allowed_times,
            modification_days_per_time=data.modification_days_per_time,
        )
        updated = self._versioned_write(current, data.version, changes)

        _interval_or_422(
            updated.fields["start_date"],
            updated.fields["estimated_end_date"],
            label="Project estimated",
        )
        used = len(self.repo.list_modification_events(project.id))
        if updated.fields["modification_allowed_times"] < used:
            raise HTTPException(
                status_code=HTTP_422_UNPROCESSABLE,
                detail=f"modification_allowed_times cannot be lower than the {used} modifications already recorded.",
            )

        self._persist(current, updated, duplicate_detail="Project contract code already exists.")
        self.db.refresh(project)
        return project

    def delete_project(self, project_id: UUID) -> None:
        project = self.get_project(project_id)
        self.repo.delete_project(project)
        self.db.commit()
        logger.info("project_deleted", project_id=str(project_id))

    # ---------- Phase CRUD ----------
    def list_phases(self, project_id: UUID) -> list[Phase]:
        self.get_project(project_id)
        return self.repo.list_phases(project_id)

    def create_phase(self, project_id: UUID, data: PhaseCreateData) -> Phase:
        project = self.get_project(project_id)
        _interval_or_422(data.start_date, data.end_date, label="Phase")

        now = utcnow()
        phase = Phase(
            project_id=project.id,
            name=data.name.strip(),
            phase_order=data.phase_order,
            status=data.status,
            start_date=data.start_date,
            end_date=data.end_date,
            version=1,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_phase(phase)
        self.db.commit()
        self.db.refresh(phase)
        logger.info("phase_created", project_id=str(project.id), phase_id=str(phase.id))
        return phase

    def update_phase(self, project_id: UUID, phase_id: UUID, data: PhaseUpdateData) -> Phase:
        phase = self.get_phase(project_id, phase_id)
        current = VersionedEntity.of(phase, entity="Phase", fields=PHASE_FIELDS)
        changes = _provided(
            data.cleared,
            name=data.name.strip() if data.name else None,
            phase_order=data.phase_order,
            status=data.status,
            start_date=data.start_date,
            end_date=data.end_date,
        )
        updated = self._versioned_write(current, data.version, changes)
        _interval_or_422(updated.fields["start_date"], updated.fields["end_date"], label="Phase")

        self._persist(current, updated, duplicate_detail="Phase update violated constraints.")
        self.db.refresh(phase)
        return phase

    def delete_phase(self, project_id: UUID, phase_id: UUID) -> None:
        phase = self.get_phase(project_id, phase_id)
        self.repo.delete_phase(phase)
        self.db.commit()
        logger.info("phase_deleted", project_id=str(project_id), phase_id=str(phase_id))

    # ---------- Task CRUD ----------
    def list_tasks(self, project_id: UUID) -> list[Task]:
        self.get_project(project_id)
        return self.repo.list_tasks(project_id)

    def _ensure_assignee(self, team_member_id: UUID | None) -> None:
        if team_member_id is None:
            return
        if self.repo.get_team_member(team_member_id) is None:
            raise HTTPException(
                status_code=HTTP_422_UNPROCESSABLE,
                detail="assigned_team_member_id must reference an existing team member.",
            )

    def _ensure_phase_in_project(self, project_id: UUID, phase_id: UUID) -> Phase:
        phase = self.repo.get_phase(phase_id)
        if phase is None or phase.project_id != project_id:
            raise HTTPException(
                status_code=HTTP_422_UNPROCESSABLE,
                detail="phase_id must reference a phase in this project.",
            )
        return phase

    def create_task(self, project_id: UUID, data: TaskCreateData) -> Task:
        self.get_project(project_id)
        phase = self._ensure_phase_in_project(project_id, data.phase_id)
        self._ensure_assignee(data.assigned_team_member_id)

        duration = data.duration_days
        if data.start_date is not None and data.end_date is not None:
            window = _interval_or_422(data.start_date, data.end_date, label="Task")
            if duration is None:
                duration = duration_days(window)
        if duration is None:
            raise HTTPException(
                status_code=HTTP_422_UNPROCESSABLE,
                detail="duration_days is required when start_date and end_date are not both given.",
            )

        now = utcnow()
        task = Task(
            phase_id=phase.id,
            description=data.description.strip(),
            duration_days=duration,
            status=data.status,
            start_date=data.start_date,
            end_date=data.end_date,
            assigned_team_member_id=data.assigned_team_member_id,
            version=1,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_task(task)
        self.db.commit()
        self.db.refresh(task)
        logger.info("task_created", phase_id=str(phase.id), task_id=str(task.id))
        return task

    def update_task(self, project_id: UUID, task_id: UUID, data: TaskUpdateData) -> Task:
        task = self.get_task(project_id, task_id)
        current = VersionedEntity.of(task, entity="Task", fields=TASK_FIELDS)
        changes = _provided(
            data.cleared,
            phase_id=data.phase_id,
            description=data.description.strip() if data.description else None,
            duration_days=data.duration_days,
            status=data.status,
            start_date=data.start_date,
            end_date=data.end_date,
            assigned_team_member_id=data.assigned_team_member_id,
        )
        updated = self._versioned_write(current, data.version, changes)

        if data.phase_id is not None:
            self._ensure_phase_in_project(project_id, data.phase_id)
        self._ensure_assignee(data.assigned_team_member_id)
        start, end = updated.fields["start_date"], updated.fields["end_date"]
        if start is not None and end is not None:
            _interval_or_422(start, end, label="Task")

        self._persist(current, updated, duplicate_detail="Task update violated constraints.")
        self.db.refresh(task)
        return task

    def delete_task(self, project_id: UUID, task_id: UUID) -> None:
        task = self.get_task(project_id, task_id)
        self.repo.delete_task(task)
        self.db.commit()
        logger.info("task_deleted", project_id=str(project_id), task_id=str(task_id))

    # ---------- Team members ----------
    def list_team_members(self, *, active_only: bool = False) -> list[TeamMember]:
        return self.repo.list_team_members(active_only=active_only)

    def create_team_member(self, data: TeamMemberCreateData) -> TeamMember:
        member = TeamMember(
            display_name=data.display_name.strip(),
            email=data.email.strip().lower(),
            role=data.role,
            active=data.active,
            created_at=utcnow(),
        )
        try:
            self.repo.add_team_member(member)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Team member email already exists.",
            ) from exc
        self.db.refresh(member)
        return member

    def update_team_member(self, team_member_id: UUID, data: TeamMemberUpdateData) -> TeamMember:
        member = self.get_team_member(team_member_id)
        if data.display_name is not None:
            member.display_name = data.display_name.strip()
        if data.role is not None:
            member.role = data.role
        if data.active is not None:
            member.active = data.active
        self.db.commit()
        self.db.refresh(member)
        return member

    # ---------- Assignments ----------
    def list_assignments(self, project_id: UUID) -> list[Assignment]:
        self.get_project(project_id)
        return self.repo.list_assignments_for_project(project_id)

    def create_assignment(self, project_id: UUID, phase_id: UUID, data: AssignmentCreateData) -> Assignment:
        phase = self.get_phase(project_id, phase_id)
        member = self.repo.get_team_member(data.team_member_id)
        if member is None or not member.active:
            raise HTTPException(
                status_code=HTTP_422_UNPROCESSABLE,
                detail="team_member_id must reference an active team member.",
            )
        _interval_or_422(data.start_date, data.end_date, label="Assignment")

        now = utcnow()
        assignment = Assignment(
            phase_id=phase.id,
            team_member_id=member.id,
            role=data.role,
            working_percentage=data.working_percentage,
            start_date=data.start_date,
            end_date=data.end_date,
            active=True,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_assignment(assignment)
        self.db.commit()
        self.db.refresh(assignment)
        logger.info(
            "assignment_created",
            assignment_id=str(assignment.id),
            phase_id=str(phase.id),
            team_member_id=str(member.id),
            working_percentage=assignment.working_percentage,
        )
        return assignment

    def update_assignment(self, project_id: UUID, assignment_id: UUID, data: AssignmentUpdateData) -> Assignment:
        assignment = self.get_assignment(project_id, assignment_id)

        target_start = data.start_date or assignment.start_date
        target_end = data.end_date if data.end_date is not None else assignment.end_date
        if "end_date" in data.cleared:
            target_end = None
        _interval_or_422(target_start, target_end, label="Assignment")

        if data.role is not None:
            assignment.role = data.role
        if data.working_percentage is not None:
            assignment.working_percentage = data.working_percentage
        if data.active is not None:
            assignment.active = data.active
        assignment.start_date = target_start
        assignment.end_date = target_end
        assignment.updated_at = utcnow()

        self.db.commit()
        self.db.refresh(assignment)
        logger.info("assignment_updated", assignment_id=str(assignment.id), active=assignment.active)
        return assignment

    def delete_assignment(self, project_id: UUID, assignment_id: UUID) -> None:
        assignment = self.get_assignment(project_id, assignment_id)
        self.repo.delete_assignment(assignment)
        self.db.commit()
        logger.info("assignment_deleted", project_id=str(project_id), assignment_id=str(assignment_id))
