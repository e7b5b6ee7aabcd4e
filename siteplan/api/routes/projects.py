"""Project structure endpoints: projects, phases, tasks and phase assignments."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from siteplan.db.dependencies import get_db_session
from siteplan.models.entities import AssignmentRole, PhaseStatus, ProjectStatus, TaskStatus
from siteplan.services.planning_service import (
    AssignmentCreateData,
    AssignmentUpdateData,
    PhaseCreateData,
    PhaseUpdateData,
    PlanningService,
    ProjectCreateData,
    ProjectUpdateData,
    TaskCreateData,
    TaskUpdateData,
)
from siteplan.services.scheduling_service import SchedulingService

router = APIRouter(tags=["projects"])


class ProjectCreatePayload(BaseModel):
    contract_code: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    start_date: date
    estimated_end_date: date
    status: ProjectStatus = ProjectStatus.PLANNED
    modification_allowed_times: int | None = Field(default=None, ge=0)
    modification_days_per_time: int | None = Field(default=None, ge=0)


class ProjectUpdatePayload(BaseModel):
    version: int = Field(ge=1)
    contract_code: str | None = Field(default=None, min_length=1, max_length=64)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    status: ProjectStatus | None = None
    start_date: date | None = None
    estimated_end_date: date | None = None
    modification_allowed_times: int | None = Field(default=None, ge=0)
    modification_days_per_time: int | None = Field(default=None, ge=0)


class PhaseCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    phase_order: int = Field(ge=0)
    start_date: date
    end_date: date | None = None
    status: PhaseStatus = PhaseStatus.PLANNED


class PhaseUpdatePayload(BaseModel):
    version: int = Field(ge=1)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    phase_order: int | None = Field(default=None, ge=0)
    status: PhaseStatus | None = None
    start_date: date | None = None
    end_date: date | None = None


class TaskCreatePayload(BaseModel):
    phase_id: UUID
    description: str = Field(min_length=1, max_length=2000)
    duration_days: int | None = Field(default=None, ge=0)
    start_date: date | None = None
    end_date: date | None = None
    assigned_team_member_id: UUID | None = None
    status: TaskStatus = TaskStatus.TODO


class TaskUpdatePayload(BaseModel):
    version: int = Field(ge=1)
    phase_id: UUID | None = None
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    duration_days: int | None = Field(default=None, ge=0)
    status: TaskStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    assigned_team_member_id: UUID | None = None


class AssignmentCreatePayload(BaseModel):
    team_member_id: UUID
    working_percentage: int = Field(ge=0, le=100)
    start_date: date
    end_date: date | None = None
    role: AssignmentRole = AssignmentRole.TEAM_MEMBER


class AssignmentUpdatePayload(BaseModel):
    role: AssignmentRole | None = None
    working_percentage: int | None = Field(default=None, ge=0, le=100)
    start_date: date | None = None
    end_date: date | None = None
    active: bool | None = None


def _planning_service(db: Session) -> PlanningService:
    return PlanningService(db)


def _explicit_nulls(payload: BaseModel, *names: str) -> frozenset[str]:
    """Fields the client sent as null, as opposed to leaving them out."""

    return frozenset(name for name in names if name in payload.model_fields_set and getattr(payload, name) is None)


@router.get("/projects")
def list_projects(db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    service = _planning_service(db)
    return {"items": [service.serialize_project(project) for project in service.list_projects()]}


@router.post("/projects", status_code=status.HTTP_201_CREATED)
def create_project(payload: ProjectCreatePayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = _planning_service(db)
    project = service.create_project(
        ProjectCreateData(
            contract_code=payload.contract_code,
            name=payload.name,
            description=payload.description,
            start_date=payload.start_date,
            estimated_end_date=payload.estimated_end_date,
            status=payload.status,
            modification_allowed_times=payload.modification_allowed_times,
            modification_days_per_time=payload.modification_days_per_time,
        )
    )
    return service.serialize_project(project)


@router.get("/projects/{project_id}")
def get_project(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = _planning_service(db)
    return service.serialize_project(service.get_project(project_id))


@router.patch("/projects/{project_id}")
def update_project(
    project_id: UUID,
    payload: ProjectUpdatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _planning_service(db)
    project = service.update_project(
        project_id,
        ProjectUpdateData(
            version=payload.version,
            contract_code=payload.contract_code,
            name=payload.name,
            description=payload.description,
            status=payload.status,
            start_date=payload.start_date,
            estimated_end_date=payload.estimated_end_date,
            modification_allowed_times=payload.modification_allowed_times,
            modification_days_per_time=payload.modification_days_per_time,
        ),
    )
    return service.serialize_project(project)


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(project_id: UUID, db: Session = Depends(get_db_session)) -> Response:
    _planning_service(db).delete_project(project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/projects/{project_id}/phases")
def list_project_phases(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    service = _planning_service(db)
    return {"items": [service.serialize_phase(phase) for phase in service.list_phases(project_id)]}


@router.post("/projects/{project_id}/phases", status_code=status.HTTP_201_CREATED)
def create_project_phase(
    project_id: UUID,
    payload: PhaseCreatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _planning_service(db)
    phase = service.create_phase(
        project_id,
        PhaseCreateData(
            name=payload.name,
            phase_order=payload.phase_order,
            start_date=payload.start_date,
            end_date=payload.end_date,
            status=payload.status,
        ),
    )
    return service.serialize_phase(phase)


@router.patch("/projects/{project_id}/phases/{phase_id}")
def update_project_phase(
    project_id: UUID,
    phase_id: UUID,
    payload: PhaseUpdatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _planning_service(db)
    phase = service.update_phase(
        project_id,
        phase_id,
        PhaseUpdateData(
            version=payload.version,
            name=payload.name,
            phase_order=payload.phase_order,
            status=payload.status,
            start_date=payload.start_date,
            end_date=payload.end_date,
            cleared=_explicit_nulls(payload, "end_date"),
        ),
    )
    return service.serialize_phase(phase)


@router.delete("/projects/{project_id}/phases/{phase_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project_phase(project_id: UUID, phase_id: UUID, db: Session = Depends(get_db_session)) -> Response:
    _planning_service(db).delete_phase(project_id, phase_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/projects/{project_id}/tasks")
def list_project_tasks(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    service = _planning_service(db)
    return {"items": [service.serialize_task(task) for task in service.list_tasks(project_id)]}


@router.post("/projects/{project_id}/tasks", status_code=status.HTTP_201_CREATED)
def create_project_task(
    project_id: UUID,
    payload: TaskCreatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _planning_service(db)
    task = service.create_task(
        project_id,
        TaskCreateData(
            phase_id=payload.phase_id,
            description=payload.description,
            duration_days=payload.duration_days,
            start_date=payload.start_date,
            end_date=payload.end_date,
            assigned_team_member_id=payload.assigned_team_member_id,
            status=payload.status,
        ),
    )
    return service.serialize_task(task)


@router.patch("/projects/{project_id}/tasks/{task_id}")
def update_project_task(
    project_id: UUID,
    task_id: UUID,
    payload: TaskUpdatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _planning_service(db)
    task = service.update_task(
        project_id,
        task_id,
        TaskUpdateData(
            version=payload.version,
            phase_id=payload.phase_id,
            description=payload.description,
            duration_days=payload.duration_days,
            status=payload.status,
            start_date=payload.start_date,
            end_date=payload.end_date,
            assigned_team_member_id=payload.assigned_team_member_id,
            cleared=_explicit_nulls(payload, "start_date", "end_date", "assigned_team_member_id"),
        ),
    )
    return service.serialize_task(task)


@router.delete("/projects/{project_id}/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project_task(project_id: UUID, task_id: UUID, db: Session = Depends(get_db_session)) -> Response:
    _planning_service(db).delete_task(project_id, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/projects/{project_id}/assignments")
def list_project_assignments(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    service = _planning_service(db)
    return {"items": [service.serialize_assignment(row) for row in service.list_assignments(project_id)]}


@router.post("/projects/{project_id}/phases/{phase_id}/assignments", status_code=status.HTTP_201_CREATED)
def create_phase_assignment(
    project_id: UUID,
    phase_id: UUID,
    payload: AssignmentCreatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _planning_service(db)
    assignment = service.create_assignment(
        project_id,
        phase_id,
        AssignmentCreateData(
            team_member_id=payload.team_member_id,
            working_percentage=payload.working_percentage,
            start_date=payload.start_date,
            end_date=payload.end_date,
            role=payload.role,
        ),
    )
    return {
        **service.serialize_assignment(assignment),
        "allocation": SchedulingService(db).allocation_preview(assignment),
    }


@router.patch("/projects/{project_id}/assignments/{assignment_id}")
def update_project_assignment(
    project_id: UUID,
    assignment_id: UUID,
    payload: AssignmentUpdatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _planning_service(db)
    assignment = service.update_assignment(
        project_id,
        assignment_id,
        AssignmentUpdateData(
            role=payload.role,
            working_percentage=payload.working_percentage,
            start_date=payload.start_date,
            end_date=payload.end_date,
            active=payload.active,
            cleared=_explicit_nulls(payload, "end_date"),
        ),
    )
    return service.serialize_assignment(assignment)


@router.delete(
    "/projects/{project_id}/assignments/{assignment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_project_assignment(
    project_id: UUID,
    assignment_id: UUID,
    db: Session = Depends(get_db_session),
) -> Response:
    _planning_service(db).delete_assignment(project_id, assignment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
