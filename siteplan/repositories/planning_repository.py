"""Repository helpers for projects, phases, tasks, assignments and the modification ledger."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from sqlalchemy import and_, delete, select, update
from sqlalchemy.orm import Session

from siteplan.models.entities import (
    Assignment,
    ModificationEventRow,
    Phase,
    Project,
    Task,
    TeamMember,
    utcnow,
)
from siteplan.scheduling.errors import EntityNotFoundError, VersionConflictError
from siteplan.scheduling.versioning import VersionedEntity

VERSIONED_MODELS: dict[str, type[Project] | type[Phase] | type[Task]] = {
    "Project": Project,
    "Phase": Phase,
    "Task": Task,
}


class PlanningRepository:
    """Persistence operations used by planning, scheduling and modification services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Versioned writes ----------
    def cas_update(self, current: VersionedEntity, updated: VersionedEntity) -> None:
        """Persist ``updated`` only if the row still carries ``current.version``.

        Single conditional UPDATE keyed on id and version; the affected row
        count decides between success, a concurrent edit and a concurrent
        delete.
        """

        model = VERSIONED_MODELS[current.entity]
        values: dict[str, Any] = current.changed_fields(updated)
        values["version"] = updated.version
        values["updated_at"] = utcnow()

        result = self.db.execute(
            update(model)
            .where(and_(model.id == current.entity_id, model.version == current.version))
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 1:
            return

        stored_version = self.db.scalar(select(model.version).where(model.id == current.entity_id))
        if stored_version is None:
            raise EntityNotFoundError(entity=current.entity, entity_id=current.entity_id)
        raise VersionConflictError(
            entity=current.entity,
            entity_id=current.entity_id,
            supplied_version=current.version,
            current_version=stored_version,
        )

    # ---------- Projects ----------
    def list_projects(self) -> list[Project]:
        return self.db.scalars(select(Project).order_by(Project.start_date.asc(), Project.contract_code.asc())).all()

    def get_project(self, project_id: UUID) -> Project | None:
        return self.db.scalar(select(Project).where(Project.id == project_id))

    def add_project(self, project: Project) -> Project:
        self.db.add(project)
        self.db.flush()
        return project

    def delete_project(self, project: Project) -> None:
        for phase in self.list_phases(project.id):
            self.delete_phase(phase)
        self.db.execute(delete(ModificationEventRow).where(ModificationEventRow.project_id == project.id))
        self.db.delete(project)
        self.db.flush()

    # ---------- Phases ----------
    def list_phases(self, project_id: UUID) -> list[Phase]:
        return self.db.scalars(
            select(Phase)
            .where(Phase.project_id == project_id)
            .order_by(Phase.start_date.asc(), Phase.phase_order.asc(), Phase.name.asc())
        ).all()

    def list_all_phases(self) -> list[Phase]:
        return self.db.scalars(select(Phase).order_by(Phase.start_date.asc(), Phase.phase_order.asc())).all()

    def get_phase(self, phase_id: UUID) -> Phase | None:
        return self.db.scalar(select(Phase).where(Phase.id == phase_id))

    def add_phase(self, phase: Phase) -> Phase:
        self.db.add(phase)
        self.db.flush()
        return phase

    def delete_phase(self, phase: Phase) -> None:
        """Delete phase together with its tasks and assignments."""

        self.db.execute(delete(Task).where(Task.phase_id == phase.id).execution_options(synchronize_session="fetch"))
        self.db.execute(
            delete(Assignment).where(Assignment.phase_id == phase.id).execution_options(synchronize_session="fetch")
        )
        self.db.delete(phase)
        self.db.flush()

    # ---------- Tasks ----------
    def list_tasks(self, project_id: UUID) -> list[Task]:
        return self.db.scalars(
            select(Task)
            .join(Phase, Phase.id == Task.phase_id)
            .where(Phase.project_id == project_id)
            .order_by(Phase.start_date.asc(), Phase.phase_order.asc(), Task.created_at.asc())
        ).all()

    def list_tasks_for_phase(self, phase_id: UUID) -> list[Task]:
        return self.db.scalars(
            select(Task).where(Task.phase_id == phase_id).order_by(Task.created_at.asc())
        ).all()

    def get_task(self, task_id: UUID) -> Task | None:
        return self.db.scalar(select(Task).where(Task.id == task_id))

    def add_task(self, task: Task) -> Task:
        self.db.add(task)
        self.db.flush()
        return task

    def delete_task(self, task: Task) -> None:
        self.db.delete(task)
        self.db.flush()

    # ---------- Team members ----------
    def list_team_members(self, *, active_only: bool = False) -> list[TeamMember]:
        query = select(TeamMember)
        if active_only:
            query = query.where(TeamMember.active.is_(True))
        return self.db.scalars(query.order_by(TeamMember.display_name.asc())).all()

    def get_team_member(self, team_member_id: UUID) -> TeamMember | None:
        return self.db.scalar(select(TeamMember).where(TeamMember.id == team_member_id))

    def add_team_member(self, member: TeamMember) -> TeamMember:
        self.db.add(member)
        self.db.flush()
        return member

    # ---------- Assignments ----------
    def list_assignments_for_project(self, project_id: UUID) -> list[Assignment]:
        return self.db.scalars(
            select(Assignment)
            .join(Phase, Phase.id == Assignment.phase_id)
            .where(Phase.project_id == project_id)
            .order_by(Assignment.start_date.asc(), Assignment.created_at.asc())
        ).all()

    def list_assignments_for_phase(self, phase_id: UUID) -> list[Assignment]:
        return self.db.scalars(
            select(Assignment)
            .where(Assignment.phase_id == phase_id)
            .order_by(Assignment.start_date.asc(), Assignment.created_at.asc())
        ).all()

    def list_assignments_for_team_member(self, team_member_id: UUID) -> list[Assignment]:
        return self.db.scalars(
            select(Assignment)
            .where(Assignment.team_member_id == team_member_id)
            .order_by(Assignment.start_date.asc(), Assignment.created_at.asc())
        ).all()

    def list_active_assignments(self, *, project_id: UUID | None = None) -> list[Assignment]:
        query = select(Assignment).where(Assignment.active.is_(True))
        if project_id is not None:
            query = query.join(Phase, Phase.id == Assignment.phase_id).where(Phase.project_id == project_id)
        return self.db.scalars(
            query.order_by(Assignment.start_date.asc(), Assignment.created_at.asc())
        ).all()

    def list_active_assignments_for_team_members(self, team_member_ids: Iterable[UUID]) -> list[Assignment]:
        ids = list(team_member_ids)
        if not ids:
            return []
        return self.db.scalars(
            select(Assignment)
            .where(Assignment.active.is_(True), Assignment.team_member_id.in_(ids))
            .order_by(Assignment.start_date.asc(), Assignment.created_at.asc())
        ).all()

    def get_assignment(self, assignment_id: UUID) -> Assignment | None:
        return self.db.scalar(select(Assignment).where(Assignment.id == assignment_id))

    def add_assignment(self, assignment: Assignment) -> Assignment:
        self.db.add(assignment)
        self.db.flush()
        return assignment

    def delete_assignment(self, assignment: Assignment) -> None:
        self.db.delete(assignment)
        self.db.flush()

    # ---------- Modification ledger ----------
    def list_modification_events(self, project_id: UUID) -> list[ModificationEventRow]:
        return self.db.scalars(
            select(ModificationEventRow)
            .where(ModificationEventRow.project_id == project_id)
            .order_by(ModificationEventRow.number.asc())
        ).all()

    def add_modification_event(self, event: ModificationEventRow) -> ModificationEventRow:
        """Append event; unique (project_id, number) rejects a concurrent duplicate."""

        self.db.add(event)
        self.db.flush()
        return event
