"""Client requirement modification quota per project."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from siteplan.core.errors import to_http_exception
from siteplan.core.logging import get_logger
from siteplan.models.entities import ModificationEventRow, Project
from siteplan.repositories.planning_repository import PlanningRepository
from siteplan.scheduling.errors import QuotaExceededError
from siteplan.scheduling.quota import ModificationEvent, ModificationLedger, consume

logger = get_logger(__name__)


@dataclass(slots=True)
class ModificationCreateData:
    description: str | None = None
    days_used: int | None = None


class ModificationService:
    """Loads the append-only ledger and records new modifications against the cap."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PlanningRepository(db)

    def _get_project(self, project_id: UUID) -> Project:
        project = self.repo.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return project

    def _ledger(self, project: Project) -> ModificationLedger:
        events = tuple(
            ModificationEvent(
                number=row.number,
                days_used=row.days_used,
                created_at=row.created_at,
                description=row.description,
            )
            for row in self.repo.list_modification_events(project.id)
        )
        return ModificationLedger(
            project_id=project.id,
            total_allowed=project.modification_allowed_times,
            days_per_modification=project.modification_days_per_time,
            events=events,
        )

    def get_ledger(self, project_id: UUID) -> ModificationLedger:
        return self._ledger(self._get_project(project_id))

    def record_modification(self, project_id: UUID, data: ModificationCreateData) -> ModificationLedger:
        project = self._get_project(project_id)
        ledger = self._ledger(project)
        days_used = data.days_used if data.days_used is not None else ledger.days_per_modification

        try:
            updated = consume(
                ledger,
                days_used,
                description=data.description.strip() if data.description else None,
            )
        except QuotaExceededError as exc:
            logger.warning("modification_quota_exceeded", project_id=str(project.id), **exc.to_detail())
            raise to_http_exception(exc) from exc

        event = updated.events[-1]
        try:
            self.repo.add_modification_event(
                ModificationEventRow(
                    project_id=project.id,
                    number=event.number,
                    days_used=event.days_used,
                    description=event.description,
                    created_at=event.created_at,
                )
            )
            self.db.commit()
        except IntegrityError as exc:
            # Another request appended the same event number first.
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={
                    "kind": "stale_version",
                    "message": "Another modification was recorded concurrently. Reload and try again.",
                },
            ) from exc

        logger.info(
            "modification_recorded",
            project_id=str(project.id),
            number=event.number,
            days_used=event.days_used,
            remaining=updated.remaining,
        )
        return updated
