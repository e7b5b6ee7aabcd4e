from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from siteplan.db.dependencies import get_db_session
from siteplan.scheduling.conflicts import serialize_conflict
from siteplan.services.scheduling_service import SchedulingService

router = APIRouter(tags=["scheduling"])


def _service(db: Session) -> SchedulingService:
    return SchedulingService(db)


@router.get("/workload")
def get_team_allocation(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    project_id: UUID | None = Query(default=None),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    summary = service.team_allocation(start_date=start_date, end_date=end_date, project_id=project_id)
    return service.serialize_team_allocation(summary)


@router.get("/conflicts")
def list_conflicts(db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    return {"items": [serialize_conflict(conflict) for conflict in _service(db).global_conflicts()]}


@router.get("/projects/{project_id}/conflicts")
def list_project_conflicts(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    return {"items": [serialize_conflict(conflict) for conflict in _service(db).project_conflicts(project_id)]}


@router.get("/projects/{project_id}/timeline")
def get_project_timeline(
    project_id: UUID,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    team_member_id: UUID | None = Query(default=None),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).project_timeline(
        project_id,
        start_date=start_date,
        end_date=end_date,
        team_member_id=team_member_id,
    )


@router.get("/timeline")
def get_timeline(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    project_id: UUID | None = Query(default=None),
    team_member_id: UUID | None = Query(default=None),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    items = _service(db).timeline(
        start_date=start_date,
        end_date=end_date,
        project_id=project_id,
        team_member_id=team_member_id,
    )
    return {
        "items": items,
        "filters": {
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
            "project_id": str(project_id) if project_id else None,
            "team_member_id": str(team_member_id) if team_member_id else None,
        },
        "project_count": len(items),
        "conflict_count": sum(len(item["conflicts"]) for item in items),
    }


@router.get("/timeline/calendar/{year}/{month}")
def get_calendar_events(
    year: int = Path(ge=2000, le=2100),
    month: int = Path(ge=1, le=12),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    events = _service(db).calendar_events(year, month)
    return {"year": year, "month": month, "event_count": len(events), "events": events}
