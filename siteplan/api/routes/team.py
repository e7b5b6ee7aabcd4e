from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from siteplan.db.dependencies import get_db_session
from siteplan.models.entities import TeamRole
from siteplan.services.planning_service import PlanningService, TeamMemberCreateData, TeamMemberUpdateData
from siteplan.services.scheduling_service import SchedulingService, serialize_segment, serialize_snapshot

router = APIRouter(prefix="/team-members", tags=["team"])


class TeamMemberCreatePayload(BaseModel):
    display_name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    role: TeamRole = TeamRole.TEAM_MEMBER
    active: bool = True


class TeamMemberUpdatePayload(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    role: TeamRole | None = None
    active: bool | None = None


def _planning_service(db: Session) -> PlanningService:
    return PlanningService(db)


@router.get("")
def list_team_members(
    active_only: bool = Query(default=False),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _planning_service(db)
    return {
        "items": [
            service.serialize_team_member(member) for member in service.list_team_members(active_only=active_only)
        ]
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_team_member(payload: TeamMemberCreatePayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = _planning_service(db)
    member = service.create_team_member(
        TeamMemberCreateData(
            display_name=payload.display_name,
            email=payload.email,
            role=payload.role,
            active=payload.active,
        )
    )
    return service.serialize_team_member(member)


@router.get("/{team_member_id}")
def get_team_member(team_member_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = _planning_service(db)
    return service.serialize_team_member(service.get_team_member(team_member_id))


@router.patch("/{team_member_id}")
def update_team_member(
    team_member_id: UUID,
    payload: TeamMemberUpdatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _planning_service(db)
    member = service.update_team_member(
        team_member_id,
        TeamMemberUpdateData(
            display_name=payload.display_name,
            role=payload.role,
            active=payload.active,
        ),
    )
    return service.serialize_team_member(member)


@router.get("/{team_member_id}/workload")
def get_team_member_workload(
    team_member_id: UUID,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    snapshot, assignments = SchedulingService(db).member_workload(
        team_member_id,
        start_date=start_date,
        end_date=end_date,
    )
    return {
        **serialize_snapshot(snapshot),
        "assignments": [PlanningService.serialize_assignment(row) for row in assignments],
    }


@router.get("/{team_member_id}/workload/timeline")
def get_team_member_timeline(team_member_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    segments = SchedulingService(db).member_timeline(team_member_id)
    return {"items": [serialize_segment(segment) for segment in segments]}
