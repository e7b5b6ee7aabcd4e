from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from siteplan.db.dependencies import get_db_session
from siteplan.scheduling.quota import serialize_ledger
from siteplan.services.modification_service import ModificationCreateData, ModificationService

router = APIRouter(prefix="/projects/{project_id}/modifications", tags=["modifications"])


class ModificationCreatePayload(BaseModel):
    description: str | None = Field(default=None, max_length=2000)
    days_used: int | None = Field(default=None, ge=0)


@router.get("")
def get_modification_ledger(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    return serialize_ledger(ModificationService(db).get_ledger(project_id))


@router.post("", status_code=status.HTTP_201_CREATED)
def record_modification(
    project_id: UUID,
    payload: ModificationCreatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    ledger = ModificationService(db).record_modification(
        project_id,
        ModificationCreateData(description=payload.description, days_used=payload.days_used),
    )
    return serialize_ledger(ledger)
