"""Modification quota ledger.

A project allows a fixed number of client-requested scope modifications.
The ledger keeps every consumed modification as an event; only the event
count is capped, ``days_used`` is informational billing data.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from uuid import UUID

from siteplan.scheduling.errors import QuotaExceededError


@dataclass(frozen=True, slots=True)
class ModificationEvent:
    number: int
    days_used: int
    created_at: datetime
    description: str | None = None


@dataclass(frozen=True, slots=True)
class ModificationLedger:
    project_id: UUID
    total_allowed: int
    days_per_modification: int
    events: tuple[ModificationEvent, ...] = ()

    def __post_init__(self) -> None:
        if self.total_allowed < 0:
            raise ValueError("total_allowed must be >= 0.")
        if len(self.events) > self.total_allowed:
            raise ValueError("Ledger holds more events than allowed.")

    @property
    def used(self) -> int:
        return len(self.events)

    @property
    def remaining(self) -> int:
        return self.total_allowed - self.used

    @property
    def can_modify(self) -> bool:
        return self.remaining > 0

    @property
    def days_used(self) -> int:
        return sum(event.days_used for event in self.events)


def can_consume(ledger: ModificationLedger) -> bool:
    return len(ledger.events) < ledger.total_allowed


def consume(
    ledger: ModificationLedger,
    days_used: int,
    *,
    description: str | None = None,
    now: datetime | None = None,
) -> ModificationLedger:
    if not can_consume(ledger):
        raise QuotaExceededError(total_allowed=ledger.total_allowed, used=ledger.used)
    if days_used < 0:
        raise ValueError("days_used must be >= 0.")

    event = ModificationEvent(
        number=len(ledger.events) + 1,
        days_used=days_used,
        created_at=now or datetime.now(timezone.utc),
        description=description,
    )
    return replace(ledger, events=(*ledger.events, event))


def serialize_ledger(ledger: ModificationLedger) -> dict[str, object]:
    return {
        "project_id": str(ledger.project_id),
        "total_allowed": ledger.total_allowed,
        "total_used": ledger.used,
        "remaining": ledger.remaining,
        "days_per_modification": ledger.days_per_modification,
        "days_used": ledger.days_used,
        "can_modify": ledger.can_modify,
        "modifications": [
            {
                "number": event.number,
                "days_used": event.days_used,
                "description": event.description,
                "created_at": event.created_at.isoformat(),
            }
            for event in ledger.events
        ],
    }
