"""Plain scheduling records the engine computes over.

Services build these from ORM rows so the engine never touches a session.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from siteplan.scheduling.intervals import Interval, require_days


@dataclass(frozen=True, slots=True)
class AssignmentSpan:
    id: UUID
    phase_id: UUID
    team_member_id: UUID
    working_percentage: int
    interval: Interval
    role: str = "team_member"
    active: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.working_percentage <= 100:
            raise ValueError("working_percentage must be between 0 and 100.")
        require_days(self.interval)


@dataclass(frozen=True, slots=True)
class PhaseSpan:
    id: UUID
    project_id: UUID
    name: str
    interval: Interval
    phase_order: int = 0
    status: str = "planned"

    def __post_init__(self) -> None:
        require_days(self.interval)
