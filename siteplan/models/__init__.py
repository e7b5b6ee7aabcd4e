"""ORM model package."""

from siteplan.models.entities import (
    Assignment,
    ModificationEventRow,
    Phase,
    Project,
    Task,
    TeamMember,
)

__all__ = [
    "Assignment",
    "ModificationEventRow",
    "Phase",
    "Project",
    "Task",
    "TeamMember",
]
