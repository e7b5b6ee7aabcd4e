"""Allocation and conflict engine.

Pure functions over plain records; safe to call concurrently from any
request thread.
"""

from siteplan.scheduling.allocation import (
    WorkloadSegment,
    WorkloadSnapshot,
    is_overallocated,
    peak_allocation,
    total_allocation,
    workload_snapshot,
    workload_timeline,
)
from siteplan.scheduling.conflicts import (
    Conflict,
    ConflictType,
    detect_conflicts,
    detect_overallocation,
    detect_phase_overlaps,
)
from siteplan.scheduling.errors import (
    EntityNotFoundError,
    ErrorKind,
    InvalidIntervalError,
    QuotaExceededError,
    SchedulingError,
    VersionConflictError,
)
from siteplan.scheduling.intervals import Interval, duration_days, overlaps
from siteplan.scheduling.quota import ModificationEvent, ModificationLedger, can_consume, consume
from siteplan.scheduling.records import AssignmentSpan, PhaseSpan
from siteplan.scheduling.versioning import VersionedEntity, apply_update, ensure_version

__all__ = [
    "AssignmentSpan",
    "Conflict",
    "ConflictType",
    "EntityNotFoundError",
    "ErrorKind",
    "Interval",
    "InvalidIntervalError",
    "ModificationEvent",
    "ModificationLedger",
    "PhaseSpan",
    "QuotaExceededError",
    "SchedulingError",
    "VersionConflictError",
    "VersionedEntity",
    "WorkloadSegment",
    "WorkloadSnapshot",
    "apply_update",
    "can_consume",
    "consume",
    "detect_conflicts",
    "detect_overallocation",
    "detect_phase_overlaps",
    "duration_days",
    "ensure_version",
    "is_overallocated",
    "overlaps",
    "peak_allocation",
    "total_allocation",
    "workload_snapshot",
    "workload_timeline",
]
