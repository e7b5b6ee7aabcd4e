"""Error taxonomy of the allocation and conflict engine."""

from __future__ import annotations

import enum
from uuid import UUID


class ErrorKind(str, enum.Enum):
    INVALID_INTERVAL = "invalid_interval"
    STALE_VERSION = "stale_version"
    QUOTA_EXCEEDED = "quota_exceeded"
    NOT_FOUND = "not_found"


class SchedulingError(Exception):
    """Base class for hard engine errors.

    Over-allocation and overlapping phases are valid states and are reported
    as conflicts, never raised.
    """

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict[str, object]:
        return {"kind": self.kind.value, "message": self.message}


class InvalidIntervalError(SchedulingError, ValueError):
    kind = ErrorKind.INVALID_INTERVAL


class VersionConflictError(SchedulingError):
    """Supplied version does not match the stored one."""

    kind = ErrorKind.STALE_VERSION

    def __init__(
        self,
        *,
        entity: str,
        entity_id: UUID | str,
        supplied_version: int,
        current_version: int | None,
    ) -> None:
        super().__init__(
            f"{entity} {entity_id} was modified by another user "
            f"(supplied version {supplied_version}, current version {current_version}). "
            "Reload and try again."
        )
        self.entity = entity
        self.entity_id = entity_id
        self.supplied_version = supplied_version
        self.current_version = current_version

    def to_detail(self) -> dict[str, object]:
        return {
            **super().to_detail(),
            "entity": self.entity,
            "entity_id": str(self.entity_id),
            "supplied_version": self.supplied_version,
            "current_version": self.current_version,
        }


class QuotaExceededError(SchedulingError):
    kind = ErrorKind.QUOTA_EXCEEDED

    def __init__(self, *, total_allowed: int, used: int) -> None:
        super().__init__(
            f"Modification limit reached. {used} of {total_allowed} allowed modifications used."
        )
        self.total_allowed = total_allowed
        self.used = used

    @property
    def remaining(self) -> int:
        return max(0, self.total_allowed - self.used)

    def to_detail(self) -> dict[str, object]:
        return {
            **super().to_detail(),
            "total_allowed": self.total_allowed,
            "used": self.used,
            "remaining": self.remaining,
        }


class EntityNotFoundError(SchedulingError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, *, entity: str, entity_id: UUID | str) -> None:
        super().__init__(f"{entity} {entity_id} not found.")
        self.entity = entity
        self.entity_id = entity_id

    def to_detail(self) -> dict[str, object]:
        return {**super().to_detail(), "entity": self.entity, "entity_id": str(self.entity_id)}
