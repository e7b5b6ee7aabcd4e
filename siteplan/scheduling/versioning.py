"""Optimistic concurrency control for versioned scheduling records.

Every Project, Phase and Task carries an integer version starting at 1. A
write must supply the version it last read; a mismatch is rejected and
never merged. The storage layer completes the contract with a conditional
``UPDATE ... WHERE id = :id AND version = :expected`` so that of two
concurrent writers exactly one wins.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any
from uuid import UUID

from siteplan.scheduling.errors import VersionConflictError

INITIAL_VERSION = 1


@dataclass(frozen=True, slots=True)
class VersionedEntity:
    """Immutable view of a versioned row: identity, version and field values."""

    entity: str
    entity_id: UUID
    version: int
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.version < INITIAL_VERSION:
            raise ValueError("version must be >= 1.")
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @classmethod
    def of(cls, row: Any, *, entity: str, fields: tuple[str, ...]) -> VersionedEntity:
        """Snapshot ``fields`` of an ORM row that exposes ``id`` and ``version``."""

        return cls(
            entity=entity,
            entity_id=row.id,
            version=row.version,
            fields={name: getattr(row, name) for name in fields},
        )

    def changed_fields(self, other: VersionedEntity) -> dict[str, Any]:
        return {
            name: value
            for name, value in other.fields.items()
            if name not in self.fields or self.fields[name] != value
        }


def next_version(current_version: int) -> int:
    return current_version + 1


def ensure_version(current: VersionedEntity, supplied_version: int) -> None:
    if supplied_version != current.version:
        raise VersionConflictError(
            entity=current.entity,
            entity_id=current.entity_id,
            supplied_version=supplied_version,
            current_version=current.version,
        )


def apply_update(
    current: VersionedEntity,
    supplied_version: int,
    changes: Mapping[str, Any],
) -> VersionedEntity:
    """Return the updated entity at ``version + 1``; ``current`` is untouched."""

    ensure_version(current, supplied_version)
    unknown = set(changes) - set(current.fields)
    if unknown:
        raise KeyError(f"Unknown fields for {current.entity}: {', '.join(sorted(unknown))}")
    return VersionedEntity(
        entity=current.entity,
        entity_id=current.entity_id,
        version=next_version(current.version),
        fields={**current.fields, **changes},
    )
