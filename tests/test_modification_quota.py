from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest

from siteplan.scheduling.errors import ErrorKind, QuotaExceededError
from siteplan.scheduling.quota import ModificationLedger, can_consume, consume, serialize_ledger


def _ledger(total_allowed: int = 2, days_per_modification: int = 5) -> ModificationLedger:
    return ModificationLedger(
        project_id=uuid.uuid4(),
        total_allowed=total_allowed,
        days_per_modification=days_per_modification,
    )


def test_consume_until_quota_is_exhausted() -> None:
    ledger = _ledger(total_allowed=2)

    ledger = consume(ledger, 5, description="Extra window on level 2")
    ledger = consume(ledger, 5)

    assert ledger.used == 2
    assert ledger.remaining == 0
    assert ledger.can_modify is False
    assert ledger.days_used == 10
    assert [event.number for event in ledger.events] == [1, 2]

    with pytest.raises(QuotaExceededError) as exc_info:
        consume(ledger, 5)

    error = exc_info.value
    assert error.kind == ErrorKind.QUOTA_EXCEEDED
    assert error.remaining == 0
    assert error.to_detail()["total_allowed"] == 2
    assert ledger.used == 2
    assert len(ledger.events) == 2


def test_consume_does_not_mutate_input() -> None:
    ledger = _ledger(total_allowed=3)

    updated = consume(ledger, 2)

    assert ledger.events == ()
    assert updated.used == 1
    assert can_consume(updated) is True


def test_zero_allowed_rejects_first_modification() -> None:
    with pytest.raises(QuotaExceededError):
        consume(_ledger(total_allowed=0), 5)


def test_negative_days_are_rejected() -> None:
    with pytest.raises(ValueError):
        consume(_ledger(), -1)


def test_ledger_cannot_hold_more_events_than_allowed() -> None:
    ledger = consume(_ledger(total_allowed=1), 5)

    with pytest.raises(ValueError):
        ModificationLedger(
            project_id=ledger.project_id,
            total_allowed=0,
            days_per_modification=5,
            events=ledger.events,
        )


def test_serialize_ledger() -> None:
    created_at = datetime(2026, 10, 1, 9, 30, tzinfo=timezone.utc)
    ledger = consume(_ledger(total_allowed=3), 4, description="Kitchen layout", now=created_at)

    payload = serialize_ledger(ledger)

    assert payload["total_allowed"] == 3
    assert payload["total_used"] == 1
    assert payload["remaining"] == 2
    assert payload["days_used"] == 4
    assert payload["can_modify"] is True
    assert payload["modifications"] == [
        {
            "number": 1,
            "days_used": 4,
            "description": "Kitchen layout",
            "created_at": "2026-10-01T09:30:00+00:00",
        }
    ]
