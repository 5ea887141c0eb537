"""Shared fixtures: a validation policy pinned to a fixed 'today' and a real
SQLite-backed store per test."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from effort_tracker.db import init_db, make_engine
from effort_tracker.repository import SqlStore
from effort_tracker.settings import DEFAULT_DEPARTMENTS, DEFAULT_ENTRY_TYPES
from effort_tracker.staging import DraftStagingStore
from effort_tracker.validation import ValidationPolicy

TODAY = date(2024, 6, 15)


class TickingClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 6, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def policy() -> ValidationPolicy:
    return ValidationPolicy(
        departments=tuple(DEFAULT_DEPARTMENTS),
        entry_types=tuple(DEFAULT_ENTRY_TYPES),
        max_deal_name_length=50,
        max_description_length=1000,
        max_hours=200.0,
        min_date=date(2020, 1, 1),
    )


@pytest.fixture
def staging(policy) -> DraftStagingStore:
    return DraftStagingStore(policy, today=lambda: TODAY)


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def store(tmp_path) -> SqlStore:
    engine = make_engine(f"sqlite:///{tmp_path / 'effort.db'}")
    init_db(engine)
    return SqlStore(engine)


def fill(staging: DraftStagingStore, local_id: str, **values) -> None:
    base = {
        "deal_name": "Acme",
        "department": "Technology",
        "type": "Core",
        "hours_worked": "8",
        "task_date": "2024-05-01",
        "description": "",
    }
    base.update(values)
    for field, value in base.items():
        staging.update(local_id, field, value)
