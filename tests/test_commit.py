from __future__ import annotations

from datetime import date

from effort_tracker.commit import BatchCommitter
from effort_tracker.errors import StoreError

from conftest import fill


class _FailingStore:
    def __init__(self) -> None:
        self.calls = 0

    def insert_submissions(self, rows):
        self.calls += 1
        raise StoreError("connection reset")


class _RecordingStore:
    def __init__(self) -> None:
        self.batches = []

    def insert_submissions(self, rows):
        self.batches.append(rows)
        return len(rows)


def test_commit_single_entry_scenario(staging, store, clock) -> None:
    lid = staging.add()
    fill(staging, lid)
    assert staging.count() == 1
    assert staging.total_hours() == 8.0

    result = BatchCommitter(store, clock).commit(staging, "analyst@corp.com")

    assert result.ok
    assert result.committed == 1
    assert result.next_view == "entry"
    assert staging.count() == 0
    rows = store.list_submissions()
    assert len(rows) == 1
    row = rows[0]
    assert row.deal_name == "Acme"
    assert row.department == "Technology"
    assert row.type == "Core"
    assert row.hours_worked == 8.0
    assert row.task_date == date(2024, 5, 1)
    assert row.description == ""
    assert row.submitted_by == "analyst@corp.com"
    assert row.submitted_at is not None


def test_commit_issues_one_ordered_bulk_insert(staging, clock) -> None:
    for name in ("First", "Second", "Third"):
        fill(staging, staging.add(), deal_name=f"  {name} ")
    recorder = _RecordingStore()

    result = BatchCommitter(recorder, clock).commit(staging, "a@corp.com")

    assert result.ok
    assert len(recorder.batches) == 1
    batch = recorder.batches[0]
    assert [r["deal_name"] for r in batch] == ["First", "Second", "Third"]
    assert len({r["submitted_at"] for r in batch}) == 1
    assert all(isinstance(r["hours_worked"], float) for r in batch)


def test_empty_staging_rejected_without_store_call(staging, clock) -> None:
    failing = _FailingStore()
    result = BatchCommitter(failing, clock).commit(staging, "a@corp.com")
    assert not result.ok
    assert result.reason == "empty"
    assert failing.calls == 0


def test_invalid_batch_rejected_before_store(staging, clock) -> None:
    good, bad = staging.add(), staging.add()
    fill(staging, good)
    fill(staging, bad, task_date="2099-01-01")
    failing = _FailingStore()

    result = BatchCommitter(failing, clock).commit(staging, "a@corp.com")

    assert not result.ok
    assert result.reason == "validation"
    assert list(result.errors) == [1]
    assert failing.calls == 0
    assert staging.count() == 2


def test_store_failure_leaves_staging_untouched(staging, clock) -> None:
    a, b = staging.add(), staging.add()
    fill(staging, a, hours_worked="3.5")
    fill(staging, b, hours_worked="4.0")
    before = staging.entries()

    result = BatchCommitter(_FailingStore(), clock).commit(staging, "a@corp.com")

    assert not result.ok
    assert result.reason == "store"
    assert "connection reset" in result.message
    assert staging.entries() == before
    assert staging.total_hours() == 7.5


def test_retry_after_store_failure_succeeds(staging, store, clock) -> None:
    fill(staging, staging.add())
    assert not BatchCommitter(_FailingStore(), clock).commit(staging, "a@corp.com").ok
    assert BatchCommitter(store, clock).commit(staging, "a@corp.com").ok
    assert len(store.list_submissions()) == 1
    assert staging.count() == 0
