from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from effort_tracker.errors import DuplicateRatingError, StoreError
from effort_tracker.repository import SqlStore


def _row(name: str, at: datetime, **overrides) -> dict:
    row = {
        "submitted_by": "analyst@corp.com",
        "deal_name": name,
        "department": "AMP",
        "type": "Project",
        "hours_worked": 2.5,
        "description": "notes",
        "task_date": date(2024, 3, 1),
        "submitted_at": at,
    }
    row.update(overrides)
    return row


def _rating(submission_id: int, rated_by: str, value: int, at: datetime) -> dict:
    return {
        "submission_id": submission_id,
        "rated_by": rated_by,
        "rating": value,
        "analyst_name": "Analyst",
        "deal_name": "Deal",
        "department": "AMP",
        "type": "Project",
        "task_date": date(2024, 3, 1),
        "rated_at": at,
    }


T1 = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
T2 = datetime(2024, 6, 2, 10, 0, tzinfo=timezone.utc)


def test_submissions_listed_newest_first(store) -> None:
    store.insert_submissions([_row("old", T1)])
    store.insert_submissions([_row("new", T2)])
    assert [s.deal_name for s in store.list_submissions()] == ["new", "old"]


def test_bulk_insert_is_all_or_nothing(store) -> None:
    rows = [_row("ok", T1), _row("bad", T1, hours_worked=-1.0)]
    with pytest.raises(StoreError):
        store.insert_submissions(rows)
    assert store.list_submissions() == []


def test_insert_and_find_rating(store) -> None:
    store.insert_submissions([_row("deal", T1)])
    sid = store.list_submissions()[0].id
    rid = store.insert_rating(_rating(sid, "boss@corp.com", 7, T2))
    found = store.find_rating(sid, "boss@corp.com")
    assert found.id == rid
    assert found.rating == 7
    assert found.task_date == date(2024, 3, 1)
    assert store.find_rating(sid, "other@corp.com") is None


def test_duplicate_rating_for_same_rater_rejected(store) -> None:
    store.insert_submissions([_row("deal", T1)])
    sid = store.list_submissions()[0].id
    store.insert_rating(_rating(sid, "boss@corp.com", 7, T1))
    with pytest.raises(DuplicateRatingError):
        store.insert_rating(_rating(sid, "boss@corp.com", 3, T2))
    store.insert_rating(_rating(sid, "other@corp.com", 3, T2))
    assert len(store.list_ratings()) == 2


def test_rating_for_missing_submission_is_store_error(store) -> None:
    with pytest.raises(StoreError) as exc:
        store.insert_rating(_rating(999, "boss@corp.com", 5, T1))
    assert not isinstance(exc.value, DuplicateRatingError)


def test_update_rating_overwrites_value(store) -> None:
    store.insert_submissions([_row("deal", T1)])
    sid = store.list_submissions()[0].id
    rid = store.insert_rating(_rating(sid, "boss@corp.com", 7, T1))
    store.update_rating(rid, 9, T2)
    rating = store.get_rating(rid)
    assert rating.rating == 9
    assert rating.rated_at == T2
    assert rating.submission_id == sid


def test_update_missing_rating_raises(store) -> None:
    with pytest.raises(StoreError):
        store.update_rating(42, 5, T1)


def test_unreachable_database_raises_store_error(tmp_path) -> None:
    from effort_tracker.db import make_engine

    engine = make_engine(f"sqlite:///{tmp_path / 'never_initialised.db'}")
    with pytest.raises(StoreError):
        SqlStore(engine).list_submissions()


def test_has_rating_ignores_rater(store) -> None:
    store.insert_submissions([_row("rated", T1), _row("fresh", T2)])
    fresh, rated = store.list_submissions()
    store.insert_rating(_rating(rated.id, "boss@corp.com", 7, T1))
    assert store.has_rating(rated.id)
    assert not store.has_rating(fresh.id)


def test_non_sqlite_url_rejected() -> None:
    from effort_tracker.db import make_engine

    with pytest.raises(StoreError):
        make_engine("postgresql://user@localhost/effort")
