from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .errors import DuplicateRatingError, StoreError
from .models import CommittedEntry, Rating

logger = logging.getLogger(__name__)

_SUBMISSION_COLUMNS = (
    "id, submitted_by, deal_name, department, type, hours_worked, description, task_date, submitted_at"
)
_RATING_COLUMNS = (
    "id, submission_id, rated_by, rating, analyst_name, deal_name, department, type, task_date, rated_at"
)


class PersistenceStore(Protocol):
    def insert_submissions(self, rows: List[Dict[str, Any]]) -> int: ...
    def list_submissions(self) -> List[CommittedEntry]: ...
    def insert_rating(self, row: Dict[str, Any]) -> int: ...
    def update_rating(self, rating_id: int, value: int, rated_at: datetime) -> None: ...
    def list_ratings(self) -> List[Rating]: ...
    def get_rating(self, rating_id: int) -> Optional[Rating]: ...
    def find_rating(self, submission_id: int, rated_by: str) -> Optional[Rating]: ...
    def has_rating(self, submission_id: int) -> bool: ...


class SqlStore:
    """`submissions` and `ratings` tables behind a SQLAlchemy engine.

    Every call runs in its own transaction and turns driver failures into
    StoreError so callers only deal with one error type.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def insert_submissions(self, rows: List[Dict[str, Any]]) -> int:
        if not rows:
            return 0
        params = [
            {**r, "task_date": str(r["task_date"]), "submitted_at": r["submitted_at"].isoformat()}
            for r in rows
        ]
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    text("""INSERT INTO submissions
                            (submitted_by, deal_name, department, type, hours_worked, description, task_date, submitted_at)
                            VALUES (:submitted_by, :deal_name, :department, :type, :hours_worked, :description,
                                    :task_date, :submitted_at)"""),
                    params,
                )
        except SQLAlchemyError as e:
            logger.error("Bulk insert of %d submissions failed: %s", len(rows), e)
            raise StoreError(f"Failed to save entries: {e}") from e
        return len(params)

    def list_submissions(self) -> List[CommittedEntry]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    text(f"SELECT {_SUBMISSION_COLUMNS} FROM submissions ORDER BY submitted_at DESC, id DESC")
                ).mappings().all()
        except SQLAlchemyError as e:
            logger.error("Loading submissions failed: %s", e)
            raise StoreError(f"Failed to fetch submissions: {e}") from e
        return [CommittedEntry.from_row(dict(r)) for r in rows]

    def insert_rating(self, row: Dict[str, Any]) -> int:
        params = {
            **row,
            "task_date": str(row["task_date"]) if row.get("task_date") else None,
            "rated_at": row["rated_at"].isoformat(),
        }
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    text("""INSERT INTO ratings
                            (submission_id, rated_by, rating, analyst_name, deal_name, department, type, task_date, rated_at)
                            VALUES (:submission_id, :rated_by, :rating, :analyst_name, :deal_name, :department, :type,
                                    :task_date, :rated_at)"""),
                    params,
                )
                return int(result.lastrowid)
        except IntegrityError as e:
            if "UNIQUE" not in str(e.orig).upper():
                logger.error("Insert rating for submission %s rejected: %s", row.get("submission_id"), e)
                raise StoreError(f"Failed to submit rating: {e.orig}") from e
            raise DuplicateRatingError(
                f"Submission {row['submission_id']} already rated by {row['rated_by']}"
            ) from e
        except SQLAlchemyError as e:
            logger.error("Insert rating for submission %s failed: %s", row.get("submission_id"), e)
            raise StoreError(f"Failed to submit rating: {e}") from e

    def update_rating(self, rating_id: int, value: int, rated_at: datetime) -> None:
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    text("UPDATE ratings SET rating=:rating, rated_at=:rated_at WHERE id=:id"),
                    {"id": rating_id, "rating": value, "rated_at": rated_at.isoformat()},
                )
                if result.rowcount == 0:
                    raise StoreError(f"Rating {rating_id} no longer exists")
        except SQLAlchemyError as e:
            logger.error("Update rating %s failed: %s", rating_id, e)
            raise StoreError(f"Failed to update rating: {e}") from e

    def list_ratings(self) -> List[Rating]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    text(f"SELECT {_RATING_COLUMNS} FROM ratings ORDER BY rated_at DESC, id DESC")
                ).mappings().all()
        except SQLAlchemyError as e:
            logger.error("Loading ratings failed: %s", e)
            raise StoreError(f"Failed to fetch ratings: {e}") from e
        return [Rating.from_row(dict(r)) for r in rows]

    def get_rating(self, rating_id: int) -> Optional[Rating]:
        return self._one(f"SELECT {_RATING_COLUMNS} FROM ratings WHERE id=:id", {"id": rating_id})

    def find_rating(self, submission_id: int, rated_by: str) -> Optional[Rating]:
        return self._one(
            f"SELECT {_RATING_COLUMNS} FROM ratings WHERE submission_id=:sid AND rated_by=:by",
            {"sid": submission_id, "by": rated_by},
        )

    def has_rating(self, submission_id: int) -> bool:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    text("SELECT 1 FROM ratings WHERE submission_id=:sid LIMIT 1"), {"sid": submission_id}
                ).first()
        except SQLAlchemyError as e:
            logger.error("Rating lookup failed: %s", e)
            raise StoreError(f"Failed to fetch rating: {e}") from e
        return row is not None

    def _one(self, sql: str, params: Dict[str, Any]) -> Optional[Rating]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(text(sql), params).mappings().first()
        except SQLAlchemyError as e:
            logger.error("Rating lookup failed: %s", e)
            raise StoreError(f"Failed to fetch rating: {e}") from e
        return Rating.from_row(dict(row)) if row else None
