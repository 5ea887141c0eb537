from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .errors import StoreError
from .models import DraftEntry, ErrorMap
from .repository import PersistenceStore
from .staging import DraftStagingStore
from .validation import parse_hours, parse_task_date

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CommitResult:
    ok: bool
    committed: int = 0
    reason: Optional[str] = None        # empty | validation | store
    message: Optional[str] = None
    errors: Dict[int, ErrorMap] = field(default_factory=dict)
    next_view: Optional[str] = None


def to_row(entry: DraftEntry, submitted_by: str, submitted_at: datetime) -> Dict[str, Any]:
    return {
        "submitted_by": submitted_by,
        "deal_name": entry.deal_name.strip(),
        "department": entry.department,
        "type": entry.type,
        "hours_worked": parse_hours(entry.hours_worked),
        "description": (entry.description or "").strip(),
        "task_date": parse_task_date(entry.task_date),
        "submitted_at": submitted_at,
    }


class BatchCommitter:
    """Flushes the whole staging collection into the store in one insert.

    Staging is cleared only after the store reports success; any rejection
    leaves it exactly as it was so the user can fix or retry.
    """

    def __init__(self, store: PersistenceStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def commit(self, staging: DraftStagingStore, submitted_by: str) -> CommitResult:
        if staging.count() == 0:
            return CommitResult(ok=False, reason="empty", message="Nothing to submit")

        checked = staging.commit_all()
        if not checked.ok:
            n = len(checked.errors)
            return CommitResult(
                ok=False,
                reason="validation",
                message=f"Please fix the validation errors in {n} entr{'y' if n == 1 else 'ies'} before submitting",
                errors=checked.errors,
            )

        submitted_at = self.clock()
        rows: List[Dict[str, Any]] = [to_row(e, submitted_by, submitted_at) for e in checked.ready]
        try:
            count = self.store.insert_submissions(rows)
        except StoreError as e:
            logger.error("Batch commit for %s failed, %d entries kept in staging: %s",
                         submitted_by, len(rows), e)
            return CommitResult(ok=False, reason="store", message=str(e))

        staging.clear()
        logger.info("Committed %d entries for %s", count, submitted_by)
        return CommitResult(ok=True, committed=count, next_view="entry")
