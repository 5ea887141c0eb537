from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Dict, List, Optional

from .models import DRAFT_FIELDS, DraftEntry, ErrorMap
from .validation import ValidationPolicy, parse_hours, validate

logger = logging.getLogger(__name__)


@dataclass
class StagingResult:
    ready: List[DraftEntry] = field(default_factory=list)
    errors: Dict[int, ErrorMap] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


class DraftStagingStore:
    """Ordered, in-memory collection of entries that have not been committed.

    Validation errors are kept per position (the index shown next to each
    card), so removing an entry shifts the errors of every later entry down
    by one.
    """

    def __init__(self, policy: ValidationPolicy, today: Optional[Callable[[], date]] = None):
        self.policy = policy
        self._today = today or date.today
        self._entries: List[DraftEntry] = []
        self._errors: Dict[int, ErrorMap] = {}

    def _index_of(self, local_id: str) -> Optional[int]:
        for i, entry in enumerate(self._entries):
            if entry.local_id == local_id:
                return i
        return None

    def add(self) -> str:
        entry = DraftEntry()
        self._entries.append(entry)
        return entry.local_id

    def update(self, local_id: str, field_name: str, value) -> None:
        idx = self._index_of(local_id)
        if idx is None or field_name not in DRAFT_FIELDS:
            return
        setattr(self._entries[idx], field_name, "" if value is None else str(value))
        errors = self._errors.get(idx)
        if errors and field_name in errors:
            errors.pop(field_name)
            if not errors:
                del self._errors[idx]

    def remove(self, local_id: str) -> None:
        idx = self._index_of(local_id)
        if idx is None:
            return
        del self._entries[idx]
        reindexed: Dict[int, ErrorMap] = {}
        for key, errs in self._errors.items():
            if key < idx:
                reindexed[key] = errs
            elif key > idx:
                reindexed[key - 1] = errs
        self._errors = reindexed

    def check(self, local_id: str) -> ErrorMap:
        idx = self._index_of(local_id)
        if idx is None:
            return {}
        errs = validate(self._entries[idx], self.policy, self._today())
        if errs:
            self._errors[idx] = dict(errs)
        else:
            self._errors.pop(idx, None)
        return errs

    def commit_all(self) -> StagingResult:
        today = self._today()
        errors: Dict[int, ErrorMap] = {}
        for i, entry in enumerate(self._entries):
            errs = validate(entry, self.policy, today)
            if errs:
                errors[i] = errs
        self._errors = {i: dict(e) for i, e in errors.items()}
        if errors:
            logger.debug("Staging rejected: %d of %d entries invalid", len(errors), len(self._entries))
            return StagingResult(errors=errors)
        return StagingResult(ready=self.entries())

    def clear(self) -> None:
        self._entries = []
        self._errors = {}

    def entries(self) -> List[DraftEntry]:
        return [replace(e) for e in self._entries]

    def get(self, local_id: str) -> Optional[DraftEntry]:
        idx = self._index_of(local_id)
        return replace(self._entries[idx]) if idx is not None else None

    def errors_for(self, index: int) -> ErrorMap:
        return dict(self._errors.get(index, {}))

    def all_errors(self) -> Dict[int, ErrorMap]:
        return {i: dict(e) for i, e in self._errors.items()}

    def count(self) -> int:
        return len(self._entries)

    def total_hours(self) -> float:
        total = 0.0
        for entry in self._entries:
            hours = parse_hours(entry.hours_worked)
            if hours is not None and hours > 0:
                total += hours
        return total

    def hours_by_department(self) -> Dict[str, float]:
        out: Dict[str, float] = {}
        for entry in self._entries:
            hours = parse_hours(entry.hours_worked)
            if hours is None or hours <= 0 or not entry.department:
                continue
            out[entry.department] = out.get(entry.department, 0.0) + hours
        return out
