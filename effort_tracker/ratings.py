"""Rating reconciliation for committed entries.

A submission is *rated* once any rating row references it. Writes are keyed by
``(submission_id, rated_by)``: one rater holds at most one row per submission
and re-rating goes through an update of that row.

Per submission the status only moves forward::

    UNRATED --rate--> RATED --update/rate--> RATED

``rate`` performs a check-then-act (lookup, then insert or update). When the
insert loses against a concurrent insert for the same pair, the unique
constraint rejects it and the engine falls back to the update path.
"""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from .auth import AuthorizationPolicy
from .commit import utcnow
from .errors import AuthorizationError, DuplicateRatingError, RatingRangeError, UnknownRatingError
from .models import CommittedEntry, Rating
from .repository import PersistenceStore
from .settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class RatingStatus(enum.Enum):
    UNRATED = "unrated"
    RATED = "rated"


@dataclass(frozen=True)
class RatingRange:
    low: int = 1
    high: int = 10

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> "RatingRange":
        s = s or default_settings
        return cls(low=s.rating_min, high=s.rating_max)

    def check(self, value) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise RatingRangeError(f"Rating must be a whole number between {self.low} and {self.high}")
        if not self.low <= value <= self.high:
            raise RatingRangeError(f"Rating must be between {self.low} and {self.high}, got {value}")
        return value


@dataclass
class RatedEntry:
    entry: CommittedEntry
    ratings: List[Rating]
    own_rating: Optional[Rating] = None


@dataclass
class Partition:
    unrated: List[CommittedEntry] = field(default_factory=list)
    rated: List[RatedEntry] = field(default_factory=list)

    @property
    def pending_count(self) -> int:
        return len(self.unrated)

    @property
    def rated_count(self) -> int:
        return len(self.rated)

    def hours_by_department(self) -> Dict[str, float]:
        out: Dict[str, float] = {}
        entries = list(self.unrated) + [r.entry for r in self.rated]
        for e in entries:
            out[e.department] = out.get(e.department, 0.0) + e.hours_worked
        return out


@dataclass
class RatingOutcome:
    rating: Rating
    previous: RatingStatus
    transition: str          # inserted | updated


def status_of(entry: CommittedEntry, ratings: Iterable[Rating]) -> RatingStatus:
    return RatingStatus.RATED if any(r.submission_id == entry.id for r in ratings) else RatingStatus.UNRATED


def partition(entries: List[CommittedEntry], ratings: List[Rating], rater: Optional[str] = None) -> Partition:
    by_submission: Dict[int, List[Rating]] = {}
    for r in ratings:
        by_submission.setdefault(r.submission_id, []).append(r)

    ordered = sorted(entries, key=lambda e: (e.submitted_at, e.id), reverse=True)
    result = Partition()
    for entry in ordered:
        rows = by_submission.get(entry.id)
        if not rows:
            result.unrated.append(entry)
            continue
        own = next((r for r in rows if rater is not None and r.rated_by == rater), None)
        result.rated.append(RatedEntry(entry=entry, ratings=rows, own_rating=own))
    return result


class RatingEngine:
    def __init__(self, store: PersistenceStore, policy: AuthorizationPolicy,
                 rating_range: Optional[RatingRange] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.policy = policy
        self.rating_range = rating_range or RatingRange.from_settings()
        self.clock = clock

    def _authorize(self, identity: Optional[str]) -> str:
        if not identity or not self.policy.is_authorized(identity):
            logger.warning("Rating access denied for %r", identity)
            raise AuthorizationError()
        return identity

    def reconcile(self, identity: Optional[str]) -> Partition:
        rater = self._authorize(identity)
        entries = self.store.list_submissions()
        ratings = self.store.list_ratings()
        return partition(entries, ratings, rater=rater)

    def rate(self, identity: Optional[str], entry: CommittedEntry, value) -> RatingOutcome:
        rater = self._authorize(identity)
        value = self.rating_range.check(value)

        existing = self.store.find_rating(entry.id, rater)
        if existing is not None:
            return self._overwrite(existing, value)

        previous = RatingStatus.RATED if self.store.has_rating(entry.id) else RatingStatus.UNRATED
        row = {
            "submission_id": entry.id,
            "rated_by": rater,
            "rating": value,
            "analyst_name": entry.analyst_name,
            "deal_name": entry.deal_name,
            "department": entry.department,
            "type": entry.type,
            "task_date": entry.task_date,
            "rated_at": self.clock(),
        }
        try:
            rating_id = self.store.insert_rating(row)
        except DuplicateRatingError:
            existing = self.store.find_rating(entry.id, rater)
            if existing is None:
                raise
            logger.info("Concurrent rating for submission %s by %s, updating instead", entry.id, rater)
            return self._overwrite(existing, value)

        logger.info("Submission %s rated %s by %s", entry.id, value, rater)
        rating = self.store.get_rating(rating_id)
        if rating is None:
            rating = Rating(id=rating_id, **row)
        return RatingOutcome(rating=rating, previous=previous, transition="inserted")

    def update(self, identity: Optional[str], rating_id: int, value) -> RatingOutcome:
        rater = self._authorize(identity)
        value = self.rating_range.check(value)
        existing = self.store.get_rating(rating_id)
        if existing is None:
            raise UnknownRatingError(f"Rating {rating_id} not found")
        if existing.rated_by != rater:
            logger.warning("%s tried to edit rating %s owned by %s", rater, rating_id, existing.rated_by)
            raise AuthorizationError()
        return self._overwrite(existing, value)

    def _overwrite(self, existing: Rating, value: int) -> RatingOutcome:
        rated_at = self.clock()
        self.store.update_rating(existing.id, value, rated_at)
        logger.info("Rating %s for submission %s changed %s -> %s",
                    existing.id, existing.submission_id, existing.rating, value)
        updated = Rating(**{**existing.__dict__, "rating": value, "rated_at": rated_at})
        return RatingOutcome(rating=updated, previous=RatingStatus.RATED, transition="updated")
