from __future__ import annotations
from typing import Dict


class EffortTrackerError(Exception):
    pass


class EntryValidationError(EffortTrackerError):
    def __init__(self, errors: Dict[int, Dict[str, str]]):
        self.errors = errors
        super().__init__(f"{len(errors)} entr{'y' if len(errors) == 1 else 'ies'} failed validation")


class StoreError(EffortTrackerError):
    pass


class DuplicateRatingError(StoreError):
    pass


class AuthorizationError(EffortTrackerError):
    def __init__(self) -> None:
        super().__init__("access denied")


class RatingRangeError(EffortTrackerError, ValueError):
    pass


class UnknownRatingError(EffortTrackerError, LookupError):
    pass


class DuplicateActionError(EffortTrackerError):
    pass
