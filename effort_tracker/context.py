from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Optional, Set

from .commit import utcnow
from .errors import DuplicateActionError
from .staging import DraftStagingStore
from .validation import ValidationPolicy

logger = logging.getLogger(__name__)

VIEWS = ("entry", "review", "admin")


class ActionGuard:
    """Keys of actions currently waiting on the store; UI controls bound to a
    busy key are rendered disabled.

    In Streamlit a button callback acquires the key before the rerun that
    performs the action, so that rerun already renders the control disabled;
    the action releases the key when the store call resolves.
    """

    def __init__(self) -> None:
        self._busy: Set[str] = set()

    def is_busy(self, key: str) -> bool:
        return key in self._busy

    def acquire(self, key: str) -> None:
        if key in self._busy:
            raise DuplicateActionError(f"{key} is already in progress")
        self._busy.add(key)

    def release(self, key: str) -> None:
        self._busy.discard(key)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        self.acquire(key)
        try:
            yield
        finally:
            self.release(key)


def rating_key(submission_id: int) -> str:
    return f"rating:{submission_id}"


COMMIT_KEY = "commit"


@dataclass
class AppContext:
    identity: str
    staging: DraftStagingStore
    is_admin: bool = False
    view: str = "entry"
    guard: ActionGuard = field(default_factory=ActionGuard)
    started_at: datetime = field(default_factory=utcnow)

    def navigate(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"unknown view {view!r}")
        if view == "admin" and not self.is_admin:
            logger.warning("%s tried to open the admin view", self.identity)
        self.view = view


def start_session(identity: str, policy: ValidationPolicy, is_admin: bool = False) -> AppContext:
    ctx = AppContext(identity=identity, staging=DraftStagingStore(policy), is_admin=is_admin)
    ctx.staging.add()
    logger.info("Session started for %s (admin=%s)", identity, is_admin)
    return ctx


def end_session(ctx: Optional[AppContext]) -> None:
    if ctx is None:
        return
    ctx.staging.clear()
    logger.info("Session ended for %s", ctx.identity)
