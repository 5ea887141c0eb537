from __future__ import annotations
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional

ErrorMap = Dict[str, str]

DRAFT_FIELDS = ("deal_name", "department", "type", "hours_worked", "description", "task_date")


def _new_local_id() -> str:
    return uuid.uuid4().hex


@dataclass
class DraftEntry:
    local_id: str = field(default_factory=_new_local_id)
    deal_name: str = ""
    department: str = ""
    type: str = ""
    hours_worked: str = ""   # raw form text, parsed on validate/commit
    description: str = ""
    task_date: str = ""      # ISO YYYY-MM-DD or ''

    def form_values(self) -> Dict[str, str]:
        return {f: getattr(self, f) for f in DRAFT_FIELDS}


@dataclass
class CommittedEntry:
    id: int
    submitted_by: str
    deal_name: str
    department: str
    type: str
    hours_worked: float
    description: str
    task_date: date
    submitted_at: datetime

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CommittedEntry":
        return cls(
            id=int(row["id"]),
            submitted_by=row["submitted_by"],
            deal_name=row["deal_name"],
            department=row["department"],
            type=row["type"],
            hours_worked=float(row["hours_worked"]),
            description=row["description"] or "",
            task_date=date.fromisoformat(str(row["task_date"])),
            submitted_at=datetime.fromisoformat(str(row["submitted_at"])),
        )

    @property
    def analyst_name(self) -> str:
        return analyst_display_name(self.submitted_by)


@dataclass
class Rating:
    id: int
    submission_id: int
    rated_by: str
    rating: int
    analyst_name: str
    deal_name: str
    department: str
    type: str
    task_date: Optional[date]
    rated_at: datetime

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Rating":
        return cls(
            id=int(row["id"]),
            submission_id=int(row["submission_id"]),
            rated_by=row["rated_by"],
            rating=int(row["rating"]),
            analyst_name=row["analyst_name"] or "",
            deal_name=row["deal_name"] or "",
            department=row["department"] or "",
            type=row["type"] or "",
            task_date=date.fromisoformat(str(row["task_date"])) if row["task_date"] else None,
            rated_at=datetime.fromisoformat(str(row["rated_at"])),
        )


def analyst_display_name(identity: str) -> str:
    """'harshal.mali@corp.com' -> 'Harshal Mali'."""
    local = (identity or "").split("@", 1)[0]
    parts = [p for p in local.replace("_", ".").split(".") if p]
    return " ".join(p[:1].upper() + p[1:] for p in parts) or identity
