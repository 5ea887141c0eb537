"""Field rules for a single draft entry.

Every rule runs; the result maps field name to message and is empty when the
entry is valid. The same function backs incremental form feedback and the
final gate before a batch commit.
"""
from __future__ import annotations
import math
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from .models import DRAFT_FIELDS, DraftEntry, ErrorMap
from .settings import Settings, settings as default_settings


@dataclass(frozen=True)
class ValidationPolicy:
    departments: Tuple[str, ...]
    entry_types: Tuple[str, ...]
    max_deal_name_length: int = 50
    max_description_length: int = 1000
    max_hours: float = 200.0
    min_date: date = date(2020, 1, 1)

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> "ValidationPolicy":
        s = s or default_settings
        return cls(
            departments=tuple(s.departments),
            entry_types=tuple(s.entry_types),
            max_deal_name_length=s.max_deal_name_length,
            max_description_length=s.max_description_length,
            max_hours=float(s.max_hours_per_entry),
            min_date=s.min_task_date,
        )


def parse_hours(raw) -> Optional[float]:
    if raw is None:
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_task_date(raw) -> Optional[date]:
    if isinstance(raw, date):
        return raw
    text = str(raw or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def _check_deal_name(value: str, policy: ValidationPolicy) -> Optional[str]:
    if not (value or "").strip():
        return "Deal name is required"
    if len(value) > policy.max_deal_name_length:
        return f"Deal name must be {policy.max_deal_name_length} characters or less"
    return None


def _check_department(value: str, policy: ValidationPolicy) -> Optional[str]:
    if not value:
        return "Department is required"
    if value not in policy.departments:
        return f"Unknown department: {value}"
    return None


def _check_type(value: str, policy: ValidationPolicy) -> Optional[str]:
    if not value:
        return "Type is required"
    if value not in policy.entry_types:
        return f"Unknown type: {value}"
    return None


def _check_hours(value: str, policy: ValidationPolicy) -> Optional[str]:
    if not str(value or "").strip():
        return "Hours worked is required"
    hours = parse_hours(value)
    if hours is None or hours <= 0:
        return "Hours must be greater than 0"
    if hours > policy.max_hours:
        return f"Hours cannot exceed {policy.max_hours:g}"
    return None


def _check_description(value: str, policy: ValidationPolicy) -> Optional[str]:
    if (value or "").strip() and len(value) > policy.max_description_length:
        return f"Description must be {policy.max_description_length} characters or less"
    return None


def _check_task_date(value: str, policy: ValidationPolicy, today: date) -> Optional[str]:
    if not str(value or "").strip():
        return "Task date is required"
    task_date = parse_task_date(value)
    if task_date is None:
        return "Task date must be a valid date (YYYY-MM-DD)"
    if task_date > today:
        return "Task date cannot be in the future"
    if task_date < policy.min_date:
        return f"Task date cannot be before {policy.min_date.year}"
    return None


def validate_field(entry: DraftEntry, field: str, policy: ValidationPolicy,
                   today: Optional[date] = None) -> Optional[str]:
    if field not in DRAFT_FIELDS:
        raise KeyError(field)
    value = getattr(entry, field)
    if field == "task_date":
        return _check_task_date(value, policy, today or date.today())
    checks = {
        "deal_name": _check_deal_name,
        "department": _check_department,
        "type": _check_type,
        "hours_worked": _check_hours,
        "description": _check_description,
    }
    return checks[field](value, policy)


def validate(entry: DraftEntry, policy: ValidationPolicy, today: Optional[date] = None) -> ErrorMap:
    today = today or date.today()
    errors: ErrorMap = {}
    for field in DRAFT_FIELDS:
        message = validate_field(entry, field, policy, today)
        if message:
            errors[field] = message
    return errors
