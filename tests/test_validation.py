from __future__ import annotations

from datetime import date, timedelta

import pytest

from effort_tracker.models import DraftEntry
from effort_tracker.validation import validate, validate_field

from conftest import TODAY


def _entry(**overrides) -> DraftEntry:
    values = dict(
        deal_name="Acme",
        department="Technology",
        type="Core",
        hours_worked="8",
        description="",
        task_date="2024-05-01",
    )
    values.update(overrides)
    return DraftEntry(**values)


def test_valid_entry_has_no_errors(policy) -> None:
    assert validate(_entry(), policy, TODAY) == {}


def test_blank_entry_reports_every_required_field(policy) -> None:
    errors = validate(DraftEntry(), policy, TODAY)
    assert set(errors) == {"deal_name", "department", "type", "hours_worked", "task_date"}
    assert errors["deal_name"] == "Deal name is required"
    assert errors["task_date"] == "Task date is required"


def test_deal_name_whitespace_only_is_blank(policy) -> None:
    assert validate(_entry(deal_name="   "), policy, TODAY)["deal_name"] == "Deal name is required"


def test_deal_name_length_ceiling(policy) -> None:
    assert "deal_name" not in validate(_entry(deal_name="x" * 50), policy, TODAY)
    assert "50 characters" in validate(_entry(deal_name="x" * 51), policy, TODAY)["deal_name"]


def test_unknown_department_and_type(policy) -> None:
    errors = validate(_entry(department="Marketing", type="Side quest"), policy, TODAY)
    assert "department" in errors
    assert "type" in errors


@pytest.mark.parametrize("hours", ["0", "-1", "-0.5", "abc", "nan", "inf"])
def test_non_positive_or_unparsable_hours_rejected(policy, hours) -> None:
    assert validate(_entry(hours_worked=hours), policy, TODAY)["hours_worked"] == "Hours must be greater than 0"


@pytest.mark.parametrize("hours", ["0.25", "1", "8", "199.99", "200"])
def test_hours_within_ceiling_accepted(policy, hours) -> None:
    assert "hours_worked" not in validate(_entry(hours_worked=hours), policy, TODAY)


def test_hours_above_ceiling_rejected(policy) -> None:
    assert validate(_entry(hours_worked="200.5"), policy, TODAY)["hours_worked"] == "Hours cannot exceed 200"


def test_description_optional_but_bounded(policy) -> None:
    assert "description" not in validate(_entry(description=""), policy, TODAY)
    assert "description" not in validate(_entry(description="y" * 1000), policy, TODAY)
    assert "description" in validate(_entry(description="y" * 1001), policy, TODAY)


def test_future_task_date_rejected(policy) -> None:
    tomorrow = (TODAY + timedelta(days=1)).isoformat()
    assert validate(_entry(task_date=tomorrow), policy, TODAY)["task_date"] == "Task date cannot be in the future"


@pytest.mark.parametrize("day", [date(2020, 1, 1), date(2022, 7, 4), TODAY])
def test_task_date_window_inclusive(policy, day) -> None:
    assert "task_date" not in validate(_entry(task_date=day.isoformat()), policy, TODAY)


def test_task_date_before_minimum_rejected(policy) -> None:
    assert validate(_entry(task_date="2019-12-31"), policy, TODAY)["task_date"] == "Task date cannot be before 2020"


def test_garbage_task_date_rejected(policy) -> None:
    assert "valid date" in validate(_entry(task_date="05/01/2024"), policy, TODAY)["task_date"]


def test_validation_is_deterministic(policy) -> None:
    entry = _entry(hours_worked="0", deal_name="")
    assert validate(entry, policy, TODAY) == validate(entry, policy, TODAY)


def test_validate_field_single_rule(policy) -> None:
    entry = _entry(hours_worked="300")
    assert validate_field(entry, "hours_worked", policy, TODAY) == "Hours cannot exceed 200"
    assert validate_field(entry, "deal_name", policy, TODAY) is None
    with pytest.raises(KeyError):
        validate_field(entry, "local_id", policy, TODAY)
