from datetime import date

import pytest

from src.portal.validation import (
    FormValidationError,
    is_valid_email,
    parse_int,
    parse_number,
    raise_if_errors,
    require_str,
    validate_date_iso,
    validate_email,
    validate_url,
)


def test_require_str_min_length():
    errors = {}
    require_str({"name": " A "}, "name", errors, label="Name", min_length=2)
    assert errors == {"name": "Name must be at least 2 characters"}


def test_first_error_per_field_is_kept():
    errors = {}
    parse_number({"rate": "-5"}, "rate", errors, positive=True, min_value=0)
    assert errors == {"rate": "rate must be positive"}


def test_parse_int_bounds():
    errors = {}
    assert parse_int({"months": "99"}, "months", errors, min_value=1, max_value=60) == 99
    assert errors["months"] == "months must be at most 60"

    errors = {}
    assert parse_int({"months": "six"}, "months", errors) == 0
    assert errors["months"] == "months must be a whole number"


def test_parse_int_accepts_integral_floats():
    errors = {}
    assert parse_int({"working_hours": 36.0}, "working_hours", errors) == 36
    parse_int({"working_hours": 36.5}, "working_hours", errors)
    assert errors == {"working_hours": "working_hours must be a whole number"}


@pytest.mark.parametrize("raw", ["nan", "inf", "-Infinity", float("nan"), float("inf")])
def test_non_finite_numbers_are_rejected(raw):
    errors = {}
    assert parse_number({"salary": raw}, "salary", errors, min_value=0) is None
    assert errors == {"salary": "salary must be a number"}

    errors = {}
    assert parse_int({"vacation_days": raw}, "vacation_days", errors, min_value=20) == 0
    assert errors == {"vacation_days": "vacation_days must be a whole number"}


def test_missing_values():
    errors = {}
    assert parse_number({}, "salary", errors) is None
    assert errors == {}

    parse_int({"paymentTermsDays": ""}, "paymentTermsDays", errors, required=True)
    assert errors == {"paymentTermsDays": "paymentTermsDays is required"}


def test_email_validation():
    assert is_valid_email(" jan@example.nl ")
    assert not is_valid_email("jan@example")
    errors = {}
    validate_email("", errors)
    assert errors == {"email": "Email is required"}


def test_url_validation():
    errors = {}
    assert validate_url("", errors, "cvUrl") == ""
    validate_url("www.example.com/cv.pdf", errors, "cvUrl", label="CV URL")
    assert errors == {"cvUrl": "Invalid CV URL"}


def test_dates():
    errors = {}
    assert validate_date_iso("2025-03-01T10:00:00Z", errors, "startDate") == date(2025, 3, 1)
    assert validate_date_iso("31-12-2025", errors, "startDate") is None
    assert "YYYY-MM-DD" in errors["startDate"]
    assert validate_date_iso(None, {}, "endDate", required=False) is None


def test_raise_if_errors():
    raise_if_errors({})
    with pytest.raises(FormValidationError) as exc:
        raise_if_errors({"a": "b"})
    assert exc.value.field_errors == {"a": "b"}
    assert exc.value.message == "Please correct the highlighted fields"
