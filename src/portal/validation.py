"""Form checks shared by the portal components.

Components take raw form dictionaries (camelCase from the candidate and MSA
forms, snake_case from the wizard). Every check writes into one ``errors``
mapping so a form reports all bad fields at once; ``raise_if_errors`` then
turns the mapping into a `FormValidationError`, which the API returns as 422.

Only the first message recorded for a field is kept.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Optional, TypeVar
from urllib.parse import urlparse

FieldErrors = Dict[str, str]
N = TypeVar("N", int, float)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass
class FormValidationError(Exception):
    """A form was rejected before anything was sent upstream.

    Attributes:
        field_errors: form field name -> message shown under that field.
        message: toast text.
    """

    field_errors: FieldErrors
    message: str = "Validation failed"

    def __str__(self) -> str:  # pragma: no cover
        return self.message


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def add_error(errors: FieldErrors, field: str, message: str) -> None:
    errors.setdefault(field, message)


def require_str(form_data: Dict[str, Any], field: str, errors: FieldErrors, *, label: Optional[str] = None, min_length: int = 1) -> str:
    value = _text(form_data.get(field))
    name = label or field
    if not value:
        add_error(errors, field, f"{name} is required")
    elif len(value) < min_length:
        add_error(errors, field, f"{name} must be at least {min_length} characters")
    return value


def optional_str(form_data: Dict[str, Any], field: str) -> str:
    return _text(form_data.get(field))


def _to_int(raw: Any) -> int:
    if isinstance(raw, float):
        if not raw.is_integer():
            raise ValueError(raw)
        return int(raw)
    return int(_text(raw))


def _read_number(
    form_data: Dict[str, Any],
    field: str,
    errors: FieldErrors,
    convert: Callable[[Any], N],
    kind: str,
    required: bool,
) -> Optional[N]:
    raw = form_data.get(field)
    if isinstance(raw, bool) or _text(raw) == "":
        if required:
            add_error(errors, field, f"{field} is required")
        return None
    try:
        value = convert(raw)
    except (TypeError, ValueError, OverflowError):
        value = None
    if value is None or not math.isfinite(value):
        add_error(errors, field, f"{field} must be {kind}")
        return None
    return value


def parse_int(form_data: Dict[str, Any], field: str, errors: FieldErrors, *, min_value: Optional[int] = None, max_value: Optional[int] = None, required: bool = False) -> int:
    """Whole number within [min_value, max_value]; 0 when missing or unreadable."""
    value = _read_number(form_data, field, errors, _to_int, "a whole number", required)
    if value is None:
        return 0
    if min_value is not None and value < min_value:
        add_error(errors, field, f"{field} must be at least {min_value}")
    if max_value is not None and value > max_value:
        add_error(errors, field, f"{field} must be at most {max_value}")
    return value


def parse_number(form_data: Dict[str, Any], field: str, errors: FieldErrors, *, min_value: Optional[float] = None, positive: bool = False, required: bool = False) -> Optional[float]:
    """Decimal amount (rates, salaries, contract values); None when left empty."""
    value = _read_number(form_data, field, errors, lambda raw: float(_text(raw)), "a number", required)
    if value is None:
        return None
    if positive and value <= 0:
        add_error(errors, field, f"{field} must be positive")
    if min_value is not None and value < min_value:
        add_error(errors, field, f"{field} must be at least {min_value}")
    return value


def is_valid_email(value: Any) -> bool:
    return bool(_EMAIL_RE.match(_text(value)))


def validate_email(value: Any, errors: FieldErrors, field: str = "email") -> str:
    email = _text(value)
    if not email:
        add_error(errors, field, "Email is required")
    elif not is_valid_email(email):
        add_error(errors, field, "Invalid email address")
    return email


def validate_url(value: Any, errors: FieldErrors, field: str, *, label: Optional[str] = None) -> str:
    """Optional link: empty passes, anything else must be an absolute http(s) URL."""
    url = _text(value)
    if url:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            add_error(errors, field, f"Invalid {label or field}")
    return url


def validate_date_iso(value: Any, errors: FieldErrors, field: str, *, required: bool = True) -> Optional[date]:
    """YYYY-MM-DD (a trailing time part is ignored)."""
    if isinstance(value, date):
        return value
    raw = _text(value)
    if not raw:
        if required:
            add_error(errors, field, f"{field} is required")
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        add_error(errors, field, f"{field} must be a valid date (YYYY-MM-DD)")
        return None


def raise_if_errors(errors: FieldErrors, message: str = "Please correct the highlighted fields") -> None:
    if errors:
        raise FormValidationError(field_errors=errors, message=message)
