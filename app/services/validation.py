"""
Input validation for birth facts and partner facts.

Runs before any external call: invalid input never reaches the Chart
Engine, the Content Oracle, or the Profile Store.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Union

from app.content.bundle import PartnerFacts

DATE_FORMAT = "%Y-%m-%d"
MIN_DATE = date(1900, 1, 1)
SUPPORTED_LANGUAGES = ("ru", "en")

TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
NAME_RE = re.compile(r"^[a-zA-Zа-яА-ЯёЁ\s\-']+$")


@dataclass
class FieldError:
    field: str
    message: str


class InputValidationError(ValueError):
    """Raised with every field error found in one input."""

    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))


@dataclass
class BirthFacts:
    name: str
    birth_date: date
    birth_time: Optional[str]
    birth_place: str
    language: str


def check_date(value: Union[date, str, None], today: Optional[date] = None) -> Optional[str]:
    """Error message for a birth date, or None if valid."""
    parsed = _parse_date(value)
    if isinstance(parsed, str):
        return parsed
    if parsed > (today or date.today()):
        return "Date cannot be in the future"
    if parsed < MIN_DATE:
        return "Date cannot be before 1900"
    return None


def _parse_date(value: Union[date, str, None]) -> Union[date, str]:
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return "Date is required"
    if not re.match(r"^\d{4}-\d{2}-\d{2}$", value.strip()):
        return "Date must be in format YYYY-MM-DD"
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        return "Invalid date"


def check_time(value: Optional[str]) -> Optional[str]:
    if not value or not TIME_RE.match(value):
        return "Time must be in format HH:MM (24-hour format)"
    return None


def check_name(value: Optional[str]) -> Optional[str]:
    if not value or not isinstance(value, str):
        return "Name is required"
    trimmed = value.strip()
    if len(trimmed) < 2:
        return "Name must be at least 2 characters"
    if len(trimmed) > 100:
        return "Name must be less than 100 characters"
    if not NAME_RE.match(trimmed):
        return "Name contains invalid characters"
    return None


def check_birth_place(value: Optional[str]) -> Optional[str]:
    if not value or not value.strip():
        return "Birth place is required"
    trimmed = value.strip()
    if len(trimmed) < 2:
        return "Birth place must be at least 2 characters"
    if len(trimmed) > 200:
        return "Birth place must be less than 200 characters"
    return None


def check_language(value: Optional[str]) -> Optional[str]:
    if value not in SUPPORTED_LANGUAGES:
        return f"Language must be one of: {', '.join(SUPPORTED_LANGUAGES)}"
    return None


def validate_birth_facts(
    name: Optional[str],
    birth_date: Union[date, str, None],
    birth_time: Optional[str],
    birth_place: Optional[str],
    language: Optional[str],
) -> BirthFacts:
    """Validate onboarding input; birth time is optional."""
    errors: List[FieldError] = []

    for field, message in (
        ("name", check_name(name)),
        ("birth_date", check_date(birth_date)),
        ("birth_time", check_time(birth_time) if birth_time else None),
        ("birth_place", check_birth_place(birth_place)),
        ("language", check_language(language)),
    ):
        if message:
            errors.append(FieldError(field, message))

    if errors:
        raise InputValidationError(errors)

    return BirthFacts(
        name=name.strip(),
        birth_date=_parse_date(birth_date),
        birth_time=birth_time or None,
        birth_place=birth_place.strip(),
        language=language,
    )


def validate_partner_facts(
    partner_name: Optional[str],
    partner_date: Union[date, str, None],
    partner_time: Optional[str] = None,
    partner_place: Optional[str] = None,
    relationship_type: Optional[str] = None,
) -> PartnerFacts:
    """Validate compatibility input; only name and date are required."""
    errors: List[FieldError] = []

    name_error = check_name(partner_name)
    if name_error:
        errors.append(FieldError("partner_name", name_error))

    date_error = check_date(partner_date)
    if date_error:
        errors.append(FieldError("partner_date", date_error))

    if partner_time:
        time_error = check_time(partner_time)
        if time_error:
            errors.append(FieldError("partner_time", time_error))

    if errors:
        raise InputValidationError(errors)

    return PartnerFacts(
        name=partner_name.strip(),
        birth_date=_parse_date(partner_date),
        birth_time=partner_time or None,
        birth_place=partner_place.strip() if partner_place else None,
        relationship_type=relationship_type or None,
    )
