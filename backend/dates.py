"""
Date normalization at the store-read boundary.

Every date column comes back from the database as whatever was written into it:
NULL, an ISO string, occasionally something malformed. parse_date_field turns
each raw value into exactly one of three shapes, and the resolve_* helpers pick
the fallback a given field needs. Nothing downstream parses dates itself.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union


@dataclass(frozen=True)
class Absent:
    pass


@dataclass(frozen=True)
class Invalid:
    raw: object


@dataclass(frozen=True)
class Valid:
    value: datetime


DateField = Union[Absent, Invalid, Valid]

ABSENT = Absent()


def now() -> datetime:
    """Current time as an aware local datetime."""
    return datetime.now().astimezone()


def local_today() -> date:
    return now().date()


def to_local(value: datetime) -> datetime:
    """Attach the local timezone to naive values; convert aware ones to local time."""
    return value.astimezone()


def parse_date_field(raw) -> DateField:
    """
    Normalize a raw stored value.
    None and blank strings are Absent; ISO 8601 strings (date-only, naive or
    offset, trailing 'Z' accepted) and datetime objects are Valid; numbers are
    epoch seconds; anything else is Invalid.
    """
    if raw is None:
        return ABSENT
    if isinstance(raw, datetime):
        return Valid(to_local(raw))
    if isinstance(raw, date):
        return Valid(to_local(datetime(raw.year, raw.month, raw.day)))
    if isinstance(raw, bool):
        return Invalid(raw)
    if isinstance(raw, (int, float)):
        try:
            return Valid(datetime.fromtimestamp(raw).astimezone())
        except (OverflowError, OSError, ValueError):
            return Invalid(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return ABSENT
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return Valid(to_local(datetime.fromisoformat(text)))
        except ValueError:
            return Invalid(raw)
    return Invalid(raw)


def resolve_optional(field: DateField) -> Optional[datetime]:
    """Valid -> datetime; Absent and Invalid -> None."""
    if isinstance(field, Valid):
        return field.value
    return None


def resolve_or_now(field: DateField, fallback: Optional[datetime] = None) -> datetime:
    """Valid -> datetime; anything else -> fallback (current time by default)."""
    if isinstance(field, Valid):
        return field.value
    return fallback if fallback is not None else now()


def to_storage(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for a TEXT column. Naive values are taken as local time."""
    if value is None:
        return None
    return to_local(value).isoformat()
