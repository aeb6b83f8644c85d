"""
Booking decision logic.

Pure functions with no database access: the store hands in the active
bookings it found and these functions decide. Times are compared as
zero-padded ``HH:MM:SS`` strings, which orders them chronologically.

Intervals are half-open, ``[start, end)``: a booking ending at 10:00 does not
collide with one starting at 10:00.
"""

import re
from dataclasses import dataclass
from datetime import date as date_type, datetime
from typing import Any, Iterable, Optional

from lab_api.exceptions import ConflictError, NotFoundError, ValidationError
from lab_api.models import BOOKING_ACTIVE

DATE_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
TIME_RE = re.compile(r"^[0-9]{2}:[0-9]{2}(:[0-9]{2})?$")
ID_RE = re.compile(r"^[0-9]+$")
# largest value a signed 64-bit INTEGER column can hold
MAX_ID = 2 ** 63 - 1

REQUIRED_FIELDS = ("laboratory_id", "date", "start_time", "end_time")


@dataclass(frozen=True)
class ValidatedBooking:
    """A booking request that passed validation, with times normalized to HH:MM:SS."""
    laboratory_id: int
    date: str
    start_time: str
    end_time: str

    def as_dict(self) -> dict:
        return {
            "laboratory_id": self.laboratory_id,
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }


def intervals_overlap(start1: str, end1: str, start2: str, end2: str) -> bool:
    return start1 < end2 and start2 < end1


def is_available(laboratory_id: int, date: str, start: str, end: str, existing: Iterable[Any]) -> bool:
    """
    Return True if no active booking of ``laboratory_id`` on ``date`` overlaps
    ``[start, end)``. Entries for other laboratories, days or cancelled ones
    are ignored.
    """
    for booking in existing:
        if booking.laboratory_id != laboratory_id or booking.date != date:
            continue
        if booking.status != BOOKING_ACTIVE:
            continue
        if intervals_overlap(start, end, booking.start_time, booking.end_time):
            return False
    return True


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def parse_positive_id(value: Any, field: str) -> int:
    """Accept an int or a string of digits greater than zero."""
    if isinstance(value, bool):
        raise ValidationError(field, f"{field} must be a positive integer")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and ID_RE.fullmatch(value):
        parsed = int(value)
    else:
        raise ValidationError(field, f"{field} must be a positive integer")
    if parsed <= 0 or parsed > MAX_ID:
        raise ValidationError(field, f"{field} must be a positive integer")
    return parsed


def _parse_date(value: Any) -> date_type:
    if not isinstance(value, str) or not DATE_RE.fullmatch(value):
        raise ValidationError("date", "Invalid date format (YYYY-MM-DD)")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("date", "Invalid date format (YYYY-MM-DD)")


def normalize_time(value: Any, field: str) -> str:
    """Validate an HH:MM or HH:MM:SS clock time and return it as HH:MM:SS."""
    if not isinstance(value, str) or not TIME_RE.fullmatch(value):
        raise ValidationError(field, "Invalid time format (HH:MM or HH:MM:SS)")
    if len(value) == 5:
        value += ":00"
    hours, minutes, seconds = (int(part) for part in value.split(":"))
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ValidationError(field, "Invalid time format (HH:MM or HH:MM:SS)")
    return value


def validate_request(laboratory_id, date, start_time, end_time,
                     today: Optional[date_type] = None) -> ValidatedBooking:
    """
    Validate a booking candidate, raising ValidationError on the first problem.

    Checks run in a fixed order: missing fields, then formats, then a date in
    the past (against the server's local calendar day), then start < end.
    """
    values = {
        "laboratory_id": laboratory_id,
        "date": date,
        "start_time": start_time,
        "end_time": end_time,
    }
    for field in REQUIRED_FIELDS:
        if _is_missing(values[field]):
            raise ValidationError(field, f"Required field missing: {field}")

    lab_id = parse_positive_id(laboratory_id, "laboratory_id")
    day = _parse_date(date)
    start = normalize_time(start_time, "start_time")
    end = normalize_time(end_time, "end_time")

    today = today or date_type.today()
    if day < today:
        raise ValidationError("date", "Cannot book for past dates")

    if start >= end:
        raise ValidationError("end_time", "End time must be after start time")

    return ValidatedBooking(
        laboratory_id=lab_id,
        date=day.isoformat(),
        start_time=start,
        end_time=end,
    )


def decide_create(candidate: ValidatedBooking, existing: Iterable[Any]) -> ValidatedBooking:
    """Re-check availability at creation time; raise ConflictError if the slot is taken."""
    if not is_available(candidate.laboratory_id, candidate.date,
                        candidate.start_time, candidate.end_time, existing):
        raise ConflictError()
    return candidate


def decide_cancel(booking) -> None:
    """Only an existing, active booking may be cancelled."""
    if booking is None or booking.status != BOOKING_ACTIVE:
        raise NotFoundError()
