import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from lab_api import engine, store
from lab_api.db import get_db
from lab_api.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


# Fields stay loosely typed so validation order and messages are decided by
# engine.validate_request, not by pydantic.
class BookBody(BaseModel):
    laboratory_id: Any = None
    date: Any = None
    start_time: Any = None
    end_time: Any = None


class CancelBody(BaseModel):
    booking_id: Any = None


def success(**payload) -> dict:
    return {"status": "success", **payload}


def invalid_action() -> ValidationError:
    return ValidationError("action", "Invalid action")


@router.get("")
def handle_get(
    action: str = Query(default=""),
    laboratory_id: Optional[str] = Query(default=None),
    date: Optional[str] = Query(default=None),
    start_time: Optional[str] = Query(default=None),
    end_time: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    if action == "laboratories":
        return success(data=store.list_laboratories(db))
    if action == "bookings":
        return success(data=store.list_active_bookings(db))
    if action == "availability":
        return check_availability(db, laboratory_id, date, start_time, end_time)
    raise invalid_action()


def check_availability(db: Session, laboratory_id, date, start_time, end_time) -> dict:
    candidate = engine.validate_request(laboratory_id, date, start_time, end_time)
    existing = store.find_active_bookings(db, candidate.laboratory_id, candidate.date)
    available = engine.is_available(
        candidate.laboratory_id, candidate.date, candidate.start_time, candidate.end_time, existing
    )
    return success(available=available, message="Available" if available else "Not available")


@router.post("", status_code=201)
def handle_post(
    action: str = Query(default=""),
    body: Optional[BookBody] = None,
    db: Session = Depends(get_db),
):
    if action != "book":
        raise invalid_action()
    if body is None:
        raise ValidationError("body", "Invalid JSON data")

    candidate = engine.validate_request(body.laboratory_id, body.date, body.start_time, body.end_time)
    existing = store.find_active_bookings(db, candidate.laboratory_id, candidate.date)
    try:
        # the store repeats this check atomically with the insert
        engine.decide_create(candidate, existing)
    except ConflictError:
        logger.warning(
            "Booking rejected for laboratory %s on %s %s-%s: slot taken",
            candidate.laboratory_id, candidate.date, candidate.start_time, candidate.end_time,
        )
        raise
    booking_id = store.insert_booking(db, candidate)

    return success(
        message="Booking created successfully",
        data={"booking_id": booking_id, **candidate.as_dict()},
    )


@router.delete("")
def handle_delete(
    action: str = Query(default=""),
    body: Optional[CancelBody] = None,
    db: Session = Depends(get_db),
):
    if action != "cancel":
        raise invalid_action()
    if body is None or body.booking_id is None or body.booking_id == "":
        raise ValidationError("booking_id", "booking_id required")

    booking_id = engine.parse_positive_id(body.booking_id, "booking_id")
    engine.decide_cancel(store.get_booking(db, booking_id))

    # lost a race with another cancel
    if not store.cancel_booking(db, booking_id):
        raise NotFoundError()

    return success(message="Booking cancelled successfully")


@router.options("")
def handle_options():
    # CORS preflight
    return Response(status_code=200)
