import logging
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lab_api.engine import ValidatedBooking
from lab_api.exceptions import ConflictError, NotFoundError, StoreError
from lab_api.models import BOOKING_ACTIVE, Booking, Laboratory

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(db: Session, operation: str):
    """Roll back and re-raise driver failures as StoreError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Store failure during %s", operation)
        try:
            db.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback failed after %s", operation)
        raise StoreError() from exc


def list_laboratories(db: Session) -> List[dict]:
    with store_errors(db, "list_laboratories"):
        labs = db.query(Laboratory).order_by(Laboratory.name.asc()).all()
        return [lab.to_dict() for lab in labs]


def list_active_bookings(db: Session) -> List[dict]:
    """Active bookings with the laboratory's name and capacity, earliest first."""
    sql = text("""
        SELECT
            b.id,
            b.laboratory_id,
            b.date,
            b.start_time,
            b.end_time,
            b.status,
            b.created_at,
            b.updated_at,
            l.name AS laboratory_name,
            l.capacity
        FROM bookings b
        JOIN laboratories l ON b.laboratory_id = l.id
        WHERE b.status = 'active'
        ORDER BY b.date ASC, b.start_time ASC
    """)
    with store_errors(db, "list_active_bookings"):
        rows = db.execute(sql).mappings().all()
        return [dict(r) for r in rows]


def find_active_bookings(db: Session, laboratory_id: int, date: str) -> List[Booking]:
    with store_errors(db, "find_active_bookings"):
        return (
            db.query(Booking)
            .filter(
                Booking.laboratory_id == laboratory_id,
                Booking.date == date,
                Booking.status == BOOKING_ACTIVE,
            )
            .order_by(Booking.start_time.asc())
            .all()
        )


def get_booking(db: Session, booking_id: int) -> Optional[Booking]:
    with store_errors(db, "get_booking"):
        return db.get(Booking, booking_id)


def laboratory_exists(db: Session, laboratory_id: int) -> bool:
    with store_errors(db, "laboratory_exists"):
        return db.get(Laboratory, laboratory_id) is not None


def insert_booking(db: Session, candidate: ValidatedBooking) -> int:
    """
    Insert an active booking if the laboratory exists and nothing active
    overlaps it, in one INSERT ... SELECT ... WHERE NOT EXISTS statement.

    Raises ConflictError if a concurrent request took the slot first and
    NotFoundError if the laboratory is unknown.
    """
    sql = text("""
        INSERT INTO bookings (laboratory_id, date, start_time, end_time, status, created_at)
        SELECT :laboratory_id, :date, :start_time, :end_time, 'active', CURRENT_TIMESTAMP
        WHERE EXISTS (
            SELECT 1 FROM laboratories l WHERE l.id = :laboratory_id
        )
        AND NOT EXISTS (
            SELECT 1 FROM bookings b
            WHERE b.laboratory_id = :laboratory_id
              AND b.date = :date
              AND b.status = 'active'
              AND b.start_time < :end_time
              AND :start_time < b.end_time
        )
        RETURNING id
    """)
    with store_errors(db, "insert_booking"):
        inserted_id = db.execute(sql, candidate.as_dict()).scalar()
        if inserted_id is None:
            db.rollback()
        else:
            db.commit()

    if inserted_id is None:
        if not laboratory_exists(db, candidate.laboratory_id):
            raise NotFoundError("Laboratory not found", reason="laboratory_not_found")
        logger.warning(
            "Booking conflict for laboratory %s on %s %s-%s",
            candidate.laboratory_id, candidate.date, candidate.start_time, candidate.end_time,
        )
        raise ConflictError()

    logger.info(
        "Created booking %s for laboratory %s on %s %s-%s",
        inserted_id, candidate.laboratory_id, candidate.date, candidate.start_time, candidate.end_time,
    )
    return inserted_id


def cancel_booking(db: Session, booking_id: int) -> bool:
    """Soft-delete an active booking. Returns False if nothing was active under that id."""
    sql = text("""
        UPDATE bookings
        SET status = 'cancelled', updated_at = CURRENT_TIMESTAMP
        WHERE id = :booking_id AND status = 'active'
    """)
    with store_errors(db, "cancel_booking"):
        res = db.execute(sql, {"booking_id": booking_id})
        db.commit()
        cancelled = res.rowcount == 1

    if cancelled:
        logger.info("Cancelled booking %s", booking_id)
    return cancelled
