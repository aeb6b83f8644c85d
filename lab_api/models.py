from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, CheckConstraint, Index, Text, func
from sqlalchemy.orm import relationship

from lab_api.db import Base

BOOKING_ACTIVE = "active"
BOOKING_CANCELLED = "cancelled"


class Laboratory(Base):
    __tablename__ = "laboratories"
    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    capacity = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.current_timestamp())

    bookings = relationship("Booking", back_populates="laboratory")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "capacity": self.capacity,
            "created_at": self.created_at,
        }


class Booking(Base):
    __tablename__ = "bookings"
    id = Column(Integer, primary_key=True, autoincrement=True)
    laboratory_id = Column(Integer, ForeignKey("laboratories.id", ondelete="CASCADE"), nullable=False)
    # zero-padded ISO strings, so SQL string comparison is chronological
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    start_time = Column(String(8), nullable=False)  # HH:MM:SS
    end_time = Column(String(8), nullable=False)
    status = Column(String(16), nullable=False, default=BOOKING_ACTIVE)  # active|cancelled
    created_at = Column(DateTime, server_default=func.current_timestamp())
    updated_at = Column(DateTime)

    laboratory = relationship("Laboratory", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="booking_time_valid"),
        CheckConstraint("status in ('active','cancelled')", name="booking_status_valid"),
        Index("ix_bookings_lab_date_status", "laboratory_id", "date", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, lab={self.laboratory_id}, {self.date} "
            f"{self.start_time}-{self.end_time}, status={self.status})>"
        )
