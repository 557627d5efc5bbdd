# backend/courtbook/models/booking.py
"""
Booking model for the court booking engine.

A booking reserves one or more courts of a single sport for a whole number
of hours on one facility-local date. Bookings are never physically deleted:
cancellation is a status transition that keeps the row (and its courts) for
the ledger history, while the slot holds it owned are released.

Slot occupancy is materialized in ``court_slot_holds``: one row per
(court, date, hour) held by a pending or confirmed booking, with a unique
constraint so the database itself rejects a double-booking.
"""

from datetime import date, datetime, time, timezone
import logging
from typing import Any, List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.enums import BookingStatus, PaymentMethod, PaymentStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base

logger = logging.getLogger(__name__)

SLOT_HOLD_UNIQUE_CONSTRAINT = "uq_court_slot_holds_court_date_hour"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    """Reservation of courts for a contiguous block of hours."""

    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    sport: Mapped[str] = mapped_column(String(20), nullable=False)

    booking_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    duration_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    court_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BookingStatus.PENDING.value, index=True
    )
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.UNPAID.value
    )
    payment_proof_ref: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Prices are in credits (1 credit = 1 USD)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_paid: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    points_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    modification_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    admin_note: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    idempotency_key: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    courts: Mapped[List["BookingCourt"]] = relationship(
        "BookingCourt",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingCourt.court_id",
        lazy="selectin",
    )
    holds: Mapped[List["CourtSlotHold"]] = relationship(
        "CourtSlotHold",
        back_populates="booking",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "payment_method IN ('credits', 'bank_transfer')",
            name="ck_bookings_payment_method",
        ),
        CheckConstraint("duration_hours >= 1", name="check_duration_positive"),
        CheckConstraint("court_count >= 1", name="check_court_count_positive"),
        CheckConstraint("total_price >= 0", name="check_price_non_negative"),
        CheckConstraint("amount_paid >= 0", name="check_amount_paid_non_negative"),
        CheckConstraint("modification_count >= 0", name="check_modification_count_non_negative"),
        UniqueConstraint("user_id", "idempotency_key", name="uq_bookings_user_idempotency_key"),
        Index("ix_bookings_user_date", "user_id", "booking_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: user={self.user_id}, sport={self.sport}, "
            f"date={self.booking_date}, start={self.start_time}, "
            f"duration={self.duration_hours}h, status={self.status}>"
        )

    @property
    def status_enum(self) -> BookingStatus:
        return BookingStatus(self.status)

    @property
    def payment_method_enum(self) -> PaymentMethod:
        return PaymentMethod(self.payment_method)

    @property
    def payment_status_enum(self) -> PaymentStatus:
        return PaymentStatus(self.payment_status)

    @property
    def start_hour(self) -> int:
        return self.start_time.hour

    @property
    def end_hour(self) -> int:
        return self.start_hour + self.duration_hours

    @property
    def end_time(self) -> time:
        return time(hour=self.end_hour % 24)

    @property
    def hours(self) -> List[int]:
        return list(range(self.start_hour, self.end_hour))

    @property
    def court_ids(self) -> List[str]:
        return [court.court_id for court in self.courts]

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logs and API responses."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "sport": self.sport,
            "booking_date": self.booking_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "duration_hours": self.duration_hours,
            "court_ids": self.court_ids,
            "court_count": self.court_count,
            "status": self.status,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "total_price": self.total_price,
            "amount_paid": self.amount_paid,
            "modification_count": self.modification_count,
            "cancellation_reason": self.cancellation_reason,
        }


class BookingCourt(Base):
    """A court covered by a booking. Kept after cancellation."""

    __tablename__ = "booking_courts"

    booking_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), primary_key=True
    )
    court_id: Mapped[str] = mapped_column(String(32), ForeignKey("courts.id"), primary_key=True)

    booking: Mapped[Booking] = relationship("Booking", back_populates="courts")


class CourtSlotHold(Base):
    """One occupied (court, date, hour) cell owned by a slot-holding booking."""

    __tablename__ = "court_slot_holds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    court_id: Mapped[str] = mapped_column(String(32), ForeignKey("courts.id"), nullable=False)
    slot_date: Mapped[date] = mapped_column(Date, nullable=False)
    hour: Mapped[int] = mapped_column(Integer, nullable=False)

    booking: Mapped[Booking] = relationship("Booking", back_populates="holds")

    __table_args__ = (
        UniqueConstraint("court_id", "slot_date", "hour", name=SLOT_HOLD_UNIQUE_CONSTRAINT),
        CheckConstraint("hour >= 0 AND hour <= 23", name="check_hold_hour_range"),
        Index("ix_court_slot_holds_date_court", "slot_date", "court_id"),
    )

    def __repr__(self) -> str:
        return f"<CourtSlotHold {self.court_id} {self.slot_date} {self.hour:02d}:00 -> {self.booking_id}>"
