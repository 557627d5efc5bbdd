# backend/courtbook/repositories/booking_repository.py
"""
Booking Repository for the court booking engine.

Owns every query against bookings, their courts and their slot holds.
Occupancy lives in ``court_slot_holds``; inserting a hold that collides
with another booking raises SlotHoldIntegrityError so the service can
surface a slot conflict.
"""

from datetime import date
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import BookingStatus
from ..core.exceptions import RepositoryException, SlotHoldIntegrityError
from ..models.booking import Booking, BookingCourt, CourtSlotHold
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

Cell = Tuple[str, int]


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)

    # Lookups

    def get_by_idempotency_key(self, user_id: str, idempotency_key: str) -> Optional[Booking]:
        try:
            return (
                self.db.query(Booking)
                .filter(Booking.user_id == user_id, Booking.idempotency_key == idempotency_key)
                .first()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to look up idempotency key: %s", exc)
            raise RepositoryException("Failed to look up booking by idempotency key") from exc

    def list_for_user(self, user_id: str, *, status: Optional[str] = None) -> List[Booking]:
        """Bookings for a user, newest slot first."""
        try:
            query = self.db.query(Booking).filter(Booking.user_id == user_id)
            if status is not None:
                query = query.filter(Booking.status == status)
            return query.order_by(
                Booking.booking_date.desc(), Booking.start_time.desc(), Booking.id.desc()
            ).all()
        except SQLAlchemyError as exc:
            self.logger.error("Failed to list bookings for %s: %s", user_id, exc)
            raise RepositoryException("Failed to list bookings") from exc

    def list_by_status(self, status: str) -> List[Booking]:
        try:
            return (
                self.db.query(Booking)
                .filter(Booking.status == status)
                .order_by(Booking.created_at.asc())
                .all()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to list %s bookings: %s", status, exc)
            raise RepositoryException("Failed to list bookings by status") from exc

    # Occupancy

    def occupied_cells(
        self,
        booking_date: date,
        court_ids: Sequence[str],
        *,
        exclude_booking_id: Optional[str] = None,
    ) -> Dict[Cell, str]:
        """Map of (court_id, hour) -> holding booking id for the given courts and date."""
        if not court_ids:
            return {}
        try:
            query = self.db.query(
                CourtSlotHold.court_id, CourtSlotHold.hour, CourtSlotHold.booking_id
            ).filter(
                CourtSlotHold.slot_date == booking_date,
                CourtSlotHold.court_id.in_(list(court_ids)),
            )
            if exclude_booking_id is not None:
                query = query.filter(CourtSlotHold.booking_id != exclude_booking_id)
            return {(court, hour): booking_id for court, hour, booking_id in query.all()}
        except SQLAlchemyError as exc:
            self.logger.error("Failed to read slot holds for %s: %s", booking_date, exc)
            raise RepositoryException("Failed to read slot occupancy") from exc

    def pending_holders(self, booking_date: date, court_ids: Sequence[str]) -> List[Booking]:
        """Pending bookings holding any cell of the given courts on the given date."""
        if not court_ids:
            return []
        try:
            holder_ids = (
                select(CourtSlotHold.booking_id)
                .where(
                    CourtSlotHold.slot_date == booking_date,
                    CourtSlotHold.court_id.in_(list(court_ids)),
                )
                .distinct()
            )
            return (
                self.db.query(Booking)
                .filter(
                    Booking.id.in_(holder_ids),
                    Booking.status == BookingStatus.PENDING.value,
                )
                .all()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to read pending holders for %s: %s", booking_date, exc)
            raise RepositoryException("Failed to read pending bookings") from exc

    def add_courts(self, booking: Booking, court_ids: Iterable[str]) -> None:
        for court in sorted(set(court_ids)):
            booking.courts.append(BookingCourt(court_id=court))
        self.db.flush()

    def replace_courts(self, booking: Booking, court_ids: Iterable[str]) -> None:
        booking.courts.clear()
        self.db.flush()
        self.add_courts(booking, court_ids)

    def insert_holds(
        self,
        booking: Booking,
        court_ids: Iterable[str],
        booking_date: date,
        hours: Iterable[int],
    ) -> List[CourtSlotHold]:
        """
        Claim every (court, hour) cell for the booking.

        Raises:
            SlotHoldIntegrityError: another booking already holds one of the cells
        """
        hours = list(hours)
        holds = [
            CourtSlotHold(court_id=court, slot_date=booking_date, hour=hour)
            for court in sorted(set(court_ids))
            for hour in hours
        ]
        try:
            booking.holds.extend(holds)
            self.db.flush()
        except IntegrityError as exc:
            self.logger.info(
                "Slot hold rejected by unique constraint",
                extra={"booking_id": booking.id, "booking_date": booking_date.isoformat()},
            )
            raise SlotHoldIntegrityError(str(exc.orig)) from exc
        return holds

    def release_holds(self, booking: Booking) -> int:
        """Drop every slot hold owned by the booking. Returns the number released."""
        released = len(booking.holds)
        booking.holds.clear()
        self.db.flush()
        return released

    def held_cells(self, booking_id: str) -> Set[Cell]:
        try:
            rows = (
                self.db.query(CourtSlotHold.court_id, CourtSlotHold.hour)
                .filter(CourtSlotHold.booking_id == booking_id)
                .all()
            )
        except SQLAlchemyError as exc:
            raise RepositoryException("Failed to read booking holds") from exc
        return {(court, hour) for court, hour in rows}
