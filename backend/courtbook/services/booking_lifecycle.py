# backend/courtbook/services/booking_lifecycle.py
"""
Booking lifecycle state machine.

    pending ──► confirmed ──► completed
       │            │
       └──► cancelled ◄┘

Only pending and confirmed bookings hold slots. Status changes that depend
on time alone (a confirmed booking whose end has passed, a pending booking
whose payment window lapsed) are applied lazily whenever a booking is read
or its slots are requested; there is no background scheduler.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.clock import Clock, as_utc
from ..core.config import settings
from ..core.enums import (
    BookingStatus,
    CancellationReason,
    LedgerAccountKind,
    PaymentMethod,
    PaymentStatus,
)
from ..core.exceptions import InvalidTransitionException
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .ledger_service import LedgerService

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

DueTransition = Tuple[BookingStatus, Optional[CancellationReason]]


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return BookingStatus(target) in ALLOWED_TRANSITIONS[BookingStatus(current)]


def ensure_transition(current: BookingStatus, target: BookingStatus) -> None:
    current, target = BookingStatus(current), BookingStatus(target)
    if not can_transition(current, target):
        raise InvalidTransitionException(
            f"Cannot move a {current.value} booking to {target.value}",
            current=current.value,
            target=target.value,
        )


def booking_window(booking: Booking, clock: Clock) -> Tuple[datetime, datetime]:
    """Facility-zone start and end of the booking."""
    start = clock.slot_start(booking.booking_date, booking.start_hour)
    end = clock.slot_end(booking.booking_date, booking.start_hour, booking.duration_hours)
    return start, end


def due_transition(
    booking: Booking,
    now: datetime,
    clock: Clock,
    ttl_minutes: Optional[int] = None,
) -> Optional[DueTransition]:
    """
    The time-driven transition a booking is due for at ``now``, if any.

    - confirmed and its end has passed -> completed
    - pending and its start has passed -> cancelled (payment_expired)
    - bank transfer still awaiting proof after the TTL -> cancelled (payment_expired)

    A submitted proof waits for the administrator until the start passes.
    """
    ttl = settings.pending_transfer_ttl_minutes if ttl_minutes is None else ttl_minutes
    status = booking.status_enum
    start, end = booking_window(booking, clock)

    if status == BookingStatus.CONFIRMED and now >= end:
        return BookingStatus.COMPLETED, None
    if status == BookingStatus.PENDING:
        if now >= start:
            return BookingStatus.CANCELLED, CancellationReason.PAYMENT_EXPIRED
        if (
            booking.payment_method == PaymentMethod.BANK_TRANSFER.value
            and booking.payment_status == PaymentStatus.AWAITING_PROOF.value
            and booking.created_at is not None
            and now >= as_utc(booking.created_at) + timedelta(minutes=ttl)
        ):
            return BookingStatus.CANCELLED, CancellationReason.PAYMENT_EXPIRED
    return None


class BookingLifecycleService(BaseService):
    """Applies lifecycle transitions together with their slot and ledger effects."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        ledger_service: Optional[LedgerService] = None,
    ):
        super().__init__(db, clock)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.ledger_service = ledger_service or LedgerService(db, self.clock)

    def confirm(self, booking: Booking) -> Booking:
        """pending -> confirmed; marks the booking paid and awards points."""
        ensure_transition(booking.status_enum, BookingStatus.CONFIRMED)
        now = self.clock.now_utc()
        booking.status = BookingStatus.CONFIRMED.value
        booking.payment_status = PaymentStatus.PAID.value
        booking.confirmed_at = now
        booking.updated_at = now

        points = settings.points_per_booked_hour * booking.duration_hours
        if points > 0:
            self.ledger_service.earn(
                user_id=booking.user_id,
                kind=LedgerAccountKind.POINTS,
                amount=points,
                booking_id=booking.id,
                description=f"Points for booking {booking.id}",
                use_transaction=False,
            )
            booking.points_awarded = points
        self.db.flush()
        prometheus_metrics.record_booking_outcome("confirm", "confirmed")
        return booking

    def cancel(self, booking: Booking, reason: CancellationReason) -> Booking:
        """
        Move a slot-holding booking to cancelled.

        Releases its slot holds, refunds every credit settled for it and
        reverses the points it earned. Runs inside the caller's transaction.
        """
        ensure_transition(booking.status_enum, BookingStatus.CANCELLED)
        reason = CancellationReason(reason)
        now = self.clock.now_utc()

        released = self.booking_repository.release_holds(booking)

        refunded = booking.amount_paid
        if refunded > 0:
            self.ledger_service.refund(
                user_id=booking.user_id,
                kind=LedgerAccountKind.CREDITS,
                amount=refunded,
                booking_id=booking.id,
                description=f"Refund for cancelled booking {booking.id}",
                use_transaction=False,
            )
            booking.amount_paid = 0

        if booking.points_awarded > 0:
            self.ledger_service.reverse(
                user_id=booking.user_id,
                kind=LedgerAccountKind.POINTS,
                amount=booking.points_awarded,
                booking_id=booking.id,
                description=f"Points reversed for cancelled booking {booking.id}",
                use_transaction=False,
            )
            booking.points_awarded = 0

        if reason == CancellationReason.PAYMENT_REJECTED:
            booking.payment_status = PaymentStatus.REJECTED.value
        elif refunded > 0:
            booking.payment_status = PaymentStatus.REFUNDED.value

        booking.status = BookingStatus.CANCELLED.value
        booking.cancellation_reason = reason.value
        booking.cancelled_at = now
        booking.updated_at = now
        self.db.flush()

        prometheus_metrics.record_booking_outcome("cancel", reason.value)
        self.logger.info(
            "Booking cancelled",
            extra={
                "booking_id": booking.id,
                "reason": reason.value,
                "refunded": refunded,
                "released_holds": released,
            },
        )
        return booking

    def complete(self, booking: Booking) -> Booking:
        ensure_transition(booking.status_enum, BookingStatus.COMPLETED)
        now = self.clock.now_utc()
        self.booking_repository.release_holds(booking)
        booking.status = BookingStatus.COMPLETED.value
        booking.completed_at = now
        booking.updated_at = now
        self.db.flush()
        return booking

    def refresh_status(self, booking: Booking) -> Booking:
        """Apply any time-driven transition that is due. Runs inside the caller's transaction."""
        if due_transition(booking, self.clock.now(), self.clock) is None:
            return booking
        # Re-read under a row lock; a concurrent review or cancel may have moved it
        self.booking_repository.get_by_id(booking.id, for_update=True)
        due = due_transition(booking, self.clock.now(), self.clock)
        if due is None:
            return booking
        target, reason = due
        if target == BookingStatus.COMPLETED:
            return self.complete(booking)
        self.logger.info(
            "Expiring unpaid booking",
            extra={"booking_id": booking.id, "payment_status": booking.payment_status},
        )
        return self.cancel(booking, reason or CancellationReason.PAYMENT_EXPIRED)

    def expire_stale_for(self, booking_date, court_ids: Sequence[str]) -> List[Booking]:
        """Expire lapsed pending bookings holding cells on the given courts and date."""
        expired = []
        for booking in self.booking_repository.pending_holders(booking_date, court_ids):
            before = booking.status
            self.refresh_status(booking)
            if booking.status != before:
                expired.append(booking)
        return expired

    @BaseService.measure_operation("expire_stale_pending")
    def expire_stale_pending(self, *, use_transaction: bool = True) -> List[Booking]:
        """Sweep every pending booking and expire the lapsed ones."""

        def _sweep() -> List[Booking]:
            expired = []
            for booking in self.booking_repository.list_by_status(BookingStatus.PENDING.value):
                self.refresh_status(booking)
                if booking.status == BookingStatus.CANCELLED.value:
                    expired.append(booking)
            return expired

        if use_transaction:
            with self.transaction():
                expired = _sweep()
        else:
            expired = _sweep()
        if expired:
            self.logger.info("Expired %d stale pending bookings", len(expired))
        return expired


__all__ = [
    "ALLOWED_TRANSITIONS",
    "BookingLifecycleService",
    "booking_window",
    "can_transition",
    "due_transition",
    "ensure_transition",
]
