# backend/courtbook/services/booking_service.py
"""
Booking service: creation with conflict detection, and the member-facing
lifecycle operations (read, list, cancel, submit transfer proof).

Creation runs its legality check, conflict check, inserts and ledger charge
in one transaction. Slot exclusivity is enforced by the unique slot-hold
constraint; a concurrent loser surfaces as SlotConflictException and never
as a double-booking.
"""

from __future__ import annotations

from datetime import date, time
import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core import catalog
from ..core.clock import Clock
from ..core.enums import (
    BookingStatus,
    CancellationReason,
    LedgerAccountKind,
    PaymentMethod,
    PaymentStatus,
)
from ..core.exceptions import (
    DomainException,
    InvalidTransitionException,
    NotFoundException,
    ServiceException,
    SlotConflictException,
    ValidationException,
)
from ..core.slot_lock import slot_lock
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .availability_service import (
    AvailabilityService,
    assert_slot_legal,
    free_courts,
    validate_duration,
)
from .base import BaseService
from .booking_lifecycle import BookingLifecycleService, booking_window, ensure_transition
from .ledger_service import LedgerService

logger = logging.getLogger(__name__)


def validate_start_time(start_time: time) -> int:
    """Bookings start on the hour. Returns the start hour."""
    if start_time.minute or start_time.second or start_time.microsecond:
        raise ValidationException(
            "Start time must be on the hour",
            details={"start_time": start_time.isoformat()},
        )
    return start_time.hour


def parse_payment_method(payment_method: "PaymentMethod | str") -> PaymentMethod:
    try:
        return PaymentMethod(payment_method)
    except ValueError:
        raise ValidationException(
            f"Unknown payment method: {payment_method}",
            details={"payment_method": str(payment_method)},
        ) from None


class BookingService(BaseService):
    """Creates bookings and applies member-initiated lifecycle changes."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        ledger_service: Optional[LedgerService] = None,
    ):
        super().__init__(db, clock)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.ledger_service = ledger_service or LedgerService(db, self.clock)
        self.lifecycle = BookingLifecycleService(db, self.clock, self.ledger_service)
        self.availability = AvailabilityService(db, self.clock, self.lifecycle)

    # Creation

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        *,
        user_id: str,
        sport: str,
        booking_date: date,
        start_time: time,
        duration_hours: int,
        payment_method: "PaymentMethod | str",
        court_ids: Optional[Sequence[str]] = None,
        court_count: Optional[int] = None,
        idempotency_key: Optional[str] = None,
    ) -> Booking:
        """
        Reserve courts for a contiguous block of hours.

        Credit payments are charged and confirmed atomically with the
        reservation; bank transfers stay pending until an administrator
        reviews the proof.

        Raises:
            ValidationException: malformed request
            SlotIllegalException: past, beyond horizon, outside hours or inside the notice buffer
            SlotConflictException: a requested court-hour is already held
            InsufficientFundsException: credit balance below the price
        """
        if not user_id:
            raise ValidationException("user_id is required")
        sport_value = catalog.get_sport(sport).sport.value
        hour = validate_start_time(start_time)
        validate_duration(duration_hours)
        method = parse_payment_method(payment_method)
        court_count = self.resolve_court_count(sport_value, court_ids, court_count)

        lock_courts = list(court_ids) if court_ids is not None else catalog.court_ids(sport_value)
        try:
            with slot_lock(booking_date, lock_courts) as acquired:
                if not acquired:
                    raise SlotConflictException(
                        "Another booking for this slot is in progress",
                        details={"booking_date": booking_date.isoformat()},
                    )
                with self.transaction():
                    if idempotency_key:
                        existing = self.booking_repository.get_by_idempotency_key(
                            user_id, idempotency_key
                        )
                        if existing is not None:
                            self.lifecycle.refresh_status(existing)
                            prometheus_metrics.record_booking_outcome("create", "idempotent_replay")
                            return existing

                    booking = self._create_in_transaction(
                        user_id=user_id,
                        sport=sport_value,
                        booking_date=booking_date,
                        hour=hour,
                        duration_hours=duration_hours,
                        method=method,
                        court_ids=court_ids,
                        court_count=court_count,
                        idempotency_key=idempotency_key,
                    )
        except ServiceException:
            # Two requests with one idempotency key raced past the lookup
            if idempotency_key:
                existing = self.booking_repository.get_by_idempotency_key(user_id, idempotency_key)
                if existing is not None:
                    return existing
            raise
        except DomainException as exc:
            prometheus_metrics.record_booking_outcome("create", exc.code.lower())
            raise

        prometheus_metrics.record_booking_outcome("create", booking.status)
        self.log_operation(
            "create_booking",
            booking_id=booking.id,
            user_id=user_id,
            sport=sport_value,
            booking_date=booking_date.isoformat(),
            start_hour=hour,
            court_ids=booking.court_ids,
        )
        return booking

    def resolve_court_count(
        self, sport: str, court_ids: Optional[Sequence[str]], court_count: Optional[int]
    ) -> int:
        inventory = catalog.get_sport(sport).court_count
        if court_ids is not None:
            if court_count is not None and court_count != len(court_ids):
                raise ValidationException(
                    "court_count does not match the number of courts selected",
                    details={"court_count": court_count, "court_ids": list(court_ids)},
                )
            return len(court_ids)
        count = 1 if court_count is None else court_count
        if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= inventory:
            raise ValidationException(
                f"court_count must be between 1 and {inventory}",
                details={"court_count": count},
            )
        return count

    def pick_courts(
        self,
        *,
        sport: str,
        booking_date: date,
        hours: List[int],
        court_ids: Optional[Sequence[str]],
        court_count: int,
        exclude_booking_id: Optional[str] = None,
    ) -> List[str]:
        """
        Verify the requested courts are free, or auto-assign the first free ones.

        Lapsed pending bookings on the candidate courts are expired first so
        they do not block the request.
        """
        candidates = self.availability.candidate_courts(sport, court_ids)
        self.lifecycle.expire_stale_for(booking_date, candidates)
        occupied = self.booking_repository.occupied_cells(
            booking_date, candidates, exclude_booking_id=exclude_booking_id
        )

        if court_ids is not None:
            conflicts = sorted((c, h) for c in candidates for h in hours if (c, h) in occupied)
            if conflicts:
                raise SlotConflictException(
                    details={
                        "booking_date": booking_date.isoformat(),
                        "conflicts": [{"court_id": c, "hour": h} for c, h in conflicts],
                    }
                )
            return candidates

        available = free_courts(occupied, candidates, hours)
        if len(available) < court_count:
            raise SlotConflictException(
                "Not enough courts are free for the selected time",
                details={
                    "booking_date": booking_date.isoformat(),
                    "requested": court_count,
                    "free": len(available),
                },
            )
        return available[:court_count]

    def _create_in_transaction(
        self,
        *,
        user_id: str,
        sport: str,
        booking_date: date,
        hour: int,
        duration_hours: int,
        method: PaymentMethod,
        court_ids: Optional[Sequence[str]],
        court_count: int,
        idempotency_key: Optional[str],
    ) -> Booking:
        # Legality is re-checked against the clock inside the transaction
        assert_slot_legal(self.clock, booking_date, hour, duration_hours)
        hours = list(range(hour, hour + duration_hours))
        courts = self.pick_courts(
            sport=sport,
            booking_date=booking_date,
            hours=hours,
            court_ids=court_ids,
            court_count=court_count,
        )

        now = self.clock.now_utc()
        booking = self.booking_repository.create(
            user_id=user_id,
            sport=sport,
            booking_date=booking_date,
            start_time=time(hour=hour),
            duration_hours=duration_hours,
            court_count=len(courts),
            status=BookingStatus.PENDING.value,
            payment_method=method.value,
            payment_status=(
                PaymentStatus.AWAITING_PROOF.value
                if method == PaymentMethod.BANK_TRANSFER
                else PaymentStatus.UNPAID.value
            ),
            total_price=catalog.compute_price(sport, duration_hours, len(courts)),
            amount_paid=0,
            modification_count=0,
            idempotency_key=idempotency_key,
            created_at=now,
            updated_at=now,
        )
        self.booking_repository.add_courts(booking, courts)
        self.booking_repository.insert_holds(booking, courts, booking_date, hours)

        if method == PaymentMethod.CREDITS:
            self.ledger_service.spend(
                user_id=user_id,
                kind=LedgerAccountKind.CREDITS,
                amount=booking.total_price,
                booking_id=booking.id,
                description=f"Booking {sport} {booking_date.isoformat()} {hour:02d}:00",
                use_transaction=False,
            )
            booking.amount_paid = booking.total_price
            self.lifecycle.confirm(booking)
        return booking

    # Reads

    def load_owned(
        self, booking_id: str, user_id: Optional[str], *, for_update: bool = False
    ) -> Booking:
        """Load a booking for its owner; mutating callers lock the row."""
        booking = self.booking_repository.get_by_id(booking_id, for_update=for_update)
        # Someone else's booking is indistinguishable from a missing one
        if booking is None or (user_id is not None and booking.user_id != user_id):
            raise NotFoundException(
                f"Booking {booking_id} not found", details={"booking_id": booking_id}
            )
        return booking

    @BaseService.measure_operation("get_booking")
    def get_booking(self, booking_id: str, user_id: Optional[str] = None) -> Booking:
        """Booking with any due time-driven transition applied."""
        with self.transaction():
            booking = self.load_owned(booking_id, user_id)
            self.lifecycle.refresh_status(booking)
        return booking

    @BaseService.measure_operation("list_bookings")
    def list_bookings(
        self, user_id: str, status: "BookingStatus | str | None" = None
    ) -> List[Booking]:
        wanted = BookingStatus(status).value if status is not None else None
        with self.transaction():
            bookings = self.booking_repository.list_for_user(user_id)
            for booking in bookings:
                self.lifecycle.refresh_status(booking)
        if wanted is None:
            return bookings
        return [b for b in bookings if b.status == wanted]

    # Member lifecycle

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, user_id: str) -> Booking:
        """
        Cancel a future booking owned by the user.

        Credits settled for the booking are refunded and its points
        reversed; its slots become free immediately.
        """
        with self.transaction():
            booking = self.load_owned(booking_id, user_id, for_update=True)
            self.lifecycle.refresh_status(booking)
            ensure_transition(booking.status_enum, BookingStatus.CANCELLED)
            start, _ = booking_window(booking, self.clock)
            if self.clock.now() >= start:
                raise InvalidTransitionException(
                    "Bookings that have already started cannot be cancelled",
                    current=booking.status,
                    target=BookingStatus.CANCELLED.value,
                )
            self.lifecycle.cancel(booking, CancellationReason.USER_CANCELLED)
        return booking

    @BaseService.measure_operation("submit_payment_proof")
    def submit_payment_proof(self, booking_id: str, user_id: str, proof_ref: str) -> Booking:
        """Attach a bank-transfer proof reference; the booking then awaits review."""
        proof_ref = (proof_ref or "").strip()
        if not proof_ref:
            raise ValidationException("A payment proof reference is required")

        with self.transaction():
            booking = self.load_owned(booking_id, user_id, for_update=True)
            self.lifecycle.refresh_status(booking)
            if (
                booking.status != BookingStatus.PENDING.value
                or booking.payment_method != PaymentMethod.BANK_TRANSFER.value
                or booking.payment_status != PaymentStatus.AWAITING_PROOF.value
            ):
                raise InvalidTransitionException(
                    "This booking is not awaiting a transfer proof",
                    current=booking.status,
                )
            booking.payment_proof_ref = proof_ref
            booking.payment_status = PaymentStatus.PROOF_SUBMITTED.value
            booking.updated_at = self.clock.now_utc()
        return booking

    def expire_stale_pending(self) -> List[Booking]:
        return self.lifecycle.expire_stale_pending()


__all__ = ["BookingService", "parse_payment_method", "validate_start_time"]
