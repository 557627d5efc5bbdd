# backend/courtbook/services/modification_service.py
"""
Modification engine.

A booking may change sport, date, start time, duration and courts, at most
``max_modifications`` times and only while the start is more than the
lockout window away. Checks run in a fixed order: status, modification
count, lockout, then legality and availability of the new combination.

The price difference is settled atomically with the change for bookings
that have been paid: an increase is charged in credits (and rejects the
whole modification on insufficient funds), a decrease is refunded in
credits. Bank-transfer bookings still awaiting proof are only repriced; once
a proof is submitted the booking is frozen until the transfer is reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core import catalog
from ..core.clock import Clock
from ..core.config import settings
from ..core.enums import BookingStatus, LedgerAccountKind, PaymentStatus
from ..core.exceptions import (
    DomainException,
    InvalidTransitionException,
    ModificationLimitReachedException,
    TooCloseToStartException,
    ValidationException,
)
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from .availability_service import assert_slot_legal, validate_duration
from .base import BaseService
from .booking_service import BookingService, validate_start_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModificationRequest:
    """Requested changes; None keeps the current value."""

    sport: Optional[str] = None
    booking_date: Optional[date] = None
    start_hour: Optional[int] = None
    duration_hours: Optional[int] = None
    court_ids: Optional[List[str]] = None
    court_count: Optional[int] = None

    @classmethod
    def build(
        cls,
        *,
        sport: Optional[str] = None,
        booking_date: Optional[date] = None,
        start_time: Optional[time] = None,
        duration_hours: Optional[int] = None,
        court_ids: Optional[Sequence[str]] = None,
        court_count: Optional[int] = None,
    ) -> "ModificationRequest":
        """Validate request shape before anything is read from the store."""
        request = cls(
            sport=catalog.get_sport(sport).sport.value if sport is not None else None,
            booking_date=booking_date,
            start_hour=validate_start_time(start_time) if start_time is not None else None,
            duration_hours=(
                validate_duration(duration_hours) if duration_hours is not None else None
            ),
            court_ids=list(court_ids) if court_ids is not None else None,
            court_count=court_count,
        )
        if request.is_empty:
            raise ValidationException("No changes requested")
        return request

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.sport,
                self.booking_date,
                self.start_hour,
                self.duration_hours,
                self.court_ids,
                self.court_count,
            )
        )


@dataclass(frozen=True)
class ModificationPlan:
    """The resolved target of a modification and what it costs."""

    booking_id: str
    sport: str
    booking_date: date
    start_hour: int
    duration_hours: int
    court_ids: List[str]
    previous_price: int
    new_price: int

    @property
    def delta(self) -> int:
        return self.new_price - self.previous_price

    @property
    def start_time(self) -> time:
        return time(hour=self.start_hour)


@dataclass(frozen=True)
class ModificationResult:
    booking: Booking
    previous_price: int
    delta: int


@dataclass(frozen=True)
class ModificationPreview:
    plan: ModificationPlan
    requires_payment: bool
    credits_balance: int

    @property
    def affordable(self) -> bool:
        return not self.requires_payment or self.plan.delta <= self.credits_balance


class ModificationService(BaseService):
    """Applies member modifications to existing bookings."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        booking_service: Optional[BookingService] = None,
    ):
        super().__init__(db, clock)
        self.booking_service = booking_service or BookingService(db, self.clock)
        self.booking_repository = self.booking_service.booking_repository
        self.ledger_service = self.booking_service.ledger_service
        self.lifecycle = self.booking_service.lifecycle

    def check_lockout(self, booking: Booking, now: Optional[datetime] = None) -> None:
        """Modifications must happen strictly before start minus the lockout window."""
        now = now or self.clock.now()
        start = self.clock.slot_start(booking.booking_date, booking.start_hour)
        lockout = timedelta(minutes=settings.modification_lockout_minutes)
        if now >= start - lockout:
            raise TooCloseToStartException(
                settings.modification_lockout_minutes,
                (start - now).total_seconds() / 60,
            )

    def _plan(self, booking: Booking, request: ModificationRequest) -> ModificationPlan:
        self.lifecycle.refresh_status(booking)
        if not booking.status_enum.holds_slot:
            raise InvalidTransitionException(
                f"A {booking.status} booking cannot be modified", current=booking.status
            )
        if booking.payment_status == PaymentStatus.PROOF_SUBMITTED.value:
            # The transferred amount was fixed when the proof was submitted
            raise InvalidTransitionException(
                "A booking whose transfer proof is under review cannot be modified",
                current=booking.status,
            )
        if booking.modification_count >= settings.max_modifications:
            raise ModificationLimitReachedException(settings.max_modifications)
        self.check_lockout(booking)

        new_sport = request.sport or booking.sport
        new_date = request.booking_date or booking.booking_date
        new_hour = booking.start_hour if request.start_hour is None else request.start_hour
        new_duration = request.duration_hours or booking.duration_hours

        court_ids = request.court_ids
        court_count = request.court_count
        if court_ids is None and court_count is None:
            if new_sport == booking.sport:
                # Keep the same courts
                court_ids = booking.court_ids
            else:
                court_count = booking.court_count
        count = self.booking_service.resolve_court_count(new_sport, court_ids, court_count)

        assert_slot_legal(self.clock, new_date, new_hour, new_duration, for_modification=True)
        courts = self.booking_service.pick_courts(
            sport=new_sport,
            booking_date=new_date,
            hours=list(range(new_hour, new_hour + new_duration)),
            court_ids=court_ids,
            court_count=count,
            exclude_booking_id=booking.id,
        )
        return ModificationPlan(
            booking_id=booking.id,
            sport=new_sport,
            booking_date=new_date,
            start_hour=new_hour,
            duration_hours=new_duration,
            court_ids=sorted(courts),
            previous_price=booking.total_price,
            new_price=catalog.compute_price(new_sport, new_duration, len(courts)),
        )

    def _settle(self, booking: Booking, plan: ModificationPlan) -> None:
        """Charge or refund the price difference and resize the points award."""
        delta = plan.delta
        if booking.amount_paid > 0 and delta > 0:
            self.ledger_service.spend(
                user_id=booking.user_id,
                kind=LedgerAccountKind.CREDITS,
                amount=delta,
                booking_id=booking.id,
                description=f"Modification of booking {booking.id}",
                use_transaction=False,
            )
            booking.amount_paid += delta
        elif booking.amount_paid > 0 and delta < 0:
            self.ledger_service.refund(
                user_id=booking.user_id,
                kind=LedgerAccountKind.CREDITS,
                amount=-delta,
                booking_id=booking.id,
                description=f"Price difference for modified booking {booking.id}",
                use_transaction=False,
            )
            booking.amount_paid += delta

        if booking.status != BookingStatus.CONFIRMED.value:
            return
        points = settings.points_per_booked_hour * plan.duration_hours
        diff = points - booking.points_awarded
        if diff > 0:
            self.ledger_service.earn(
                user_id=booking.user_id,
                kind=LedgerAccountKind.POINTS,
                amount=diff,
                booking_id=booking.id,
                description=f"Points for modified booking {booking.id}",
                use_transaction=False,
            )
        elif diff < 0:
            self.ledger_service.reverse(
                user_id=booking.user_id,
                kind=LedgerAccountKind.POINTS,
                amount=-diff,
                booking_id=booking.id,
                description=f"Points adjusted for modified booking {booking.id}",
                use_transaction=False,
            )
        booking.points_awarded = points

    @BaseService.measure_operation("modify_booking")
    def modify_booking(
        self,
        booking_id: str,
        user_id: str,
        *,
        sport: Optional[str] = None,
        booking_date: Optional[date] = None,
        start_time: Optional[time] = None,
        duration_hours: Optional[int] = None,
        court_ids: Optional[Sequence[str]] = None,
        court_count: Optional[int] = None,
    ) -> ModificationResult:
        """
        Move or resize a booking in place.

        Raises:
            ValidationException: nothing to change, or malformed values
            InvalidTransitionException: booking is cancelled or completed
            ModificationLimitReachedException: already modified the maximum times
            TooCloseToStartException: inside the lockout window
            SlotIllegalException / SlotConflictException: new slot unavailable
            InsufficientFundsException: price increase not covered by credits
        """
        try:
            request = ModificationRequest.build(
                sport=sport,
                booking_date=booking_date,
                start_time=start_time,
                duration_hours=duration_hours,
                court_ids=court_ids,
                court_count=court_count,
            )
            with self.transaction():
                booking = self.booking_service.load_owned(booking_id, user_id, for_update=True)
                plan = self._plan(booking, request)
                self._settle(booking, plan)

                self.booking_repository.release_holds(booking)
                booking.sport = plan.sport
                booking.booking_date = plan.booking_date
                booking.start_time = plan.start_time
                booking.duration_hours = plan.duration_hours
                booking.court_count = len(plan.court_ids)
                booking.total_price = plan.new_price
                booking.modification_count += 1
                booking.updated_at = self.clock.now_utc()
                self.booking_repository.replace_courts(booking, plan.court_ids)
                self.booking_repository.insert_holds(
                    booking,
                    plan.court_ids,
                    plan.booking_date,
                    range(plan.start_hour, plan.start_hour + plan.duration_hours),
                )
        except DomainException as exc:
            prometheus_metrics.record_booking_outcome("modify", exc.code.lower())
            raise

        prometheus_metrics.record_booking_outcome("modify", "modified")
        self.log_operation(
            "modify_booking",
            booking_id=booking.id,
            delta=plan.delta,
            modification_count=booking.modification_count,
        )
        return ModificationResult(booking=booking, previous_price=plan.previous_price, delta=plan.delta)

    @BaseService.measure_operation("preview_modification")
    def preview_modification(
        self,
        booking_id: str,
        user_id: str,
        *,
        sport: Optional[str] = None,
        booking_date: Optional[date] = None,
        start_time: Optional[time] = None,
        duration_hours: Optional[int] = None,
        court_ids: Optional[Sequence[str]] = None,
        court_count: Optional[int] = None,
    ) -> ModificationPreview:
        """Run every modification check and price the change without applying it."""
        request = ModificationRequest.build(
            sport=sport,
            booking_date=booking_date,
            start_time=start_time,
            duration_hours=duration_hours,
            court_ids=court_ids,
            court_count=court_count,
        )
        with self.transaction():
            booking = self.booking_service.load_owned(booking_id, user_id)
            plan = self._plan(booking, request)
            balance = self.ledger_service.get_balance(
                user_id=booking.user_id, kind=LedgerAccountKind.CREDITS
            )
        return ModificationPreview(
            plan=plan,
            requires_payment=booking.amount_paid > 0 and plan.delta > 0,
            credits_balance=balance,
        )


__all__ = [
    "ModificationPlan",
    "ModificationPreview",
    "ModificationRequest",
    "ModificationResult",
    "ModificationService",
]
