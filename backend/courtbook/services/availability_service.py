# backend/courtbook/services/availability_service.py
"""
Availability calculator.

Produces the per-hour slot table for one sport and date, and owns the
legality rules every booking and modification is checked against:

- the date is not in the past and not beyond the booking horizon
- the start hour lies within opening hours and the block ends by closing
- on the facility's today, the start is at least the notice buffer away
  (30 minutes for new bookings, 120 minutes for modifications)

A court is free for (hour, duration) when no pending or confirmed booking
holds any of the hours the block would cover on that court.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time, timedelta
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core import catalog
from ..core.clock import Clock
from ..core.config import settings
from ..core.exceptions import SlotIllegalException, ValidationException
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .booking_lifecycle import BookingLifecycleService

logger = logging.getLogger(__name__)

PAST_DATE = "past_date"
BEYOND_HORIZON = "beyond_horizon"
OUTSIDE_OPENING_HOURS = "outside_opening_hours"
OVERRUNS_CLOSING = "overruns_closing"
INSIDE_NOTICE_BUFFER = "inside_notice_buffer"

_REASON_MESSAGES = {
    PAST_DATE: "The selected date is in the past",
    BEYOND_HORIZON: "The selected date is too far in advance",
    OUTSIDE_OPENING_HOURS: "The facility is closed at the selected time",
    OVERRUNS_CLOSING: "The booking would run past closing time",
    INSIDE_NOTICE_BUFFER: "The selected time is too soon to book",
}


@dataclass(frozen=True)
class TimeSlot:
    """One start hour of the availability table."""

    hour: int
    is_legal: bool
    illegal_reason: Optional[str] = None
    free_court_ids: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def start_time(self) -> time:
        return time(hour=self.hour)

    @property
    def label(self) -> str:
        return f"{self.hour:02d}:00"

    @property
    def free_court_count(self) -> int:
        return len(self.free_court_ids)

    @property
    def is_free(self) -> bool:
        return self.free_court_count > 0

    @property
    def is_offered(self) -> bool:
        return self.is_legal and self.is_free


def buffer_minutes(for_modification: bool) -> int:
    return settings.modification_buffer_minutes if for_modification else settings.advance_buffer_minutes


def slot_illegal_reason(
    clock: Clock,
    booking_date: date,
    hour: int,
    duration_hours: int,
    *,
    for_modification: bool = False,
) -> Optional[str]:
    """Why (date, hour, duration) cannot be booked right now, or None when it can."""
    today = clock.today()
    if booking_date < today:
        return PAST_DATE
    if booking_date > today + timedelta(days=settings.booking_horizon_days):
        return BEYOND_HORIZON

    opening, closing = catalog.opening_hours()
    if hour < opening or hour >= closing:
        return OUTSIDE_OPENING_HOURS
    if hour + duration_hours > closing:
        return OVERRUNS_CLOSING
    if booking_date == today and hour * 60 < clock.minute_of_day() + buffer_minutes(for_modification):
        return INSIDE_NOTICE_BUFFER
    return None


def assert_slot_legal(
    clock: Clock,
    booking_date: date,
    hour: int,
    duration_hours: int,
    *,
    for_modification: bool = False,
) -> None:
    reason = slot_illegal_reason(
        clock, booking_date, hour, duration_hours, for_modification=for_modification
    )
    if reason is not None:
        raise SlotIllegalException(
            _REASON_MESSAGES[reason],
            reason=reason,
            details={
                "booking_date": booking_date.isoformat(),
                "start_time": f"{hour:02d}:00",
                "duration_hours": duration_hours,
            },
        )


def validate_duration(duration_hours: int) -> int:
    if (
        isinstance(duration_hours, bool)
        or not isinstance(duration_hours, int)
        or not settings.min_duration_hours <= duration_hours <= settings.max_duration_hours
    ):
        raise ValidationException(
            f"Duration must be between {settings.min_duration_hours} and "
            f"{settings.max_duration_hours} hours",
            details={"duration_hours": duration_hours},
        )
    return duration_hours


def validate_court_ids(sport: str, court_ids: Sequence[str]) -> List[str]:
    """Court ids must be distinct and belong to the sport."""
    court_ids = list(court_ids)
    if not court_ids:
        raise ValidationException("At least one court must be selected")
    if len(set(court_ids)) != len(court_ids):
        raise ValidationException("Duplicate courts in request", details={"court_ids": court_ids})
    foreign = [c for c in court_ids if catalog.sport_for_court(c) != catalog.get_sport(sport).sport]
    if foreign:
        raise ValidationException(
            f"Courts do not belong to {sport}", details={"court_ids": foreign, "sport": sport}
        )
    return court_ids


def free_courts(
    occupied: Dict[Tuple[str, int], str],
    court_ids: Iterable[str],
    hours: Iterable[int],
) -> List[str]:
    hours = list(hours)
    return [c for c in court_ids if all((c, h) not in occupied for h in hours)]


class AvailabilityService(BaseService):
    """Read-side slot table; only writes when lazily expiring lapsed bookings."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        lifecycle: Optional[BookingLifecycleService] = None,
    ):
        super().__init__(db, clock)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.court_repository = RepositoryFactory.create_court_repository(db)
        self.lifecycle = lifecycle or BookingLifecycleService(db, self.clock)

    def candidate_courts(self, sport: str, court_ids: Optional[Sequence[str]] = None) -> List[str]:
        """Requested courts (validated and active), or every active court of the sport."""
        sport_value = catalog.get_sport(sport).sport.value
        active = self.court_repository.get_active_ids(sport_value)
        if court_ids is None:
            return active
        requested = validate_court_ids(sport_value, court_ids)
        inactive = [c for c in requested if c not in active]
        if inactive:
            raise ValidationException("Courts are not available", details={"court_ids": inactive})
        return requested

    @BaseService.measure_operation("compute_slots")
    def compute_slots(
        self,
        sport: str,
        booking_date: date,
        candidate_court_ids: Optional[Sequence[str]] = None,
        duration_hours: int = 1,
        *,
        for_modification: bool = False,
        exclude_booking_id: Optional[str] = None,
    ) -> List[TimeSlot]:
        """One TimeSlot per start hour from opening to one hour before closing."""
        validate_duration(duration_hours)
        _, closing = catalog.opening_hours()

        with self.transaction():
            courts = self.candidate_courts(sport, candidate_court_ids)
            self.lifecycle.expire_stale_for(booking_date, courts)
            occupied = self.booking_repository.occupied_cells(
                booking_date, courts, exclude_booking_id=exclude_booking_id
            )

        slots = []
        for hour in catalog.slot_hours():
            reason = slot_illegal_reason(
                self.clock, booking_date, hour, duration_hours, for_modification=for_modification
            )
            covered = range(hour, min(hour + duration_hours, closing))
            slots.append(
                TimeSlot(
                    hour=hour,
                    is_legal=reason is None,
                    illegal_reason=reason,
                    free_court_ids=tuple(free_courts(occupied, courts, covered)),
                )
            )
        return slots


__all__ = [
    "AvailabilityService",
    "TimeSlot",
    "assert_slot_legal",
    "free_courts",
    "slot_illegal_reason",
    "validate_court_ids",
    "validate_duration",
]
