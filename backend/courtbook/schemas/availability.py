# backend/courtbook/schemas/availability.py
from datetime import date, time
from typing import List, Optional

from ..core.enums import Sport
from ..models.court import Court
from ..services.availability_service import TimeSlot
from ._strict_base import StrictModel


class CourtResponse(StrictModel):
    id: str
    sport: Sport
    name: str
    is_active: bool

    @classmethod
    def from_court(cls, court: Court) -> "CourtResponse":
        return cls(id=court.id, sport=Sport(court.sport), name=court.name, is_active=court.is_active)


class CourtListResponse(StrictModel):
    items: List[CourtResponse]
    rate_per_hour: Optional[int] = None


class TimeSlotResponse(StrictModel):
    hour: int
    start_time: time
    label: str
    is_legal: bool
    illegal_reason: Optional[str] = None
    free_court_ids: List[str]
    free_court_count: int
    is_free: bool
    is_offered: bool

    @classmethod
    def from_slot(cls, slot: TimeSlot) -> "TimeSlotResponse":
        return cls(
            hour=slot.hour,
            start_time=slot.start_time,
            label=slot.label,
            is_legal=slot.is_legal,
            illegal_reason=slot.illegal_reason,
            free_court_ids=list(slot.free_court_ids),
            free_court_count=slot.free_court_count,
            is_free=slot.is_free,
            is_offered=slot.is_offered,
        )


class AvailabilityResponse(StrictModel):
    sport: Sport
    booking_date: date
    duration_hours: int
    rate_per_hour: int
    slots: List[TimeSlotResponse]
