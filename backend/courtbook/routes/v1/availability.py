# backend/courtbook/routes/v1/availability.py
"""
Availability routes - API v1

Endpoints:
    GET / - Per-hour slot table for a sport and date
"""

import asyncio
from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_availability_service
from ...core import catalog
from ...core.enums import Sport
from ...core.exceptions import DomainException
from ...schemas.availability import AvailabilityResponse, TimeSlotResponse
from ...services.availability_service import AvailabilityService
from ._errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


@router.get("", response_model=AvailabilityResponse)
async def get_availability(
    sport: Sport = Query(...),
    booking_date: date = Query(..., alias="date"),
    duration_hours: int = Query(1, alias="duration"),
    court_ids: Optional[List[str]] = Query(None),
    for_modification: bool = Query(False),
    exclude_booking_id: Optional[str] = Query(None),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResponse:
    """
    Slot table from opening to one hour before closing.

    ``is_offered`` is true when the start is legal and at least one of the
    candidate courts is free for the whole duration.
    """
    try:
        slots = await asyncio.to_thread(
            availability_service.compute_slots,
            sport.value,
            booking_date,
            court_ids,
            duration_hours,
            for_modification=for_modification,
            exclude_booking_id=exclude_booking_id,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return AvailabilityResponse(
        sport=sport,
        booking_date=booking_date,
        duration_hours=duration_hours,
        rate_per_hour=catalog.rate_per_hour(sport),
        slots=[TimeSlotResponse.from_slot(s) for s in slots],
    )
