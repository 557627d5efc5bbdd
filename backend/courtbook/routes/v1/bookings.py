# backend/courtbook/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService and ModificationService.

Endpoints:
    POST / - Create a booking
    GET / - List a user's bookings
    GET /{booking_id} - Booking detail (time-driven status applied)
    POST /{booking_id}/modify - Modify a booking
    POST /{booking_id}/modify/preview - Price and check a modification without applying it
    POST /{booking_id}/cancel - Cancel a booking
    POST /{booking_id}/payment-proof - Submit a bank-transfer proof reference
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies import get_booking_service, get_modification_service
from ...core.enums import BookingStatus
from ...core.exceptions import DomainException
from ...schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingListResponse,
    BookingModify,
    BookingResponse,
    ModificationPreviewResponse,
    ModificationResponse,
    PaymentProofSubmit,
)
from ...services.booking_service import BookingService
from ...services.modification_service import ModificationService
from ._errors import handle_domain_exception

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


def _modify_kwargs(data: BookingModify) -> dict:
    return {
        "sport": data.sport.value if data.sport else None,
        "booking_date": data.booking_date,
        "start_time": data.start_time,
        "duration_hours": data.duration_hours,
        "court_ids": data.court_ids,
        "court_count": data.court_count,
    }


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """
    Reserve courts.

    Credit bookings are charged and confirmed immediately; bank-transfer
    bookings stay pending until an administrator approves the proof.
    """
    try:
        booking = await asyncio.to_thread(
            booking_service.create_booking,
            user_id=booking_data.user_id,
            sport=booking_data.sport.value,
            booking_date=booking_data.booking_date,
            start_time=booking_data.start_time,
            duration_hours=booking_data.duration_hours,
            payment_method=booking_data.payment_method,
            court_ids=booking_data.court_ids,
            court_count=booking_data.court_count,
            idempotency_key=booking_data.idempotency_key,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.from_booking(booking)


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    user_id: str = Query(..., min_length=1),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    try:
        bookings = await asyncio.to_thread(booking_service.list_bookings, user_id, status_filter)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingListResponse(
        items=[BookingResponse.from_booking(b) for b in bookings], total=len(bookings)
    )


# ============================================================================
# SECTION 2: Dynamic routes (with path parameters - placed last)
# ============================================================================


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    user_id: Optional[str] = Query(None),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking, booking_id, user_id)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.from_booking(booking)


@router.post("/{booking_id}/modify", response_model=ModificationResponse)
async def modify_booking(
    booking_id: str,
    modify_data: BookingModify = Body(...),
    modification_service: ModificationService = Depends(get_modification_service),
) -> ModificationResponse:
    """Modify sport, date, time, duration or courts; settles the price difference in credits."""
    try:
        result = await asyncio.to_thread(
            lambda: modification_service.modify_booking(
                booking_id, modify_data.user_id, **_modify_kwargs(modify_data)
            )
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ModificationResponse.from_result(result)


@router.post("/{booking_id}/modify/preview", response_model=ModificationPreviewResponse)
async def preview_modification(
    booking_id: str,
    modify_data: BookingModify = Body(...),
    modification_service: ModificationService = Depends(get_modification_service),
) -> ModificationPreviewResponse:
    try:
        preview = await asyncio.to_thread(
            lambda: modification_service.preview_modification(
                booking_id, modify_data.user_id, **_modify_kwargs(modify_data)
            )
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ModificationPreviewResponse.from_preview(preview)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    cancel_data: BookingCancel = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.cancel_booking, booking_id, cancel_data.user_id
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.from_booking(booking)


@router.post("/{booking_id}/payment-proof", response_model=BookingResponse)
async def submit_payment_proof(
    booking_id: str,
    proof_data: PaymentProofSubmit = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.submit_payment_proof,
            booking_id,
            proof_data.user_id,
            proof_data.proof_ref,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.from_booking(booking)
