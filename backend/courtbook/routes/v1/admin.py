# backend/courtbook/routes/v1/admin.py
"""
Administrative routes - API v1

Endpoints:
    POST /payment-proofs/review - Approve or reject a booking transfer or credit purchase
    POST /bookings/expire-pending - Expire lapsed pending bookings now
"""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends

from ...api.dependencies import get_booking_service, get_payment_review_service
from ...core.enums import ReviewTarget
from ...core.exceptions import DomainException
from ...models.booking import Booking
from ...schemas.admin import ExpirePendingResponse, PaymentReviewRequest, PaymentReviewResponse
from ...schemas.booking import BookingResponse
from ...schemas.credits import CreditPurchaseResponse
from ...services.booking_service import BookingService
from ...services.payment_review_service import PaymentReviewService
from ._errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin-v1"])


@router.post("/payment-proofs/review", response_model=PaymentReviewResponse)
async def review_payment(
    review: PaymentReviewRequest = Body(...),
    review_service: PaymentReviewService = Depends(get_payment_review_service),
) -> PaymentReviewResponse:
    try:
        reviewed = await asyncio.to_thread(
            review_service.review,
            review.target,
            review.target_id,
            approved=review.approved,
            admin_note=review.admin_note,
        )
    except DomainException as e:
        handle_domain_exception(e)

    if review.target == ReviewTarget.BOOKING:
        assert isinstance(reviewed, Booking)
        return PaymentReviewResponse(
            target=review.target, booking=BookingResponse.from_booking(reviewed)
        )
    return PaymentReviewResponse(
        target=review.target, purchase=CreditPurchaseResponse.from_purchase(reviewed)
    )


@router.post("/bookings/expire-pending", response_model=ExpirePendingResponse)
async def expire_pending(
    booking_service: BookingService = Depends(get_booking_service),
) -> ExpirePendingResponse:
    expired = await asyncio.to_thread(booking_service.expire_stale_pending)
    return ExpirePendingResponse(expired_booking_ids=[b.id for b in expired], count=len(expired))
