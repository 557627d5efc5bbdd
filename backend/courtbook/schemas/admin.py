# backend/courtbook/schemas/admin.py
from typing import List, Optional

from pydantic import Field

from ..core.enums import ReviewTarget
from ._strict_base import StrictModel, StrictRequestModel
from .booking import BookingResponse
from .credits import CreditPurchaseResponse


class PaymentReviewRequest(StrictRequestModel):
    target: ReviewTarget
    target_id: str
    approved: bool
    admin_note: Optional[str] = Field(default=None, max_length=500)


class PaymentReviewResponse(StrictModel):
    target: ReviewTarget
    booking: Optional[BookingResponse] = None
    purchase: Optional[CreditPurchaseResponse] = None


class ExpirePendingResponse(StrictModel):
    expired_booking_ids: List[str]
    count: int
