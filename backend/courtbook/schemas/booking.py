# backend/courtbook/schemas/booking.py
"""
Booking request and response schemas.

Range and whole-hour checks live in the services so that they surface as
VALIDATION_ERROR domain errors; schemas only enforce shape.
"""

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import Field

from ..core.enums import BookingStatus, PaymentMethod, PaymentStatus, Sport
from ..models.booking import Booking
from ..services.modification_service import ModificationPreview, ModificationResult
from ._strict_base import StrictModel, StrictRequestModel


class BookingCreate(StrictRequestModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    sport: Sport
    booking_date: date
    start_time: time = Field(..., description="Whole hour in facility local time, e.g. 18:00")
    duration_hours: int
    payment_method: PaymentMethod
    court_ids: Optional[List[str]] = Field(
        default=None, description="Explicit courts; omit to auto-assign court_count free courts"
    )
    court_count: Optional[int] = None
    idempotency_key: Optional[str] = Field(default=None, max_length=128)


class BookingModify(StrictRequestModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    sport: Optional[Sport] = None
    booking_date: Optional[date] = None
    start_time: Optional[time] = None
    duration_hours: Optional[int] = None
    court_ids: Optional[List[str]] = None
    court_count: Optional[int] = None


class BookingCancel(StrictRequestModel):
    user_id: str = Field(..., min_length=1, max_length=64)


class PaymentProofSubmit(StrictRequestModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    proof_ref: str = Field(..., max_length=255, description="Opaque reference to the uploaded proof")


class BookingResponse(StrictModel):
    id: str
    user_id: str
    sport: Sport
    booking_date: date
    start_time: time
    end_time: time
    duration_hours: int
    court_ids: List[str]
    court_count: int
    status: BookingStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    total_price: int
    amount_paid: int
    points_awarded: int
    modification_count: int
    cancellation_reason: Optional[str] = None
    payment_proof_ref: Optional[str] = None
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            user_id=booking.user_id,
            sport=Sport(booking.sport),
            booking_date=booking.booking_date,
            start_time=booking.start_time,
            end_time=booking.end_time,
            duration_hours=booking.duration_hours,
            court_ids=booking.court_ids,
            court_count=booking.court_count,
            status=booking.status_enum,
            payment_method=booking.payment_method_enum,
            payment_status=booking.payment_status_enum,
            total_price=booking.total_price,
            amount_paid=booking.amount_paid,
            points_awarded=booking.points_awarded,
            modification_count=booking.modification_count,
            cancellation_reason=booking.cancellation_reason,
            payment_proof_ref=booking.payment_proof_ref,
            created_at=booking.created_at,
            confirmed_at=booking.confirmed_at,
            cancelled_at=booking.cancelled_at,
        )


class BookingListResponse(StrictModel):
    items: List[BookingResponse]
    total: int


class ModificationResponse(StrictModel):
    booking: BookingResponse
    previous_price: int
    price_delta: int

    @classmethod
    def from_result(cls, result: ModificationResult) -> "ModificationResponse":
        return cls(
            booking=BookingResponse.from_booking(result.booking),
            previous_price=result.previous_price,
            price_delta=result.delta,
        )


class ModificationPreviewResponse(StrictModel):
    booking_id: str
    sport: Sport
    booking_date: date
    start_time: time
    duration_hours: int
    court_ids: List[str]
    previous_price: int
    new_price: int
    price_delta: int
    requires_payment: bool
    credits_balance: int
    affordable: bool

    @classmethod
    def from_preview(cls, preview: ModificationPreview) -> "ModificationPreviewResponse":
        plan = preview.plan
        return cls(
            booking_id=plan.booking_id,
            sport=Sport(plan.sport),
            booking_date=plan.booking_date,
            start_time=plan.start_time,
            duration_hours=plan.duration_hours,
            court_ids=plan.court_ids,
            previous_price=plan.previous_price,
            new_price=plan.new_price,
            price_delta=plan.delta,
            requires_payment=preview.requires_payment,
            credits_balance=preview.credits_balance,
            affordable=preview.affordable,
        )
