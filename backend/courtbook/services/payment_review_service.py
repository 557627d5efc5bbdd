# backend/courtbook/services/payment_review_service.py
"""
Administrative review of bank-transfer proofs.

Approving a booking payment confirms the booking; rejecting it cancels the
booking with reason ``payment_rejected``, refunds any credits already
settled and frees its slots. Approving a credit purchase appends a
``purchased`` ledger entry; rejecting it only records the decision. A target
can be reviewed once.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.enums import (
    BookingStatus,
    CancellationReason,
    PaymentMethod,
    PaymentStatus,
    PurchaseStatus,
    ReviewTarget,
)
from ..core.exceptions import InvalidTransitionException, NotFoundException, ValidationException
from ..models.booking import Booking
from ..models.credit_purchase import CreditPurchase
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .booking_lifecycle import BookingLifecycleService
from .ledger_service import LedgerService

logger = logging.getLogger(__name__)

REVIEWABLE_PAYMENT_STATUSES = frozenset(
    {PaymentStatus.AWAITING_PROOF.value, PaymentStatus.PROOF_SUBMITTED.value}
)


class PaymentReviewService(BaseService):
    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        ledger_service: Optional[LedgerService] = None,
    ):
        super().__init__(db, clock)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.purchase_repository = RepositoryFactory.create_credit_purchase_repository(db)
        self.ledger_service = ledger_service or LedgerService(db, self.clock)
        self.lifecycle = BookingLifecycleService(db, self.clock, self.ledger_service)

    @BaseService.measure_operation("review_booking_payment")
    def review_booking_payment(
        self, booking_id: str, *, approved: bool, admin_note: Optional[str] = None
    ) -> Booking:
        """
        Approve or reject the transfer for a pending bank-transfer booking.

        The transferred amount is recorded as settled so a later
        cancellation refunds it as credits.
        """
        with self.transaction():
            booking = self.booking_repository.get_by_id(booking_id, for_update=True)
            if booking is None:
                raise NotFoundException(
                    f"Booking {booking_id} not found", details={"booking_id": booking_id}
                )
            self.lifecycle.refresh_status(booking)
            if (
                booking.status != BookingStatus.PENDING.value
                or booking.payment_method != PaymentMethod.BANK_TRANSFER.value
                or booking.payment_status not in REVIEWABLE_PAYMENT_STATUSES
            ):
                raise InvalidTransitionException(
                    "This booking has no payment awaiting review",
                    current=booking.status,
                    target=(
                        BookingStatus.CONFIRMED if approved else BookingStatus.CANCELLED
                    ).value,
                )

            booking.admin_note = admin_note
            if approved:
                booking.amount_paid = booking.total_price
                self.lifecycle.confirm(booking)
            else:
                self.lifecycle.cancel(booking, CancellationReason.PAYMENT_REJECTED)

        self.log_operation(
            "review_booking_payment", booking_id=booking_id, approved=approved
        )
        return booking

    @BaseService.measure_operation("review_credit_purchase")
    def review_credit_purchase(
        self, purchase_id: str, *, approved: bool, admin_note: Optional[str] = None
    ) -> CreditPurchase:
        with self.transaction():
            purchase = self.purchase_repository.get_by_id(purchase_id, for_update=True)
            if purchase is None:
                raise NotFoundException(
                    f"Credit purchase {purchase_id} not found", details={"purchase_id": purchase_id}
                )
            if purchase.status != PurchaseStatus.PENDING.value:
                raise InvalidTransitionException(
                    "This purchase has already been reviewed", current=purchase.status
                )

            purchase.admin_note = admin_note
            purchase.reviewed_at = self.clock.now_utc()
            if approved:
                purchase.status = PurchaseStatus.APPROVED.value
                self.ledger_service.record_purchase(
                    user_id=purchase.user_id,
                    amount=purchase.credits,
                    purchase_id=purchase.id,
                    description=f"Purchased {purchase.package_id} package",
                    use_transaction=False,
                )
            else:
                purchase.status = PurchaseStatus.REJECTED.value

        self.log_operation(
            "review_credit_purchase", purchase_id=purchase_id, approved=approved
        )
        return purchase

    def review(
        self,
        target: Union[ReviewTarget, str],
        target_id: str,
        *,
        approved: bool,
        admin_note: Optional[str] = None,
    ) -> Union[Booking, CreditPurchase]:
        try:
            target = ReviewTarget(target)
        except ValueError:
            raise ValidationException(f"Unknown review target: {target}") from None
        if target == ReviewTarget.BOOKING:
            return self.review_booking_payment(target_id, approved=approved, admin_note=admin_note)
        return self.review_credit_purchase(target_id, approved=approved, admin_note=admin_note)


__all__ = ["PaymentReviewService"]
