"""Bank-transfer review, payment windows and credit package purchases."""

from datetime import datetime

import pytest

from courtbook.core.enums import (
    BookingStatus,
    CancellationReason,
    LedgerAccountKind,
    PaymentMethod,
    PaymentStatus,
    PurchaseStatus,
)
from courtbook.core.exceptions import (
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from courtbook.services.credit_purchase_service import CreditPurchaseService


@pytest.fixture
def transfer_booking(make_booking):
    return make_booking(payment_method=PaymentMethod.BANK_TRANSFER)


@pytest.fixture
def purchase_service(db, clock):
    return CreditPurchaseService(db, clock)


def _credits(ledger_service, user_id="user-1"):
    return ledger_service.get_balance(user_id=user_id, kind=LedgerAccountKind.CREDITS)


class TestBookingReview:
    def test_approve_confirms_and_awards_points(self, transfer_booking, booking_service, review_service, ledger_service):
        booking_service.submit_payment_proof(transfer_booking.id, "user-1", "ABA-1")

        booking = review_service.review_booking_payment(
            transfer_booking.id, approved=True, admin_note="received"
        )

        assert booking.status == BookingStatus.CONFIRMED.value
        assert booking.payment_status == PaymentStatus.PAID.value
        assert booking.amount_paid == 24
        assert booking.admin_note == "received"
        assert ledger_service.get_balance(user_id="user-1", kind=LedgerAccountKind.POINTS) == 20

    def test_cancelling_an_approved_transfer_refunds_credits(
        self, transfer_booking, booking_service, review_service, ledger_service
    ):
        review_service.review_booking_payment(transfer_booking.id, approved=True)

        booking_service.cancel_booking(transfer_booking.id, "user-1")

        assert _credits(ledger_service) == 24

    def test_reject_cancels_and_frees_slot(self, transfer_booking, review_service, make_booking):
        booking = review_service.review_booking_payment(transfer_booking.id, approved=False)

        assert booking.status == BookingStatus.CANCELLED.value
        assert booking.cancellation_reason == CancellationReason.PAYMENT_REJECTED.value
        assert booking.payment_status == PaymentStatus.REJECTED.value
        assert make_booking("user-2").status == BookingStatus.CONFIRMED.value

    def test_second_review_is_rejected(self, transfer_booking, review_service):
        review_service.review_booking_payment(transfer_booking.id, approved=True)
        with pytest.raises(InvalidTransitionException):
            review_service.review_booking_payment(transfer_booking.id, approved=False)

    def test_credit_bookings_are_not_reviewable(self, make_booking, review_service):
        booking = make_booking()
        with pytest.raises(InvalidTransitionException):
            review_service.review_booking_payment(booking.id, approved=True)

    def test_unknown_booking(self, review_service):
        with pytest.raises(NotFoundException):
            review_service.review_booking_payment("missing", approved=True)

    def test_review_dispatches_on_target(self, transfer_booking, review_service):
        booking = review_service.review("booking", transfer_booking.id, approved=True)
        assert booking.status == BookingStatus.CONFIRMED.value
        with pytest.raises(ValidationException):
            review_service.review("invoice", transfer_booking.id, approved=True)


class TestPaymentWindow:
    def test_awaiting_proof_expires_after_ttl(self, transfer_booking, booking_service, clock, make_booking):
        clock.set(datetime(2025, 6, 10, 8, 59))
        assert booking_service.get_booking(transfer_booking.id).status == BookingStatus.PENDING.value

        clock.set(datetime(2025, 6, 10, 9, 1))
        expired = booking_service.get_booking(transfer_booking.id)
        assert expired.status == BookingStatus.CANCELLED.value
        assert expired.cancellation_reason == CancellationReason.PAYMENT_EXPIRED.value

        assert make_booking("user-2").status == BookingStatus.CONFIRMED.value

    def test_lapsed_hold_does_not_block_a_new_booking(self, transfer_booking, clock, make_booking, booking_service):
        clock.set(datetime(2025, 6, 10, 9, 1))

        # Nobody read the lapsed booking; the conflict check expires it
        other = make_booking("user-2")

        assert other.status == BookingStatus.CONFIRMED.value
        assert booking_service.get_booking(transfer_booking.id).status == BookingStatus.CANCELLED.value

    def test_submitted_proof_waits_for_review_until_start(self, transfer_booking, booking_service, clock):
        booking_service.submit_payment_proof(transfer_booking.id, "user-1", "ABA-1")

        clock.set(datetime(2025, 6, 11, 9, 59))
        assert booking_service.get_booking(transfer_booking.id).status == BookingStatus.PENDING.value

        clock.set(datetime(2025, 6, 11, 10, 0))
        assert booking_service.get_booking(transfer_booking.id).status == BookingStatus.CANCELLED.value

    def test_sweep_expires_lapsed_bookings(self, make_booking, booking_service, clock):
        first = make_booking("user-1", payment_method=PaymentMethod.BANK_TRANSFER)
        second = make_booking("user-2", payment_method=PaymentMethod.BANK_TRANSFER, hour=14)
        booking_service.submit_payment_proof(second.id, "user-2", "ABA-2")

        clock.set(datetime(2025, 6, 10, 9, 30))
        expired = booking_service.expire_stale_pending()

        assert [b.id for b in expired] == [first.id]
        assert booking_service.expire_stale_pending() == []


class TestCreditPurchases:
    def test_approve_grants_credits(self, purchase_service, review_service, ledger_service):
        purchase = purchase_service.request_purchase(
            user_id="user-1", package_id="regular", proof_ref="ABA-9"
        )
        assert purchase.status == PurchaseStatus.PENDING.value
        assert _credits(ledger_service) == 0

        reviewed = review_service.review_credit_purchase(purchase.id, approved=True)

        assert reviewed.status == PurchaseStatus.APPROVED.value
        assert reviewed.reviewed_at is not None
        assert _credits(ledger_service) == 110
        with pytest.raises(InvalidTransitionException):
            review_service.review_credit_purchase(purchase.id, approved=True)
        assert _credits(ledger_service) == 110

    def test_reject_grants_nothing(self, purchase_service, review_service, ledger_service):
        purchase = purchase_service.request_purchase(
            user_id="user-1", package_id="starter", proof_ref="ABA-9"
        )

        reviewed = review_service.review("purchase", purchase.id, approved=False, admin_note="no transfer")

        assert reviewed.status == PurchaseStatus.REJECTED.value
        assert _credits(ledger_service) == 0

    def test_request_validation(self, purchase_service):
        with pytest.raises(NotFoundException):
            purchase_service.request_purchase(user_id="user-1", package_id="gold", proof_ref="ABA-1")
        with pytest.raises(ValidationException):
            purchase_service.request_purchase(user_id="user-1", package_id="pro", proof_ref=" ")

    def test_list_purchases(self, purchase_service, review_service, clock):
        first = purchase_service.request_purchase(user_id="user-1", package_id="starter", proof_ref="A")
        clock.advance(minutes=5)
        second = purchase_service.request_purchase(user_id="user-1", package_id="pro", proof_ref="B")
        review_service.review_credit_purchase(first.id, approved=True)

        assert [p.id for p in purchase_service.list_purchases("user-1")] == [second.id, first.id]
        assert [p.id for p in purchase_service.list_purchases("user-1", "approved")] == [first.id]
        assert purchase_service.list_purchases("user-2") == []
