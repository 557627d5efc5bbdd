"""Booking creation, conflicts, cancellation and lazy completion against a real database."""

from datetime import datetime, time

import pytest

from courtbook.core.enums import (
    BookingStatus,
    CancellationReason,
    LedgerAccountKind,
    PaymentMethod,
    PaymentStatus,
)
from courtbook.core.exceptions import (
    InsufficientFundsException,
    InvalidTransitionException,
    NotFoundException,
    SlotConflictException,
    SlotIllegalException,
    ValidationException,
)
from courtbook.repositories.factory import RepositoryFactory

from ..helpers import TODAY, TOMORROW


def _credits(ledger_service, user_id="user-1"):
    return ledger_service.get_balance(user_id=user_id, kind=LedgerAccountKind.CREDITS)


def _points(ledger_service, user_id="user-1"):
    return ledger_service.get_balance(user_id=user_id, kind=LedgerAccountKind.POINTS)


class TestCreateBooking:
    def test_credit_booking_is_confirmed_and_charged(self, make_booking, ledger_service):
        booking = make_booking()

        assert booking.status == BookingStatus.CONFIRMED.value
        assert booking.payment_status == PaymentStatus.PAID.value
        assert booking.total_price == 24
        assert booking.amount_paid == 24
        assert booking.court_ids == ["badminton-1"]
        assert booking.end_time == time(12)
        assert _credits(ledger_service) == 76
        assert _points(ledger_service) == 20
        assert booking.points_awarded == 20

    def test_bank_transfer_booking_stays_pending_and_holds_slot(self, make_booking, ledger_service):
        booking = make_booking(payment_method=PaymentMethod.BANK_TRANSFER)

        assert booking.status == BookingStatus.PENDING.value
        assert booking.payment_status == PaymentStatus.AWAITING_PROOF.value
        assert booking.amount_paid == 0
        assert _credits(ledger_service) == 0

        with pytest.raises(SlotConflictException):
            make_booking("user-2")

    def test_price_scales_with_courts_and_duration(self, make_booking):
        booking = make_booking(
            sport="pickleball",
            court_ids=("pickleball-1", "pickleball-2"),
            duration_hours=3,
            funding=200,
        )
        assert booking.total_price == 14 * 3 * 2
        assert booking.court_count == 2

    def test_same_slot_conflicts(self, make_booking, ledger_service):
        make_booking("user-1")

        with pytest.raises(SlotConflictException) as exc_info:
            make_booking("user-2")

        assert exc_info.value.details["conflicts"] == [
            {"court_id": "badminton-1", "hour": 10},
            {"court_id": "badminton-1", "hour": 11},
        ]
        # The loser is never charged
        assert _credits(ledger_service, "user-2") == 100

    def test_overlapping_multi_hour_bookings_conflict(self, make_booking):
        make_booking("user-1", hour=10, duration_hours=2)

        with pytest.raises(SlotConflictException):
            make_booking("user-2", hour=11, duration_hours=2)
        with pytest.raises(SlotConflictException):
            make_booking("user-3", hour=9, duration_hours=2)

        adjacent = make_booking("user-4", hour=12, duration_hours=1)
        assert adjacent.status == BookingStatus.CONFIRMED.value

    def test_other_courts_and_dates_are_independent(self, make_booking):
        make_booking("user-1")
        make_booking("user-2", court_ids=("badminton-2",))
        make_booking("user-3", booking_date=TODAY, hour=10)

    def test_auto_assigns_first_free_courts(self, make_booking):
        first = make_booking("user-1", court_ids=None, court_count=2)
        second = make_booking("user-2", court_ids=None, court_count=1)

        assert sorted(first.court_ids) == ["badminton-1", "badminton-2"]
        assert second.court_ids == ["badminton-3"]

    def test_auto_assign_fails_when_not_enough_courts(self, make_booking):
        make_booking("user-1", sport="pickleball", court_ids=None, court_count=3)

        with pytest.raises(SlotConflictException) as exc_info:
            make_booking("user-2", sport="pickleball", court_ids=None, court_count=2)
        assert exc_info.value.details["free"] == 1

    def test_insufficient_funds_rolls_back_everything(self, make_booking, booking_service, ledger_service, db):
        with pytest.raises(InsufficientFundsException) as exc_info:
            make_booking(funding=10)

        assert exc_info.value.details["shortfall"] == 14
        assert booking_service.list_bookings("user-1") == []
        assert _credits(ledger_service) == 10
        repository = RepositoryFactory.create_booking_repository(db)
        assert repository.occupied_cells(TOMORROW, ["badminton-1"]) == {}

    def test_idempotency_key_replays_the_first_booking(self, make_booking, ledger_service):
        first = make_booking(idempotency_key="req-1")
        second = make_booking(idempotency_key="req-1", funding=0)

        assert second.id == first.id
        assert _credits(ledger_service) == 76

    def test_idempotency_keys_are_per_user(self, make_booking):
        first = make_booking("user-1", idempotency_key="req-1")
        second = make_booking("user-2", idempotency_key="req-1", court_ids=("badminton-2",))
        assert first.id != second.id

    @pytest.mark.parametrize(
        "overrides",
        [
            {"start_time": time(10, 30)},
            {"duration_hours": 0},
            {"duration_hours": 6},
            {"court_ids": ["pickleball-1"]},
            {"court_ids": ["badminton-1", "badminton-1"]},
            {"court_ids": None, "court_count": 9},
            {"court_ids": ["badminton-1"], "court_count": 2},
            {"payment_method": "cash"},
            {"sport": "tennis"},
            {"user_id": ""},
        ],
    )
    def test_malformed_requests(self, booking_service, overrides):
        request = {
            "user_id": "user-1",
            "sport": "badminton",
            "booking_date": TOMORROW,
            "start_time": time(10),
            "duration_hours": 1,
            "payment_method": PaymentMethod.BANK_TRANSFER,
            "court_ids": ["badminton-1"],
        }
        request.update(overrides)
        with pytest.raises(ValidationException):
            booking_service.create_booking(**request)

    def test_illegal_slots(self, make_booking):
        with pytest.raises(SlotIllegalException) as exc_info:
            make_booking(booking_date=TODAY, hour=8, duration_hours=1)
        assert exc_info.value.reason == "inside_notice_buffer"

        with pytest.raises(SlotIllegalException) as exc_info:
            make_booking(hour=21, duration_hours=2)
        assert exc_info.value.reason == "overruns_closing"

    def test_late_evening_offers_nothing_today(self, make_booking, booking_service, clock):
        clock.set(datetime(2025, 6, 10, 21, 15))

        slots = booking_service.availability.compute_slots("badminton", TODAY)
        assert not any(slot.is_offered for slot in slots)

        with pytest.raises(SlotIllegalException):
            make_booking(booking_date=TODAY, hour=21, duration_hours=1)

    def test_early_morning_facility_date_is_not_shifted(self, make_booking, booking_service, clock):
        # 06:30 facility time is 23:30 UTC on the previous day
        clock.set(datetime(2025, 6, 11, 6, 30))

        booking = make_booking(booking_date=TOMORROW, hour=8, duration_hours=1)
        assert booking.booking_date == TOMORROW

        slots = {slot.hour: slot for slot in booking_service.availability.compute_slots("badminton", TOMORROW)}
        assert "badminton-1" not in slots[8].free_court_ids
        assert slots[6].illegal_reason == "inside_notice_buffer"
        assert slots[7].is_offered


class TestAvailability:
    def test_slot_table_reflects_bookings(self, make_booking, booking_service):
        make_booking("user-1", hour=10, duration_hours=2)

        slots = {s.hour: s for s in booking_service.availability.compute_slots("badminton", TOMORROW)}
        assert sorted(slots) == list(range(6, 22))
        assert slots[10].free_court_count == 7
        assert slots[11].free_court_count == 7
        assert slots[12].free_court_count == 8

        two_hour = {
            s.hour: s
            for s in booking_service.availability.compute_slots("badminton", TOMORROW, duration_hours=2)
        }
        assert "badminton-1" not in two_hour[9].free_court_ids
        assert two_hour[21].illegal_reason == "overruns_closing"

    def test_candidate_court_filter(self, make_booking, booking_service):
        make_booking("user-1")
        slots = booking_service.availability.compute_slots(
            "badminton", TOMORROW, ["badminton-1", "badminton-2"]
        )
        by_hour = {s.hour: s for s in slots}
        assert by_hour[10].free_court_ids == ("badminton-2",)

    def test_exclude_booking_frees_its_own_cells(self, make_booking, booking_service):
        booking = make_booking()
        slots = booking_service.availability.compute_slots(
            "badminton", TOMORROW, ["badminton-1"], exclude_booking_id=booking.id
        )
        assert {s.hour: s for s in slots}[10].is_free


class TestCancelBooking:
    def test_cancel_refunds_and_frees_slot(self, make_booking, booking_service, ledger_service):
        booking = make_booking()

        cancelled = booking_service.cancel_booking(booking.id, "user-1")

        assert cancelled.status == BookingStatus.CANCELLED.value
        assert cancelled.cancellation_reason == CancellationReason.USER_CANCELLED.value
        assert cancelled.payment_status == PaymentStatus.REFUNDED.value
        assert cancelled.amount_paid == 0
        assert _credits(ledger_service) == 100
        assert _points(ledger_service) == 0

        rebooked = make_booking("user-2")
        assert rebooked.status == BookingStatus.CONFIRMED.value

    def test_cancel_links_ledger_entries_to_booking(self, make_booking, booking_service, db):
        booking = make_booking()
        booking_service.cancel_booking(booking.id, "user-1")

        ledger = RepositoryFactory.create_ledger_repository(db)
        credits = ledger.entries_for_booking(booking.id, kind="credits")
        points = ledger.entries_for_booking(booking.id, kind="points")
        assert sorted((e.reason, e.amount) for e in credits) == [("refunded", 24), ("spent", -24)]
        assert sorted((e.reason, e.amount) for e in points) == [("earned", 20), ("reversed", -20)]

    def test_cancel_unpaid_transfer_does_not_refund(self, make_booking, booking_service, ledger_service):
        booking = make_booking(payment_method=PaymentMethod.BANK_TRANSFER)

        cancelled = booking_service.cancel_booking(booking.id, "user-1")

        assert cancelled.status == BookingStatus.CANCELLED.value
        assert cancelled.payment_status == PaymentStatus.AWAITING_PROOF.value
        assert _credits(ledger_service) == 0

    def test_cancel_someone_elses_booking_is_not_found(self, make_booking, booking_service):
        booking = make_booking()
        with pytest.raises(NotFoundException):
            booking_service.cancel_booking(booking.id, "user-2")
        with pytest.raises(NotFoundException):
            booking_service.cancel_booking("01HZZZZZZZZZZZZZZZZZZZZZZZ", "user-1")

    def test_cancel_twice(self, make_booking, booking_service):
        booking = make_booking()
        booking_service.cancel_booking(booking.id, "user-1")
        with pytest.raises(InvalidTransitionException):
            booking_service.cancel_booking(booking.id, "user-1")

    def test_cannot_cancel_after_start(self, make_booking, booking_service, clock):
        booking = make_booking()
        clock.set(datetime(2025, 6, 11, 10, 30))
        with pytest.raises(InvalidTransitionException):
            booking_service.cancel_booking(booking.id, "user-1")


class TestLazyTransitions:
    def test_confirmed_booking_completes_after_end(self, make_booking, booking_service, clock, db):
        booking = make_booking()

        clock.set(datetime(2025, 6, 11, 11, 59))
        assert booking_service.get_booking(booking.id, "user-1").status == BookingStatus.CONFIRMED.value

        clock.set(datetime(2025, 6, 11, 12, 0))
        completed = booking_service.get_booking(booking.id, "user-1")
        assert completed.status == BookingStatus.COMPLETED.value
        assert completed.completed_at is not None
        repository = RepositoryFactory.create_booking_repository(db)
        assert repository.held_cells(booking.id) == set()

    def test_list_bookings_filters_after_refresh(self, make_booking, booking_service, clock):
        make_booking(hour=10, duration_hours=1)
        make_booking(hour=14, duration_hours=1, funding=0)

        clock.set(datetime(2025, 6, 11, 12, 0))
        assert len(booking_service.list_bookings("user-1")) == 2
        completed = booking_service.list_bookings("user-1", BookingStatus.COMPLETED)
        confirmed = booking_service.list_bookings("user-1", "confirmed")
        assert [b.start_hour for b in completed] == [10]
        assert [b.start_hour for b in confirmed] == [14]


class TestPaymentProof:
    def test_submit_proof(self, make_booking, booking_service):
        booking = make_booking(payment_method=PaymentMethod.BANK_TRANSFER)

        updated = booking_service.submit_payment_proof(booking.id, "user-1", "  ABA-12345 ")

        assert updated.payment_status == PaymentStatus.PROOF_SUBMITTED.value
        assert updated.payment_proof_ref == "ABA-12345"
        with pytest.raises(InvalidTransitionException):
            booking_service.submit_payment_proof(booking.id, "user-1", "ABA-2")

    def test_proof_requires_reference(self, make_booking, booking_service):
        booking = make_booking(payment_method=PaymentMethod.BANK_TRANSFER)
        with pytest.raises(ValidationException):
            booking_service.submit_payment_proof(booking.id, "user-1", "   ")

    def test_credit_booking_takes_no_proof(self, make_booking, booking_service):
        booking = make_booking()
        with pytest.raises(InvalidTransitionException):
            booking_service.submit_payment_proof(booking.id, "user-1", "ABA-1")
