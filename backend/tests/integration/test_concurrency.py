"""
Concurrent writers against one file-backed database.

Each worker owns its session and services, as separate requests would.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, time
import threading

from courtbook.core.enums import LedgerAccountKind, LedgerReason, PaymentMethod
from courtbook.core.exceptions import (
    InsufficientFundsException,
    InvalidTransitionException,
    ModificationLimitReachedException,
    SlotConflictException,
)
from courtbook.services.booking_service import BookingService
from courtbook.services.ledger_service import LedgerService
from courtbook.services.modification_service import ModificationService

from ..helpers import TOMORROW

WORKERS = 8


def _run_concurrently(n, fn):
    """Start n calls of fn(i) behind a barrier; return (results, errors)."""
    barrier = threading.Barrier(n)

    def _worker(i):
        barrier.wait()
        try:
            return fn(i), None
        except Exception as exc:  # collected for assertions
            return None, exc

    with ThreadPoolExecutor(max_workers=n) as pool:
        outcomes = list(pool.map(_worker, range(n)))
    return [r for r, _ in outcomes if r is not None], [e for _, e in outcomes if e is not None]


def _create_in_own_session(session_factory, clock, **kwargs):
    session = session_factory()
    try:
        booking = BookingService(session, clock).create_booking(**kwargs)
        return booking.id
    finally:
        session.close()


def test_concurrent_creates_for_one_slot_admit_exactly_one(session_factory, clock, fund):
    for i in range(WORKERS):
        fund(f"user-{i}", 50)

    def _book(i):
        return _create_in_own_session(
            session_factory,
            clock,
            user_id=f"user-{i}",
            sport="badminton",
            booking_date=TOMORROW,
            start_time=time(18),
            duration_hours=1,
            payment_method=PaymentMethod.CREDITS,
            court_ids=["badminton-4"],
        )

    created, errors = _run_concurrently(WORKERS, _book)

    assert len(created) == 1
    assert len(errors) == WORKERS - 1
    assert all(isinstance(e, SlotConflictException) for e in errors)

    session = session_factory()
    try:
        ledger = LedgerService(session, clock)
        balances = [
            ledger.get_balance(user_id=f"user-{i}", kind=LedgerAccountKind.CREDITS)
            for i in range(WORKERS)
        ]
    finally:
        session.close()
    assert sorted(balances) == [38] + [50] * (WORKERS - 1)


def test_double_submit_of_one_slot(session_factory, clock, fund):
    clock.set(datetime(2025, 7, 15, 9, 0))
    fund("user-a", 100)
    fund("user-b", 100)
    users = ["user-a", "user-b"]

    def _book(i):
        return _create_in_own_session(
            session_factory,
            clock,
            user_id=users[i],
            sport="badminton",
            booking_date=date(2025, 7, 16),
            start_time=time(14),
            duration_hours=2,
            payment_method=PaymentMethod.CREDITS,
            court_ids=["badminton-1"],
        )

    created, errors = _run_concurrently(2, _book)

    assert len(created) == 1
    assert [type(e) for e in errors] == [SlotConflictException]
    session = session_factory()
    try:
        booking = BookingService(session, clock).get_booking(created[0])
        assert booking.total_price == 24
    finally:
        session.close()


def test_concurrent_overlapping_blocks_admit_one(session_factory, clock, fund):
    fund("user-a", 100)
    fund("user-b", 100)
    requests = [("user-a", 10), ("user-b", 11)]

    def _book(i):
        user_id, hour = requests[i]
        return _create_in_own_session(
            session_factory,
            clock,
            user_id=user_id,
            sport="pickleball",
            booking_date=TOMORROW,
            start_time=time(hour),
            duration_hours=2,
            payment_method=PaymentMethod.CREDITS,
            court_ids=["pickleball-2"],
        )

    created, errors = _run_concurrently(2, _book)

    assert len(created) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], SlotConflictException)


def test_duplicate_submissions_with_idempotency_key(session_factory, clock, fund):
    fund("user-1", 100)

    def _book(_):
        return _create_in_own_session(
            session_factory,
            clock,
            user_id="user-1",
            sport="badminton",
            booking_date=TOMORROW,
            start_time=time(9),
            duration_hours=1,
            payment_method=PaymentMethod.CREDITS,
            court_ids=["badminton-2"],
            idempotency_key="checkout-42",
        )

    created, errors = _run_concurrently(4, _book)

    assert errors == []
    assert len(set(created)) == 1
    session = session_factory()
    try:
        balance = LedgerService(session, clock).get_balance(
            user_id="user-1", kind=LedgerAccountKind.CREDITS
        )
    finally:
        session.close()
    assert balance == 88


def test_duplicate_submissions_without_key_conflict(session_factory, clock, fund):
    fund("user-1", 100)

    def _book(_):
        return _create_in_own_session(
            session_factory,
            clock,
            user_id="user-1",
            sport="badminton",
            booking_date=TOMORROW,
            start_time=time(9),
            duration_hours=1,
            payment_method=PaymentMethod.CREDITS,
            court_ids=["badminton-2"],
        )

    created, errors = _run_concurrently(2, _book)

    assert len(created) == 1
    assert [type(e) for e in errors] == [SlotConflictException]


def test_concurrent_spends_never_overdraw(session_factory, clock, fund):
    fund("user-1", 30)

    def _spend(_):
        session = session_factory()
        try:
            entry = LedgerService(session, clock).spend(
                user_id="user-1",
                kind=LedgerAccountKind.CREDITS,
                amount=10,
                reason=LedgerReason.SPENT,
            )
            return entry.id
        finally:
            session.close()

    spent, errors = _run_concurrently(5, _spend)

    assert len(spent) == 3
    assert len(errors) == 2
    assert all(isinstance(e, InsufficientFundsException) for e in errors)

    session = session_factory()
    try:
        ledger = LedgerService(session, clock)
        assert ledger.get_balance(user_id="user-1", kind=LedgerAccountKind.CREDITS) == 0
        assert ledger.reconcile(user_id="user-1", kind=LedgerAccountKind.CREDITS).consistent
    finally:
        session.close()


def test_concurrent_cancels_refund_once(session_factory, clock, make_booking):
    booking_id = make_booking(funding=50).id

    def _cancel(_):
        session = session_factory()
        try:
            return BookingService(session, clock).cancel_booking(booking_id, "user-1").status
        finally:
            session.close()

    cancelled, errors = _run_concurrently(2, _cancel)

    assert cancelled == ["cancelled"]
    assert [type(e) for e in errors] == [InvalidTransitionException]

    session = session_factory()
    try:
        ledger = LedgerService(session, clock)
        assert ledger.get_balance(user_id="user-1", kind=LedgerAccountKind.CREDITS) == 50
        assert ledger.get_balance(user_id="user-1", kind=LedgerAccountKind.POINTS) == 0
        assert ledger.reconcile(user_id="user-1", kind=LedgerAccountKind.CREDITS).consistent
    finally:
        session.close()


def test_concurrent_modifications_respect_the_limit(session_factory, clock, make_booking):
    booking_id = make_booking(duration_hours=1, funding=100).id

    def _modify(i):
        session = session_factory()
        try:
            result = ModificationService(session, clock).modify_booking(
                booking_id, "user-1", start_time=time(12 + i)
            )
            return result.booking.modification_count
        finally:
            session.close()

    counts, errors = _run_concurrently(3, _modify)

    assert sorted(counts) == [1, 2]
    assert [type(e) for e in errors] == [ModificationLimitReachedException]
