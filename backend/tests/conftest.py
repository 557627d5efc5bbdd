# backend/tests/conftest.py
"""
Shared fixtures.

Every test gets its own file-backed SQLite database (so that worker threads
in concurrency tests see the same data) and a FixedClock pinned to
2025-06-10 08:00 facility time.
"""

import os

os.environ.setdefault("CI", "1")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.pop("REDIS_URL", None)

from datetime import date, time
from typing import Callable, Generator

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from courtbook.core.clock import FixedClock
from courtbook.core.enums import LedgerAccountKind, LedgerReason, PaymentMethod
from courtbook.database import create_db_engine, init_db
from courtbook.models.booking import Booking
from courtbook.services.booking_service import BookingService
from courtbook.services.ledger_service import LedgerService
from courtbook.services.modification_service import ModificationService
from courtbook.services.payment_review_service import PaymentReviewService

from .helpers import NOW, TOMORROW


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    engine = create_db_engine(f"sqlite:///{tmp_path / 'courtbook-test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def ledger_service(db: Session, clock: FixedClock) -> LedgerService:
    return LedgerService(db, clock)


@pytest.fixture
def booking_service(db: Session, clock: FixedClock, ledger_service: LedgerService) -> BookingService:
    return BookingService(db, clock, ledger_service)


@pytest.fixture
def modification_service(
    db: Session, clock: FixedClock, booking_service: BookingService
) -> ModificationService:
    return ModificationService(db, clock, booking_service)


@pytest.fixture
def review_service(db: Session, clock: FixedClock, ledger_service: LedgerService) -> PaymentReviewService:
    return PaymentReviewService(db, clock, ledger_service)


@pytest.fixture
def fund(ledger_service: LedgerService) -> Callable[[str, int], None]:
    """Give a user credits through a bonus entry."""

    def _fund(user_id: str, amount: int) -> None:
        ledger_service.earn(
            user_id=user_id,
            kind=LedgerAccountKind.CREDITS,
            amount=amount,
            reason=LedgerReason.BONUS,
            description="test funding",
        )

    return _fund


@pytest.fixture
def make_booking(booking_service: BookingService, fund) -> Callable[..., Booking]:
    """Create a booking with sensible defaults: badminton-1, tomorrow 10:00, 2 hours, credits."""

    def _make(
        user_id: str = "user-1",
        *,
        sport: str = "badminton",
        booking_date: date = TOMORROW,
        hour: int = 10,
        duration_hours: int = 2,
        court_ids=("badminton-1",),
        court_count=None,
        payment_method: PaymentMethod = PaymentMethod.CREDITS,
        funding: int = 100,
        idempotency_key=None,
    ) -> Booking:
        if funding and payment_method == PaymentMethod.CREDITS:
            fund(user_id, funding)
        return booking_service.create_booking(
            user_id=user_id,
            sport=sport,
            booking_date=booking_date,
            start_time=time(hour=hour),
            duration_hours=duration_hours,
            payment_method=payment_method,
            court_ids=list(court_ids) if court_ids is not None else None,
            court_count=court_count,
            idempotency_key=idempotency_key,
        )

    return _make


@pytest.fixture
def client(session_factory: sessionmaker, clock: FixedClock) -> Generator[TestClient, None, None]:
    from courtbook.api.dependencies import get_db, get_facility_clock
    from courtbook.main import app

    def _override_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_facility_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
