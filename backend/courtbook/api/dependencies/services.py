"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. Each request gets its
own session and therefore its own service instances.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.clock import Clock, get_clock
from ...repositories.court_repository import CourtRepository
from ...repositories.factory import RepositoryFactory
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.credit_purchase_service import CreditPurchaseService
from ...services.ledger_service import LedgerService
from ...services.modification_service import ModificationService
from ...services.payment_review_service import PaymentReviewService
from ...services.points_service import PointsService
from ...database import get_db

logger = logging.getLogger(__name__)


def get_facility_clock() -> Clock:
    """Facility clock; overridden with a FixedClock in tests."""
    return get_clock()


def get_court_repository(db: Session = Depends(get_db)) -> CourtRepository:
    return RepositoryFactory.create_court_repository(db)


def get_ledger_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_facility_clock)
) -> LedgerService:
    return LedgerService(db, clock)


def get_booking_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_facility_clock),
) -> BookingService:
    return BookingService(db, clock)


def get_availability_service(
    booking_service: BookingService = Depends(get_booking_service),
) -> AvailabilityService:
    return booking_service.availability


def get_modification_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_facility_clock),
    booking_service: BookingService = Depends(get_booking_service),
) -> ModificationService:
    return ModificationService(db, clock, booking_service)


def get_credit_purchase_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_facility_clock)
) -> CreditPurchaseService:
    return CreditPurchaseService(db, clock)


def get_payment_review_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_facility_clock)
) -> PaymentReviewService:
    return PaymentReviewService(db, clock)


def get_points_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_facility_clock)
) -> PointsService:
    return PointsService(db, clock)
