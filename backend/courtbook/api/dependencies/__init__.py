"""
FastAPI dependencies: database sessions, the facility clock and services.
"""

from ...database import get_db
from .services import (
    get_availability_service,
    get_booking_service,
    get_court_repository,
    get_credit_purchase_service,
    get_facility_clock,
    get_ledger_service,
    get_modification_service,
    get_payment_review_service,
    get_points_service,
)

__all__ = [
    "get_availability_service",
    "get_booking_service",
    "get_court_repository",
    "get_credit_purchase_service",
    "get_db",
    "get_facility_clock",
    "get_ledger_service",
    "get_modification_service",
    "get_payment_review_service",
    "get_points_service",
]
