# backend/courtbook/services/__init__.py
"""
Service layer for the court booking engine.

Services own transactions and business rules; they call repositories for
data access and raise DomainException subclasses for expected failures.
"""

from .availability_service import AvailabilityService, TimeSlot
from .base import BaseService
from .booking_lifecycle import BookingLifecycleService
from .booking_service import BookingService
from .credit_purchase_service import CreditPurchaseService
from .ledger_service import LedgerReconciliation, LedgerService
from .modification_service import ModificationResult, ModificationService
from .payment_review_service import PaymentReviewService

__all__ = [
    "AvailabilityService",
    "BaseService",
    "BookingLifecycleService",
    "BookingService",
    "CreditPurchaseService",
    "LedgerReconciliation",
    "LedgerService",
    "ModificationResult",
    "ModificationService",
    "PaymentReviewService",
    "TimeSlot",
]
