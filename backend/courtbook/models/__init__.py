# backend/courtbook/models/__init__.py
"""
SQLAlchemy models for the court booking engine.

Importing this package registers every mapper on ``Base.metadata``.
"""

from .booking import Booking, BookingCourt, CourtSlotHold
from .court import Court
from .credit_purchase import CreditPurchase
from .ledger import LedgerAccount, LedgerEntry
from .points import RewardRedemption, TaskCompletion

__all__ = [
    "Booking",
    "BookingCourt",
    "Court",
    "CourtSlotHold",
    "CreditPurchase",
    "LedgerAccount",
    "LedgerEntry",
    "RewardRedemption",
    "TaskCompletion",
]
