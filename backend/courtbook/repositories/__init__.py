# backend/courtbook/repositories/__init__.py
"""
Repository layer: data access for courts, bookings, slot holds, ledger
accounts, credit purchases and points records. Repositories flush but never commit.
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .court_repository import CourtRepository
from .credit_purchase_repository import CreditPurchaseRepository
from .factory import RepositoryFactory
from .ledger_repository import LedgerRepository
from .points_repository import RewardRedemptionRepository, TaskCompletionRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "CourtRepository",
    "CreditPurchaseRepository",
    "LedgerRepository",
    "RewardRedemptionRepository",
    "RepositoryFactory",
    "TaskCompletionRepository",
]
