# backend/courtbook/repositories/factory.py
"""
Repository Factory for the court booking engine.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .court_repository import CourtRepository
    from .credit_purchase_repository import CreditPurchaseRepository
    from .ledger_repository import LedgerRepository
    from .points_repository import RewardRedemptionRepository, TaskCompletionRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_base_repository(db: Session, model) -> BaseRepository:
        return BaseRepository(db, model)

    @staticmethod
    def create_court_repository(db: Session) -> "CourtRepository":
        """Create repository for the court inventory."""
        from .court_repository import CourtRepository

        return CourtRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for bookings and slot holds."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_ledger_repository(db: Session) -> "LedgerRepository":
        """Create repository for ledger accounts and entries."""
        from .ledger_repository import LedgerRepository

        return LedgerRepository(db)

    @staticmethod
    def create_credit_purchase_repository(db: Session) -> "CreditPurchaseRepository":
        from .credit_purchase_repository import CreditPurchaseRepository

        return CreditPurchaseRepository(db)

    @staticmethod
    def create_reward_redemption_repository(db: Session) -> "RewardRedemptionRepository":
        from .points_repository import RewardRedemptionRepository

        return RewardRedemptionRepository(db)

    @staticmethod
    def create_task_completion_repository(db: Session) -> "TaskCompletionRepository":
        from .points_repository import TaskCompletionRepository

        return TaskCompletionRepository(db)
