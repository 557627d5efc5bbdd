# backend/courtbook/services/credit_purchase_service.py
"""Credit package purchases paid by bank transfer."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core import catalog
from ..core.catalog import CreditPackage
from ..core.clock import Clock
from ..core.enums import PurchaseStatus
from ..core.exceptions import ValidationException
from ..models.credit_purchase import CreditPurchase
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class CreditPurchaseService(BaseService):
    """Records purchase requests; credits are only granted on admin approval."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.purchase_repository = RepositoryFactory.create_credit_purchase_repository(db)

    def list_packages(self) -> Sequence[CreditPackage]:
        return catalog.CREDIT_PACKAGES

    @BaseService.measure_operation("request_credit_purchase")
    def request_purchase(self, *, user_id: str, package_id: str, proof_ref: str) -> CreditPurchase:
        """Create a pending purchase for a catalog package. Never grants credits by itself."""
        if not user_id:
            raise ValidationException("user_id is required")
        proof_ref = (proof_ref or "").strip()
        if not proof_ref:
            raise ValidationException("A payment proof reference is required")
        package = catalog.get_credit_package(package_id)

        with self.transaction():
            purchase = self.purchase_repository.create(
                user_id=user_id,
                package_id=package.id,
                credits=package.credits,
                price_usd=package.price_usd,
                status=PurchaseStatus.PENDING.value,
                proof_ref=proof_ref,
                created_at=self.clock.now_utc(),
            )
        self.log_operation(
            "request_credit_purchase",
            purchase_id=purchase.id,
            user_id=user_id,
            package_id=package.id,
        )
        return purchase

    def list_purchases(
        self, user_id: str, status: "PurchaseStatus | str | None" = None
    ) -> List[CreditPurchase]:
        return self.purchase_repository.list_for_user(
            user_id, status=PurchaseStatus(status).value if status is not None else None
        )


__all__ = ["CreditPurchaseService"]
