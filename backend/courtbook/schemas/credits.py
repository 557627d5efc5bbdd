# backend/courtbook/schemas/credits.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..core.catalog import CreditPackage
from ..core.enums import PurchaseStatus
from ..models.credit_purchase import CreditPurchase
from ._strict_base import StrictModel, StrictRequestModel


class CreditPackageResponse(StrictModel):
    id: str
    name: str
    credits: int
    price_usd: int
    bonus_credits: int
    is_popular: bool

    @classmethod
    def from_package(cls, package: CreditPackage) -> "CreditPackageResponse":
        return cls(
            id=package.id,
            name=package.name,
            credits=package.credits,
            price_usd=package.price_usd,
            bonus_credits=package.credits - package.price_usd,
            is_popular=package.is_popular,
        )


class CreditPurchaseCreate(StrictRequestModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    package_id: str
    proof_ref: str = Field(..., max_length=255)


class CreditPurchaseResponse(StrictModel):
    id: str
    user_id: str
    package_id: str
    credits: int
    price_usd: int
    status: PurchaseStatus
    proof_ref: str
    admin_note: Optional[str] = None
    created_at: datetime
    reviewed_at: Optional[datetime] = None

    @classmethod
    def from_purchase(cls, purchase: CreditPurchase) -> "CreditPurchaseResponse":
        return cls(
            id=purchase.id,
            user_id=purchase.user_id,
            package_id=purchase.package_id,
            credits=purchase.credits,
            price_usd=purchase.price_usd,
            status=PurchaseStatus(purchase.status),
            proof_ref=purchase.proof_ref,
            admin_note=purchase.admin_note,
            created_at=purchase.created_at,
            reviewed_at=purchase.reviewed_at,
        )


class CreditPurchaseListResponse(StrictModel):
    items: List[CreditPurchaseResponse]
