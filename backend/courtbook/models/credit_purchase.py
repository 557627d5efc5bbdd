# backend/courtbook/models/credit_purchase.py
"""
Credit purchase requests.

A member buys a credit package by bank transfer and submits a proof
reference. The purchase stays pending until an administrator approves it,
at which point a ``purchased`` ledger entry is appended.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..core.enums import PurchaseStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base


class CreditPurchase(Base):
    __tablename__ = "credit_purchases"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    package_id: Mapped[str] = mapped_column(String(32), nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False)
    price_usd: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=PurchaseStatus.PENDING.value, index=True
    )
    proof_ref: Mapped[str] = mapped_column(String(255), nullable=False)
    admin_note: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint("credits > 0", name="check_purchase_credits_positive"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="ck_credit_purchases_status"
        ),
    )

    def __repr__(self) -> str:
        return f"<CreditPurchase {self.id}: {self.user_id} {self.package_id} ({self.status})>"
