# backend/courtbook/models/ledger.py
"""
Ledger models: per-user accounts for credits and points, and their
append-only entry history.

The cached ``balance`` on an account always equals the sum of its entries'
signed amounts; both are written in the same flush and the balance can
never go negative.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerAccount(Base):
    """Cached balance of one account kind (credits or points) for one user."""

    __tablename__ = "ledger_accounts"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "kind", name="uq_ledger_accounts_user_kind"),
        CheckConstraint("balance >= 0", name="check_ledger_balance_non_negative"),
        CheckConstraint("kind IN ('credits', 'points')", name="ck_ledger_accounts_kind"),
    )

    def __repr__(self) -> str:
        return f"<LedgerAccount {self.user_id}/{self.kind}: balance={self.balance}>"


class LedgerEntry(Base):
    """
    Immutable record of one balance change.

    ``amount`` is signed: positive for earned/purchased/refunded/bonus,
    negative for spent/reversed. ``balance_after`` snapshots the account
    balance once the entry is applied.
    """

    __tablename__ = "ledger_entries"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    account_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("ledger_accounts.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(16), nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    booking_id: Mapped[Optional[str]] = mapped_column(
        String(26), ForeignKey("bookings.id"), nullable=True, index=True
    )
    purchase_id: Mapped[Optional[str]] = mapped_column(
        String(26), ForeignKey("credit_purchases.id"), nullable=True
    )
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    account: Mapped[LedgerAccount] = relationship("LedgerAccount")

    __table_args__ = (
        CheckConstraint("amount <> 0", name="check_ledger_amount_non_zero"),
        CheckConstraint("balance_after >= 0", name="check_ledger_balance_after_non_negative"),
        CheckConstraint(
            "reason IN ('earned', 'spent', 'purchased', 'refunded', 'bonus', 'reversed')",
            name="ck_ledger_entries_reason",
        ),
        Index("ix_ledger_entries_user_kind_created", "user_id", "kind", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.id}: {self.kind} {self.amount:+d} ({self.reason})>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "kind": self.kind,
            "amount": self.amount,
            "reason": self.reason,
            "balance_after": self.balance_after,
            "booking_id": self.booking_id,
            "purchase_id": self.purchase_id,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
