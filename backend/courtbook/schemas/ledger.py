# backend/courtbook/schemas/ledger.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..core.enums import LedgerAccountKind, LedgerReason
from ..models.ledger import LedgerEntry
from ..services.ledger_service import LedgerReconciliation
from ._strict_base import StrictModel, StrictRequestModel


class LedgerMutation(StrictRequestModel):
    kind: LedgerAccountKind
    amount: int = Field(..., description="Positive whole number")
    reason: Optional[LedgerReason] = None
    booking_id: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=255)


class LedgerEntryResponse(StrictModel):
    id: str
    kind: LedgerAccountKind
    amount: int
    reason: LedgerReason
    balance_after: int
    booking_id: Optional[str] = None
    purchase_id: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> "LedgerEntryResponse":
        return cls(
            id=entry.id,
            kind=LedgerAccountKind(entry.kind),
            amount=entry.amount,
            reason=LedgerReason(entry.reason),
            balance_after=entry.balance_after,
            booking_id=entry.booking_id,
            purchase_id=entry.purchase_id,
            description=entry.description,
            created_at=entry.created_at,
        )


class LedgerEntryListResponse(StrictModel):
    items: List[LedgerEntryResponse]


class BalanceResponse(StrictModel):
    user_id: str
    kind: LedgerAccountKind
    balance: int
    folded_balance: int
    consistent: bool

    @classmethod
    def from_reconciliation(cls, result: LedgerReconciliation) -> "BalanceResponse":
        return cls(
            user_id=result.user_id,
            kind=LedgerAccountKind(result.kind),
            balance=result.cached_balance,
            folded_balance=result.folded_balance,
            consistent=result.consistent,
        )
