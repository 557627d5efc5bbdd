# backend/courtbook/services/ledger_service.py
"""
Ledger service: credits and points balances with an append-only history.

Every mutation locks the account row, checks the resulting balance, appends
one entry and updates the cached balance in the same flush, so the cached
balance always equals the fold of the account's entries and can never go
negative.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, List, Optional, TypeVar, Union

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.enums import CREDIT_REASONS, DEBIT_REASONS, LedgerAccountKind, LedgerReason
from ..core.exceptions import (
    ConflictException,
    InsufficientFundsException,
    ValidationException,
)
from ..core.slot_lock import ledger_lock
from ..models.ledger import LedgerEntry
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

T = TypeVar("T")
KindLike = Union[LedgerAccountKind, str]


@dataclass(frozen=True)
class LedgerReconciliation:
    user_id: str
    kind: str
    cached_balance: int
    folded_balance: int

    @property
    def consistent(self) -> bool:
        return self.cached_balance == self.folded_balance


def _kind(kind: KindLike) -> LedgerAccountKind:
    try:
        return LedgerAccountKind(kind)
    except ValueError:
        raise ValidationException(
            f"Unknown ledger account: {kind}", details={"kind": str(kind)}
        ) from None


def _positive(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationException(
            "Ledger amounts must be positive whole numbers", details={"amount": amount}
        )
    return amount


class LedgerService(BaseService):
    """Credits and points ledger."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.ledger_repository = RepositoryFactory.create_ledger_repository(db)

    def _run(
        self, user_id: str, kind: LedgerAccountKind, fn: Callable[[], T], use_transaction: bool
    ) -> T:
        if not use_transaction:
            return fn()
        with ledger_lock(user_id, kind.value) as acquired:
            if not acquired:
                raise ConflictException(
                    "Ledger account is busy, please retry",
                    details={"user_id": user_id, "kind": kind.value},
                )
            with self.transaction():
                return fn()

    def _append(
        self,
        *,
        user_id: str,
        kind: LedgerAccountKind,
        amount: int,
        reason: LedgerReason,
        booking_id: Optional[str] = None,
        purchase_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> LedgerEntry:
        account = self.ledger_repository.get_or_create_account(user_id=user_id, kind=kind.value)
        new_balance = account.balance + amount
        if new_balance < 0:
            self.logger.info(
                "Ledger debit rejected",
                extra={
                    "user_id": user_id,
                    "kind": kind.value,
                    "balance": account.balance,
                    "requested": -amount,
                },
            )
            raise InsufficientFundsException(kind.value, account.balance, -amount)

        account.balance = new_balance
        account.version += 1
        entry = self.ledger_repository.add_entry(
            account_id=account.id,
            user_id=user_id,
            kind=kind.value,
            amount=amount,
            reason=reason.value,
            balance_after=new_balance,
            booking_id=booking_id,
            purchase_id=purchase_id,
            description=description,
            created_at=self.clock.now_utc(),
        )
        prometheus_metrics.record_ledger_entry(kind.value, reason.value)
        self.logger.debug(
            "Ledger entry appended",
            extra={"user_id": user_id, "kind": kind.value, "amount": amount, "reason": reason.value},
        )
        return entry

    @BaseService.measure_operation("ledger_spend")
    def spend(
        self,
        *,
        user_id: str,
        kind: KindLike,
        amount: int,
        reason: LedgerReason = LedgerReason.SPENT,
        booking_id: Optional[str] = None,
        description: Optional[str] = None,
        use_transaction: bool = True,
    ) -> LedgerEntry:
        """
        Debit an account.

        Raises:
            InsufficientFundsException: balance is below the requested amount
        """
        account_kind = _kind(kind)
        _positive(amount)
        reason = LedgerReason(reason)
        if reason not in DEBIT_REASONS:
            raise ValidationException(f"{reason.value} is not a debit reason")

        def _spend() -> LedgerEntry:
            return self._append(
                user_id=user_id,
                kind=account_kind,
                amount=-amount,
                reason=reason,
                booking_id=booking_id,
                description=description,
            )

        return self._run(user_id, account_kind, _spend, use_transaction)

    @BaseService.measure_operation("ledger_earn")
    def earn(
        self,
        *,
        user_id: str,
        kind: KindLike,
        amount: int,
        reason: LedgerReason = LedgerReason.EARNED,
        booking_id: Optional[str] = None,
        purchase_id: Optional[str] = None,
        description: Optional[str] = None,
        use_transaction: bool = True,
    ) -> LedgerEntry:
        """Credit an account (earned, bonus, purchased or refunded)."""
        account_kind = _kind(kind)
        _positive(amount)
        reason = LedgerReason(reason)
        if reason not in CREDIT_REASONS:
            raise ValidationException(f"{reason.value} is not a credit reason")

        def _earn() -> LedgerEntry:
            return self._append(
                user_id=user_id,
                kind=account_kind,
                amount=amount,
                reason=reason,
                booking_id=booking_id,
                purchase_id=purchase_id,
                description=description,
            )

        return self._run(user_id, account_kind, _earn, use_transaction)

    def refund(
        self,
        *,
        user_id: str,
        kind: KindLike,
        amount: int,
        booking_id: Optional[str] = None,
        description: Optional[str] = None,
        use_transaction: bool = True,
    ) -> LedgerEntry:
        return self.earn(
            user_id=user_id,
            kind=kind,
            amount=amount,
            reason=LedgerReason.REFUNDED,
            booking_id=booking_id,
            description=description,
            use_transaction=use_transaction,
        )

    def record_purchase(
        self,
        *,
        user_id: str,
        amount: int,
        purchase_id: str,
        description: Optional[str] = None,
        use_transaction: bool = True,
    ) -> LedgerEntry:
        return self.earn(
            user_id=user_id,
            kind=LedgerAccountKind.CREDITS,
            amount=amount,
            reason=LedgerReason.PURCHASED,
            purchase_id=purchase_id,
            description=description,
            use_transaction=use_transaction,
        )

    @BaseService.measure_operation("ledger_reverse")
    def reverse(
        self,
        *,
        user_id: str,
        kind: KindLike,
        amount: int,
        booking_id: Optional[str] = None,
        description: Optional[str] = None,
        use_transaction: bool = True,
    ) -> Optional[LedgerEntry]:
        """
        Claw back a previous award, capped at the current balance.

        Points that were already redeemed cannot be recovered; the reversal
        takes what is left and never fails for lack of funds. Returns None
        when nothing is left to reverse.
        """
        account_kind = _kind(kind)
        _positive(amount)

        def _reverse() -> Optional[LedgerEntry]:
            account = self.ledger_repository.get_or_create_account(
                user_id=user_id, kind=account_kind.value
            )
            capped = min(amount, account.balance)
            if capped <= 0:
                return None
            return self._append(
                user_id=user_id,
                kind=account_kind,
                amount=-capped,
                reason=LedgerReason.REVERSED,
                booking_id=booking_id,
                description=description,
            )

        return self._run(user_id, account_kind, _reverse, use_transaction)

    def lock_account(self, *, user_id: str, kind: KindLike) -> int:
        """Lock the account row for the rest of the caller's transaction and return its balance."""
        account = self.ledger_repository.get_or_create_account(
            user_id=user_id, kind=_kind(kind).value
        )
        return account.balance

    def get_balance(self, *, user_id: str, kind: KindLike) -> int:
        account = self.ledger_repository.get_account(user_id=user_id, kind=_kind(kind).value)
        return account.balance if account is not None else 0

    def fold_balance(self, *, user_id: str, kind: KindLike) -> int:
        """Balance recomputed from the entry history."""
        return self.ledger_repository.sum_entries(user_id=user_id, kind=_kind(kind).value)

    @BaseService.measure_operation("ledger_reconcile")
    def reconcile(self, *, user_id: str, kind: KindLike) -> LedgerReconciliation:
        result = LedgerReconciliation(
            user_id=user_id,
            kind=_kind(kind).value,
            cached_balance=self.get_balance(user_id=user_id, kind=kind),
            folded_balance=self.fold_balance(user_id=user_id, kind=kind),
        )
        if not result.consistent:
            self.logger.error(
                "Ledger balance drift detected",
                extra={
                    "user_id": user_id,
                    "kind": result.kind,
                    "cached": result.cached_balance,
                    "folded": result.folded_balance,
                },
            )
        return result

    def list_entries(
        self, *, user_id: str, kind: Optional[KindLike] = None, limit: int = 100
    ) -> List[LedgerEntry]:
        return self.ledger_repository.list_entries(
            user_id=user_id,
            kind=_kind(kind).value if kind is not None else None,
            limit=limit,
        )


__all__ = ["LedgerReconciliation", "LedgerService"]
