# backend/courtbook/repositories/ledger_repository.py
"""
Ledger Repository.

Accounts are read with ``SELECT ... FOR UPDATE`` before any mutation so
that two concurrent debits on PostgreSQL cannot both pass a stale balance
check. On SQLite the whole transaction already holds the write lock.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.ledger import LedgerAccount, LedgerEntry
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class LedgerRepository(BaseRepository[LedgerAccount]):
    """Repository for ledger accounts and entries."""

    def __init__(self, db: Session):
        super().__init__(db, LedgerAccount)

    def get_account(
        self, *, user_id: str, kind: str, for_update: bool = False
    ) -> Optional[LedgerAccount]:
        try:
            query = self.db.query(LedgerAccount).filter(
                LedgerAccount.user_id == user_id, LedgerAccount.kind == kind
            ).populate_existing()
            if for_update:
                query = query.with_for_update()
            return query.first()
        except SQLAlchemyError as exc:
            self.logger.error("Failed to load ledger account %s/%s: %s", user_id, kind, exc)
            raise RepositoryException("Failed to load ledger account") from exc

    def get_or_create_account(self, *, user_id: str, kind: str) -> LedgerAccount:
        """Return the locked account row, creating an empty one on first use."""
        account = self.get_account(user_id=user_id, kind=kind, for_update=True)
        if account is not None:
            return account
        try:
            with self.db.begin_nested():
                account = LedgerAccount(user_id=user_id, kind=kind, balance=0, version=0)
                self.db.add(account)
                self.db.flush()
            return account
        except IntegrityError:
            # Another transaction created it first
            account = self.get_account(user_id=user_id, kind=kind, for_update=True)
            if account is None:
                raise RepositoryException(f"Ledger account {user_id}/{kind} vanished")
            return account

    def add_entry(self, **kwargs) -> LedgerEntry:
        try:
            entry = LedgerEntry(**kwargs)
            self.db.add(entry)
            self.db.flush()
            return entry
        except SQLAlchemyError as exc:
            self.logger.error("Failed to append ledger entry: %s", exc)
            raise RepositoryException("Failed to append ledger entry") from exc

    def sum_entries(self, *, user_id: str, kind: str) -> int:
        try:
            total = (
                self.db.query(func.coalesce(func.sum(LedgerEntry.amount), 0))
                .filter(LedgerEntry.user_id == user_id, LedgerEntry.kind == kind)
                .scalar()
            )
            return int(total or 0)
        except SQLAlchemyError as exc:
            self.logger.error("Failed to fold ledger %s/%s: %s", user_id, kind, exc)
            raise RepositoryException("Failed to fold ledger entries") from exc

    def list_entries(
        self, *, user_id: str, kind: Optional[str] = None, limit: int = 100
    ) -> List[LedgerEntry]:
        """Entries newest first."""
        try:
            query = self.db.query(LedgerEntry).filter(LedgerEntry.user_id == user_id)
            if kind is not None:
                query = query.filter(LedgerEntry.kind == kind)
            return (
                query.order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to list ledger entries for %s: %s", user_id, exc)
            raise RepositoryException("Failed to list ledger entries") from exc

    def entries_for_booking(self, booking_id: str, *, kind: Optional[str] = None) -> List[LedgerEntry]:
        try:
            query = self.db.query(LedgerEntry).filter(LedgerEntry.booking_id == booking_id)
            if kind is not None:
                query = query.filter(LedgerEntry.kind == kind)
            return query.order_by(LedgerEntry.created_at.asc(), LedgerEntry.id.asc()).all()
        except SQLAlchemyError as exc:
            raise RepositoryException("Failed to list booking ledger entries") from exc
