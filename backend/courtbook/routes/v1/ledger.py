# backend/courtbook/routes/v1/ledger.py
"""
Ledger routes - API v1

Endpoints:
    GET /{user_id}/{kind} - Balance with reconciliation against the entry history
    GET /{user_id}/{kind}/entries - Entry history, newest first
    POST /{user_id}/spend - Debit an account
    POST /{user_id}/earn - Credit an account (earned or bonus)
    POST /{user_id}/refund - Refund to an account
"""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies import get_ledger_service
from ...core.enums import LedgerAccountKind, LedgerReason
from ...core.exceptions import DomainException
from ...schemas.ledger import (
    BalanceResponse,
    LedgerEntryListResponse,
    LedgerEntryResponse,
    LedgerMutation,
)
from ...services.ledger_service import LedgerService
from ._errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ledger-v1"])


@router.get("/{user_id}/{kind}", response_model=BalanceResponse)
async def get_balance(
    user_id: str,
    kind: LedgerAccountKind,
    ledger_service: LedgerService = Depends(get_ledger_service),
) -> BalanceResponse:
    try:
        result = await asyncio.to_thread(ledger_service.reconcile, user_id=user_id, kind=kind)
    except DomainException as e:
        handle_domain_exception(e)
    return BalanceResponse.from_reconciliation(result)


@router.get("/{user_id}/{kind}/entries", response_model=LedgerEntryListResponse)
async def list_entries(
    user_id: str,
    kind: LedgerAccountKind,
    limit: int = Query(100, ge=1, le=500),
    ledger_service: LedgerService = Depends(get_ledger_service),
) -> LedgerEntryListResponse:
    entries = await asyncio.to_thread(
        ledger_service.list_entries, user_id=user_id, kind=kind, limit=limit
    )
    return LedgerEntryListResponse(items=[LedgerEntryResponse.from_entry(e) for e in entries])


@router.post("/{user_id}/spend", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def spend(
    user_id: str,
    mutation: LedgerMutation = Body(...),
    ledger_service: LedgerService = Depends(get_ledger_service),
) -> LedgerEntryResponse:
    try:
        entry = await asyncio.to_thread(
            ledger_service.spend,
            user_id=user_id,
            kind=mutation.kind,
            amount=mutation.amount,
            reason=mutation.reason or LedgerReason.SPENT,
            booking_id=mutation.booking_id,
            description=mutation.description,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return LedgerEntryResponse.from_entry(entry)


@router.post("/{user_id}/earn", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def earn(
    user_id: str,
    mutation: LedgerMutation = Body(...),
    ledger_service: LedgerService = Depends(get_ledger_service),
) -> LedgerEntryResponse:
    try:
        entry = await asyncio.to_thread(
            ledger_service.earn,
            user_id=user_id,
            kind=mutation.kind,
            amount=mutation.amount,
            reason=mutation.reason or LedgerReason.EARNED,
            booking_id=mutation.booking_id,
            description=mutation.description,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return LedgerEntryResponse.from_entry(entry)


@router.post("/{user_id}/refund", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def refund(
    user_id: str,
    mutation: LedgerMutation = Body(...),
    ledger_service: LedgerService = Depends(get_ledger_service),
) -> LedgerEntryResponse:
    try:
        entry = await asyncio.to_thread(
            ledger_service.refund,
            user_id=user_id,
            kind=mutation.kind,
            amount=mutation.amount,
            booking_id=mutation.booking_id,
            description=mutation.description,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return LedgerEntryResponse.from_entry(entry)
