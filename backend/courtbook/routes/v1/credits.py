# backend/courtbook/routes/v1/credits.py
"""
Credit package routes - API v1

Endpoints:
    GET /packages - Credit packages on sale
    POST /purchases - Request a purchase (pending until approved)
    GET /purchases - A user's purchase history
"""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies import get_credit_purchase_service
from ...core.exceptions import DomainException
from ...schemas.credits import (
    CreditPackageResponse,
    CreditPurchaseCreate,
    CreditPurchaseListResponse,
    CreditPurchaseResponse,
)
from ...services.credit_purchase_service import CreditPurchaseService
from ._errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["credits-v1"])


@router.get("/packages", response_model=list[CreditPackageResponse])
async def list_packages(
    purchase_service: CreditPurchaseService = Depends(get_credit_purchase_service),
) -> list[CreditPackageResponse]:
    return [CreditPackageResponse.from_package(p) for p in purchase_service.list_packages()]


@router.post(
    "/purchases", response_model=CreditPurchaseResponse, status_code=status.HTTP_201_CREATED
)
async def request_purchase(
    purchase_data: CreditPurchaseCreate = Body(...),
    purchase_service: CreditPurchaseService = Depends(get_credit_purchase_service),
) -> CreditPurchaseResponse:
    try:
        purchase = await asyncio.to_thread(
            purchase_service.request_purchase,
            user_id=purchase_data.user_id,
            package_id=purchase_data.package_id,
            proof_ref=purchase_data.proof_ref,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return CreditPurchaseResponse.from_purchase(purchase)


@router.get("/purchases", response_model=CreditPurchaseListResponse)
async def list_purchases(
    user_id: str = Query(..., min_length=1),
    purchase_service: CreditPurchaseService = Depends(get_credit_purchase_service),
) -> CreditPurchaseListResponse:
    purchases = await asyncio.to_thread(purchase_service.list_purchases, user_id)
    return CreditPurchaseListResponse(
        items=[CreditPurchaseResponse.from_purchase(p) for p in purchases]
    )
