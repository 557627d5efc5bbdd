# backend/courtbook/routes/v1/courts.py
"""
Court inventory routes - API v1

Endpoints:
    GET / - List active courts, optionally for one sport
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_court_repository
from ...core import catalog
from ...core.enums import Sport
from ...repositories.court_repository import CourtRepository
from ...schemas.availability import CourtListResponse, CourtResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["courts-v1"])


@router.get("", response_model=CourtListResponse)
async def list_courts(
    sport: Optional[Sport] = Query(None),
    court_repository: CourtRepository = Depends(get_court_repository),
) -> CourtListResponse:
    courts = await asyncio.to_thread(
        court_repository.list_courts, sport=sport.value if sport else None
    )
    return CourtListResponse(
        items=[CourtResponse.from_court(c) for c in courts],
        rate_per_hour=catalog.rate_per_hour(sport) if sport else None,
    )
