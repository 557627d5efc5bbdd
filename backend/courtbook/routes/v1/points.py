# backend/courtbook/routes/v1/points.py
"""
Points routes - API v1

Endpoints:
    GET /rewards - Reward catalog, also grouped by category
    POST /rewards/{reward_id}/redeem - Spend points on a reward
    GET /redemptions - A user's redeemed rewards
    GET /tasks - Tasks that award points
    POST /tasks/{task_id}/complete - Complete a task (once per cooldown window)
    GET /completions - A user's completed tasks
"""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies import get_points_service
from ...core.exceptions import DomainException
from ...schemas.points import (
    PointsTaskResponse,
    PointsUserRequest,
    RewardCatalogResponse,
    RewardRedemptionListResponse,
    RewardRedemptionResponse,
    RewardResponse,
    TaskCompletionListResponse,
    TaskCompletionResponse,
)
from ...services.points_service import PointsService
from ._errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["points-v1"])


@router.get("/rewards", response_model=RewardCatalogResponse)
async def list_rewards(
    points_service: PointsService = Depends(get_points_service),
) -> RewardCatalogResponse:
    return RewardCatalogResponse(
        all=[RewardResponse.from_reward(r) for r in points_service.list_rewards()],
        by_category={
            category: [RewardResponse.from_reward(r) for r in rewards]
            for category, rewards in points_service.rewards_by_category().items()
        },
    )


@router.post(
    "/rewards/{reward_id}/redeem",
    response_model=RewardRedemptionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def redeem_reward(
    reward_id: str,
    request: PointsUserRequest = Body(...),
    points_service: PointsService = Depends(get_points_service),
) -> RewardRedemptionResponse:
    try:
        redemption = await asyncio.to_thread(
            points_service.redeem_reward, user_id=request.user_id, reward_id=reward_id
        )
    except DomainException as e:
        handle_domain_exception(e)
    return RewardRedemptionResponse.from_redemption(redemption)


@router.get("/redemptions", response_model=RewardRedemptionListResponse)
async def list_redemptions(
    user_id: str = Query(..., min_length=1),
    points_service: PointsService = Depends(get_points_service),
) -> RewardRedemptionListResponse:
    redemptions = await asyncio.to_thread(points_service.list_redemptions, user_id)
    return RewardRedemptionListResponse(
        items=[RewardRedemptionResponse.from_redemption(r) for r in redemptions]
    )


@router.get("/tasks", response_model=list[PointsTaskResponse])
async def list_tasks(
    points_service: PointsService = Depends(get_points_service),
) -> list[PointsTaskResponse]:
    return [PointsTaskResponse.from_task(t) for t in points_service.list_tasks()]


@router.post(
    "/tasks/{task_id}/complete",
    response_model=TaskCompletionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def complete_task(
    task_id: str,
    request: PointsUserRequest = Body(...),
    points_service: PointsService = Depends(get_points_service),
) -> TaskCompletionResponse:
    try:
        completion = await asyncio.to_thread(
            points_service.complete_task, user_id=request.user_id, task_id=task_id
        )
    except DomainException as e:
        handle_domain_exception(e)
    return TaskCompletionResponse.from_completion(completion)


@router.get("/completions", response_model=TaskCompletionListResponse)
async def list_completions(
    user_id: str = Query(..., min_length=1),
    points_service: PointsService = Depends(get_points_service),
) -> TaskCompletionListResponse:
    completions = await asyncio.to_thread(points_service.list_completions, user_id)
    return TaskCompletionListResponse(
        items=[TaskCompletionResponse.from_completion(c) for c in completions]
    )
