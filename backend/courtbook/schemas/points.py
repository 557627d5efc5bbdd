from datetime import datetime
from typing import Dict, List

from pydantic import Field

from ..core.catalog import PointsTask, Reward
from ..models.points import RewardRedemption, TaskCompletion
from ._strict_base import StrictModel, StrictRequestModel


class RewardResponse(StrictModel):
    id: str
    name: str
    description: str
    points_cost: int
    category: str

    @classmethod
    def from_reward(cls, reward: Reward) -> "RewardResponse":
        return cls(
            id=reward.id,
            name=reward.name,
            description=reward.description,
            points_cost=reward.points_cost,
            category=reward.category,
        )


class RewardCatalogResponse(StrictModel):
    all: List[RewardResponse]
    by_category: Dict[str, List[RewardResponse]]


class PointsTaskResponse(StrictModel):
    id: str
    name: str
    description: str
    points_reward: int
    category: str

    @classmethod
    def from_task(cls, task: PointsTask) -> "PointsTaskResponse":
        return cls(
            id=task.id,
            name=task.name,
            description=task.description,
            points_reward=task.points_reward,
            category=task.category,
        )


class PointsUserRequest(StrictRequestModel):
    user_id: str = Field(..., min_length=1, max_length=64)


class RewardRedemptionResponse(StrictModel):
    id: str
    user_id: str
    reward_id: str
    points_spent: int
    redeemed_at: datetime

    @classmethod
    def from_redemption(cls, redemption: RewardRedemption) -> "RewardRedemptionResponse":
        return cls(
            id=redemption.id,
            user_id=redemption.user_id,
            reward_id=redemption.reward_id,
            points_spent=redemption.points_spent,
            redeemed_at=redemption.redeemed_at,
        )


class TaskCompletionResponse(StrictModel):
    id: str
    user_id: str
    task_id: str
    points_awarded: int
    completed_at: datetime

    @classmethod
    def from_completion(cls, completion: TaskCompletion) -> "TaskCompletionResponse":
        return cls(
            id=completion.id,
            user_id=completion.user_id,
            task_id=completion.task_id,
            points_awarded=completion.points_awarded,
            completed_at=completion.completed_at,
        )


class RewardRedemptionListResponse(StrictModel):
    items: List[RewardRedemptionResponse]


class TaskCompletionListResponse(StrictModel):
    items: List[TaskCompletionResponse]
