# backend/courtbook/services/points_service.py
"""
Points economy: rewards bought with points and tasks that award them.

Both operations go through the points ledger in one transaction with the
record they create, so a redemption never exists without its ``spent``
entry and a completion never exists without its ``earned`` entry. A task can
be completed once per user within ``task_cooldown_hours``; the points
account row is locked before the cooldown is checked, which serializes
concurrent completions by the same user.
"""

from __future__ import annotations

from datetime import timedelta
import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core import catalog
from ..core.catalog import PointsTask, Reward
from ..core.clock import Clock, as_utc
from ..core.config import settings
from ..core.enums import LedgerAccountKind, LedgerReason
from ..core.exceptions import TaskRecentlyCompletedException, ValidationException
from ..models.points import RewardRedemption, TaskCompletion
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .ledger_service import LedgerService

logger = logging.getLogger(__name__)


class PointsService(BaseService):
    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        ledger_service: Optional[LedgerService] = None,
    ):
        super().__init__(db, clock)
        self.ledger_service = ledger_service or LedgerService(db, self.clock)
        self.redemption_repository = RepositoryFactory.create_reward_redemption_repository(db)
        self.completion_repository = RepositoryFactory.create_task_completion_repository(db)

    def list_rewards(self) -> Sequence[Reward]:
        return catalog.REWARDS

    def rewards_by_category(self) -> Dict[str, List[Reward]]:
        return catalog.rewards_by_category()

    def list_tasks(self) -> Sequence[PointsTask]:
        return catalog.POINTS_TASKS

    @BaseService.measure_operation("redeem_reward")
    def redeem_reward(self, *, user_id: str, reward_id: str) -> RewardRedemption:
        """
        Spend points on a catalog reward.

        Raises:
            NotFoundException: unknown reward
            InsufficientFundsException: points balance below the reward cost
        """
        if not user_id:
            raise ValidationException("user_id is required")
        reward = catalog.get_reward(reward_id)

        with self.transaction():
            entry = self.ledger_service.spend(
                user_id=user_id,
                kind=LedgerAccountKind.POINTS,
                amount=reward.points_cost,
                description=f"Redeemed reward: {reward.name}",
                use_transaction=False,
            )
            redemption = self.redemption_repository.create(
                user_id=user_id,
                reward_id=reward.id,
                points_spent=reward.points_cost,
                ledger_entry_id=entry.id,
                redeemed_at=self.clock.now_utc(),
            )

        self.log_operation(
            "redeem_reward",
            user_id=user_id,
            reward_id=reward.id,
            points_spent=reward.points_cost,
            remaining_points=entry.balance_after,
        )
        return redemption

    @BaseService.measure_operation("complete_task")
    def complete_task(self, *, user_id: str, task_id: str) -> TaskCompletion:
        """
        Award a task's points.

        Raises:
            NotFoundException: unknown task
            TaskRecentlyCompletedException: completed within the cooldown window
        """
        if not user_id:
            raise ValidationException("user_id is required")
        task = catalog.get_points_task(task_id)
        cooldown = timedelta(hours=settings.task_cooldown_hours)

        with self.transaction():
            self.ledger_service.lock_account(user_id=user_id, kind=LedgerAccountKind.POINTS)
            now = self.clock.now_utc()
            latest = self.completion_repository.latest_for(user_id=user_id, task_id=task.id)
            if latest is not None and now < as_utc(latest.completed_at) + cooldown:
                raise TaskRecentlyCompletedException(task.id, settings.task_cooldown_hours)

            entry = self.ledger_service.earn(
                user_id=user_id,
                kind=LedgerAccountKind.POINTS,
                amount=task.points_reward,
                reason=LedgerReason.EARNED,
                description=f"Completed task: {task.name}",
                use_transaction=False,
            )
            completion = self.completion_repository.create(
                user_id=user_id,
                task_id=task.id,
                points_awarded=task.points_reward,
                ledger_entry_id=entry.id,
                completed_at=now,
            )

        self.log_operation(
            "complete_task", user_id=user_id, task_id=task.id, points=task.points_reward
        )
        return completion

    def list_redemptions(self, user_id: str, *, limit: int = 50) -> List[RewardRedemption]:
        return self.redemption_repository.list_for_user(user_id, limit=limit)

    def list_completions(self, user_id: str, *, limit: int = 50) -> List[TaskCompletion]:
        return self.completion_repository.list_for_user(user_id, limit=limit)


__all__ = ["PointsService"]
