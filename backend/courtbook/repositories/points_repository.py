# backend/courtbook/repositories/points_repository.py
"""Reward redemptions and task completions."""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.points import RewardRedemption, TaskCompletion
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class RewardRedemptionRepository(BaseRepository[RewardRedemption]):
    def __init__(self, db: Session):
        super().__init__(db, RewardRedemption)

    def list_for_user(self, user_id: str, *, limit: int = 50) -> List[RewardRedemption]:
        try:
            return (
                self.db.query(RewardRedemption)
                .filter(RewardRedemption.user_id == user_id)
                .order_by(RewardRedemption.redeemed_at.desc(), RewardRedemption.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to list reward redemptions for %s: %s", user_id, exc)
            raise RepositoryException("Failed to list reward redemptions") from exc


class TaskCompletionRepository(BaseRepository[TaskCompletion]):
    def __init__(self, db: Session):
        super().__init__(db, TaskCompletion)

    def latest_for(self, *, user_id: str, task_id: str) -> Optional[TaskCompletion]:
        """Most recent completion of a task by a user."""
        try:
            return (
                self.db.query(TaskCompletion)
                .filter(
                    TaskCompletion.user_id == user_id,
                    TaskCompletion.task_id == task_id,
                )
                .order_by(TaskCompletion.completed_at.desc())
                .first()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to read completions of %s for %s: %s", task_id, user_id, exc)
            raise RepositoryException("Failed to read task completions") from exc

    def list_for_user(self, user_id: str, *, limit: int = 50) -> List[TaskCompletion]:
        try:
            return (
                self.db.query(TaskCompletion)
                .filter(TaskCompletion.user_id == user_id)
                .order_by(TaskCompletion.completed_at.desc(), TaskCompletion.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to list task completions for %s: %s", user_id, exc)
            raise RepositoryException("Failed to list task completions") from exc
