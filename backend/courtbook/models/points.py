# backend/courtbook/models/points.py
"""
Points economy records.

A reward redemption is written in the same transaction as the ``spent``
points entry that pays for it; a task completion in the same transaction as
the ``earned`` entry it grants. Each row keeps the id of that entry.
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..core.ulid_helper import generate_ulid
from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RewardRedemption(Base):
    __tablename__ = "reward_redemptions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    reward_id: Mapped[str] = mapped_column(String(32), nullable=False)
    points_spent: Mapped[int] = mapped_column(Integer, nullable=False)
    ledger_entry_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("ledger_entries.id"), nullable=False
    )
    redeemed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("points_spent > 0", name="check_redemption_points_positive"),
    )

    def __repr__(self) -> str:
        return f"<RewardRedemption {self.id}: {self.user_id} {self.reward_id}>"


class TaskCompletion(Base):
    __tablename__ = "task_completions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    task_id: Mapped[str] = mapped_column(String(32), nullable=False)
    points_awarded: Mapped[int] = mapped_column(Integer, nullable=False)
    ledger_entry_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("ledger_entries.id"), nullable=False
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("points_awarded > 0", name="check_task_points_positive"),
        Index("ix_task_completions_user_task_completed", "user_id", "task_id", "completed_at"),
    )

    def __repr__(self) -> str:
        return f"<TaskCompletion {self.id}: {self.user_id} {self.task_id}>"
