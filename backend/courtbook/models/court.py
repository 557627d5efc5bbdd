# backend/courtbook/models/court.py
"""
Court model.

Courts are static reference data seeded from the inventory catalog. The
booking flow reads them but never mutates them.
"""

from datetime import datetime, timezone
import logging

from sqlalchemy import Boolean, CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, Session, mapped_column

from ..core.catalog import SPORTS
from ..database import Base

logger = logging.getLogger(__name__)


class Court(Base):
    """A physical court for one sport."""

    __tablename__ = "courts"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    sport: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    __table_args__ = (
        CheckConstraint("sport IN ('badminton', 'pickleball')", name="ck_courts_sport"),
    )

    def __repr__(self) -> str:
        return f"<Court {self.id}: sport={self.sport}, active={self.is_active}>"


def seed_courts(session: Session) -> int:
    """Insert catalog courts that are missing. Returns the number inserted."""
    existing = {court_id for (court_id,) in session.query(Court.id).all()}
    inserted = 0
    for catalog in SPORTS.values():
        for number, court_id in enumerate(catalog.court_ids, start=1):
            if court_id in existing:
                continue
            session.add(
                Court(
                    id=court_id,
                    sport=catalog.sport.value,
                    name=f"Court {number}",
                    is_active=True,
                )
            )
            inserted += 1
    if inserted:
        session.flush()
        logger.info("Seeded %d courts", inserted)
    return inserted
