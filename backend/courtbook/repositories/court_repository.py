# backend/courtbook/repositories/court_repository.py
"""Court inventory queries."""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.court import Court
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CourtRepository(BaseRepository[Court]):
    def __init__(self, db: Session):
        super().__init__(db, Court)

    def list_courts(self, *, sport: Optional[str] = None, active_only: bool = True) -> List[Court]:
        try:
            query = self.db.query(Court)
            if sport is not None:
                query = query.filter(Court.sport == sport)
            if active_only:
                query = query.filter(Court.is_active.is_(True))
            courts = query.all()
        except SQLAlchemyError as exc:
            self.logger.error("Failed to list courts: %s", exc)
            raise RepositoryException("Failed to list courts") from exc
        # "badminton-10" sorts after "badminton-9"
        return sorted(courts, key=lambda c: (c.sport, int(c.id.rsplit("-", 1)[1])))

    def get_active_ids(self, sport: str) -> List[str]:
        return [court.id for court in self.list_courts(sport=sport)]

    def get_many(self, court_ids: Sequence[str]) -> List[Court]:
        if not court_ids:
            return []
        try:
            return self.db.query(Court).filter(Court.id.in_(list(court_ids))).all()
        except SQLAlchemyError as exc:
            self.logger.error("Failed to load courts %s: %s", court_ids, exc)
            raise RepositoryException("Failed to load courts") from exc
