# backend/courtbook/repositories/credit_purchase_repository.py
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.credit_purchase import CreditPurchase
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CreditPurchaseRepository(BaseRepository[CreditPurchase]):
    def __init__(self, db: Session):
        super().__init__(db, CreditPurchase)

    def list_for_user(self, user_id: str, *, status: Optional[str] = None) -> List[CreditPurchase]:
        try:
            query = self.db.query(CreditPurchase).filter(CreditPurchase.user_id == user_id)
            if status is not None:
                query = query.filter(CreditPurchase.status == status)
            return query.order_by(CreditPurchase.created_at.desc(), CreditPurchase.id.desc()).all()
        except SQLAlchemyError as exc:
            self.logger.error("Failed to list credit purchases for %s: %s", user_id, exc)
            raise RepositoryException("Failed to list credit purchases") from exc
