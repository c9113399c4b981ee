from typing import List, Optional

from sqlalchemy.orm import Session

from portalapi.models.rollback import (
    RollbackTransactionType,
    TransactionRollback as TransactionRollbackModel,
)
from portalapi.schemas.rollback import (
    RollbackHistoryEntry,
    TransactionRollback as TransactionRollbackSchema,
)
from portalapi.repositories.base import BaseRepository


class RollbackRepository(BaseRepository[TransactionRollbackModel, TransactionRollbackSchema]):
    def __init__(self, db: Session):
        super().__init__(TransactionRollbackModel, TransactionRollbackSchema, db)

    def find_for_transaction(
        self, transaction_id: int, transaction_type: RollbackTransactionType
    ) -> Optional[TransactionRollbackSchema]:
        model_instance = (
            self.db.query(self.model_class)
            .filter(
                self.model_class.transaction_id == transaction_id,
                self.model_class.transaction_type == transaction_type.value,
            )
            .first()
        )
        return self._to_schema(model_instance)

    def list_history(self, limit: Optional[int] = None) -> List[RollbackHistoryEntry]:
        query = self.db.query(self.model_class).order_by(
            self.model_class.created_at.desc(), self.model_class.id.desc()
        )
        if limit:
            query = query.limit(limit)
        return [RollbackHistoryEntry.model_validate(row) for row in query.all()]
