from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from portalapi.models.store import (
    ItemRequest as ItemRequestModel,
    RequestStatus,
    StoreItem as StoreItemModel,
)
from portalapi.schemas.store import ItemRequest as ItemRequestSchema, StoreItem as StoreItemSchema
from portalapi.repositories.base import BaseRepository


class StoreItemRepository(BaseRepository[StoreItemModel, StoreItemSchema]):
    def __init__(self, db: Session):
        super().__init__(StoreItemModel, StoreItemSchema, db)

    def list_items(self, active_only: bool = True) -> List[StoreItemSchema]:
        query = self.db.query(self.model_class)
        if active_only:
            query = query.filter(self.model_class.is_active.is_(True))
        return self._to_schemas(
            query.order_by(self.model_class.points_required, self.model_class.id).all()
        )


class ItemRequestRepository(BaseRepository[ItemRequestModel, ItemRequestSchema]):
    def __init__(self, db: Session):
        super().__init__(ItemRequestModel, ItemRequestSchema, db)

    def list_requests(
        self,
        student_ids: Optional[Sequence[int]] = None,
        tutor_id: Optional[int] = None,
        status: Optional[RequestStatus] = None,
    ) -> List[ItemRequestSchema]:
        query = self.db.query(self.model_class)
        if student_ids is not None:
            if not student_ids:
                return []
            query = query.filter(self.model_class.student_id.in_(list(student_ids)))
        if tutor_id is not None:
            query = query.filter(self.model_class.tutor_id == tutor_id)
        if status is not None:
            query = query.filter(self.model_class.status == status.value)
        return self._to_schemas(
            query.order_by(self.model_class.created_at.desc(), self.model_class.id.desc()).all()
        )
