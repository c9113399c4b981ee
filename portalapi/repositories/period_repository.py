from typing import List, Optional

from sqlalchemy.orm import Session

from portalapi.models.period import Period as PeriodModel, PeriodStatus
from portalapi.models.points import ExperienceTransaction, PointsTransaction
from portalapi.models.rollback import TransactionRollback
from portalapi.models.store import ItemRequest
from portalapi.schemas.period import Period as PeriodSchema, PeriodCounts
from portalapi.repositories.base import BaseRepository


class PeriodRepository(BaseRepository[PeriodModel, PeriodSchema]):
    def __init__(self, db: Session):
        super().__init__(PeriodModel, PeriodSchema, db)

    def get_active_models(self) -> List[PeriodModel]:
        """Every ACTIVE row; more than one means the invariant was broken"""
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.status == PeriodStatus.ACTIVE.value)
            .order_by(self.model_class.id)
            .all()
        )

    def get_active(self) -> Optional[PeriodSchema]:
        active = self.get_active_models()
        return self._to_schema(active[0]) if active else None

    def get_by_name(self, name: str) -> Optional[PeriodSchema]:
        return self.get_by_field("name", name)

    def list_periods(self, status: Optional[PeriodStatus] = None) -> List[PeriodModel]:
        query = self.db.query(self.model_class)
        if status is not None:
            query = query.filter(self.model_class.status == status.value)
        return query.order_by(
            self.model_class.created_at.desc(), self.model_class.id.desc()
        ).all()

    def demote_active(self, exclude_id: Optional[int] = None) -> List[int]:
        """ACTIVE -> INACTIVE for every active period; returns the demoted ids"""
        demoted = []
        for period in self.get_active_models():
            if period.id == exclude_id:
                continue
            period.status = PeriodStatus.INACTIVE.value
            demoted.append(period.id)
        # Flush before promoting so the partial unique index never sees two ACTIVE rows
        self.db.flush()
        return demoted

    def get_counts(self, period_id: int) -> PeriodCounts:
        def _count(model) -> int:
            return self.db.query(model).filter(model.period_id == period_id).count()

        return PeriodCounts(
            points_transactions=_count(PointsTransaction),
            experience_transactions=_count(ExperienceTransaction),
            rollbacks=_count(TransactionRollback),
            item_requests=_count(ItemRequest),
        )
