"""
Ledger repository - points and experience transactions.

Every balance in the system is derived here from non-rolled-back rows scoped
to one period:

- points      = sum(AWARD points) - sum(REDEEM points)
- experience  = sum(experience amounts) + sum(AWARD points)

Inserts never commit; the calling service owns the transaction.
"""

from typing import Dict, List, Optional, Sequence

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from portalapi.models.points import (
    ExperienceTransaction as ExperienceTransactionModel,
    PointsTransaction as PointsTransactionModel,
    TransactionType,
)
from portalapi.schemas.points import (
    ExperienceTransactionWithStudent,
    PointsTransaction as PointsTransactionSchema,
    PointsTransactionWithStudent,
)
from portalapi.repositories.base import BaseRepository


class PointsRepository(BaseRepository[PointsTransactionModel, PointsTransactionSchema]):
    def __init__(self, db: Session):
        super().__init__(PointsTransactionModel, PointsTransactionSchema, db)

    # ------------------------------------------------------------------ writes

    def add_points_transaction(
        self,
        student_id: int,
        tutor_id: int,
        delta_points: int,
        reason: str,
        period_id: int,
    ) -> PointsTransactionModel:
        """Record a signed change as magnitude + direction"""
        return self.add(
            student_id=student_id,
            tutor_id=tutor_id,
            points=abs(delta_points),
            type=(
                TransactionType.AWARD.value
                if delta_points >= 0
                else TransactionType.REDEEM.value
            ),
            reason=reason,
            period_id=period_id,
            rolled_back=False,
        )

    def add_experience_transaction(
        self, student_id: int, tutor_id: int, amount: int, period_id: int
    ) -> ExperienceTransactionModel:
        instance = ExperienceTransactionModel(
            student_id=student_id,
            tutor_id=tutor_id,
            amount=amount,
            period_id=period_id,
            rolled_back=False,
        )
        self.db.add(instance)
        self.db.flush()
        return instance

    def get_experience_model(
        self, transaction_id: int, for_update: bool = False
    ) -> Optional[ExperienceTransactionModel]:
        query = self.db.query(ExperienceTransactionModel).filter(
            ExperienceTransactionModel.id == transaction_id
        )
        if for_update:
            query = query.with_for_update(of=ExperienceTransactionModel)
        return query.first()

    # ------------------------------------------------------------ projections

    def _points_sum_expression(self):
        model = self.model_class
        return func.coalesce(
            func.sum(
                case(
                    (model.type == TransactionType.AWARD.value, model.points),
                    else_=-model.points,
                )
            ),
            0,
        )

    def sum_points(self, user_id: int, period_id: int) -> int:
        model = self.model_class
        total = (
            self.db.query(self._points_sum_expression())
            .filter(
                model.student_id == user_id,
                model.period_id == period_id,
                model.rolled_back.is_(False),
            )
            .scalar()
        )
        return int(total or 0)

    def sum_experience(self, user_id: int, period_id: int) -> int:
        granted = (
            self.db.query(func.coalesce(func.sum(ExperienceTransactionModel.amount), 0))
            .filter(
                ExperienceTransactionModel.student_id == user_id,
                ExperienceTransactionModel.period_id == period_id,
                ExperienceTransactionModel.rolled_back.is_(False),
            )
            .scalar()
        )
        awarded = (
            self.db.query(func.coalesce(func.sum(self.model_class.points), 0))
            .filter(
                self.model_class.student_id == user_id,
                self.model_class.period_id == period_id,
                self.model_class.type == TransactionType.AWARD.value,
                self.model_class.rolled_back.is_(False),
            )
            .scalar()
        )
        return int(granted or 0) + int(awarded or 0)

    def sum_points_many(self, user_ids: Sequence[int], period_id: int) -> Dict[int, int]:
        totals = {user_id: 0 for user_id in user_ids}
        if not totals:
            return totals

        model = self.model_class
        rows = (
            self.db.query(model.student_id, self._points_sum_expression())
            .filter(
                model.student_id.in_(list(totals)),
                model.period_id == period_id,
                model.rolled_back.is_(False),
            )
            .group_by(model.student_id)
            .all()
        )
        for student_id, total in rows:
            totals[student_id] = int(total or 0)
        return totals

    def sum_experience_many(
        self, user_ids: Sequence[int], period_id: int
    ) -> Dict[int, int]:
        totals = {user_id: 0 for user_id in user_ids}
        if not totals:
            return totals

        granted = (
            self.db.query(
                ExperienceTransactionModel.student_id,
                func.sum(ExperienceTransactionModel.amount),
            )
            .filter(
                ExperienceTransactionModel.student_id.in_(list(totals)),
                ExperienceTransactionModel.period_id == period_id,
                ExperienceTransactionModel.rolled_back.is_(False),
            )
            .group_by(ExperienceTransactionModel.student_id)
            .all()
        )
        awarded = (
            self.db.query(self.model_class.student_id, func.sum(self.model_class.points))
            .filter(
                self.model_class.student_id.in_(list(totals)),
                self.model_class.period_id == period_id,
                self.model_class.type == TransactionType.AWARD.value,
                self.model_class.rolled_back.is_(False),
            )
            .group_by(self.model_class.student_id)
            .all()
        )
        for student_id, total in list(granted) + list(awarded):
            totals[student_id] += int(total or 0)
        return totals

    # ------------------------------------------------------------------ reads

    def list_points_transactions(
        self,
        student_ids: Optional[Sequence[int]] = None,
        period_id: Optional[int] = None,
        include_rolled_back: bool = True,
        limit: int = 100,
    ) -> List[PointsTransactionWithStudent]:
        """Newest first; student_ids=None means no student filter"""
        model = self.model_class
        query = self.db.query(model)
        if student_ids is not None:
            if not student_ids:
                return []
            query = query.filter(model.student_id.in_(list(student_ids)))
        if period_id is not None:
            query = query.filter(model.period_id == period_id)
        if not include_rolled_back:
            query = query.filter(model.rolled_back.is_(False))

        rows = query.order_by(model.created_at.desc(), model.id.desc()).limit(limit).all()
        return [PointsTransactionWithStudent.model_validate(row) for row in rows]

    def list_experience_transactions(
        self,
        student_ids: Optional[Sequence[int]] = None,
        tutor_id: Optional[int] = None,
        include_rolled_back: bool = False,
        limit: int = 25,
    ) -> List[ExperienceTransactionWithStudent]:
        model = ExperienceTransactionModel
        query = self.db.query(model)
        if student_ids is not None:
            if not student_ids:
                return []
            query = query.filter(model.student_id.in_(list(student_ids)))
        if tutor_id is not None:
            query = query.filter(model.tutor_id == tutor_id)
        if not include_rolled_back:
            query = query.filter(model.rolled_back.is_(False))

        rows = query.order_by(model.created_at.desc(), model.id.desc()).limit(limit).all()
        return [ExperienceTransactionWithStudent.model_validate(row) for row in rows]
