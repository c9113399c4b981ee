import logging
from typing import Optional

from sqlalchemy.orm import Session

from portalapi.config import Settings
from portalapi.core.exceptions import (
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from portalapi.core.permissions import (
    ensure_can_view_student,
    ensure_student_access,
    visible_student_ids,
)
from portalapi.database.session import atomic
from portalapi.models.user import User as UserModel
from portalapi.repositories.points_repository import PointsRepository
from portalapi.repositories.user_repository import UserRepository
from portalapi.schemas.points import (
    BalanceResponse,
    PointsChangeResponse,
    PointsTransaction as PointsTransactionSchema,
    PointsTransactionListResponse,
)
from portalapi.services.balance_projection import BalanceProjection
from portalapi.services.period_service import PeriodService

logger = logging.getLogger(__name__)


class PointService:
    """Points award/deduct over the period-scoped ledger"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.points_repo = PointsRepository(db)
        self.user_repo = UserRepository(db)
        self.period_service = PeriodService(db)
        self.projection = BalanceProjection(db)

    def _get_student(self, student_id: int, for_update: bool = False) -> UserModel:
        student = self.user_repo.get_student_model(student_id, for_update=for_update)
        if not student:
            raise NotFoundError("Student not found", details={"student_id": student_id})
        return student

    def change_points(
        self, student_id: int, points: int, reason: Optional[str], actor
    ) -> PointsChangeResponse:
        """Award (points > 0) or deduct (points < 0) for a student in the active period.

        The ledger insert and the cached balance refresh commit together; any
        failure rolls both back.
        """
        period = self.period_service.require_active_period()

        with atomic(self.db):
            # Row lock serializes concurrent changes to the same student
            student = self._get_student(student_id, for_update=True)
            ensure_student_access(actor, student)

            if points == 0:
                raise ValidationError("Points must be non-zero")

            if points < 0:
                balance = self.projection.calculate_user_points(student.id, period.id)
                if abs(points) > balance:
                    logger.warning(
                        f"Refused deduction of {abs(points)} from student {student.id} "
                        f"(balance {balance}, period {period.id})"
                    )
                    raise InsufficientBalanceError(
                        "Cannot decrease more points than student has",
                        details={"balance": balance, "requested": abs(points)},
                    )

            if not reason or not reason.strip():
                reason = (
                    self.settings.DEFAULT_AWARD_REASON
                    if points > 0
                    else self.settings.DEFAULT_DEDUCT_REASON
                )

            transaction = self.points_repo.add_points_transaction(
                student_id=student.id,
                tutor_id=actor.id,
                delta_points=points,
                reason=reason.strip(),
                period_id=period.id,
            )
            self.projection.sync_user(student, period.id)

        logger.info(
            f"User {actor.id} changed points of student {student.id} by {points} "
            f"in period {period.id} (tx {transaction.id})"
        )
        return PointsChangeResponse(
            message="Puan başarıyla eklendi" if points > 0 else "Puan başarıyla azaltıldı",
            transaction=PointsTransactionSchema.model_validate(transaction),
            new_balance=student.points,
        )

    def list_transactions(
        self, actor, student_id: Optional[int] = None, limit: int = 100
    ) -> PointsTransactionListResponse:
        student_ids = visible_student_ids(actor, self.user_repo)
        if student_id is not None:
            if student_ids is not None and student_id not in student_ids:
                raise NotFoundError(
                    "Student not found or not assigned to this tutor",
                    details={"student_id": student_id},
                )
            student_ids = [student_id]

        transactions = self.points_repo.list_points_transactions(
            student_ids=student_ids, limit=limit
        )
        return PointsTransactionListResponse(transactions=transactions)

    def get_balance(self, student_id: int, actor) -> BalanceResponse:
        student = self._get_student(student_id)
        ensure_can_view_student(actor, student)

        period = self.period_service.get_active_period()
        period_id = period.id if period else None
        return BalanceResponse(
            student_id=student.id,
            period_id=period_id,
            points=self.projection.calculate_user_points(student.id, period_id),
            experience=self.projection.calculate_user_experience(student.id, period_id),
        )
