import logging

from sqlalchemy.orm import Session

from portalapi.core.exceptions import (
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from portalapi.core.permissions import ensure_student_access, visible_student_ids
from portalapi.database.session import atomic
from portalapi.models.user import UserRole
from portalapi.repositories.points_repository import PointsRepository
from portalapi.repositories.user_repository import UserRepository
from portalapi.schemas.points import (
    ExperienceChangeResponse,
    ExperienceTransaction as ExperienceTransactionSchema,
    ExperienceTransactionListResponse,
)
from portalapi.services.balance_projection import BalanceProjection
from portalapi.services.period_service import PeriodService

logger = logging.getLogger(__name__)


class ExperienceService:
    def __init__(self, db: Session):
        self.db = db
        self.points_repo = PointsRepository(db)
        self.user_repo = UserRepository(db)
        self.period_service = PeriodService(db)
        self.projection = BalanceProjection(db)

    def change_experience(self, student_id: int, amount: int, actor) -> ExperienceChangeResponse:
        period = self.period_service.require_active_period()

        with atomic(self.db):
            student = self.user_repo.get_student_model(student_id, for_update=True)
            if not student:
                raise NotFoundError("Student not found", details={"student_id": student_id})
            ensure_student_access(actor, student)

            if amount == 0:
                raise ValidationError("Experience amount must be non-zero")

            current = self.projection.calculate_user_experience(student.id, period.id)
            if current + amount < 0:
                raise InsufficientBalanceError(
                    "Cannot decrease more experience than student has",
                    details={"experience": current, "requested": amount},
                )

            transaction = self.points_repo.add_experience_transaction(
                student_id=student.id,
                tutor_id=actor.id,
                amount=amount,
                period_id=period.id,
            )
            self.projection.sync_user(student, period.id)

        logger.info(
            f"User {actor.id} changed experience of student {student.id} by {amount} "
            f"in period {period.id} (tx {transaction.id})"
        )
        return ExperienceChangeResponse(
            transaction=ExperienceTransactionSchema.model_validate(transaction),
            new_experience=student.experience,
        )

    def list_transactions(self, actor, limit: int = 25) -> ExperienceTransactionListResponse:
        """Tutors see what they granted, admins everything, students their own"""
        role = UserRole(actor.role)
        if role in (UserRole.TUTOR, UserRole.ASISTAN):
            transactions = self.points_repo.list_experience_transactions(
                tutor_id=actor.id, limit=limit
            )
        else:
            transactions = self.points_repo.list_experience_transactions(
                student_ids=visible_student_ids(actor, self.user_repo), limit=limit
            )
        return ExperienceTransactionListResponse(transactions=transactions)
