import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portalapi.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InsufficientBalanceError,
    NotFoundError,
)
from portalapi.database.session import atomic
from portalapi.models.rollback import RollbackTransactionType
from portalapi.models.user import UserRole
from portalapi.repositories.points_repository import PointsRepository
from portalapi.repositories.rollback_repository import RollbackRepository
from portalapi.repositories.user_repository import UserRepository
from portalapi.schemas.rollback import (
    RollbackHistoryResponse,
    RollbackRequest,
    RollbackResponse,
    TransactionRollback as TransactionRollbackSchema,
)
from portalapi.schemas.user import UserBalance
from portalapi.services.balance_projection import BalanceProjection
from portalapi.services.period_service import PeriodService

logger = logging.getLogger(__name__)

ALREADY_ROLLED_BACK = "This transaction has already been rolled back."


class RollbackService:
    """Administrative reversal of ledger entries.

    The original row stays in place with ``rolled_back`` set and a
    ``TransactionRollback`` audit row is written next to it; balances are then
    re-derived from the ledger instead of being decremented.
    """

    def __init__(self, db: Session):
        self.db = db
        self.points_repo = PointsRepository(db)
        self.rollback_repo = RollbackRepository(db)
        self.user_repo = UserRepository(db)
        self.period_service = PeriodService(db)
        self.projection = BalanceProjection(db)

    @staticmethod
    def _require_admin(actor) -> None:
        if not UserRole.is_admin(actor.role):
            raise AuthorizationError("Unauthorized: Only admin can perform rollbacks")

    def _load_transaction(self, request: RollbackRequest):
        if request.transaction_type == RollbackTransactionType.POINTS:
            transaction = self.points_repo.get_model(request.transaction_id, for_update=True)
            label = "Points"
        else:
            transaction = self.points_repo.get_experience_model(
                request.transaction_id, for_update=True
            )
            label = "Experience"
        if not transaction:
            raise NotFoundError(
                f"{label} transaction not found",
                details={"transaction_id": request.transaction_id},
            )
        return transaction

    def _check_balances_after(self, transaction, transaction_type) -> None:
        """Reject reversals that would leave the student's period balance negative.

        Reversing an award whose points were already spent (store approval or a
        later deduction) would otherwise push the balance below zero, which no
        other ledger path allows.
        """
        points = self.projection.calculate_user_points(
            transaction.student_id, transaction.period_id
        )
        experience = self.projection.calculate_user_experience(
            transaction.student_id, transaction.period_id
        )
        if transaction_type == RollbackTransactionType.POINTS:
            points -= transaction.signed_points
            if transaction.signed_points > 0:
                experience -= transaction.points
        else:
            experience -= transaction.amount

        if points < 0 or experience < 0:
            raise InsufficientBalanceError(
                "Rollback would leave the student with a negative balance",
                details={"points_after": points, "experience_after": experience},
            )

    def rollback(self, request: RollbackRequest, admin) -> RollbackResponse:
        self._require_admin(admin)
        period = self.period_service.require_active_period()

        if self.rollback_repo.find_for_transaction(
            request.transaction_id, request.transaction_type
        ):
            raise ConflictError(ALREADY_ROLLED_BACK)

        try:
            with atomic(self.db):
                transaction = self._load_transaction(request)
                student = self.user_repo.get_model(transaction.student_id, for_update=True)
                if transaction.rolled_back:
                    raise ConflictError(ALREADY_ROLLED_BACK)

                self._check_balances_after(transaction, request.transaction_type)

                transaction.rolled_back = True
                rollback = self.rollback_repo.add(
                    transaction_id=transaction.id,
                    transaction_type=request.transaction_type.value,
                    student_id=transaction.student_id,
                    admin_id=admin.id,
                    reason=request.reason.strip(),
                    period_id=period.id,
                )
                self.projection.sync_user(student, period.id)
        except IntegrityError:
            # Concurrent rollback of the same transaction hit the unique constraint
            raise ConflictError(ALREADY_ROLLED_BACK)

        logger.info(
            f"Admin {admin.id} rolled back {request.transaction_type.value} transaction "
            f"{request.transaction_id} of student {student.id}"
        )
        return RollbackResponse(
            success=True,
            student=UserBalance.model_validate(student),
            rollback=TransactionRollbackSchema.model_validate(rollback),
        )

    def list_rollbacks(self, admin) -> RollbackHistoryResponse:
        if not UserRole.is_admin(admin.role):
            raise AuthorizationError("Unauthorized: Only admin can view rollback history")
        return RollbackHistoryResponse(rollbacks=self.rollback_repo.list_history())
