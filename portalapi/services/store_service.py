"""
Rewards store: items priced in points and student redemption requests.

Creating a request reserves nothing; points leave the ledger when the request is
approved, through the same REDEEM path every other deduction uses.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from portalapi.core.exceptions import (
    AuthorizationError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from portalapi.core.permissions import visible_student_ids
from portalapi.database.session import atomic
from portalapi.models.store import RequestStatus
from portalapi.models.user import UserRole
from portalapi.repositories.points_repository import PointsRepository
from portalapi.repositories.store_repository import ItemRequestRepository, StoreItemRepository
from portalapi.repositories.user_repository import UserRepository
from portalapi.schemas.store import (
    ItemRequest as ItemRequestSchema,
    ItemRequestCreate,
    ItemRequestListResponse,
    ItemRequestResponse,
    ItemRequestUpdate,
    StoreItem as StoreItemSchema,
    StoreItemCreateRequest,
    StoreItemListResponse,
)
from portalapi.services.balance_projection import BalanceProjection
from portalapi.services.period_service import PeriodService

logger = logging.getLogger(__name__)


class StoreService:
    def __init__(self, db: Session):
        self.db = db
        self.item_repo = StoreItemRepository(db)
        self.request_repo = ItemRequestRepository(db)
        self.points_repo = PointsRepository(db)
        self.user_repo = UserRepository(db)
        self.period_service = PeriodService(db)
        self.projection = BalanceProjection(db)

    # ------------------------------------------------------------------ items

    def create_item(self, request: StoreItemCreateRequest, actor) -> StoreItemSchema:
        if not UserRole.is_admin(actor.role):
            raise AuthorizationError("Only admin can create store items")

        with atomic(self.db):
            item = self.item_repo.add(
                name=request.name.strip(),
                description=request.description,
                points_required=request.points_required,
                is_active=True,
            )

        logger.info(f"Admin {actor.id} created store item {item.id} ({item.name})")
        return StoreItemSchema.model_validate(item)

    def list_items(self, active_only: bool = True) -> StoreItemListResponse:
        return StoreItemListResponse(items=self.item_repo.list_items(active_only=active_only))

    # --------------------------------------------------------------- requests

    def create_request(self, request: ItemRequestCreate, actor) -> ItemRequestResponse:
        if UserRole(actor.role) != UserRole.STUDENT:
            raise AuthorizationError("Only students can request store items")

        period = self.period_service.require_active_period()

        student = self.user_repo.get_student_model(actor.id)
        if not student:
            raise NotFoundError("Student not found")
        if not student.tutor_id:
            raise ValidationError("No tutor assigned")

        item = self.item_repo.get_model(request.item_id)
        if not item or not item.is_active:
            raise NotFoundError("Store item not found", details={"item_id": request.item_id})

        balance = self.projection.calculate_user_points(student.id, period.id)
        if balance < item.points_required:
            raise InsufficientBalanceError(
                "Not enough points for this item",
                details={"balance": balance, "required": item.points_required},
            )

        with atomic(self.db):
            item_request = self.request_repo.add(
                student_id=student.id,
                tutor_id=student.tutor_id,
                item_id=item.id,
                status=RequestStatus.PENDING.value,
                points_spent=item.points_required,
                note=(request.note or "").strip(),
                period_id=period.id,
            )
            self.db.refresh(item_request)

        logger.info(f"Student {student.id} requested item {item.id} (request {item_request.id})")
        return ItemRequestResponse(
            message="Request submitted",
            request=ItemRequestSchema.model_validate(item_request),
        )

    def list_requests(
        self, actor, status: Optional[RequestStatus] = None
    ) -> ItemRequestListResponse:
        role = UserRole(actor.role)
        if role in (UserRole.TUTOR, UserRole.ASISTAN):
            requests = self.request_repo.list_requests(tutor_id=actor.id, status=status)
        else:
            requests = self.request_repo.list_requests(
                student_ids=visible_student_ids(actor, self.user_repo), status=status
            )
        return ItemRequestListResponse(requests=requests)

    def process_request(
        self, request_id: int, update: ItemRequestUpdate, actor
    ) -> ItemRequestResponse:
        role = UserRole(actor.role)
        if role not in (UserRole.ADMIN, UserRole.TUTOR):
            raise AuthorizationError("Only admin or the student's tutor can process requests")
        if update.status not in (RequestStatus.APPROVED, RequestStatus.REJECTED):
            raise ValidationError("Status must be APPROVED or REJECTED")

        with atomic(self.db):
            item_request = self.request_repo.get_model(request_id, for_update=True)
            if not item_request:
                raise NotFoundError("Request not found", details={"request_id": request_id})
            if role == UserRole.TUTOR and item_request.tutor_id != actor.id:
                raise AuthorizationError("Request belongs to another tutor's student")
            if item_request.status != RequestStatus.PENDING.value:
                raise ValidationError(
                    f"Request already {item_request.status.lower()}",
                    details={"status": item_request.status},
                )

            if update.status == RequestStatus.APPROVED:
                period = self.period_service.require_active_period()
                student = self.user_repo.get_student_model(
                    item_request.student_id, for_update=True
                )
                balance = self.projection.calculate_user_points(student.id, period.id)
                if balance < item_request.points_spent:
                    raise InsufficientBalanceError(
                        "Student no longer has enough points for this item",
                        details={"balance": balance, "required": item_request.points_spent},
                    )

                transaction = self.points_repo.add_points_transaction(
                    student_id=student.id,
                    tutor_id=actor.id,
                    delta_points=-item_request.points_spent,
                    reason=f"Store: {item_request.item.name}",
                    period_id=period.id,
                )
                item_request.points_transaction_id = transaction.id
                self.projection.sync_user(student, period.id)

            item_request.status = update.status.value
            if update.note is not None:
                item_request.note = update.note.strip()
            self.db.flush()

        logger.info(
            f"User {actor.id} set item request {request_id} to {update.status.value}"
        )
        return ItemRequestResponse(
            message=f"Request {update.status.value.lower()}",
            request=ItemRequestSchema.model_validate(item_request),
        )
