import logging

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from portalapi.config import Settings
from portalapi.containers import Container
from portalapi.core.auth_middleware import require_admin
from portalapi.database.session import get_db
from portalapi.providers.enrollment.client import EnrollmentClient
from portalapi.schemas.enrollment import EnrollmentBatchRequest, EnrollmentBatchResponse
from portalapi.schemas.user import User as UserSchema
from portalapi.services.enrollment_service import EnrollmentService, run_enrollment_batch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/enrollments", tags=["enrollment"])


@router.post(
    "", response_model=EnrollmentBatchResponse, status_code=status.HTTP_202_ACCEPTED
)
@inject
def submit_enrollment_batch(
    request: EnrollmentBatchRequest,
    background_tasks: BackgroundTasks,
    current_user: UserSchema = Depends(require_admin),
    db: Session = Depends(get_db),
    client: EnrollmentClient = Depends(Provide[Container.clients.enrollment_client]),
    settings: Settings = Depends(Provide[Container.config.config]),
) -> EnrollmentBatchResponse:
    """Record the batch and register pending students after the response is sent"""
    batch = EnrollmentService(db, client, settings).submit_batch(request, admin=current_user)
    if batch.pending:
        background_tasks.add_task(run_enrollment_batch, batch.batch_id, client, settings)
    return batch


@router.get("/{batch_id}", response_model=EnrollmentBatchResponse)
@inject
def get_enrollment_batch(
    batch_id: str,
    current_user: UserSchema = Depends(require_admin),
    db: Session = Depends(get_db),
    client: EnrollmentClient = Depends(Provide[Container.clients.enrollment_client]),
    settings: Settings = Depends(Provide[Container.config.config]),
) -> EnrollmentBatchResponse:
    return EnrollmentService(db, client, settings).get_batch(batch_id)
