"""
Batch registration of students with the enrollment partner.

``submit_batch`` records one ``EnrollmentRegistration`` per student and
returns immediately; ``process_batch`` runs afterwards (FastAPI background
task) and calls the partner for every pending row with retry and exponential
backoff. Each row carries a deterministic idempotency key so resubmitting the
same student and products never registers them twice.
"""

import asyncio
import hashlib
import logging
import uuid
from typing import Dict, List

from sqlalchemy.orm import Session

from portalapi.config import Settings
from portalapi.core.exceptions import AuthorizationError, NotFoundError
from portalapi.database.session import atomic, get_db_context
from portalapi.models.enrollment import (
    EnrollmentRegistration as EnrollmentRegistrationModel,
    EnrollmentStatus,
)
from portalapi.models.user import UserRole
from portalapi.providers.enrollment.client import (
    CONFIG_MISSING_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    EnrollmentClient,
)
from portalapi.repositories.enrollment_repository import EnrollmentRepository
from portalapi.repositories.user_repository import UserRepository
from portalapi.schemas.enrollment import (
    EnrollmentBatchRequest,
    EnrollmentBatchResponse,
    EnrollmentRegistration as EnrollmentRegistrationSchema,
    EnrollmentStudent,
)

logger = logging.getLogger(__name__)

ALREADY_REGISTERED_MESSAGE = "Öğrenci zaten kayıtlı"
IN_PROGRESS_MESSAGE = "Kayıt işlemi devam ediyor"


def make_idempotency_key(student_id: int, product_codes: List[str]) -> str:
    raw = f"{student_id}:{','.join(sorted(product_codes))}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _partner_payload(student: EnrollmentStudent) -> Dict:
    return {
        "firstName": student.first_name,
        "lastName": student.last_name,
        "email": student.email,
        "phone": student.phone,
        "productIds": student.product_codes,
    }


class EnrollmentService:
    def __init__(self, db: Session, client: EnrollmentClient, settings: Settings):
        self.db = db
        self.client = client
        self.settings = settings
        self.enrollment_repo = EnrollmentRepository(db)
        self.user_repo = UserRepository(db)

    def submit_batch(self, request: EnrollmentBatchRequest, admin) -> EnrollmentBatchResponse:
        if not UserRole.is_admin(admin.role):
            raise AuthorizationError("Unauthorized")

        student_ids = [student.student_id for student in request.students]
        users = {user.id: user for user in self.user_repo.get_models(student_ids)}
        missing = sorted(
            {
                student_id
                for student_id in student_ids
                if student_id not in users
                or users[student_id].role != UserRole.STUDENT.value
            }
        )
        if missing:
            raise NotFoundError("Students not found", details={"student_ids": missing})

        batch_id = str(uuid.uuid4())
        configured = self.client.configured
        seen_keys = set()

        with atomic(self.db):
            for student in request.students:
                key = make_idempotency_key(student.student_id, student.product_codes)
                status, message = EnrollmentStatus.PENDING, None

                if not configured:
                    status, message = EnrollmentStatus.FAILED, CONFIG_MISSING_MESSAGE
                elif (
                    key in seen_keys
                    or users[student.student_id].external_enrollment_id
                    or self.enrollment_repo.find_by_key(key, EnrollmentStatus.SUCCEEDED)
                ):
                    status, message = EnrollmentStatus.SKIPPED, ALREADY_REGISTERED_MESSAGE
                elif self.enrollment_repo.find_by_key(key, EnrollmentStatus.PENDING):
                    status, message = EnrollmentStatus.SKIPPED, IN_PROGRESS_MESSAGE

                seen_keys.add(key)
                self.enrollment_repo.add(
                    batch_id=batch_id,
                    student_id=student.student_id,
                    product_codes=student.product_codes,
                    payload=_partner_payload(student),
                    idempotency_key=key,
                    status=status.value,
                    attempts=0,
                    message=message,
                )

        if not configured:
            logger.error(f"Enrollment batch {batch_id} failed: {CONFIG_MISSING_MESSAGE}")
        else:
            logger.info(
                f"Admin {admin.id} submitted enrollment batch {batch_id} "
                f"({len(request.students)} students)"
            )
        return self.get_batch(batch_id)

    def get_batch(self, batch_id: str) -> EnrollmentBatchResponse:
        rows = self.enrollment_repo.get_batch(batch_id)
        if not rows:
            raise NotFoundError(f"Enrollment batch {batch_id} not found")

        def _count(status: EnrollmentStatus) -> int:
            return sum(1 for row in rows if row.status == status.value)

        return EnrollmentBatchResponse(
            batch_id=batch_id,
            total=len(rows),
            pending=_count(EnrollmentStatus.PENDING),
            succeeded=_count(EnrollmentStatus.SUCCEEDED),
            failed=_count(EnrollmentStatus.FAILED),
            skipped=_count(EnrollmentStatus.SKIPPED),
            items=[EnrollmentRegistrationSchema.model_validate(row) for row in rows],
        )

    async def _register(self, row: EnrollmentRegistrationModel) -> None:
        """Register one row; an unexpected error fails the row, not the batch"""
        try:
            await self._attempt_registration(row)
        except Exception:
            logger.exception(
                f"Enrollment of student {row.student_id} (row {row.id}) crashed"
            )
            attempts = row.attempts
            self.db.rollback()
            row.attempts = max(attempts, 1)
            row.status = EnrollmentStatus.FAILED.value
            row.message = GENERIC_ERROR_MESSAGE
            self.db.commit()

    async def _attempt_registration(self, row: EnrollmentRegistrationModel) -> None:
        max_attempts = max(1, self.settings.ENROLLMENT_MAX_ATTEMPTS)

        while True:
            result = await self.client.register_student(row.payload, row.idempotency_key)
            row.attempts += 1

            if result.success:
                row.status = EnrollmentStatus.SUCCEEDED.value
                row.external_id = result.external_id
                row.message = result.message
                self.user_repo.set_external_enrollment_id(row.student_id, result.external_id)
                break

            if not result.retryable or row.attempts >= max_attempts:
                row.status = EnrollmentStatus.FAILED.value
                row.message = result.message
                logger.warning(
                    f"Enrollment of student {row.student_id} failed after "
                    f"{row.attempts} attempt(s): {result.message}"
                )
                break

            delay = self.settings.ENROLLMENT_BACKOFF_SECONDS * (2 ** (row.attempts - 1))
            logger.info(
                f"Retrying enrollment of student {row.student_id} in {delay:.1f}s "
                f"({result.message})"
            )
            await asyncio.sleep(delay)

        self.db.commit()

    async def process_batch(self, batch_id: str) -> EnrollmentBatchResponse:
        """Call the partner for every PENDING row; each row commits on its own"""
        for row in self.enrollment_repo.get_pending(batch_id):
            await self._register(row)

        summary = self.get_batch(batch_id)
        logger.info(
            f"Enrollment batch {batch_id} done: {summary.succeeded} succeeded, "
            f"{summary.failed} failed, {summary.skipped} skipped"
        )
        return summary


async def run_enrollment_batch(
    batch_id: str, client: EnrollmentClient, settings: Settings
) -> None:
    """Background entry point; opens its own session outside the request"""
    with get_db_context() as db:
        await EnrollmentService(db, client, settings).process_batch(batch_id)
