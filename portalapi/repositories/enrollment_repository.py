from typing import List, Optional

from sqlalchemy.orm import Session

from portalapi.models.enrollment import (
    EnrollmentRegistration as EnrollmentRegistrationModel,
    EnrollmentStatus,
)
from portalapi.schemas.enrollment import EnrollmentRegistration as EnrollmentRegistrationSchema
from portalapi.repositories.base import BaseRepository


class EnrollmentRepository(
    BaseRepository[EnrollmentRegistrationModel, EnrollmentRegistrationSchema]
):
    def __init__(self, db: Session):
        super().__init__(EnrollmentRegistrationModel, EnrollmentRegistrationSchema, db)

    def get_batch(self, batch_id: str) -> List[EnrollmentRegistrationModel]:
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.batch_id == batch_id)
            .order_by(self.model_class.id)
            .all()
        )

    def get_pending(self, batch_id: str) -> List[EnrollmentRegistrationModel]:
        return [
            row
            for row in self.get_batch(batch_id)
            if row.status == EnrollmentStatus.PENDING.value
        ]

    def find_by_key(
        self, idempotency_key: str, status: EnrollmentStatus
    ) -> Optional[EnrollmentRegistrationModel]:
        return (
            self.db.query(self.model_class)
            .filter(
                self.model_class.idempotency_key == idempotency_key,
                self.model_class.status == status.value,
            )
            .first()
        )
