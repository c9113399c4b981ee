from typing import List, Optional, Sequence

from sqlalchemy.orm import Session, joinedload

from portalapi.models.user import User as UserModel, UserRole
from portalapi.schemas.user import User as UserSchema
from portalapi.repositories.base import BaseRepository


class UserRepository(BaseRepository[UserModel, UserSchema]):
    def __init__(self, db: Session):
        super().__init__(UserModel, UserSchema, db)

    def get_student_model(
        self, student_id: int, for_update: bool = False
    ) -> Optional[UserModel]:
        """Student row, or None when the id is missing or not a student"""
        query = self.db.query(self.model_class).filter(
            self.model_class.id == student_id,
            self.model_class.role == UserRole.STUDENT.value,
        )
        if for_update:
            query = query.with_for_update(of=self.model_class)
        return query.first()

    def get_students(self, tutor_id: Optional[int] = None) -> List[UserModel]:
        query = (
            self.db.query(self.model_class)
            .options(joinedload(self.model_class.tutor))
            .filter(self.model_class.role == UserRole.STUDENT.value)
        )
        if tutor_id is not None:
            query = query.filter(self.model_class.tutor_id == tutor_id)
        return query.order_by(self.model_class.id).all()

    def get_student_ids(self, tutor_id: Optional[int] = None) -> List[int]:
        return [student.id for student in self.get_students(tutor_id=tutor_id)]

    def get_ledger_holders(self) -> List[UserModel]:
        """Users whose cached balances follow the active period"""
        return (
            self.db.query(self.model_class)
            .filter(
                self.model_class.role.in_(
                    [
                        UserRole.STUDENT.value,
                        UserRole.TUTOR.value,
                        UserRole.ASISTAN.value,
                    ]
                )
            )
            .order_by(self.model_class.id)
            .all()
        )

    def get_models(self, user_ids: Sequence[int]) -> List[UserModel]:
        if not user_ids:
            return []
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.id.in_(list(user_ids)))
            .all()
        )

    def set_external_enrollment_id(self, user_id: int, external_id: str) -> None:
        self.db.query(self.model_class).filter(self.model_class.id == user_id).update(
            {"external_enrollment_id": external_id}, synchronize_session="fetch"
        )
