from typing import List, Optional

from portalapi.core.exceptions import AuthorizationError
from portalapi.models.user import UserRole
from portalapi.repositories.user_repository import UserRepository


def ensure_student_access(actor, student) -> None:
    """ADMIN acts on anyone; TUTOR/ASISTAN only on students assigned to them"""
    role = UserRole(actor.role)
    if role == UserRole.ADMIN:
        return
    if role in (UserRole.TUTOR, UserRole.ASISTAN):
        if student.tutor_id == actor.id:
            return
        raise AuthorizationError(
            "Unauthorized: Student not assigned to this tutor",
            details={"student_id": student.id},
        )
    raise AuthorizationError(f"Role '{role.value}' cannot change student balances")


def ensure_can_view_student(actor, student) -> None:
    if actor.id == student.id:
        return
    ensure_student_access(actor, student)


def visible_student_ids(actor, user_repo: UserRepository) -> Optional[List[int]]:
    """Student ids whose records the actor may read; None means unrestricted"""
    role = UserRole(actor.role)
    if role == UserRole.ADMIN:
        return None
    if role in (UserRole.TUTOR, UserRole.ASISTAN):
        return user_repo.get_student_ids(tutor_id=actor.id)
    if role == UserRole.STUDENT:
        return [actor.id]
    return []
