from .base import Base
from .user import User, UserRole
from .period import Period, PeriodStatus
from .points import PointsTransaction, ExperienceTransaction, TransactionType
from .rollback import TransactionRollback, RollbackTransactionType
from .store import StoreItem, ItemRequest, RequestStatus
from .enrollment import EnrollmentRegistration, EnrollmentStatus

__all__ = [
    "Base",
    "User", "UserRole",
    "Period", "PeriodStatus",
    "PointsTransaction", "ExperienceTransaction", "TransactionType",
    "TransactionRollback", "RollbackTransactionType",
    "StoreItem", "ItemRequest", "RequestStatus",
    "EnrollmentRegistration", "EnrollmentStatus",
]
