# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .user_repository import UserRepository
from .period_repository import PeriodRepository
from .points_repository import PointsRepository
from .rollback_repository import RollbackRepository
from .store_repository import StoreItemRepository, ItemRequestRepository
from .enrollment_repository import EnrollmentRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "PeriodRepository",
    "PointsRepository",
    "RollbackRepository",
    "StoreItemRepository",
    "ItemRequestRepository",
    "EnrollmentRepository",
]
