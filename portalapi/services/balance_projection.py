"""
Balance projection over the points/experience ledger.

The ledger is the only source of truth. ``User.points`` and
``User.experience`` are a cache of the active period's derived values and
are written exclusively by :meth:`BalanceProjection.sync_user`, always inside
the caller's transaction.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from portalapi.core.exceptions import NotFoundError
from portalapi.models.user import User as UserModel
from portalapi.repositories.period_repository import PeriodRepository
from portalapi.repositories.points_repository import PointsRepository
from portalapi.repositories.user_repository import UserRepository
from portalapi.schemas.points import PointsIntegrityCheckResponse

logger = logging.getLogger(__name__)


class BalanceProjection:
    def __init__(self, db: Session):
        self.db = db
        self.points_repo = PointsRepository(db)
        self.period_repo = PeriodRepository(db)
        self.user_repo = UserRepository(db)

    def _resolve_period_id(self, period_id: Optional[int]) -> Optional[int]:
        if period_id is not None:
            return period_id
        active = self.period_repo.get_active()
        return active.id if active else None

    # ------------------------------------------------------------ derivation

    def calculate_user_points(self, user_id: int, period_id: Optional[int] = None) -> int:
        """Σ AWARD − Σ REDEEM for the period; 0 when there is no active period"""
        period_id = self._resolve_period_id(period_id)
        if period_id is None:
            return 0
        return self.points_repo.sum_points(user_id, period_id)

    def calculate_user_experience(
        self, user_id: int, period_id: Optional[int] = None
    ) -> int:
        period_id = self._resolve_period_id(period_id)
        if period_id is None:
            return 0
        return self.points_repo.sum_experience(user_id, period_id)

    def calculate_multiple_user_points(
        self, user_ids: Sequence[int], period_id: Optional[int] = None
    ) -> Dict[int, int]:
        period_id = self._resolve_period_id(period_id)
        if period_id is None:
            return {user_id: 0 for user_id in user_ids}
        return self.points_repo.sum_points_many(user_ids, period_id)

    def calculate_multiple_user_experience(
        self, user_ids: Sequence[int], period_id: Optional[int] = None
    ) -> Dict[int, int]:
        period_id = self._resolve_period_id(period_id)
        if period_id is None:
            return {user_id: 0 for user_id in user_ids}
        return self.points_repo.sum_experience_many(user_ids, period_id)

    # ------------------------------------------------------------ projection

    def sync_user(self, user: UserModel, period_id: Optional[int] = None) -> UserModel:
        """Overwrite the cached balances with the ledger-derived values"""
        period_id = self._resolve_period_id(period_id)
        user.points = self.calculate_user_points(user.id, period_id) if period_id else 0
        user.experience = (
            self.calculate_user_experience(user.id, period_id) if period_id else 0
        )
        self.db.flush()
        return user

    def sync_users(self, users: Iterable[UserModel], period_id: Optional[int]) -> int:
        """Bulk variant used when the active period changes"""
        users = list(users)
        if not users:
            return 0

        user_ids = [user.id for user in users]
        if period_id is None:
            points = {user_id: 0 for user_id in user_ids}
            experience = dict(points)
        else:
            points = self.points_repo.sum_points_many(user_ids, period_id)
            experience = self.points_repo.sum_experience_many(user_ids, period_id)

        for user in users:
            user.points = points[user.id]
            user.experience = experience[user.id]
        self.db.flush()

        logger.info(f"Synced cached balances of {len(users)} users to period {period_id}")
        return len(users)

    def verify_user_integrity(self, user_id: int) -> PointsIntegrityCheckResponse:
        user = self.user_repo.get_model(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")

        period_id = self._resolve_period_id(None)
        ledger_points = self.calculate_user_points(user_id, period_id)
        ledger_experience = self.calculate_user_experience(user_id, period_id)
        consistent = user.points == ledger_points and user.experience == ledger_experience

        if not consistent:
            logger.warning(
                f"Balance mismatch for user {user_id}: cached=({user.points}, {user.experience}) "
                f"ledger=({ledger_points}, {ledger_experience})"
            )

        return PointsIntegrityCheckResponse(
            status="OK" if consistent else "MISMATCH",
            user_id=user_id,
            period_id=period_id,
            cached_points=user.points,
            ledger_points=ledger_points,
            cached_experience=user.experience,
            ledger_experience=ledger_experience,
            verified_at=datetime.now(timezone.utc),
        )
