from fastapi import Depends
from sqlalchemy.orm import Session

from portalapi.config import settings
from portalapi.database.session import get_db

# Services
from portalapi.services.balance_projection import BalanceProjection
from portalapi.services.experience_service import ExperienceService
from portalapi.services.leaderboard_service import LeaderboardService
from portalapi.services.period_service import PeriodService
from portalapi.services.point_service import PointService
from portalapi.services.rollback_service import RollbackService
from portalapi.services.store_service import StoreService


def get_period_service(db: Session = Depends(get_db)) -> PeriodService:
    return PeriodService(db=db)


def get_point_service(db: Session = Depends(get_db)) -> PointService:
    return PointService(db=db, settings=settings)


def get_experience_service(db: Session = Depends(get_db)) -> ExperienceService:
    return ExperienceService(db=db)


def get_rollback_service(db: Session = Depends(get_db)) -> RollbackService:
    return RollbackService(db=db)


def get_balance_projection(db: Session = Depends(get_db)) -> BalanceProjection:
    return BalanceProjection(db=db)


def get_leaderboard_service(db: Session = Depends(get_db)) -> LeaderboardService:
    return LeaderboardService(db=db, settings=settings)


def get_store_service(db: Session = Depends(get_db)) -> StoreService:
    return StoreService(db=db)
