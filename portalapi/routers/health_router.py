import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portalapi.database.session import get_db
from portalapi.repositories.period_repository import PeriodRepository
from portalapi.schemas.health import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
def health_check(db: Session = Depends(get_db)) -> HealthCheckResponse:
    """Health check endpoint (database round-trip included)."""
    try:
        db.execute(text("SELECT 1"))
        active = PeriodRepository(db).get_active()
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        return HealthCheckResponse(status="degraded", database="error", error=str(e))

    return HealthCheckResponse(active_period_id=active.id if active else None)
