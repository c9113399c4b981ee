import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portalapi.core.exceptions import (
    ConflictError,
    NoActivePeriodError,
    NotFoundError,
    ValidationError,
)
from portalapi.database.session import atomic
from portalapi.models.period import Period as PeriodModel, PeriodStatus
from portalapi.repositories.period_repository import PeriodRepository
from portalapi.repositories.user_repository import UserRepository
from portalapi.schemas.period import (
    Period as PeriodSchema,
    PeriodActivationResponse,
    PeriodCreateRequest,
    PeriodUpdateRequest,
    PeriodWithCounts,
)
from portalapi.services.balance_projection import BalanceProjection

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PeriodService:
    """Period registry: resolution of the active period and its lifecycle"""

    def __init__(self, db: Session):
        self.db = db
        self.period_repo = PeriodRepository(db)
        self.user_repo = UserRepository(db)
        self.projection = BalanceProjection(db)

    # ------------------------------------------------------------ resolution

    def get_active_period(self) -> Optional[PeriodSchema]:
        return self.period_repo.get_active()

    def require_active_period(self) -> PeriodSchema:
        """The single ACTIVE period; never falls back to another one"""
        active = self.period_repo.get_active_models()
        if not active:
            raise NoActivePeriodError()
        if len(active) > 1:
            logger.error(
                f"More than one ACTIVE period: {[period.id for period in active]}"
            )
        return PeriodSchema.model_validate(active[0])

    # ------------------------------------------------------------ management

    def _get_model_or_404(self, period_id: int) -> PeriodModel:
        period = self.period_repo.get_model(period_id)
        if not period:
            raise NotFoundError(f"Period {period_id} not found")
        return period

    def _with_counts(self, period: PeriodModel) -> PeriodWithCounts:
        return PeriodWithCounts(
            **PeriodSchema.model_validate(period).model_dump(),
            counts=self.period_repo.get_counts(period.id),
        )

    @staticmethod
    def _check_dates(start_date, end_date) -> None:
        if end_date is None or start_date is None:
            return
        if _as_utc(end_date) <= _as_utc(start_date):
            raise ValidationError(
                "End date must be after start date",
                details={"start_date": str(start_date), "end_date": str(end_date)},
            )

    def list_periods(self, status: Optional[PeriodStatus] = None) -> List[PeriodWithCounts]:
        return [self._with_counts(period) for period in self.period_repo.list_periods(status)]

    def get_period(self, period_id: int) -> PeriodWithCounts:
        return self._with_counts(self._get_model_or_404(period_id))

    def create_period(self, request: PeriodCreateRequest) -> PeriodSchema:
        self._check_dates(request.start_date, request.end_date)
        if self.period_repo.get_by_name(request.name):
            raise ConflictError(f"A period named '{request.name}' already exists")

        try:
            with atomic(self.db):
                period = self.period_repo.add(
                    name=request.name,
                    description=request.description,
                    start_date=request.start_date,
                    end_date=request.end_date,
                    status=PeriodStatus.INACTIVE.value,
                )
        except IntegrityError:
            raise ConflictError(f"A period named '{request.name}' already exists")

        logger.info(f"Created period {period.id} ({period.name})")
        return PeriodSchema.model_validate(period)

    def update_period(self, period_id: int, request: PeriodUpdateRequest) -> PeriodSchema:
        period = self._get_model_or_404(period_id)
        changes = request.model_dump(exclude_unset=True)

        status = changes.pop("status", None)
        if status is not None:
            status = PeriodStatus(status)
            if status == PeriodStatus.ACTIVE and period.status != PeriodStatus.ACTIVE.value:
                raise ValidationError("Use the activate endpoint to activate a period")
            if status != PeriodStatus.ACTIVE and period.status == PeriodStatus.ACTIVE.value:
                raise ValidationError(
                    "The active period cannot be deactivated directly; activate another period instead"
                )

        if "name" in changes:
            changes["name"] = changes["name"].strip()
            existing = self.period_repo.get_by_name(changes["name"])
            if existing and existing.id != period_id:
                raise ConflictError(f"A period named '{changes['name']}' already exists")

        self._check_dates(
            changes.get("start_date", period.start_date),
            changes.get("end_date", period.end_date),
        )

        try:
            with atomic(self.db):
                for key, value in changes.items():
                    setattr(period, key, value)
                if status is not None:
                    period.status = status.value
                self.db.flush()
        except IntegrityError:
            raise ConflictError("Period update conflicts with an existing period")

        logger.info(f"Updated period {period_id}: {sorted(changes)}")
        return PeriodSchema.model_validate(period)

    def activate_period(self, period_id: int) -> PeriodActivationResponse:
        """Demote the current ACTIVE period, promote the target and re-sync balances.

        Everything happens in one transaction; the demotion is flushed before
        the promotion so the single-active index is never violated.
        """
        period = self._get_model_or_404(period_id)
        if period.status == PeriodStatus.ACTIVE.value:
            raise ValidationError("Period is already active")
        if period.status == PeriodStatus.ARCHIVED.value:
            raise ValidationError("Archived periods cannot be activated")

        try:
            with atomic(self.db):
                demoted = self.period_repo.demote_active(exclude_id=period_id)
                period.status = PeriodStatus.ACTIVE.value
                self.db.flush()
                synced = self.projection.sync_users(
                    self.user_repo.get_ledger_holders(), period.id
                )
        except IntegrityError:
            # Another activation won the race
            raise ConflictError("Another period was activated concurrently")

        previous_period_id = demoted[0] if demoted else None
        logger.info(
            f"Activated period {period_id} (previous: {previous_period_id}); synced {synced} users"
        )
        return PeriodActivationResponse(
            period=PeriodSchema.model_validate(period),
            previous_period_id=previous_period_id,
            synced_users=synced,
            message=f"Period '{period.name}' is now active",
        )

    def archive_period(self, period_id: int) -> PeriodSchema:
        period = self._get_model_or_404(period_id)
        if period.status == PeriodStatus.ACTIVE.value:
            raise ValidationError("The active period cannot be archived")
        if period.status == PeriodStatus.ARCHIVED.value:
            return PeriodSchema.model_validate(period)

        with atomic(self.db):
            period.status = PeriodStatus.ARCHIVED.value
            self.db.flush()

        logger.info(f"Archived period {period_id}")
        return PeriodSchema.model_validate(period)

    def delete_period(self, period_id: int) -> None:
        period = self._get_model_or_404(period_id)
        if period.status == PeriodStatus.ACTIVE.value:
            raise ValidationError("The active period cannot be deleted")

        counts = self.period_repo.get_counts(period_id)
        if counts.has_data:
            raise ValidationError(
                "Period owns ledger data and cannot be deleted; archive it instead",
                details=counts.model_dump(),
            )

        with atomic(self.db):
            self.db.delete(period)
            self.db.flush()

        logger.info(f"Deleted period {period_id}")
