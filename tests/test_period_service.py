from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from portalapi.config import settings
from portalapi.core.exceptions import (
    ConflictError,
    NoActivePeriodError,
    NotFoundError,
    ValidationError,
)
from portalapi.models import Period, PeriodStatus
from portalapi.schemas.period import PeriodCreateRequest, PeriodUpdateRequest
from portalapi.services.period_service import PeriodService
from portalapi.services.point_service import PointService


@pytest.fixture
def period_service(db_session):
    return PeriodService(db_session)


def _create(period_service, name, start=datetime(2026, 1, 1, tzinfo=timezone.utc), end=None):
    return period_service.create_period(
        PeriodCreateRequest(name=name, start_date=start, end_date=end)
    )


class TestActivePeriodResolution:
    def test_require_active_period_raises_when_none_active(self, period_service):
        with pytest.raises(NoActivePeriodError) as exc_info:
            period_service.require_active_period()

        assert exc_info.value.status_code == 409

    def test_get_active_period_returns_none_without_raising(self, period_service):
        assert period_service.get_active_period() is None

    def test_inactive_periods_are_never_used_as_fallback(self, period_service):
        _create(period_service, "Bahar")

        with pytest.raises(NoActivePeriodError):
            period_service.require_active_period()

    def test_returns_the_active_period(self, period_service, active_period):
        assert period_service.require_active_period().id == active_period.id


class TestPeriodLifecycle:
    def test_create_period_starts_inactive(self, period_service):
        period = _create(period_service, "  2026 Bahar  ")

        assert period.status == PeriodStatus.INACTIVE
        assert period.name == "2026 Bahar"

    def test_duplicate_name_conflicts(self, period_service):
        _create(period_service, "Yaz")

        with pytest.raises(ConflictError):
            _create(period_service, "Yaz")

    def test_end_before_start_rejected(self, period_service):
        with pytest.raises(ValidationError):
            _create(
                period_service,
                "Ters",
                start=datetime(2026, 6, 1, tzinfo=timezone.utc),
                end=datetime(2026, 1, 1, tzinfo=timezone.utc),
            )

    def test_activation_demotes_previous_period(
        self, period_service, db_session, active_period
    ):
        new_period = _create(period_service, "Yeni")

        result = period_service.activate_period(new_period.id)

        assert result.previous_period_id == active_period.id
        assert result.period.status == PeriodStatus.ACTIVE
        db_session.refresh(active_period)
        assert active_period.status == PeriodStatus.INACTIVE.value
        active = db_session.query(Period).filter_by(status=PeriodStatus.ACTIVE.value).all()
        assert [period.id for period in active] == [new_period.id]

    def test_activation_resyncs_cached_balances(
        self, period_service, db_session, admin, student, active_period
    ):
        PointService(db_session, settings).change_points(student.id, 30, "x", actor=admin)
        db_session.refresh(student)
        assert student.points == 30

        new_period = _create(period_service, "Yeni")
        result = period_service.activate_period(new_period.id)

        db_session.refresh(student)
        assert result.synced_users >= 1
        assert student.points == 0
        assert student.experience == 0

        # Switching back restores the old period's balances from its ledger
        period_service.activate_period(active_period.id)
        db_session.refresh(student)
        assert student.points == 30

    def test_activate_rejects_active_and_archived(self, period_service, active_period):
        with pytest.raises(ValidationError):
            period_service.activate_period(active_period.id)

        archived = _create(period_service, "Eski")
        period_service.archive_period(archived.id)
        with pytest.raises(ValidationError):
            period_service.activate_period(archived.id)

    def test_activate_missing_period(self, period_service):
        with pytest.raises(NotFoundError):
            period_service.activate_period(12345)

    def test_single_active_enforced_by_database(self, db_session, active_period):
        db_session.add(
            Period(
                name="Rogue",
                start_date=datetime(2026, 1, 1, tzinfo=timezone.utc),
                status=PeriodStatus.ACTIVE.value,
            )
        )
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_update_cannot_activate(self, period_service, active_period):
        other = _create(period_service, "Diğer")

        with pytest.raises(ValidationError):
            period_service.update_period(
                other.id, PeriodUpdateRequest(status=PeriodStatus.ACTIVE)
            )

        updated = period_service.update_period(
            other.id, PeriodUpdateRequest(description="notes")
        )
        assert updated.description == "notes"
        assert updated.status == PeriodStatus.INACTIVE

    def test_archive_active_rejected(self, period_service, active_period):
        with pytest.raises(ValidationError):
            period_service.archive_period(active_period.id)

    def test_delete_blocked_when_period_owns_ledger_rows(
        self, period_service, db_session, admin, student, active_period
    ):
        PointService(db_session, settings).change_points(student.id, 5, "x", actor=admin)
        new_period = _create(period_service, "Yeni")
        period_service.activate_period(new_period.id)

        with pytest.raises(ValidationError):
            period_service.delete_period(active_period.id)

        assert period_service.get_period(active_period.id).counts.points_transactions == 1

    def test_delete_empty_period(self, period_service):
        period = _create(period_service, "Boş")

        period_service.delete_period(period.id)

        with pytest.raises(NotFoundError):
            period_service.get_period(period.id)

    def test_list_periods_includes_counts(self, period_service, active_period):
        _create(period_service, "Bir")

        periods = period_service.list_periods()

        assert {period.name for period in periods} == {"Bir", active_period.name}
        assert all(period.counts.points_transactions == 0 for period in periods)
        inactive = period_service.list_periods(PeriodStatus.INACTIVE)
        assert [period.name for period in inactive] == ["Bir"]
