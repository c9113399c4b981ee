import asyncio
import json
from contextlib import contextmanager

import httpx
import pytest

from portalapi.config import Settings
from portalapi.core.exceptions import AuthorizationError, NotFoundError
from portalapi.models import EnrollmentStatus, UserRole
from portalapi.providers.enrollment.client import (
    CONFIG_MISSING_MESSAGE,
    CONNECTION_ERROR_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    SUCCESS_MESSAGE,
    EnrollmentClient,
)
from portalapi.schemas.enrollment import EnrollmentBatchRequest, EnrollmentStudent
from portalapi.services import enrollment_service as enrollment_module
from portalapi.services.enrollment_service import EnrollmentService, make_idempotency_key

PAYLOAD = {
    "firstName": "Ayşe",
    "lastName": "Yılmaz",
    "email": "ayse@example.com",
    "phone": "5551112233",
    "productIds": ["M"],
}


@pytest.fixture
def enrollment_settings():
    return Settings(
        ENROLLMENT_API_URL="https://partner.test/api/students",
        ENROLLMENT_API_KEY="key",
        ENROLLMENT_API_SECRET="secret",
        ENROLLMENT_MAX_ATTEMPTS=3,
        ENROLLMENT_BACKOFF_SECONDS=0,
    )


def _client(settings, handler):
    return EnrollmentClient(settings, transport=httpx.MockTransport(handler))


class TestEnrollmentClient:
    def test_success_sends_credentials_and_idempotency_key(self, enrollment_settings):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"success": True, "data": {"id": "mk-1"}})

        result = asyncio.run(
            _client(enrollment_settings, handler).register_student(PAYLOAD, "abc123")
        )

        assert result.success is True
        assert result.external_id == "mk-1"
        assert result.message == SUCCESS_MESSAGE
        assert seen["headers"]["X-API-KEY"] == "key"
        assert seen["headers"]["X-API-SECRET"] == "secret"
        assert seen["headers"]["Idempotency-Key"] == "abc123"
        assert seen["body"]["productIds"] == ["M"]

    def test_success_without_id_is_marked_integrated(self, enrollment_settings):
        def handler(request):
            return httpx.Response(200, json={"success": True})

        result = asyncio.run(
            _client(enrollment_settings, handler).register_student(PAYLOAD, "k")
        )

        assert result.external_id == "integrated"

    def test_html_body_is_reported_with_status(self, enrollment_settings):
        def handler(request):
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        result = asyncio.run(
            _client(enrollment_settings, handler).register_student(PAYLOAD, "k")
        )

        assert result.success is False
        assert result.message == "API Sunucu Hatası (HTML döndü: 502)"
        assert result.retryable is True

    def test_upstream_validation_message_is_surfaced(self, enrollment_settings):
        def handler(request):
            return httpx.Response(
                422, json={"success": False, "errors": {"email": ["geçersiz"]}}
            )

        result = asyncio.run(
            _client(enrollment_settings, handler).register_student(PAYLOAD, "k")
        )

        assert result.success is False
        assert result.retryable is False
        assert "geçersiz" in result.message

    def test_connection_error_is_retryable(self, enrollment_settings):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = asyncio.run(
            _client(enrollment_settings, handler).register_student(PAYLOAD, "k")
        )

        assert result.message == CONNECTION_ERROR_MESSAGE
        assert result.retryable is True

    def test_missing_credentials(self):
        settings = Settings(ENROLLMENT_API_KEY=None, ENROLLMENT_API_SECRET=None)

        result = asyncio.run(EnrollmentClient(settings).register_student(PAYLOAD, "k"))

        assert result.success is False
        assert result.message == CONFIG_MISSING_MESSAGE


def _batch(*students):
    return EnrollmentBatchRequest(
        students=[
            EnrollmentStudent(
                student_id=student.id,
                first_name=student.first_name,
                last_name=student.last_name,
                email=student.email,
                phone=student.phone,
                product_codes=["s", "M"],
            )
            for student in students
        ]
    )


class TestEnrollmentService:
    def test_batch_registers_and_stores_external_id(
        self, db_session, enrollment_settings, admin, student
    ):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"success": True, "data": {"id": 77}})

        service = EnrollmentService(
            db_session, _client(enrollment_settings, handler), enrollment_settings
        )

        submitted = service.submit_batch(_batch(student), admin=admin)
        assert submitted.pending == 1
        assert submitted.items[0].product_codes == ["M", "S"]

        summary = asyncio.run(service.process_batch(submitted.batch_id))

        assert summary.succeeded == 1
        assert summary.items[0].external_id == "77"
        assert summary.items[0].attempts == 1
        assert calls[0].headers["Idempotency-Key"] == make_idempotency_key(
            student.id, ["M", "S"]
        )
        db_session.refresh(student)
        assert student.external_enrollment_id == "77"

    def test_retries_transient_failures_then_succeeds(
        self, db_session, enrollment_settings, admin, student
    ):
        responses = iter(
            [
                httpx.Response(503, json={"success": False, "message": "busy"}),
                httpx.Response(429, json={"success": False, "message": "slow down"}),
                httpx.Response(200, json={"success": True, "data": {"id": "x"}}),
            ]
        )
        service = EnrollmentService(
            db_session,
            _client(enrollment_settings, lambda request: next(responses)),
            enrollment_settings,
        )

        batch = service.submit_batch(_batch(student), admin=admin)
        summary = asyncio.run(service.process_batch(batch.batch_id))

        assert summary.succeeded == 1
        assert summary.items[0].attempts == 3

    def test_gives_up_after_max_attempts(
        self, db_session, enrollment_settings, admin, student
    ):
        service = EnrollmentService(
            db_session,
            _client(enrollment_settings, lambda request: httpx.Response(500, text="oops")),
            enrollment_settings,
        )

        batch = service.submit_batch(_batch(student), admin=admin)
        summary = asyncio.run(service.process_batch(batch.batch_id))

        assert summary.failed == 1
        assert summary.items[0].attempts == 3
        assert summary.items[0].message == "API Sunucu Hatası (HTML döndü: 500)"

    def test_permanent_failure_is_not_retried(
        self, db_session, enrollment_settings, admin, student
    ):
        service = EnrollmentService(
            db_session,
            _client(
                enrollment_settings,
                lambda request: httpx.Response(400, json={"message": "E-posta kayıtlı"}),
            ),
            enrollment_settings,
        )

        batch = service.submit_batch(_batch(student), admin=admin)
        summary = asyncio.run(service.process_batch(batch.batch_id))

        assert summary.failed == 1
        assert summary.items[0].attempts == 1
        assert summary.items[0].message == "E-posta kayıtlı"

    def test_unexpected_error_fails_the_row_and_batch_continues(
        self, db_session, enrollment_settings, admin, student, make_user, tutor
    ):
        second = make_user("second", tutor_id=tutor.id)
        failing_name = student.first_name

        def handler(request):
            if json.loads(request.content)["firstName"] == failing_name:
                raise RuntimeError("transport blew up")
            return httpx.Response(200, json={"success": True, "data": {"id": "ok-2"}})

        service = EnrollmentService(
            db_session, _client(enrollment_settings, handler), enrollment_settings
        )

        batch = service.submit_batch(_batch(student, second), admin=admin)
        summary = asyncio.run(service.process_batch(batch.batch_id))

        by_student = {item.student_id: item for item in summary.items}
        assert summary.pending == 0
        assert by_student[student.id].status == EnrollmentStatus.FAILED
        assert by_student[student.id].message == GENERIC_ERROR_MESSAGE
        assert by_student[student.id].attempts == 1
        assert by_student[second.id].status == EnrollmentStatus.SUCCEEDED

        retry = service.submit_batch(_batch(student), admin=admin)
        assert retry.pending == 1
        assert retry.skipped == 0

    def test_resubmission_is_skipped(self, db_session, enrollment_settings, admin, student):
        service = EnrollmentService(
            db_session,
            _client(
                enrollment_settings,
                lambda request: httpx.Response(200, json={"success": True, "data": {"id": 1}}),
            ),
            enrollment_settings,
        )
        first = service.submit_batch(_batch(student), admin=admin)
        asyncio.run(service.process_batch(first.batch_id))

        second = service.submit_batch(_batch(student), admin=admin)

        assert second.skipped == 1
        assert second.pending == 0

    def test_duplicate_student_in_one_batch_is_skipped(
        self, db_session, enrollment_settings, admin, student
    ):
        service = EnrollmentService(
            db_session, _client(enrollment_settings, lambda request: None), enrollment_settings
        )

        batch = service.submit_batch(_batch(student, student), admin=admin)

        assert batch.pending == 1
        assert batch.skipped == 1

    def test_missing_configuration_fails_whole_batch(
        self, db_session, admin, student, make_user, tutor
    ):
        settings = Settings(ENROLLMENT_API_KEY=None, ENROLLMENT_API_SECRET=None)
        other = make_user("other", UserRole.STUDENT, tutor_id=tutor.id)
        service = EnrollmentService(db_session, EnrollmentClient(settings), settings)

        batch = service.submit_batch(_batch(student, other), admin=admin)

        assert batch.failed == 2
        assert batch.pending == 0
        assert {item.message for item in batch.items} == {CONFIG_MISSING_MESSAGE}

    def test_admin_only_and_students_must_exist(
        self, db_session, enrollment_settings, admin, tutor, student
    ):
        service = EnrollmentService(
            db_session, EnrollmentClient(enrollment_settings), enrollment_settings
        )

        with pytest.raises(AuthorizationError):
            service.submit_batch(_batch(student), admin=tutor)
        with pytest.raises(NotFoundError):
            service.submit_batch(_batch(tutor), admin=admin)
        with pytest.raises(NotFoundError):
            service.get_batch("missing")

    def test_background_entry_point_uses_its_own_session(
        self, db_session, enrollment_settings, admin, student, monkeypatch
    ):
        @contextmanager
        def _session():
            yield db_session
            db_session.commit()

        monkeypatch.setattr(enrollment_module, "get_db_context", _session)
        client = _client(
            enrollment_settings,
            lambda request: httpx.Response(200, json={"success": True, "data": {"id": "bg"}}),
        )
        service = EnrollmentService(db_session, client, enrollment_settings)
        batch = service.submit_batch(_batch(student), admin=admin)

        asyncio.run(
            enrollment_module.run_enrollment_batch(batch.batch_id, client, enrollment_settings)
        )

        assert service.get_batch(batch.batch_id).succeeded == 1
