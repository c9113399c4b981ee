from contextlib import contextmanager
from datetime import timedelta

import httpx
from dependency_injector import providers

from portalapi.config import Settings
from portalapi.core.security import create_access_token
from portalapi.main import app
from portalapi.models import PointsTransaction, TransactionRollback
from portalapi.providers.enrollment.client import EnrollmentClient
from portalapi.services import enrollment_service


class TestHealthAndAuth:
    def test_health_is_public(self, client, active_period):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["active_period_id"] == active_period.id

    def test_missing_token_is_401(self, client):
        response = client.get("/api/v1/auth/me")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["kind"] == "UNAUTHORIZED"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_expired_token_is_401(self, client, student):
        token = create_access_token({"sub": student.id}, expires_delta=timedelta(minutes=-1))

        response = client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401

    def test_me(self, client, student, auth_headers):
        response = client.get("/api/v1/auth/me", headers=auth_headers(student))

        assert response.status_code == 200
        assert response.json()["username"] == "student"
        assert response.json()["role"] == "STUDENT"


class TestPointsRoutes:
    def test_award_then_balance(self, client, admin, student, active_period, auth_headers):
        response = client.post(
            "/api/v1/points",
            json={"student_id": student.id, "points": 50, "reason": "test"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["new_balance"] == 50
        assert response.json()["transaction"]["type"] == "AWARD"

        balance = client.get(
            f"/api/v1/points/balance/{student.id}", headers=auth_headers(student)
        )
        assert balance.json()["points"] == 50

    def test_foreign_tutor_gets_403(
        self, client, other_tutor, student, active_period, auth_headers
    ):
        response = client.post(
            "/api/v1/points",
            json={"student_id": student.id, "points": -10},
            headers=auth_headers(other_tutor),
        )

        assert response.status_code == 403
        assert response.json()["error"]["kind"] == "FORBIDDEN"

    def test_student_role_cannot_call_award(
        self, client, student, active_period, auth_headers
    ):
        response = client.post(
            "/api/v1/points",
            json={"student_id": student.id, "points": 10},
            headers=auth_headers(student),
        )

        assert response.status_code == 403

    def test_overdraw_is_400(self, client, admin, student, active_period, auth_headers):
        client.post(
            "/api/v1/points",
            json={"student_id": student.id, "points": 50},
            headers=auth_headers(admin),
        )

        response = client.post(
            "/api/v1/points",
            json={"student_id": student.id, "points": -60},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == (
            "Cannot decrease more points than student has"
        )

    def test_unknown_student_is_404(self, client, admin, active_period, auth_headers):
        response = client.post(
            "/api/v1/points",
            json={"student_id": 999, "points": 5},
            headers=auth_headers(admin),
        )

        assert response.status_code == 404
        assert response.json()["error"]["kind"] == "NOT_FOUND"

    def test_no_active_period_is_409(self, client, db_session, admin, student, auth_headers):
        response = client.post(
            "/api/v1/points",
            json={"student_id": student.id, "points": 5},
            headers=auth_headers(admin),
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "PERIOD_001"
        assert db_session.query(PointsTransaction).count() == 0

    def test_schema_violation_is_422(self, client, admin, auth_headers):
        response = client.post(
            "/api/v1/points", json={"points": "many"}, headers=auth_headers(admin)
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_002"

    def test_out_of_range_amounts_are_rejected_before_the_ledger(
        self, client, db_session, admin, student, active_period, auth_headers
    ):
        points = client.post(
            "/api/v1/points",
            json={"student_id": student.id, "points": 10**20},
            headers=auth_headers(admin),
        )
        experience = client.post(
            "/api/v1/experience",
            json={"student_id": student.id, "amount": -(2**31)},
            headers=auth_headers(admin),
        )

        assert points.status_code == 422
        assert points.json()["error"]["kind"] == "VALIDATION"
        assert experience.status_code == 422
        assert db_session.query(PointsTransaction).count() == 0

    def test_integrity_is_admin_only(
        self, client, admin, tutor, student, active_period, auth_headers
    ):
        forbidden = client.get(
            f"/api/v1/points/integrity/{student.id}", headers=auth_headers(tutor)
        )
        allowed = client.get(
            f"/api/v1/points/integrity/{student.id}", headers=auth_headers(admin)
        )

        assert forbidden.status_code == 403
        assert allowed.status_code == 200
        assert allowed.json()["status"] == "OK"


class TestRollbackRoutes:
    def test_rollback_twice_conflicts(
        self, client, db_session, admin, student, active_period, auth_headers
    ):
        award = client.post(
            "/api/v1/points",
            json={"student_id": student.id, "points": 50},
            headers=auth_headers(admin),
        ).json()
        body = {
            "transaction_id": award["transaction"]["id"],
            "transaction_type": "POINTS",
            "reason": "mistake",
        }

        first = client.post(
            "/api/v1/admin/transactions/rollback", json=body, headers=auth_headers(admin)
        )
        second = client.post(
            "/api/v1/admin/transactions/rollback", json=body, headers=auth_headers(admin)
        )

        assert first.status_code == 200
        assert first.json()["student"]["points"] == 0
        assert second.status_code == 409
        assert second.json()["error"]["kind"] == "CONFLICT"
        assert db_session.query(TransactionRollback).count() == 1

        history = client.get(
            "/api/v1/admin/transactions/rollback", headers=auth_headers(admin)
        )
        assert len(history.json()["rollbacks"]) == 1

    def test_rollback_requires_admin(self, client, tutor, active_period, auth_headers):
        response = client.post(
            "/api/v1/admin/transactions/rollback",
            json={"transaction_id": 1, "transaction_type": "POINTS", "reason": "x"},
            headers=auth_headers(tutor),
        )

        assert response.status_code == 403


class TestPeriodRoutes:
    def test_admin_period_flow(self, client, admin, active_period, auth_headers):
        created = client.post(
            "/api/v1/admin/periods",
            json={"name": "2026 Bahar", "start_date": "2026-02-01T00:00:00Z"},
            headers=auth_headers(admin),
        )
        assert created.status_code == 201
        period_id = created.json()["id"]

        activated = client.post(
            f"/api/v1/admin/periods/{period_id}/activate", headers=auth_headers(admin)
        )
        assert activated.status_code == 200
        assert activated.json()["previous_period_id"] == active_period.id

        active = client.get("/api/v1/periods/active", headers=auth_headers(admin))
        assert active.json()["id"] == period_id

        again = client.post(
            f"/api/v1/admin/periods/{period_id}/activate", headers=auth_headers(admin)
        )
        assert again.status_code == 400

        listing = client.get("/api/v1/admin/periods", headers=auth_headers(admin))
        assert len(listing.json()["periods"]) == 2

    def test_periods_admin_only(self, client, tutor, auth_headers):
        response = client.get("/api/v1/admin/periods", headers=auth_headers(tutor))

        assert response.status_code == 403

    def test_no_active_period(self, client, student, auth_headers):
        response = client.get("/api/v1/periods/active", headers=auth_headers(student))

        assert response.status_code == 409


class TestOtherRoutes:
    def test_leaderboard(self, client, admin, student, active_period, auth_headers):
        client.post(
            "/api/v1/points",
            json={"student_id": student.id, "points": 12},
            headers=auth_headers(admin),
        )

        response = client.get("/api/v1/leaderboard", headers=auth_headers(student))

        assert response.status_code == 200
        assert response.json()["user_rank"] == {"rank": 1, "experience": 12}

    def test_store_flow(self, client, admin, tutor, student, active_period, auth_headers):
        client.post(
            "/api/v1/points",
            json={"student_id": student.id, "points": 40},
            headers=auth_headers(admin),
        )
        item = client.post(
            "/api/v1/store/items",
            json={"name": "Kupa", "points_required": 25},
            headers=auth_headers(admin),
        )
        assert item.status_code == 201

        requested = client.post(
            "/api/v1/store/requests",
            json={"item_id": item.json()["id"]},
            headers=auth_headers(student),
        )
        assert requested.status_code == 201

        approved = client.put(
            f"/api/v1/store/requests/{requested.json()['request']['id']}",
            json={"status": "APPROVED"},
            headers=auth_headers(tutor),
        )
        assert approved.status_code == 200
        assert approved.json()["request"]["status"] == "APPROVED"

        items = client.get("/api/v1/store/items", headers=auth_headers(student))
        assert [entry["name"] for entry in items.json()["items"]] == ["Kupa"]

    def test_enrollment_batch_runs_in_background(
        self, client, db_session, admin, student, auth_headers, monkeypatch
    ):
        @contextmanager
        def _session():
            yield db_session
            db_session.commit()

        monkeypatch.setattr(enrollment_service, "get_db_context", _session)
        settings = Settings(
            ENROLLMENT_API_KEY="key",
            ENROLLMENT_API_SECRET="secret",
            ENROLLMENT_BACKOFF_SECONDS=0,
        )
        fake_client = EnrollmentClient(
            settings,
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"success": True, "data": {"id": "e1"}})
            ),
        )
        app.container.clients.enrollment_client.override(providers.Object(fake_client))
        app.container.config.config.override(providers.Object(settings))
        try:
            submitted = client.post(
                "/api/v1/admin/enrollments",
                json={
                    "students": [
                        {
                            "student_id": student.id,
                            "first_name": "Ayşe",
                            "last_name": "Yılmaz",
                            "email": "ayse@example.com",
                            "phone": "5551112233",
                            "product_codes": ["M"],
                        }
                    ]
                },
                headers=auth_headers(admin),
            )
            assert submitted.status_code == 202
            batch_id = submitted.json()["batch_id"]

            status = client.get(
                f"/api/v1/admin/enrollments/{batch_id}", headers=auth_headers(admin)
            )
        finally:
            app.container.clients.enrollment_client.reset_override()
            app.container.config.config.reset_override()

        assert status.status_code == 200
        assert status.json()["succeeded"] == 1
        assert status.json()["items"][0]["external_id"] == "e1"


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "abc123"})

    assert response.headers["X-Request-ID"] == "abc123"
