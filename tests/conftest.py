from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from portalapi.core.security import create_access_token
from portalapi.database.session import get_db
from portalapi.main import app
from portalapi.models import Base, Period, PeriodStatus, User, UserRole


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def _make_user(db, username, role, tutor_id=None):
    user = User(
        username=username,
        first_name=username.capitalize(),
        last_name="Test",
        email=f"{username}@example.com",
        phone="5550000000",
        role=role.value,
        tutor_id=tutor_id,
        is_active=True,
        points=0,
        experience=0,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def admin(db_session):
    return _make_user(db_session, "admin", UserRole.ADMIN)


@pytest.fixture
def tutor(db_session):
    return _make_user(db_session, "tutor", UserRole.TUTOR)


@pytest.fixture
def other_tutor(db_session):
    return _make_user(db_session, "othertutor", UserRole.TUTOR)


@pytest.fixture
def student(db_session, tutor):
    return _make_user(db_session, "student", UserRole.STUDENT, tutor_id=tutor.id)


@pytest.fixture
def make_user(db_session):
    def _factory(username, role=UserRole.STUDENT, tutor_id=None):
        return _make_user(db_session, username, role, tutor_id=tutor_id)

    return _factory


@pytest.fixture
def active_period(db_session):
    period = Period(
        name="2025 Güz",
        start_date=datetime(2025, 9, 1, tzinfo=timezone.utc),
        status=PeriodStatus.ACTIVE.value,
    )
    db_session.add(period)
    db_session.commit()
    return period


@pytest.fixture
def client(db_session):
    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token({"sub": user.id, "role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers
