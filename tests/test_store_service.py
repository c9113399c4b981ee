import pytest

from portalapi.config import settings
from portalapi.core.exceptions import (
    AuthorizationError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from portalapi.models import PointsTransaction, RequestStatus, TransactionType, UserRole
from portalapi.schemas.store import ItemRequestCreate, ItemRequestUpdate, StoreItemCreateRequest
from portalapi.services.point_service import PointService
from portalapi.services.store_service import StoreService


@pytest.fixture
def store_service(db_session):
    return StoreService(db_session)


@pytest.fixture
def item(store_service, admin):
    return store_service.create_item(
        StoreItemCreateRequest(name="Defter", description="A5", points_required=30),
        actor=admin,
    )


@pytest.fixture
def funded_student(db_session, admin, student, active_period):
    PointService(db_session, settings).change_points(student.id, 50, "seed", actor=admin)
    return student


def test_only_admin_creates_items(store_service, tutor):
    with pytest.raises(AuthorizationError):
        store_service.create_item(
            StoreItemCreateRequest(name="Kalem", points_required=5), actor=tutor
        )


def test_request_and_approve_deducts_through_ledger(
    store_service, db_session, tutor, funded_student, item
):
    created = store_service.create_request(
        ItemRequestCreate(item_id=item.id, note="lütfen"), actor=funded_student
    )
    assert created.request.status == RequestStatus.PENDING
    assert created.request.points_spent == 30

    approved = store_service.process_request(
        created.request.id, ItemRequestUpdate(status=RequestStatus.APPROVED), actor=tutor
    )

    assert approved.request.status == RequestStatus.APPROVED
    redeem = db_session.get(PointsTransaction, approved.request.points_transaction_id)
    assert redeem.type == TransactionType.REDEEM.value
    assert redeem.points == 30
    db_session.refresh(funded_student)
    assert funded_student.points == 20


def test_request_needs_enough_points(store_service, student, item, active_period):
    with pytest.raises(InsufficientBalanceError):
        store_service.create_request(ItemRequestCreate(item_id=item.id), actor=student)


def test_request_needs_tutor(store_service, make_user, item, active_period):
    orphan = make_user("orphan", UserRole.STUDENT)

    with pytest.raises(ValidationError):
        store_service.create_request(ItemRequestCreate(item_id=item.id), actor=orphan)


def test_request_unknown_item(store_service, funded_student):
    with pytest.raises(NotFoundError):
        store_service.create_request(ItemRequestCreate(item_id=999), actor=funded_student)


def test_only_students_request(store_service, tutor, item, active_period):
    with pytest.raises(AuthorizationError):
        store_service.create_request(ItemRequestCreate(item_id=item.id), actor=tutor)


def test_reject_leaves_balance(store_service, db_session, admin, funded_student, item):
    created = store_service.create_request(
        ItemRequestCreate(item_id=item.id), actor=funded_student
    )

    rejected = store_service.process_request(
        created.request.id,
        ItemRequestUpdate(status=RequestStatus.REJECTED, note="stok yok"),
        actor=admin,
    )

    assert rejected.request.status == RequestStatus.REJECTED
    assert rejected.request.note == "stok yok"
    assert rejected.request.points_transaction_id is None
    db_session.refresh(funded_student)
    assert funded_student.points == 50


def test_processed_request_cannot_be_processed_again(
    store_service, admin, funded_student, item
):
    created = store_service.create_request(
        ItemRequestCreate(item_id=item.id), actor=funded_student
    )
    store_service.process_request(
        created.request.id, ItemRequestUpdate(status=RequestStatus.REJECTED), actor=admin
    )

    with pytest.raises(ValidationError):
        store_service.process_request(
            created.request.id, ItemRequestUpdate(status=RequestStatus.APPROVED), actor=admin
        )


def test_other_tutor_cannot_process(store_service, other_tutor, funded_student, item):
    created = store_service.create_request(
        ItemRequestCreate(item_id=item.id), actor=funded_student
    )

    with pytest.raises(AuthorizationError):
        store_service.process_request(
            created.request.id,
            ItemRequestUpdate(status=RequestStatus.APPROVED),
            actor=other_tutor,
        )


def test_pending_status_is_not_a_decision(store_service, admin, funded_student, item):
    created = store_service.create_request(
        ItemRequestCreate(item_id=item.id), actor=funded_student
    )

    with pytest.raises(ValidationError):
        store_service.process_request(
            created.request.id, ItemRequestUpdate(status=RequestStatus.PENDING), actor=admin
        )


def test_approval_rechecks_balance(
    store_service, db_session, admin, funded_student, item
):
    created = store_service.create_request(
        ItemRequestCreate(item_id=item.id), actor=funded_student
    )
    PointService(db_session, settings).change_points(
        funded_student.id, -40, "spent elsewhere", actor=admin
    )

    with pytest.raises(InsufficientBalanceError):
        store_service.process_request(
            created.request.id, ItemRequestUpdate(status=RequestStatus.APPROVED), actor=admin
        )


def test_request_listing_is_scoped(
    store_service, admin, tutor, other_tutor, funded_student, item
):
    store_service.create_request(ItemRequestCreate(item_id=item.id), actor=funded_student)

    assert len(store_service.list_requests(actor=admin).requests) == 1
    assert len(store_service.list_requests(actor=tutor).requests) == 1
    assert len(store_service.list_requests(actor=funded_student).requests) == 1
    assert store_service.list_requests(actor=other_tutor).requests == []
    pending = store_service.list_requests(actor=admin, status=RequestStatus.PENDING)
    assert pending.requests[0].item.name == "Defter"
