from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.hostel_system.hostel_system.core.enums import FeeStatus, Role
from src.hostel_system.hostel_system.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.hostel_system.hostel_system.core.identity import Identity
from tests.fakes import HostelState, make_container

ADMIN = Identity(user_id=1, role=Role.ADMIN)
STUDENT = Identity(user_id=2, role=Role.STUDENT)


@pytest.fixture
def state():
    s = HostelState()
    s.add_user("Admin", role=Role.ADMIN, email="admin@hostel.local", password="admin123")
    s.add_user("Student A", email="a@hostel.local", password="student123", batch="2024")
    s.add_room("A101", 1)
    s.add_room("B201", 3)
    return s


@pytest.fixture
def container(state):
    return make_container(state)


def test_authenticate_success_and_failures(container, state):
    s_user = container.auth_service.authenticate(" A@Hostel.local ", "student123")
    assert (s_user.user_id, s_user.role) == (2, Role.STUDENT)

    with pytest.raises(AuthenticationError):
        container.auth_service.authenticate("a@hostel.local", "wrong")
    with pytest.raises(AuthenticationError):
        container.auth_service.authenticate("nobody@hostel.local", "student123")

    state.add_user("Off", email="off@hostel.local", password="secret123", is_active=False)
    with pytest.raises(AuthenticationError):
        container.auth_service.authenticate("off@hostel.local", "secret123")


def test_create_account_with_room(container, state):
    view = container.user_service.create_account(
        ADMIN,
        name="New Student",
        email="New@Hostel.local",
        password="secret1",
        room_no="B201",
        batch="2025",
    )

    assert view.email == "new@hostel.local"
    assert view.room_no == "B201"
    assert state.room_by_no("B201").occupied == 1
    assert not hasattr(view, "password_hash")


def test_create_account_into_full_room_writes_nothing(container, state):
    state.add_user("Occupant", room_no="A101")
    users_before = dict(state.users)

    with pytest.raises(ConflictError):
        container.user_service.create_account(
            ADMIN, name="Late", email="late@hostel.local", password="secret1", room_no="A101"
        )

    assert state.users == users_before
    assert state.room_by_no("A101").occupied == 1


def test_create_account_rejects_duplicate_email(container):
    with pytest.raises(ConflictError):
        container.user_service.create_account(ADMIN, name="Dup", email="a@hostel.local", password="secret1")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": "", "email": "x@hostel.local", "password": "secret1"},
        {"name": "X", "email": "not-an-email", "password": "secret1"},
        {"name": "X", "email": "x@hostel.local", "password": "short"},
        {"name": "X", "email": "x@hostel.local", "password": 123456},
        {"name": "X", "email": "x@hostel.local", "password": "secret1", "role": "warden"},
    ],
)
def test_create_account_validation(container, kwargs):
    with pytest.raises(ValidationError):
        container.user_service.create_account(ADMIN, **kwargs)


def test_create_account_requires_admin(container):
    with pytest.raises(AuthorizationError):
        container.user_service.create_account(STUDENT, name="X", email="x@hostel.local", password="secret1")


def test_student_updates_own_profile(container, state):
    view = container.user_service.update_profile(STUDENT, 2, {"name": "Student Alpha", "phone": "0123"})

    assert view.name == "Student Alpha"
    assert state.users[2].phone == "0123"


def test_student_cannot_change_room_or_status(container):
    with pytest.raises(AuthorizationError):
        container.user_service.update_profile(STUDENT, 2, {"room_no": "B201"})
    with pytest.raises(AuthorizationError):
        container.user_service.update_profile(STUDENT, 2, {"is_active": False})


def test_student_cannot_touch_other_profiles(container):
    with pytest.raises(AuthorizationError):
        container.user_service.update_profile(STUDENT, 1, {"name": "Mallory"})
    with pytest.raises(AuthorizationError):
        container.user_service.get_user(STUDENT, 1)


def test_update_email_conflict(container, state):
    state.add_user("Other", email="other@hostel.local")

    with pytest.raises(ConflictError):
        container.user_service.update_profile(ADMIN, 2, {"email": "other@hostel.local"})


def test_update_with_no_fields(container):
    with pytest.raises(ValidationError):
        container.user_service.update_profile(ADMIN, 2, {})


def test_update_unknown_user(container):
    with pytest.raises(NotFoundError):
        container.user_service.update_profile(ADMIN, 404, {"name": "Ghost"})


def test_admin_moves_student_and_rolls_back_on_failure(container, state):
    container.user_service.update_profile(ADMIN, 2, {"room_no": "B201"})
    assert state.users[2].room_no == "B201"

    state.add_user("Occupant", room_no="A101")
    with pytest.raises(ConflictError):
        container.user_service.update_profile(ADMIN, 2, {"name": "Renamed", "room_no": "A101"})

    assert state.users[2].name == "Student A"
    assert state.users[2].room_no == "B201"
    assert state.room_by_no("B201").occupied == 1


def test_admin_deactivates_student_through_profile(container, state):
    container.user_service.update_profile(ADMIN, 2, {"room_no": "B201"})

    container.user_service.update_profile(ADMIN, 2, {"is_active": False})

    assert state.users[2].is_active is False
    assert state.users[2].room_no is None
    assert state.room_by_no("B201").occupied == 0


def test_list_users_is_admin_only(container):
    page = container.user_service.list_users(ADMIN, role="student")
    assert [u.id for u in page.items] == [2]

    with pytest.raises(AuthorizationError):
        container.user_service.list_users(STUDENT)


def test_list_by_batch(container, state):
    state.add_user("Student C", batch="2025")

    assert [u.name for u in container.user_service.list_by_batch("2025")] == ["Student C"]


def test_dashboard_stats(container, state):
    container.occupancy_service.assign(ADMIN, room_id=state.room_by_no("B201").room_id, student_id=2)
    state.add_fee(2, "120.50", date(2025, 3, 1), status=FeeStatus.PAID, paid_date=date(2025, 3, 5))
    state.add_fee(2, "80", date(2025, 2, 1), status=FeeStatus.PAID, paid_date=date(2025, 2, 5))

    stats = container.dashboard_service.stats(ADMIN, today=date(2025, 3, 20))

    assert stats.total_students == 1
    assert (stats.total_rooms, stats.occupied_rooms) == (2, 1)
    assert stats.fees_collected == Decimal("120.50")

    with pytest.raises(AuthorizationError):
        container.dashboard_service.stats(STUDENT)


def test_admin_reactivates_student_into_room_in_one_update(container, state):
    returning = state.add_user("Returning", is_active=False)

    view = container.user_service.update_profile(ADMIN, returning.user_id, {"is_active": True, "room_no": "A101"})

    assert view.is_active is True
    assert view.room_no == "A101"
    assert state.room_by_no("A101").occupied == 1


def test_admin_deactivates_and_moves_in_one_update_leaves_no_room(container, state):
    container.user_service.update_profile(ADMIN, 2, {"room_no": "B201"})

    container.user_service.update_profile(ADMIN, 2, {"is_active": False, "room_no": "A101"})

    assert state.users[2].is_active is False
    assert state.users[2].room_no is None
    assert state.room_by_no("A101").occupied == 0
    assert state.room_by_no("B201").occupied == 0
