from __future__ import annotations

import threading
from datetime import date, datetime, time, timedelta

import pytest

from src.hostel_system.hostel_system.attendance.qr_token import QRToken, encode_token
from src.hostel_system.hostel_system.attendance.service import AttendanceService
from src.hostel_system.hostel_system.common.pagination import PageRequest
from src.hostel_system.hostel_system.core.enums import AttendanceStatus, Role
from src.hostel_system.hostel_system.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from src.hostel_system.hostel_system.core.identity import Identity
from tests.fakes import HostelState, InMemoryAttendance, InMemoryUsers

DAY = date(2025, 3, 10)


@pytest.fixture
def state():
    s = HostelState()
    s.add_user("Admin", role=Role.ADMIN)
    s.add_user("Student A", batch="2024")
    s.add_user("Student B", batch="2025")
    return s


@pytest.fixture
def service(state):
    return AttendanceService(InMemoryAttendance(state), InMemoryUsers(state))


ADMIN = Identity(user_id=1, role=Role.ADMIN)
STUDENT_A = Identity(user_id=2, role=Role.STUDENT)
STUDENT_B = Identity(user_id=3, role=Role.STUDENT)


def _token(state, user_id: int) -> str:
    u = state.users[user_id]
    return encode_token(QRToken(user_id=u.user_id, name=u.name, email=u.email, issued_at=datetime(2025, 3, 10, 6, 0)))


def test_mark_before_cutoff_is_present(service, state):
    result = service.mark_by_token(STUDENT_A, _token(state, 2), now=datetime.combine(DAY, time(7, 59, 59)))

    assert result.status == AttendanceStatus.PRESENT
    assert result.time == time(7, 59, 59)
    assert state.attendance[(2, DAY)].check_in_time == time(7, 59, 59)


def test_mark_after_cutoff_is_late(service, state):
    result = service.mark_by_token(STUDENT_A, _token(state, 2), now=datetime.combine(DAY, time(8, 0, 1)))

    assert result.status == AttendanceStatus.LATE


def test_second_mark_same_day_conflicts(service, state):
    service.mark_by_token(STUDENT_A, _token(state, 2), now=datetime.combine(DAY, time(7, 0)))

    with pytest.raises(ConflictError):
        service.mark_by_token(STUDENT_A, _token(state, 2), now=datetime.combine(DAY, time(9, 0)))

    assert len(state.attendance) == 1
    assert state.attendance[(2, DAY)].status == AttendanceStatus.PRESENT


def test_mark_next_day_is_allowed(service, state):
    service.mark_by_token(STUDENT_A, _token(state, 2), now=datetime.combine(DAY, time(7, 0)))
    service.mark_by_token(STUDENT_A, _token(state, 2), now=datetime.combine(DAY + timedelta(days=1), time(7, 0)))

    assert len(state.attendance) == 2


def test_concurrent_marks_record_exactly_once(service, state):
    barrier = threading.Barrier(2)
    outcomes: list[str] = []

    def mark():
        barrier.wait()
        try:
            service.mark_by_token(STUDENT_A, _token(state, 2), now=datetime.combine(DAY, time(7, 30)))
            outcomes.append("ok")
        except ConflictError:
            outcomes.append("conflict")

    threads = [threading.Thread(target=mark) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["conflict", "ok"]
    assert len(state.attendance) == 1


def test_student_cannot_mark_for_someone_else(service, state):
    with pytest.raises(AuthorizationError):
        service.mark_by_token(STUDENT_B, _token(state, 2), now=datetime.combine(DAY, time(7, 0)))

    assert state.attendance == {}


def test_admin_can_mark_for_student(service, state):
    result = service.mark_by_token(ADMIN, _token(state, 3), now=datetime.combine(DAY, time(7, 0)))

    assert result.status == AttendanceStatus.PRESENT


def test_invalid_token_is_rejected_before_authorization(service):
    with pytest.raises(InvalidTokenError):
        service.mark_by_token(STUDENT_B, '{"userId": 2}', now=datetime.combine(DAY, time(7, 0)))


def test_token_for_inactive_student_is_not_found(service, state):
    state.add_user("Gone", is_active=False)

    with pytest.raises(NotFoundError):
        service.mark_by_token(ADMIN, _token(state, 4), now=datetime.combine(DAY, time(7, 0)))


def test_token_freshness_when_enabled(state):
    service = AttendanceService(InMemoryAttendance(state), InMemoryUsers(state), token_max_age_minutes=30)
    token = _token(state, 2)  # issued 06:00

    service.mark_by_token(STUDENT_A, token, now=datetime.combine(DAY, time(6, 29)))
    with pytest.raises(InvalidTokenError):
        service.mark_by_token(STUDENT_A, token, now=datetime.combine(DAY + timedelta(days=1), time(6, 0)))


def test_tokens_do_not_expire_by_default(service, state):
    token = _token(state, 2)

    result = service.mark_by_token(STUDENT_A, token, now=datetime(2026, 1, 1, 7, 0))

    assert result.status == AttendanceStatus.PRESENT


def test_issue_token_round_trips_into_mark(service, state):
    token = service.issue_token(STUDENT_A, 2, now=datetime.combine(DAY, time(6, 0)))

    assert service.mark_by_token(STUDENT_A, token, now=datetime.combine(DAY, time(8, 30))).status == AttendanceStatus.LATE


def test_issue_token_for_other_student_is_forbidden(service):
    with pytest.raises(AuthorizationError):
        service.issue_token(STUDENT_A, 3)


def test_manual_mark_bypasses_classification(service, state):
    record = service.mark_manual(
        ADMIN,
        user_id=2,
        attendance_date="2025-03-09",
        status="absent",
    )

    assert record.status == AttendanceStatus.ABSENT
    assert state.attendance[(2, date(2025, 3, 9))].check_in_time is None


def test_manual_mark_conflicts_with_existing_record(service, state):
    service.mark_manual(ADMIN, user_id=2, attendance_date="2025-03-09", status="present", check_in="07:10")

    with pytest.raises(ConflictError):
        service.mark_manual(ADMIN, user_id=2, attendance_date="2025-03-09", status="late")


def test_manual_mark_requires_admin(service):
    with pytest.raises(AuthorizationError):
        service.mark_manual(STUDENT_A, user_id=2, attendance_date="2025-03-09", status="present")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"attendance_date": "09/03/2025", "status": "present"},
        {"attendance_date": None, "status": "present"},
        {"attendance_date": "2025-03-09", "status": "holiday"},
        {"attendance_date": "2025-03-09", "status": "present", "check_in": "25:00"},
        {"attendance_date": "2025-03-09", "status": "present", "check_in": "09:00", "check_out": "08:00"},
    ],
)
def test_manual_mark_validates_before_writing(service, state, kwargs):
    with pytest.raises(ValidationError):
        service.mark_manual(ADMIN, user_id=2, **kwargs)

    assert state.attendance == {}


def test_stats_with_no_records_is_zero_percent(service):
    stats = service.stats(STUDENT_A, 2)

    assert stats.total_days == 0
    assert stats.attendance_percentage == 0


def test_stats_counts_late_as_attended(service):
    for day in range(1, 9):
        service.mark_manual(ADMIN, user_id=2, attendance_date=f"2025-03-{day:02d}", status="present")
    for day in (9, 10):
        service.mark_manual(ADMIN, user_id=2, attendance_date=f"2025-03-{day:02d}", status="late")

    stats = service.stats(STUDENT_A, 2)

    assert (stats.total_days, stats.present_days, stats.late_days, stats.absent_days) == (10, 8, 2, 0)
    assert stats.attendance_percentage == 100.0


def test_stats_rounds_to_two_decimals_and_honours_range(service):
    service.mark_manual(ADMIN, user_id=2, attendance_date="2025-03-01", status="present")
    service.mark_manual(ADMIN, user_id=2, attendance_date="2025-03-02", status="absent")
    service.mark_manual(ADMIN, user_id=2, attendance_date="2025-03-03", status="absent")
    service.mark_manual(ADMIN, user_id=2, attendance_date="2025-04-01", status="present")

    stats = service.stats(ADMIN, 2, start="2025-03-01", end="2025-03-31")

    assert stats.total_days == 3
    assert stats.attendance_percentage == 33.33


def test_stats_for_other_student_is_forbidden(service):
    with pytest.raises(AuthorizationError):
        service.stats(STUDENT_B, 2)


def test_history_is_paginated_newest_first(service):
    for day in range(1, 6):
        service.mark_manual(ADMIN, user_id=2, attendance_date=f"2025-03-{day:02d}", status="present")

    page = service.history(STUDENT_A, 2, page=PageRequest(page=1, limit=2))

    assert [r.attendance_date.day for r in page.items] == [5, 4]
    assert page.pagination() == {"current": 1, "pages": 3, "total": 5}


def test_monthly_returns_days_of_that_month(service):
    service.mark_manual(ADMIN, user_id=2, attendance_date="2025-02-28", status="present")
    service.mark_manual(ADMIN, user_id=2, attendance_date="2025-03-01", status="late")
    service.mark_manual(ADMIN, user_id=2, attendance_date="2025-03-31", status="present")

    records = service.monthly(STUDENT_A, 2, year="2025", month="3")

    assert [r.attendance_date for r in records] == [date(2025, 3, 1), date(2025, 3, 31)]


def test_list_all_is_admin_only_and_filters_by_batch(service):
    service.mark_manual(ADMIN, user_id=2, attendance_date="2025-03-01", status="present")
    service.mark_manual(ADMIN, user_id=3, attendance_date="2025-03-01", status="late")

    with pytest.raises(AuthorizationError):
        service.list_all(STUDENT_A)

    page = service.list_all(ADMIN, batch="2025")
    assert [row.name for row in page.items] == ["Student B"]
