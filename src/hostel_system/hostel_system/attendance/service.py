from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import now_local, parse_optional_date, parse_optional_time
from ..common.pagination import Page, PageRequest
from ..common.validators import optional_str, require_choice, require_int, require_int_range
from ..core.enums import AttendanceStatus
from ..core.exceptions import ConflictError, InvalidTokenError, NotFoundError, ValidationError
from ..core.identity import Identity, require_admin, require_self_or_admin
from ..users.repository import UserRepository
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord, AttendanceRow, AttendanceStats, MarkResult
from .qr_token import QRToken, decode_token, encode_token
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    """Records at most one attendance event per student per calendar day."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        *,
        strategy_factory: AttendanceStrategyFactory | None = None,
        token_max_age_minutes: int | None = None,
    ):
        self._attendance = attendance
        self._users = users
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._token_max_age = timedelta(minutes=token_max_age_minutes) if token_max_age_minutes else None

    def _active_student(self, user_id: int):
        user = self._users.get_by_id(user_id)
        if not user or not user.is_student or not user.is_active:
            raise NotFoundError("Student not found")
        return user

    def issue_token(self, identity: Identity, user_id, *, now: datetime | None = None) -> str:
        user_id = require_int(user_id, "user ID")
        require_self_or_admin(identity, user_id)
        user = self._active_student(user_id)
        return encode_token(QRToken(user_id=user.user_id, name=user.name, email=user.email, issued_at=now or now_local()))

    def _check_freshness(self, token: QRToken, now: datetime) -> None:
        if self._token_max_age is None:
            return
        if token.issued_at is None or now - token.issued_at > self._token_max_age:
            raise InvalidTokenError("QR code has expired")

    def mark_by_token(self, identity: Identity, token: str, *, now: datetime | None = None) -> MarkResult:
        now = now or now_local()
        payload = decode_token(token)
        require_self_or_admin(identity, payload.user_id)
        self._check_freshness(payload, now)
        self._active_student(payload.user_id)

        today = now.date()
        if self._attendance.get_for_user_and_date(payload.user_id, today):
            logger.info("Attendance for user %s on %s already marked", payload.user_id, today.isoformat())
            raise ConflictError("Attendance already marked for today")

        decision = self._factory.for_mark(now=now).decide(now=now)
        marked_at = now.time().replace(microsecond=0)

        # The unique key on (user_id, attendance_date) settles concurrent marks.
        self._attendance.create(
            user_id=payload.user_id,
            attendance_date=today,
            status=decision.status,
            check_in_time=marked_at,
        )
        logger.info("Attendance marked for user %s: %s at %s", payload.user_id, decision.status.value, marked_at)
        return MarkResult(status=decision.status, time=marked_at)

    def mark_manual(
        self,
        identity: Identity,
        *,
        user_id,
        attendance_date,
        status,
        check_in=None,
        check_out=None,
    ) -> AttendanceRecord:
        require_admin(identity)
        user_id = require_int(user_id, "user ID")
        day = parse_optional_date(attendance_date, "Date")
        if day is None:
            raise ValidationError("Date is required")
        status = require_choice(status, AttendanceStatus, "status")
        check_in_time = parse_optional_time(check_in, "Check-in time")
        check_out_time = parse_optional_time(check_out, "Check-out time")
        if check_in_time and check_out_time and check_out_time < check_in_time:
            raise ValidationError("Check-out time must not be before check-in time")

        self._active_student(user_id)
        if self._attendance.get_for_user_and_date(user_id, day):
            raise ConflictError("Attendance already marked for this date")

        attendance_id = self._attendance.create(
            user_id=user_id,
            attendance_date=day,
            status=status,
            check_in_time=check_in_time,
            check_out_time=check_out_time,
        )
        logger.info("Manual attendance %s for user %s on %s: %s", attendance_id, user_id, day.isoformat(), status.value)
        return AttendanceRecord(
            attendance_id=attendance_id,
            user_id=user_id,
            attendance_date=day,
            status=status,
            check_in_time=check_in_time,
            check_out_time=check_out_time,
        )

    def stats(self, identity: Identity, user_id, *, start=None, end=None) -> AttendanceStats:
        user_id = require_int(user_id, "user ID")
        require_self_or_admin(identity, user_id)
        start_d = parse_optional_date(start, "startDate")
        end_d = parse_optional_date(end, "endDate")
        if start_d and end_d and start_d > end_d:
            raise ValidationError("startDate must not be after endDate")

        counts = self._attendance.count_by_status(user_id, start=start_d, end=end_d)
        present = int(counts.get(AttendanceStatus.PRESENT, 0))
        late = int(counts.get(AttendanceStatus.LATE, 0))
        absent = int(counts.get(AttendanceStatus.ABSENT, 0))
        total = present + late + absent

        percentage = round((present + late) / total * 100, 2) if total else 0.0
        return AttendanceStats(
            total_days=total,
            present_days=present,
            absent_days=absent,
            late_days=late,
            attendance_percentage=percentage,
        )

    def history(
        self,
        identity: Identity,
        user_id,
        *,
        start=None,
        end=None,
        page: PageRequest = PageRequest(),
    ) -> Page[AttendanceRecord]:
        user_id = require_int(user_id, "user ID")
        require_self_or_admin(identity, user_id)
        start_d = parse_optional_date(start, "startDate")
        end_d = parse_optional_date(end, "endDate")

        records, total = self._attendance.list_for_user(
            user_id,
            start=start_d,
            end=end_d,
            limit=page.limit,
            offset=page.offset,
        )
        return Page(items=records, page=page.page, limit=page.limit, total=total)

    def monthly(self, identity: Identity, user_id, *, year, month) -> Sequence[AttendanceRecord]:
        user_id = require_int(user_id, "user ID")
        require_self_or_admin(identity, user_id)
        year = require_int_range(year, "year", 2000, 9999)
        month = require_int_range(month, "month", 1, 12)

        first = date(year, month, 1)
        last = first.replace(day=calendar.monthrange(year, month)[1])
        return self._attendance.list_between(user_id, first, last)

    def list_all(
        self,
        identity: Identity,
        *,
        attendance_date=None,
        batch: Optional[str] = None,
        page: PageRequest = PageRequest(),
    ) -> Page[AttendanceRow]:
        require_admin(identity)
        rows, total = self._attendance.list_all(
            attendance_date=parse_optional_date(attendance_date, "Date"),
            batch=optional_str(batch),
            limit=page.limit,
            offset=page.offset,
        )
        return Page(items=rows, page=page.page, limit=page.limit, total=total)
