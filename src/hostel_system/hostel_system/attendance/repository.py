from __future__ import annotations

from datetime import date, time
from typing import Mapping, Optional, Protocol, Sequence, Tuple

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, AttendanceRow


class AttendanceRepository(Protocol):
    def get_for_user_and_date(self, user_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        attendance_date: date,
        status: AttendanceStatus,
        check_in_time: Optional[time] = None,
        check_out_time: Optional[time] = None,
    ) -> int:
        """Insert one record.

        Raises ConflictError when (user_id, attendance_date) already exists.
        """

        raise NotImplementedError

    def count_by_status(
        self,
        user_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Mapping[AttendanceStatus, int]:
        raise NotImplementedError

    def list_for_user(
        self,
        user_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int,
        offset: int,
    ) -> Tuple[Sequence[AttendanceRecord], int]:
        raise NotImplementedError

    def list_between(self, user_id: int, start: date, end: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_all(
        self,
        *,
        attendance_date: Optional[date] = None,
        batch: Optional[str] = None,
        limit: int,
        offset: int,
    ) -> Tuple[Sequence[AttendanceRow], int]:
        raise NotImplementedError
