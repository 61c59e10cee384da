from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """One attendance event; at most one per (user_id, attendance_date)."""

    attendance_id: int
    user_id: int
    attendance_date: date
    status: AttendanceStatus
    check_in_time: Optional[time] = None
    check_out_time: Optional[time] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class AttendanceRow:
    """Read-model for the admin listing (record joined with the student)."""

    record: AttendanceRecord
    name: str
    email: str
    batch: Optional[str] = None
    room_no: Optional[str] = None


@dataclass(frozen=True)
class MarkResult:
    status: AttendanceStatus
    time: time


@dataclass(frozen=True)
class AttendanceStats:
    total_days: int
    present_days: int
    absent_days: int
    late_days: int
    attendance_percentage: float
