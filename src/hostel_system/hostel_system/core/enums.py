from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    ADMIN = "admin"
    STUDENT = "student"


class RoomType(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"
    TRIPLE = "triple"
    QUAD = "quad"


class AttendanceStatus(str, Enum):
    """Attendance status as stored in the database."""

    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"


class FeeType(str, Enum):
    MONTHLY = "monthly"
    SEMESTER = "semester"
    ANNUAL = "annual"
    LATE_FEE = "late_fee"


class FeeStatus(str, Enum):
    """Fee lifecycle: PENDING -> PAID (terminal) or PENDING -> OVERDUE -> PAID."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
