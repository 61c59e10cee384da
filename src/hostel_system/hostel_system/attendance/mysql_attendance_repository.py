from __future__ import annotations

from datetime import date, time
from typing import Mapping, Optional, Sequence, Tuple

from mysql.connector import errors

from ..core.enums import AttendanceStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, normalize_mysql_time
from .model import AttendanceRecord, AttendanceRow
from .repository import AttendanceRepository

ATTENDANCE_COLUMNS = (
    "a.attendance_id, a.user_id, a.attendance_date, a.status, "
    "a.check_in_time, a.check_out_time, a.created_at"
)


def row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        attendance_date=r["attendance_date"],
        status=AttendanceStatus(r["status"]),
        check_in_time=normalize_mysql_time(r.get("check_in_time")),
        check_out_time=normalize_mysql_time(r.get("check_out_time")),
        created_at=r.get("created_at"),
    )


def _user_range(user_id: int, start: Optional[date], end: Optional[date]) -> Tuple[str, list[object]]:
    clauses = ["a.user_id=%s"]
    params: list[object] = [int(user_id)]
    if start is not None:
        clauses.append("a.attendance_date >= %s")
        params.append(start)
    if end is not None:
        clauses.append("a.attendance_date <= %s")
        params.append(end)
    return " AND ".join(clauses), params


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_user_and_date(self, user_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {ATTENDANCE_COLUMNS}
                FROM attendance_records a
                WHERE a.user_id=%s AND a.attendance_date=%s
                """,
                (user_id, attendance_date),
            )
            r = fetchone(cur)
            return row_to_record(r) if r else None

    def create(
        self,
        *,
        user_id: int,
        attendance_date: date,
        status: AttendanceStatus,
        check_in_time: Optional[time] = None,
        check_out_time: Optional[time] = None,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(user_id, attendance_date, status, check_in_time, check_out_time)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (user_id, attendance_date, status.value, check_in_time, check_out_time),
                )
                return int(cur.lastrowid)
        except errors.IntegrityError as exc:
            # uq_attendance_user_date settles the race between two concurrent marks.
            if is_duplicate_key(exc):
                raise ConflictError("Attendance already marked for this date") from exc
            raise

    def count_by_status(
        self,
        user_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Mapping[AttendanceStatus, int]:
        where, params = _user_range(user_id, start, end)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT a.status, COUNT(*) AS total FROM attendance_records a WHERE {where} GROUP BY a.status",
                tuple(params),
            )
            counts = {status: 0 for status in AttendanceStatus}
            for r in fetchall(cur):
                counts[AttendanceStatus(r["status"])] = int(r["total"])
            return counts

    def list_for_user(
        self,
        user_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int,
        offset: int,
    ) -> Tuple[Sequence[AttendanceRecord], int]:
        where, params = _user_range(user_id, start, end)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {ATTENDANCE_COLUMNS}
                FROM attendance_records a
                WHERE {where}
                ORDER BY a.attendance_date DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            records = [row_to_record(r) for r in fetchall(cur)]

            cur.execute(f"SELECT COUNT(*) AS total FROM attendance_records a WHERE {where}", tuple(params))
            total = int(fetchone(cur)["total"])

        return records, total

    def list_between(self, user_id: int, start: date, end: date) -> Sequence[AttendanceRecord]:
        where, params = _user_range(user_id, start, end)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {ATTENDANCE_COLUMNS} FROM attendance_records a WHERE {where} ORDER BY a.attendance_date ASC",
                tuple(params),
            )
            return [row_to_record(r) for r in fetchall(cur)]

    def list_all(
        self,
        *,
        attendance_date: Optional[date] = None,
        batch: Optional[str] = None,
        limit: int,
        offset: int,
    ) -> Tuple[Sequence[AttendanceRow], int]:
        clauses = ["u.role='student'"]
        params: list[object] = []
        if attendance_date is not None:
            clauses.append("a.attendance_date=%s")
            params.append(attendance_date)
        if batch:
            clauses.append("u.batch=%s")
            params.append(batch)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {ATTENDANCE_COLUMNS}, u.name, u.email, u.batch, u.room_no
                FROM attendance_records a
                JOIN users u ON u.user_id = a.user_id
                WHERE {where}
                ORDER BY a.attendance_date DESC, a.check_in_time DESC, a.attendance_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            rows = [
                AttendanceRow(
                    record=row_to_record(r),
                    name=r["name"],
                    email=r["email"],
                    batch=r.get("batch"),
                    room_no=r.get("room_no"),
                )
                for r in fetchall(cur)
            ]

            cur.execute(
                f"SELECT COUNT(*) AS total FROM attendance_records a JOIN users u ON u.user_id = a.user_id WHERE {where}",
                tuple(params),
            )
            total = int(fetchone(cur)["total"])

        return rows, total
