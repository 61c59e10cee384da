from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from ..core.enums import FeeStatus, FeeType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Fee, FeeOverview, FeeRow, MonthlyCollection
from .repository import FeeRepository

FEE_COLUMNS = (
    "f.fee_id, f.user_id, f.amount, f.fee_type, f.due_date, f.status, "
    "f.description, f.paid_date, f.receipt_no, f.created_at"
)


def _decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0.00")


def row_to_fee(r: dict) -> Fee:
    return Fee(
        fee_id=int(r["fee_id"]),
        user_id=int(r["user_id"]),
        amount=_decimal(r["amount"]),
        fee_type=FeeType(r["fee_type"]),
        due_date=r["due_date"],
        status=FeeStatus(r["status"]),
        description=r.get("description"),
        paid_date=r.get("paid_date"),
        receipt_no=r.get("receipt_no"),
        created_at=r.get("created_at"),
    )


def _date_range(column: str, start: Optional[date], end: Optional[date]) -> Tuple[list[str], list[object]]:
    clauses: list[str] = []
    params: list[object] = []
    if start is not None:
        clauses.append(f"{column} >= %s")
        params.append(start)
    if end is not None:
        clauses.append(f"{column} <= %s")
        params.append(end)
    return clauses, params


class MySQLFeeRepository(FeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, fee_id: int) -> Optional[Fee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {FEE_COLUMNS} FROM fees f WHERE f.fee_id=%s", (fee_id,))
            r = fetchone(cur)
            return row_to_fee(r) if r else None

    def create(
        self,
        *,
        user_id: int,
        amount: Decimal,
        fee_type: FeeType,
        due_date: date,
        description: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO fees(user_id, amount, fee_type, due_date, description, status)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (user_id, amount, fee_type.value, due_date, description, FeeStatus.PENDING.value),
            )
            return int(cur.lastrowid)

    def mark_paid(self, *, fee_id: int, paid_date: date, receipt_no: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE fees
                SET status=%s, paid_date=%s, receipt_no=%s
                WHERE fee_id=%s AND status<>%s
                """,
                (FeeStatus.PAID.value, paid_date, receipt_no, fee_id, FeeStatus.PAID.value),
            )
            return cur.rowcount > 0

    def mark_overdue(self, *, today: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE fees SET status=%s WHERE status=%s AND due_date < %s",
                (FeeStatus.OVERDUE.value, FeeStatus.PENDING.value, today),
            )
            return int(cur.rowcount)

    def list_fees(
        self,
        *,
        user_id: Optional[int] = None,
        status: Optional[FeeStatus] = None,
        batch: Optional[str] = None,
        overdue_as_of: Optional[date] = None,
        limit: int,
        offset: int,
    ) -> Tuple[Sequence[FeeRow], int]:
        clauses: list[str] = []
        params: list[object] = []

        if user_id is not None:
            clauses.append("f.user_id=%s")
            params.append(int(user_id))
        else:
            clauses.append("u.role='student' AND u.is_active=1")
        if status is not None:
            clauses.append("f.status=%s")
            params.append(status.value)
        if batch:
            clauses.append("u.batch=%s")
            params.append(batch)
        if overdue_as_of is not None:
            clauses.append("(f.status=%s OR (f.status=%s AND f.due_date < %s))")
            params.extend([FeeStatus.OVERDUE.value, FeeStatus.PENDING.value, overdue_as_of])

        where = " AND ".join(clauses)
        order = "f.due_date ASC" if overdue_as_of is not None else "f.due_date DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {FEE_COLUMNS}, u.name, u.email, u.batch, u.room_no
                FROM fees f
                JOIN users u ON u.user_id = f.user_id
                WHERE {where}
                ORDER BY {order}, f.fee_id
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            rows = [
                FeeRow(fee=row_to_fee(r), name=r["name"], email=r["email"], batch=r.get("batch"), room_no=r.get("room_no"))
                for r in fetchall(cur)
            ]

            cur.execute(
                f"SELECT COUNT(*) AS total FROM fees f JOIN users u ON u.user_id = f.user_id WHERE {where}",
                tuple(params),
            )
            total = int(fetchone(cur)["total"])

        return rows, total

    def overview(self, *, start: Optional[date], end: Optional[date]) -> FeeOverview:
        range_clauses, params = _date_range("f.due_date", start, end)
        where = " AND ".join(["u.role='student'", "u.is_active=1"] + range_clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS total_fees,
                       COALESCE(SUM(f.status='paid'), 0) AS paid_fees,
                       COALESCE(SUM(f.status='pending'), 0) AS pending_fees,
                       COALESCE(SUM(f.status='overdue'), 0) AS overdue_fees,
                       COALESCE(SUM(CASE WHEN f.status='paid' THEN f.amount ELSE 0 END), 0) AS total_collected,
                       COALESCE(SUM(f.amount), 0) AS total_due
                FROM fees f
                JOIN users u ON u.user_id = f.user_id
                WHERE {where}
                """,
                tuple(params),
            )
            r = fetchone(cur) or {}

        return FeeOverview(
            total_fees=int(r.get("total_fees") or 0),
            paid_fees=int(r.get("paid_fees") or 0),
            pending_fees=int(r.get("pending_fees") or 0),
            overdue_fees=int(r.get("overdue_fees") or 0),
            total_collected=_decimal(r.get("total_collected")),
            total_due=_decimal(r.get("total_due")),
        )

    def monthly_collections(self, *, start: Optional[date], end: Optional[date]) -> Sequence[MonthlyCollection]:
        range_clauses, params = _date_range("paid_date", start, end)
        where = " AND ".join(["status='paid'", "paid_date IS NOT NULL"] + range_clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT DATE_FORMAT(paid_date, '%Y-%m') AS month, COUNT(*) AS count, SUM(amount) AS total
                FROM fees
                WHERE {where}
                GROUP BY DATE_FORMAT(paid_date, '%Y-%m')
                ORDER BY month
                """,
                tuple(params),
            )
            return [
                MonthlyCollection(month=r["month"], count=int(r["count"]), total=_decimal(r["total"]))
                for r in fetchall(cur)
            ]

    def collected_between(self, start: date, end: date) -> Decimal:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COALESCE(SUM(amount), 0) AS total
                FROM fees
                WHERE status='paid' AND paid_date BETWEEN %s AND %s
                """,
                (start, end),
            )
            return _decimal(fetchone(cur)["total"])
