from __future__ import annotations

from typing import Optional, Sequence, Tuple

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository

USER_COLUMNS = "user_id, name, email, password_hash, role, room_no, batch, phone, photo, is_active, created_at"


def row_to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        room_no=row.get("room_no"),
        batch=row.get("batch"),
        phone=row.get("phone"),
        photo=row.get("photo"),
        is_active=bool(row.get("is_active", True)),
        created_at=row.get("created_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE user_id=%s", (user_id,))
            row = fetchone(cur)
            return row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE email=%s", (email,))
            row = fetchone(cur)
            return row_to_user(row) if row else None

    def list_users(
        self,
        *,
        search: Optional[str],
        role: Optional[Role],
        batch: Optional[str],
        limit: int,
        offset: int,
    ) -> Tuple[Sequence[User], int]:
        clauses = ["1=1"]
        params: list[object] = []

        if search:
            clauses.append("(name LIKE %s OR email LIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])
        if role is not None:
            clauses.append("role=%s")
            params.append(role.value)
        if batch:
            clauses.append("batch=%s")
            params.append(batch)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {USER_COLUMNS}
                FROM users
                WHERE {where}
                ORDER BY created_at DESC, user_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            users = [row_to_user(r) for r in fetchall(cur)]

            cur.execute(f"SELECT COUNT(*) AS total FROM users WHERE {where}", tuple(params))
            total = int(fetchone(cur)["total"])

        return users, total

    def list_active_students(self, *, batch: Optional[str] = None, room_no: Optional[str] = None) -> Sequence[User]:
        clauses = ["role='student'", "is_active=1"]
        params: list[object] = []
        if batch:
            clauses.append("batch=%s")
            params.append(batch)
        if room_no:
            clauses.append("room_no=%s")
            params.append(room_no)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE {' AND '.join(clauses)} ORDER BY name",
                tuple(params),
            )
            return [row_to_user(r) for r in fetchall(cur)]

    def count_active_students(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM users WHERE role='student' AND is_active=1")
            return int(fetchone(cur)["total"])
