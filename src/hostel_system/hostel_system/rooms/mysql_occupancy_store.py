from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Mapping, Optional, Sequence

from mysql.connector import errors

from ..core.enums import Role, RoomType
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_transaction, fetchall, fetchone, is_duplicate_key
from ..users.model import User
from ..users.mysql_user_repository import USER_COLUMNS, row_to_user
from .model import Room
from .mysql_room_repository import ROOM_COLUMNS, row_to_room
from .repository import OccupancyStore, OccupancyTransaction

_USER_FIELDS = {"name", "email", "batch", "phone", "photo"}
_ROOM_FIELDS = {"capacity", "room_type", "floor", "is_active"}


def _column_value(value: object) -> object:
    return value.value if isinstance(value, (Role, RoomType)) else value


class MySQLOccupancyTransaction(OccupancyTransaction):
    """Runs on a single cursor inside an open InnoDB transaction."""

    def __init__(self, cur):
        self._cur = cur

    def lock_user(self, user_id: int) -> Optional[User]:
        self._cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE user_id=%s FOR UPDATE", (user_id,))
        row = fetchone(self._cur)
        return row_to_user(row) if row else None

    def lock_room(self, room_id: int) -> Optional[Room]:
        self._cur.execute(f"SELECT {ROOM_COLUMNS} FROM rooms r WHERE r.room_id=%s FOR UPDATE", (room_id,))
        row = fetchone(self._cur)
        return row_to_room(row) if row else None

    def lock_rooms_by_number(self, room_nos: Sequence[str]) -> Mapping[str, Room]:
        numbers = sorted(set(room_nos))
        if not numbers:
            return {}
        placeholders = ", ".join(["%s"] * len(numbers))
        self._cur.execute(
            f"SELECT {ROOM_COLUMNS} FROM rooms r WHERE r.room_no IN ({placeholders}) ORDER BY r.room_id FOR UPDATE",
            tuple(numbers),
        )
        rooms = [row_to_room(r) for r in fetchall(self._cur)]
        return {room.room_no: room for room in rooms}

    def email_taken(self, email: str, *, exclude_user_id: Optional[int] = None) -> bool:
        if exclude_user_id is None:
            self._cur.execute("SELECT user_id FROM users WHERE email=%s", (email,))
        else:
            self._cur.execute("SELECT user_id FROM users WHERE email=%s AND user_id<>%s", (email, exclude_user_id))
        return fetchone(self._cur) is not None

    def room_no_taken(self, room_no: str) -> bool:
        self._cur.execute("SELECT room_id FROM rooms WHERE room_no=%s", (room_no,))
        return fetchone(self._cur) is not None

    def insert_user(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: Role,
        batch: Optional[str],
        phone: Optional[str],
    ) -> int:
        try:
            self._cur.execute(
                """
                INSERT INTO users(name, email, password_hash, role, batch, phone, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,1)
                """,
                (name, email, password_hash, role.value, batch, phone),
            )
        except errors.IntegrityError as exc:
            if is_duplicate_key(exc):
                raise ConflictError("User already exists with this email") from exc
            raise
        return int(self._cur.lastrowid)

    def update_user_fields(self, user_id: int, fields: Mapping[str, object]) -> None:
        self._update("users", "user_id", user_id, fields, _USER_FIELDS, conflict="Email already exists")

    def set_user_room(self, user_id: int, room_no: Optional[str]) -> None:
        self._cur.execute("UPDATE users SET room_no=%s WHERE user_id=%s", (room_no, user_id))

    def set_user_active(self, user_id: int, is_active: bool) -> None:
        self._cur.execute("UPDATE users SET is_active=%s WHERE user_id=%s", (1 if is_active else 0, user_id))

    def delete_user(self, user_id: int) -> None:
        self._cur.execute("DELETE FROM users WHERE user_id=%s", (user_id,))

    def insert_room(self, *, room_no: str, capacity: int, room_type: RoomType, floor: Optional[int]) -> int:
        try:
            self._cur.execute(
                "INSERT INTO rooms(room_no, capacity, room_type, floor) VALUES(%s,%s,%s,%s)",
                (room_no, capacity, room_type.value, floor),
            )
        except errors.IntegrityError as exc:
            if is_duplicate_key(exc):
                raise ConflictError("Room already exists") from exc
            raise
        return int(self._cur.lastrowid)

    def set_occupied(self, room_id: int, occupied: int) -> None:
        self._cur.execute("UPDATE rooms SET occupied=%s WHERE room_id=%s", (occupied, room_id))

    def update_room_fields(self, room_id: int, fields: Mapping[str, object]) -> None:
        self._update("rooms", "room_id", room_id, fields, _ROOM_FIELDS)

    def delete_room(self, room_id: int) -> None:
        self._cur.execute("DELETE FROM rooms WHERE room_id=%s", (room_id,))

    def _update(
        self,
        table: str,
        key: str,
        key_value: int,
        fields: Mapping[str, object],
        allowed: set[str],
        *,
        conflict: Optional[str] = None,
    ) -> None:
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Unsupported {table} columns: {sorted(unknown)}")
        if not fields:
            return

        columns = sorted(fields)
        assignments = ", ".join(f"{c}=%s" for c in columns)
        values = [_column_value(fields[c]) for c in columns]
        try:
            self._cur.execute(f"UPDATE {table} SET {assignments} WHERE {key}=%s", tuple(values + [key_value]))
        except errors.IntegrityError as exc:
            if conflict and is_duplicate_key(exc):
                raise ConflictError(conflict) from exc
            raise


class MySQLOccupancyStore(OccupancyStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def transaction(self) -> Iterator[MySQLOccupancyTransaction]:
        with db_transaction(self._conn_factory) as (_, cur):
            yield MySQLOccupancyTransaction(cur)
