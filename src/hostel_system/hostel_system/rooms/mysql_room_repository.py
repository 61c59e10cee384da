from __future__ import annotations

from typing import Optional, Sequence, Tuple

from ..core.enums import RoomType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AvailabilityBucket, Occupant, Room, RoomAvailability
from .repository import RoomRepository

ROOM_COLUMNS = "r.room_id, r.room_no, r.capacity, r.room_type, r.floor, r.occupied, r.is_active, r.created_at"


def row_to_room(r: dict) -> Room:
    return Room(
        room_id=int(r["room_id"]),
        room_no=r["room_no"],
        capacity=int(r["capacity"]),
        room_type=RoomType(r["room_type"]),
        floor=int(r["floor"]) if r.get("floor") is not None else None,
        occupied=int(r.get("occupied") or 0),
        is_active=bool(r.get("is_active", True)),
        created_at=r.get("created_at"),
    )


class MySQLRoomRepository(RoomRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, room_id: int) -> Optional[Room]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {ROOM_COLUMNS} FROM rooms r WHERE r.room_id=%s", (room_id,))
            r = fetchone(cur)
            return row_to_room(r) if r else None

    def list_rooms(
        self,
        *,
        search: Optional[str],
        room_type: Optional[RoomType],
        floor: Optional[int],
        vacancy: Optional[str],
        limit: int,
        offset: int,
    ) -> Tuple[Sequence[Tuple[Room, Sequence[str]]], int]:
        clauses = ["1=1"]
        params: list[object] = []

        if search:
            clauses.append("r.room_no LIKE %s")
            params.append(f"%{search}%")
        if room_type is not None:
            clauses.append("r.room_type=%s")
            params.append(room_type.value)
        if floor is not None:
            clauses.append("r.floor=%s")
            params.append(int(floor))
        if vacancy == "vacant":
            clauses.append("r.occupied = 0")
        elif vacancy == "occupied":
            clauses.append("r.occupied > 0")

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {ROOM_COLUMNS},
                       GROUP_CONCAT(u.name ORDER BY u.name SEPARATOR '||') AS occupant_names
                FROM rooms r
                LEFT JOIN users u
                       ON u.room_no = r.room_no AND u.role = 'student' AND u.is_active = 1
                WHERE {where}
                GROUP BY r.room_id
                ORDER BY r.room_no
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            rows = fetchall(cur)

            cur.execute(f"SELECT COUNT(*) AS total FROM rooms r WHERE {where}", tuple(params))
            total = int(fetchone(cur)["total"])

        items = [
            (row_to_room(r), tuple(r["occupant_names"].split("||")) if r.get("occupant_names") else ())
            for r in rows
        ]
        return items, total

    def occupants(self, room_no: str) -> Sequence[Occupant]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, name, email, phone, photo
                FROM users
                WHERE room_no=%s AND role='student' AND is_active=1
                ORDER BY name
                """,
                (room_no,),
            )
            return [
                Occupant(id=int(r["user_id"]), name=r["name"], email=r["email"], phone=r.get("phone"), photo=r.get("photo"))
                for r in fetchall(cur)
            ]

    def availability(self) -> RoomAvailability:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS total_rooms,
                       COALESCE(SUM(CASE WHEN occupied = 0 THEN 1 ELSE 0 END), 0) AS vacant_rooms,
                       COALESCE(SUM(CASE WHEN occupied > 0 THEN 1 ELSE 0 END), 0) AS occupied_rooms,
                       COALESCE(SUM(occupied), 0) AS total_occupants,
                       COALESCE(SUM(capacity), 0) AS total_capacity
                FROM rooms
                WHERE is_active = 1
                """
            )
            overall = fetchone(cur) or {}

            buckets: dict[str, list[AvailabilityBucket]] = {}
            for column in ("room_type", "floor"):
                cur.execute(
                    f"""
                    SELECT {column} AS bucket,
                           COUNT(*) AS total,
                           SUM(CASE WHEN occupied = 0 THEN 1 ELSE 0 END) AS vacant,
                           SUM(occupied) AS occupied
                    FROM rooms
                    WHERE is_active = 1
                    GROUP BY {column}
                    ORDER BY {column}
                    """
                )
                buckets[column] = [
                    AvailabilityBucket(
                        key=r["bucket"],
                        total=int(r["total"]),
                        vacant=int(r["vacant"] or 0),
                        occupied=int(r["occupied"] or 0),
                    )
                    for r in fetchall(cur)
                ]

        return RoomAvailability(
            total_rooms=int(overall.get("total_rooms") or 0),
            vacant_rooms=int(overall.get("vacant_rooms") or 0),
            occupied_rooms=int(overall.get("occupied_rooms") or 0),
            total_occupants=int(overall.get("total_occupants") or 0),
            total_capacity=int(overall.get("total_capacity") or 0),
            by_type=tuple(buckets["room_type"]),
            by_floor=tuple(buckets["floor"]),
        )
