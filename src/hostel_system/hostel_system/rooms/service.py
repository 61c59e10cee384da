from __future__ import annotations

import dataclasses
import logging
from typing import Optional

from ..common.pagination import Page, PageRequest
from ..common.validators import (
    optional_str,
    require_bool,
    require_choice,
    require_int,
    require_int_range,
    require_non_empty,
)
from ..core.constants import ROOM_CAPACITY_MAX, ROOM_CAPACITY_MIN
from ..core.enums import RoomType
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.identity import Identity, require_admin
from ..users.model import User
from .model import Room, RoomAvailability, RoomDetail, RoomListItem
from .repository import OccupancyStore, OccupancyTransaction, RoomRepository

logger = logging.getLogger(__name__)

_VACANCY_FILTERS = {"vacant", "occupied"}


def _validate_capacity(value) -> int:
    return require_int_range(value, "Capacity", ROOM_CAPACITY_MIN, ROOM_CAPACITY_MAX)


class OccupancyService:
    """Keeps Room.occupied and User.room_no consistent.

    Every operation runs as one transaction on the occupancy store. Input is
    validated before the transaction opens, so a rejected request never writes.
    """

    def __init__(self, store: OccupancyStore):
        self._store = store

    def create_room(
        self,
        identity: Identity,
        *,
        room_no: str,
        capacity,
        room_type,
        floor=None,
    ) -> Room:
        require_admin(identity)
        room_no = require_non_empty(room_no, "Room number")
        capacity = _validate_capacity(capacity)
        room_type = require_choice(room_type, RoomType, "room type")
        floor = require_int(floor, "floor") if floor not in (None, "") else None

        with self._store.transaction() as tx:
            if tx.room_no_taken(room_no):
                raise ConflictError("Room already exists")
            room_id = tx.insert_room(room_no=room_no, capacity=capacity, room_type=room_type, floor=floor)

        logger.info("Room %s created (id=%s, capacity=%s)", room_no, room_id, capacity)
        return Room(room_id=room_id, room_no=room_no, capacity=capacity, room_type=room_type, floor=floor)

    def update_room(
        self,
        identity: Identity,
        *,
        room_id,
        capacity=None,
        room_type=None,
        floor=None,
        is_active=None,
    ) -> Room:
        require_admin(identity)
        room_id = require_int(room_id, "room ID")

        fields: dict[str, object] = {}
        if capacity is not None:
            fields["capacity"] = _validate_capacity(capacity)
        if room_type is not None:
            fields["room_type"] = require_choice(room_type, RoomType, "room type")
        if floor is not None:
            fields["floor"] = require_int(floor, "floor")
        if is_active is not None:
            fields["is_active"] = require_bool(is_active, "is_active")
        if not fields:
            raise ValidationError("No fields to update")

        with self._store.transaction() as tx:
            room = tx.lock_room(room_id)
            if not room:
                raise NotFoundError("Room not found")
            new_capacity = fields.get("capacity")
            if new_capacity is not None and new_capacity < room.occupied:
                raise ConflictError("New capacity cannot be less than current occupancy")
            tx.update_room_fields(room_id, fields)

        logger.info("Room %s updated: %s", room.room_no, sorted(fields))
        return dataclasses.replace(room, **fields)

    def update_capacity(self, identity: Identity, *, room_id, capacity) -> Room:
        return self.update_room(identity, room_id=room_id, capacity=capacity)

    def delete_room(self, identity: Identity, *, room_id) -> None:
        require_admin(identity)
        room_id = require_int(room_id, "room ID")

        with self._store.transaction() as tx:
            room = tx.lock_room(room_id)
            if not room:
                raise NotFoundError("Room not found")
            if room.occupied > 0:
                raise ConflictError("Cannot delete room with occupants")
            tx.delete_room(room_id)

        logger.info("Room %s deleted", room.room_no)

    def assign(self, identity: Identity, *, room_id, student_id) -> Room:
        require_admin(identity)
        room_id = require_int(room_id, "room ID")
        student_id = require_int(student_id, "student ID")

        with self._store.transaction() as tx:
            student = tx.lock_user(student_id)
            room = tx.lock_room(room_id)
            if not room or not room.is_active:
                raise NotFoundError("Room not found")
            if not self._is_assignable(student):
                raise NotFoundError("Student not found")
            if room.is_full:
                raise ConflictError("Room is full")
            if student.room_no:
                raise ConflictError("Student is already assigned to a room")

            tx.set_user_room(student.user_id, room.room_no)
            tx.set_occupied(room.room_id, room.occupied + 1)

        logger.info("Student %s assigned to room %s", student_id, room.room_no)
        return dataclasses.replace(room, occupied=room.occupied + 1)

    def unassign(self, identity: Identity, *, room_id, student_id) -> Room:
        require_admin(identity)
        room_id = require_int(room_id, "room ID")
        student_id = require_int(student_id, "student ID")

        with self._store.transaction() as tx:
            student = tx.lock_user(student_id)
            room = tx.lock_room(room_id)
            if not room:
                raise NotFoundError("Room not found")
            if not student:
                raise NotFoundError("Student not found")
            if student.room_no != room.room_no:
                raise ConflictError("Student is not assigned to this room")

            occupied = max(room.occupied - 1, 0)
            tx.set_user_room(student.user_id, None)
            tx.set_occupied(room.room_id, occupied)

        logger.info("Student %s removed from room %s", student_id, room.room_no)
        return dataclasses.replace(room, occupied=occupied)

    def reassign(self, identity: Identity, *, user_id, room_no: Optional[str]) -> None:
        """Move a student to ``room_no`` (``None`` releases the current room).

        All-or-nothing: if the target room is missing or full, the old
        assignment is left untouched.
        """

        require_admin(identity)
        user_id = require_int(user_id, "user ID")
        room_no = optional_str(room_no)

        with self._store.transaction() as tx:
            user = tx.lock_user(user_id)
            if not user:
                raise NotFoundError("User not found")
            self.move_within(tx, user, room_no)

    def set_active(self, identity: Identity, *, user_id, is_active) -> None:
        require_admin(identity)
        user_id = require_int(user_id, "user ID")
        is_active = require_bool(is_active, "is_active")

        with self._store.transaction() as tx:
            user = tx.lock_user(user_id)
            if not user:
                raise NotFoundError("User not found")
            self.set_active_within(tx, user, is_active)

    def delete_user(self, identity: Identity, *, user_id) -> None:
        require_admin(identity)
        user_id = require_int(user_id, "user ID")
        if user_id == identity.user_id:
            raise ValidationError("You cannot delete your own account")

        with self._store.transaction() as tx:
            user = tx.lock_user(user_id)
            if not user:
                raise NotFoundError("User not found")
            self.release_within(tx, user)
            tx.delete_user(user_id)

        logger.info("User %s deleted", user_id)

    # Building blocks for callers that already hold a transaction.

    def move_within(self, tx: OccupancyTransaction, user: User, room_no: Optional[str]) -> None:
        if room_no == user.room_no:
            return
        if room_no is None:
            self.release_within(tx, user)
            return
        if not self._is_assignable(user):
            raise NotFoundError("Student not found")

        rooms = tx.lock_rooms_by_number([n for n in (user.room_no, room_no) if n])
        target = rooms.get(room_no)
        if not target or not target.is_active:
            raise NotFoundError("Room not found")
        if target.is_full:
            raise ConflictError("Room is full")

        old = rooms.get(user.room_no) if user.room_no else None
        if old:
            tx.set_occupied(old.room_id, max(old.occupied - 1, 0))
        tx.set_user_room(user.user_id, target.room_no)
        tx.set_occupied(target.room_id, target.occupied + 1)

        logger.info("User %s moved from room %s to %s", user.user_id, user.room_no or "-", target.room_no)

    def release_within(self, tx: OccupancyTransaction, user: User) -> None:
        if not user.room_no:
            return
        room = tx.lock_rooms_by_number([user.room_no]).get(user.room_no)
        if room:
            tx.set_occupied(room.room_id, max(room.occupied - 1, 0))
        tx.set_user_room(user.user_id, None)

        logger.info("User %s released from room %s", user.user_id, user.room_no)

    def set_active_within(self, tx: OccupancyTransaction, user: User, is_active: bool) -> None:
        if user.is_active == is_active:
            return
        if not is_active:
            # Inactive students do not count towards occupancy.
            self.release_within(tx, user)
        tx.set_user_active(user.user_id, is_active)

        logger.info("User %s %s", user.user_id, "activated" if is_active else "deactivated")

    @staticmethod
    def _is_assignable(user: Optional[User]) -> bool:
        return bool(user and user.is_student and user.is_active)


class RoomService:
    """Read-only room queries."""

    def __init__(self, rooms: RoomRepository):
        self._rooms = rooms

    def list_rooms(
        self,
        *,
        search: Optional[str] = None,
        room_type: Optional[str] = None,
        floor=None,
        vacancy: Optional[str] = None,
        page: PageRequest = PageRequest(),
    ) -> Page[RoomListItem]:
        type_filter = require_choice(room_type, RoomType, "room type") if room_type else None
        floor_filter = require_int(floor, "floor") if floor not in (None, "") else None
        vacancy = optional_str(vacancy)
        if vacancy is not None and vacancy not in _VACANCY_FILTERS:
            raise ValidationError("status must be 'vacant' or 'occupied'")

        rows, total = self._rooms.list_rooms(
            search=optional_str(search),
            room_type=type_filter,
            floor=floor_filter,
            vacancy=vacancy,
            limit=page.limit,
            offset=page.offset,
        )
        items = [RoomListItem(room=room, occupant_names=tuple(names)) for room, names in rows]
        return Page(items=items, page=page.page, limit=page.limit, total=total)

    def get_room(self, room_id) -> RoomDetail:
        room = self._rooms.get_by_id(require_int(room_id, "room ID"))
        if not room:
            raise NotFoundError("Room not found")
        return RoomDetail(room=room, occupants=tuple(self._rooms.occupants(room.room_no)))

    def roommates(self, room_no: str):
        return self._rooms.occupants(require_non_empty(room_no, "Room number"))

    def availability(self) -> RoomAvailability:
        return self._rooms.availability()
