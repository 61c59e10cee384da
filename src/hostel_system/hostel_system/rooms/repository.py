from __future__ import annotations

from typing import ContextManager, Mapping, Optional, Protocol, Sequence, Tuple

from ..core.enums import Role, RoomType
from ..users.model import User
from .model import Occupant, Room, RoomAvailability


class RoomRepository(Protocol):
    """Read-side queries for rooms. Never mutates occupancy."""

    def get_by_id(self, room_id: int) -> Optional[Room]:
        raise NotImplementedError

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
        raise NotImplementedError

    def occupants(self, room_no: str) -> Sequence[Occupant]:
        raise NotImplementedError

    def availability(self) -> RoomAvailability:
        raise NotImplementedError


class OccupancyTransaction(Protocol):
    """One atomic unit of work over users and rooms.

    ``lock_*`` methods take row locks held until the transaction ends.
    Callers lock the user row before any room row, and rooms in ascending
    room_id order.
    """

    def lock_user(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def lock_room(self, room_id: int) -> Optional[Room]:
        raise NotImplementedError

    def lock_rooms_by_number(self, room_nos: Sequence[str]) -> Mapping[str, Room]:
        raise NotImplementedError

    def email_taken(self, email: str, *, exclude_user_id: Optional[int] = None) -> bool:
        raise NotImplementedError

    def room_no_taken(self, room_no: str) -> bool:
        raise NotImplementedError

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
        raise NotImplementedError

    def update_user_fields(self, user_id: int, fields: Mapping[str, object]) -> None:
        raise NotImplementedError

    def set_user_room(self, user_id: int, room_no: Optional[str]) -> None:
        raise NotImplementedError

    def set_user_active(self, user_id: int, is_active: bool) -> None:
        raise NotImplementedError

    def delete_user(self, user_id: int) -> None:
        raise NotImplementedError

    def insert_room(self, *, room_no: str, capacity: int, room_type: RoomType, floor: Optional[int]) -> int:
        raise NotImplementedError

    def set_occupied(self, room_id: int, occupied: int) -> None:
        raise NotImplementedError

    def update_room_fields(self, room_id: int, fields: Mapping[str, object]) -> None:
        raise NotImplementedError

    def delete_room(self, room_id: int) -> None:
        raise NotImplementedError


class OccupancyStore(Protocol):
    def transaction(self) -> ContextManager[OccupancyTransaction]:
        raise NotImplementedError
