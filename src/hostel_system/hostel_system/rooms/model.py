from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import RoomType


@dataclass(frozen=True)
class Room:
    """Domain entity: room.

    Invariant: 0 <= occupied <= capacity, and occupied equals the number of
    active students whose room_no is this room.
    """

    room_id: int
    room_no: str
    capacity: int
    room_type: RoomType
    floor: Optional[int]
    occupied: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None

    @property
    def is_full(self) -> bool:
        return self.occupied >= self.capacity

    @property
    def vacancies(self) -> int:
        return max(self.capacity - self.occupied, 0)


@dataclass(frozen=True)
class Occupant:
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    photo: Optional[str] = None


@dataclass(frozen=True)
class RoomDetail:
    room: Room
    occupants: Sequence[Occupant] = field(default_factory=tuple)


@dataclass(frozen=True)
class RoomListItem:
    room: Room
    occupant_names: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class AvailabilityBucket:
    key: object
    total: int
    vacant: int
    occupied: int


@dataclass(frozen=True)
class RoomAvailability:
    total_rooms: int
    vacant_rooms: int
    occupied_rooms: int
    total_occupants: int
    total_capacity: int
    by_type: Sequence[AvailabilityBucket] = field(default_factory=tuple)
    by_floor: Sequence[AvailabilityBucket] = field(default_factory=tuple)
