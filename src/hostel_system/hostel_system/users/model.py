from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: hostel user (admin or student).

    Note: Plain data object, no DB access code here.
    """

    user_id: int
    name: str
    email: str
    password_hash: str
    role: Role
    room_no: Optional[str] = None
    batch: Optional[str] = None
    phone: Optional[str] = None
    photo: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT


@dataclass(frozen=True)
class UserView:
    """Public projection of a user (never exposes the password hash)."""

    id: int
    name: str
    email: str
    role: Role
    room_no: Optional[str]
    batch: Optional[str]
    phone: Optional[str]
    photo: Optional[str]
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def of(cls, user: User) -> "UserView":
        return cls(
            id=user.user_id,
            name=user.name,
            email=user.email,
            role=user.role,
            room_no=user.room_no,
            batch=user.batch,
            phone=user.phone,
            photo=user.photo,
            is_active=user.is_active,
            created_at=user.created_at,
        )


@dataclass(frozen=True)
class DashboardStats:
    total_students: int
    total_rooms: int
    occupied_rooms: int
    fees_collected: Decimal
