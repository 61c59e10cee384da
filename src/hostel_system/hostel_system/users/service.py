from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.pagination import Page, PageRequest
from ..common.validators import (
    optional_str,
    require_bool,
    require_choice,
    require_email,
    require_int,
    require_min_length,
    require_non_empty,
)
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..core.identity import Identity, require_admin, require_self_or_admin
from ..fees.repository import FeeRepository
from ..rooms.repository import OccupancyStore, RoomRepository
from ..rooms.service import OccupancyService
from .model import DashboardStats, UserView
from .repository import UserRepository

logger = logging.getLogger(__name__)

_ADMIN_ONLY_FIELDS = ("room_no", "is_active")


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    name: str
    role: Role


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, email: str, password: str) -> SessionUser:
        user = self._users.get_by_email((email or "").strip().lower())
        if not user or not user.is_active:
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            raise AuthenticationError("Invalid email or password")

        return SessionUser(user_id=user.user_id, name=user.name, role=user.role)


class UserService:
    """Use case: manage users.

    Room placement goes through OccupancyService inside the same transaction
    as the user write, so a rejected room never leaves a half-updated user.
    """

    def __init__(self, users: UserRepository, store: OccupancyStore, occupancy: OccupancyService):
        self._users = users
        self._store = store
        self._occupancy = occupancy

    def create_account(
        self,
        identity: Identity,
        *,
        name: str,
        email: str,
        password: str,
        role=Role.STUDENT,
        room_no: Optional[str] = None,
        batch: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> UserView:
        require_admin(identity)
        name = require_non_empty(name, "Name")
        email = require_email(email)
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
        role = require_choice(role, Role, "role")
        room_no = optional_str(room_no)

        password_hash = generate_password_hash(password)
        with self._store.transaction() as tx:
            if tx.email_taken(email):
                raise ConflictError("User already exists with this email")
            user_id = tx.insert_user(
                name=name,
                email=email,
                password_hash=password_hash,
                role=role,
                batch=optional_str(batch),
                phone=optional_str(phone),
            )
            if room_no:
                self._occupancy.move_within(tx, tx.lock_user(user_id), room_no)
            created = tx.lock_user(user_id)

        logger.info("User %s created (role=%s, room=%s)", user_id, role.value, room_no or "-")
        return UserView.of(created)

    def update_profile(self, identity: Identity, user_id, changes: Mapping[str, object]) -> UserView:
        user_id = require_int(user_id, "user ID")
        require_self_or_admin(identity, user_id)
        if not identity.is_admin and any(k in changes for k in _ADMIN_ONLY_FIELDS):
            raise AuthorizationError("Only admins can change room or account status")

        fields: dict[str, object] = {}
        if changes.get("name"):
            fields["name"] = require_non_empty(changes["name"], "Name")
        if changes.get("email"):
            fields["email"] = require_email(changes["email"])
        for key in ("batch", "phone"):
            if changes.get(key):
                fields[key] = optional_str(changes[key])

        move_room = "room_no" in changes
        new_room = optional_str(changes.get("room_no")) if move_room else None
        new_active = require_bool(changes["is_active"], "is_active") if "is_active" in changes else None

        if not fields and not move_room and new_active is None:
            raise ValidationError("No fields to update")

        with self._store.transaction() as tx:
            user = tx.lock_user(user_id)
            if not user:
                raise NotFoundError("User not found")
            email = fields.get("email")
            if email and email != user.email and tx.email_taken(email, exclude_user_id=user_id):
                raise ConflictError("Email already exists")
            if fields:
                tx.update_user_fields(user_id, fields)
            # Only an active student can hold a room: activate before the move, deactivate after it.
            if new_active is True:
                self._occupancy.set_active_within(tx, tx.lock_user(user_id), True)
            if move_room:
                self._occupancy.move_within(tx, tx.lock_user(user_id), new_room)
            if new_active is False:
                self._occupancy.set_active_within(tx, tx.lock_user(user_id), False)
            updated = tx.lock_user(user_id)

        logger.info("User %s updated by %s", user_id, identity.user_id)
        return UserView.of(updated)

    def get_user(self, identity: Identity, user_id) -> UserView:
        user_id = require_int(user_id, "user ID")
        require_self_or_admin(identity, user_id)
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return UserView.of(user)

    def list_users(
        self,
        identity: Identity,
        *,
        search: Optional[str] = None,
        role: Optional[str] = None,
        batch: Optional[str] = None,
        page: PageRequest = PageRequest(),
    ) -> Page[UserView]:
        require_admin(identity)
        role_filter = require_choice(role, Role, "role") if role else None
        users, total = self._users.list_users(
            search=optional_str(search),
            role=role_filter,
            batch=optional_str(batch),
            limit=page.limit,
            offset=page.offset,
        )
        return Page(items=[UserView.of(u) for u in users], page=page.page, limit=page.limit, total=total)

    def list_by_batch(self, batch: str) -> Sequence[UserView]:
        batch = require_non_empty(batch, "Batch")
        return [UserView.of(u) for u in self._users.list_active_students(batch=batch)]


class DashboardService:
    def __init__(self, users: UserRepository, rooms: RoomRepository, fees: FeeRepository):
        self._users = users
        self._rooms = rooms
        self._fees = fees

    def stats(self, identity: Identity, *, today: Optional[date] = None) -> DashboardStats:
        require_admin(identity)
        today = today or date.today()
        availability = self._rooms.availability()
        month_start = today.replace(day=1)
        return DashboardStats(
            total_students=self._users.count_active_students(),
            total_rooms=availability.total_rooms,
            occupied_rooms=availability.occupied_rooms,
            fees_collected=self._fees.collected_between(month_start, today),
        )
