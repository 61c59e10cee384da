from __future__ import annotations

from typing import Optional, Protocol, Sequence, Tuple

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Read-side repository for users.

    Note (DIP): services depend on this interface, not on a concrete DB.
    Writes that touch room assignment go through the occupancy store.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def list_users(
        self,
        *,
        search: Optional[str],
        role: Optional[Role],
        batch: Optional[str],
        limit: int,
        offset: int,
    ) -> Tuple[Sequence[User], int]:
        raise NotImplementedError

    def list_active_students(self, *, batch: Optional[str] = None, room_no: Optional[str] = None) -> Sequence[User]:
        raise NotImplementedError

    def count_active_students(self) -> int:
        raise NotImplementedError
