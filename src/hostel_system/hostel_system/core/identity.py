from __future__ import annotations

from dataclasses import dataclass

from .enums import Role
from .exceptions import AuthorizationError


@dataclass(frozen=True)
class Identity:
    """Authenticated requester, supplied by the HTTP layer."""

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def require_admin(identity: Identity) -> None:
    if not identity.is_admin:
        raise AuthorizationError("Access denied")


def require_self_or_admin(identity: Identity, user_id: int) -> None:
    # Checked before any lookup, so a student learns nothing about other users' data.
    if not identity.is_admin and int(user_id) != identity.user_id:
        raise AuthorizationError("Access denied")
