"""Closed set of actor roles and the capabilities they grant."""
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    VENUE_OWNER = "venue_owner"
    MODERATOR = "moderator"


VENUE_MANAGER_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.VENUE_OWNER})
PHOTO_MANAGER_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.VENUE_OWNER})
PHOTO_MODERATOR_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.VENUE_OWNER, Role.MODERATOR})


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, passed explicitly into operations that check permissions."""
    user_id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def can_manage_photos(self) -> bool:
        """Auto-approved uploads, primary photo selection, deleting others' photos."""
        return self.role in PHOTO_MANAGER_ROLES

    @property
    def can_moderate_photos(self) -> bool:
        return self.role in PHOTO_MODERATOR_ROLES

    @property
    def can_manage_venues(self) -> bool:
        """Create venue listings and edit their details."""
        return self.role in VENUE_MANAGER_ROLES
