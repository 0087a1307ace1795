"""
Authenticated actors and capabilities.

Views resolve the request user into an `Actor` once. Operations that
only staff may perform take a `StaffCapability`, which can only be
obtained through `Actor.as_staff()`; services never re-check roles.
"""

from dataclasses import dataclass
from typing import Any

from django.core.exceptions import PermissionDenied

from .models import UserRole


@dataclass(frozen=True)
class Actor:
    id: Any
    email: str
    role: str

    @classmethod
    def from_user(cls, user) -> 'Actor':
        return cls(id=user.pk, email=user.email, role=user.role)

    @classmethod
    def system(cls, label: str = 'System') -> 'Actor':
        """Actor for automated jobs (seeding, simulations)."""
        return cls(id=None, email=label, role=UserRole.ADMIN)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff_member(self) -> bool:
        return self.role in (UserRole.STAFF, UserRole.ADMIN)

    def can_access(self, owner_id) -> bool:
        """Owners see their own records; staff and admins see everything."""
        return self.is_staff_member or owner_id == self.id

    def as_staff(self) -> 'StaffCapability':
        if not self.is_staff_member:
            raise PermissionDenied('Staff or admin role required')
        return StaffCapability(actor=self)


@dataclass(frozen=True)
class StaffCapability:
    """Proof that the role check for status management already passed."""
    actor: Actor

    @property
    def label(self) -> str:
        return self.actor.email
