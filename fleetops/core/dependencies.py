# fleetops/core/dependencies.py

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException

from fleetops.users.models import Role


@dataclass(frozen=True)
class Actor:
    """Identity handed over by the upstream authentication layer."""

    id: int
    role: Role
    name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        """True for both admins and subadmins."""
        return self.role in (Role.ADMIN, Role.SUBADMIN)

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def audit_name(self) -> str:
        """Value written to created_by / modified_by columns."""
        return f"{self.role.value}:{self.id}"


def get_current_actor(
    x_actor_id: Optional[int] = Header(None),
    x_actor_role: Optional[str] = Header(None),
    x_actor_name: Optional[str] = Header(None),
) -> Actor:
    """Read the authenticated actor from the headers set by the auth gateway."""
    if x_actor_id is None or not x_actor_role:
        raise HTTPException(status_code=401, detail="Missing actor identity")
    try:
        role = Role(x_actor_role.lower())
    except ValueError as e:
        raise HTTPException(status_code=401, detail="Unknown actor role") from e
    return Actor(id=x_actor_id, role=role, name=x_actor_name)


def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Allow admins and subadmins."""
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return actor


def require_superadmin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Allow admins only."""
    if not actor.is_superadmin:
        raise HTTPException(status_code=403, detail="Admin role required")
    return actor

