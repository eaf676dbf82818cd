import enum
from dataclasses import dataclass
from fastapi import Depends
from app.utils.errors import UnauthorizedError


class Role(str, enum.Enum):
    CONSUMER = "consumer"
    BRAND_OWNER = "brand_owner"
    STAFF = "staff"


@dataclass(frozen=True)
class Actor:
    """Authenticated caller resolved from the bearer token."""

    id: str
    role: Role
    name: str = ""
    email: str = ""

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles


def ensure_role(actor: Actor, *roles: Role, message: str = "Not authorized for this operation"):
    if not actor.has_role(*roles):
        raise UnauthorizedError(message)


def ensure_owner(actor: Actor, owner_id: str, message: str = "You can only manage your own resources"):
    """Single ownership predicate over (actor, resource owner) pairs."""
    if str(owner_id) != actor.id:
        raise UnauthorizedError(message)


def require_roles(*roles: Role):
    """Dependency factory: resolves the current actor and checks its role."""
    from app.utils.auth import get_current_user

    allowed = ", ".join(role.value for role in roles)

    def dependency(actor: Actor = Depends(get_current_user)) -> Actor:
        ensure_role(actor, *roles, message=f"Only {allowed} can perform this operation")
        return actor

    return dependency
