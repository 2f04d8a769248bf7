# expense_tracker/services/permissions.py
from dataclasses import dataclass

from expense_tracker.exceptions import AuthorizationError
from expense_tracker.models.users import Role


@dataclass(frozen=True)
class Actor:
    """The user on whose behalf a service call runs."""

    id: str
    role: Role

    @classmethod
    def from_user(cls, user) -> "Actor":
        try:
            role = Role.parse(user.role)
        except ValueError:
            raise AuthorizationError("Unrecognized role")
        return cls(id=user.id, role=role)

    @property
    def is_reviewer(self) -> bool:
        return has_permission(self.role, Role.APPROVER)


def has_permission(role, required) -> bool:
    """True iff ``role`` ranks at or above ``required``."""
    return Role.parse(role).rank >= Role.parse(required).rank


def require_role(actor: Actor, required: Role) -> None:
    if not has_permission(actor.role, required):
        raise AuthorizationError(f"{required.display_name} access required")
