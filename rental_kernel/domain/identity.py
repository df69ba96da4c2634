"""
Module: rental_kernel.domain.identity
Responsibility:
    The acting caller as supplied by the identity provider, and the
    role -> capability table the kernel enforces.  Authentication itself
    happens outside the kernel.

Architecture position:
    Kernel > Domain -- pure value objects and functions, zero I/O.

Capability table:
    Capability        | admin | manager | staff | viewer
    ------------------|-------|---------|-------|-------
    create            |   x   |    x    |   x   |
    edit any draft    |   x   |    x    |       |
    edit own draft    |   x   |    x    |   x   |
    transition        |   x   |    x    |       |
    record payment    |   x   |    x    |       |
    disable / enable  |   x   |         |       |
    print             |   x   |    x    |   x   |   x
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from rental_kernel.exceptions import ForbiddenRoleError


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    VIEWER = "viewer"


class Capability(str, Enum):
    CREATE = "create"
    EDIT_ANY = "edit_any"
    EDIT_OWN = "edit_own"
    TRANSITION = "transition"
    RECORD_PAYMENT = "record_payment"
    TOGGLE_DISABLED = "toggle_disabled"
    PRINT = "print"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.MANAGER: frozenset(Capability) - {Capability.TOGGLE_DISABLED},
    Role.STAFF: frozenset({Capability.CREATE, Capability.EDIT_OWN, Capability.PRINT}),
    Role.VIEWER: frozenset({Capability.PRINT}),
}


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of one operation.

    ``ip_address`` is the request's client address, copied onto edit and
    audit records.
    """

    user_id: UUID
    role: Role
    ip_address: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))

    def can(self, capability: Capability) -> bool:
        return capability in ROLE_CAPABILITIES[self.role]


def require(actor: Actor, capability: Capability, action: str) -> None:
    """
    Raise ForbiddenRoleError unless ``actor`` holds ``capability``.

    Raises:
        ForbiddenRoleError: Caller's role lacks the capability.
    """
    if not actor.can(capability):
        raise ForbiddenRoleError(str(actor.user_id), actor.role.value, action)


def require_edit(actor: Actor, created_by_id: UUID) -> None:
    """
    Editing needs EDIT_ANY, or EDIT_OWN on a contract the actor created.

    Raises:
        ForbiddenRoleError: Caller may not edit this contract.
    """
    if actor.can(Capability.EDIT_ANY):
        return
    if actor.can(Capability.EDIT_OWN) and actor.user_id == created_by_id:
        return
    raise ForbiddenRoleError(str(actor.user_id), actor.role.value, "edit")
