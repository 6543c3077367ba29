# Overview: Static role -> capability map and the checks built on it.

"""
Authorization gate

Two roles, six capabilities. The mapping is static; there is no per-user
override table. Callers check membership before dispatching an operation
(routes via decorators.require_capability, services via require_capability).

ADMIN:    everything
OPERATOR: register, sales, customers, reports (no catalog or user management)
"""

from __future__ import annotations

import enum

from .errors import PermissionDenied
from .models.enums import UserRole


class Capability(str, enum.Enum):
    REGISTER = "REGISTER"
    SALES = "SALES"
    CUSTOMERS = "CUSTOMERS"
    REPORTS = "REPORTS"
    CATALOG = "CATALOG"
    USERS = "USERS"


ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.ADMIN: frozenset(Capability),
    UserRole.OPERATOR: frozenset({
        Capability.REGISTER,
        Capability.SALES,
        Capability.CUSTOMERS,
        Capability.REPORTS,
    }),
}


def capabilities_for(user) -> frozenset[Capability]:
    """Capabilities of a user; inactive or missing users have none."""
    if user is None or not user.is_active:
        return frozenset()
    return ROLE_CAPABILITIES.get(UserRole.parse(user.role), frozenset())


def has_capability(user, capability: Capability) -> bool:
    return capability in capabilities_for(user)


def require_capability(user, capability: Capability) -> None:
    if not has_capability(user, capability):
        raise PermissionDenied(
            f"Missing capability: {capability.value}",
            details={"required_capability": capability.value},
        )
