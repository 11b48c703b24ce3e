"""
Role-based authorization decisions.

Pure functions over an explicit Identity; nothing here reads request state.
Role sets are normalized to frozenset[Role] by the caller (see role_set).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from models.user import Role
from utils.exceptions import Forbidden, Unauthenticated


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: Role


def role_set(roles: Iterable) -> FrozenSet[Role]:
    """Normalize role names/members into a non-empty frozenset of Role."""
    normalized = frozenset(Role(r) for r in roles)
    if not normalized:
        raise ValueError("at least one role is required")
    return normalized


ADMIN_ONLY = role_set([Role.ADMIN])
PLANNER_OR_ADMIN = role_set([Role.PLANNER, Role.ADMIN])
VENDOR_OR_PLANNER = role_set([Role.VENDOR, Role.PLANNER])


def _require_identity(identity: Optional[Identity]) -> Identity:
    if identity is None:
        raise Unauthenticated()
    return identity


def authorize(identity: Optional[Identity], allowed_roles: FrozenSet[Role]) -> None:
    """
    Allow iff identity.role is one of allowed_roles (exact match, no hierarchy).
    Raises Unauthenticated when there is no identity, Forbidden otherwise.
    """
    if not allowed_roles:
        raise ValueError("allowed_roles must not be empty")
    identity = _require_identity(identity)
    if identity.role not in allowed_roles:
        raise Forbidden(
            "Access denied. Required role: %s" % " or ".join(sorted(r.value for r in allowed_roles)),
            details={"role": identity.role.value},
        )


def authorize_owner_or_role(
    identity: Optional[Identity],
    resource_owner_id: Optional[str],
    privileged_roles: FrozenSet[Role],
) -> None:
    """Allow the owner of the resource, or anyone holding a privileged role."""
    identity = _require_identity(identity)
    if resource_owner_id is not None and identity.user_id == str(resource_owner_id):
        return
    if identity.role in privileged_roles:
        return
    raise Forbidden("Access denied. You can only access your own resources.")
