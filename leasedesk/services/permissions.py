from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from ..constants import ACTIONS, CREATABLE_ROLES, INACTIVE_USER_STATUSES, RESOURCES, STAFF_ROLES
from ..models.models import Permission, Property, User

logger = logging.getLogger(__name__)

ALL_ACTIONS = frozenset(ACTIONS)

# Starting grants handed to a new account of each role when the creator does not pick any
ROLE_DEFAULT_GRANTS: Dict[str, Dict[str, tuple]] = {
    "software_tenant": {
        resource: (ACTIONS if resource != "market_analysis" else ("view", "create", "edit"))
        for resource in RESOURCES
    },
    "internal_user": {},
    "property_owner": {
        "portal": ("view",),
        "messages": ("view",),
        "short_term": ("view",),
        "financial": ("view",),
    },
    "partner": {
        "portal": ("view",),
        "messages": ("view",),
        "tasks": ("view", "edit"),
        "financial": ("view",),
    },
    "partner_employee": {
        "portal": ("view",),
        "tasks": ("view", "edit"),
        "messages": ("view",),
    },
    "tenant": {
        "portal": ("view",),
        "messages": ("view",),
    },
}


def _field(user: Any, name: str, default: Any = None) -> Any:
    if isinstance(user, Mapping):
        return user.get(name, default)
    return getattr(user, name, default)


def _permission_map(user: Any) -> Dict[str, FrozenSet[str]]:
    if isinstance(user, User):
        return user.permission_map()
    grants: Dict[str, FrozenSet[str]] = {}
    for entry in _field(user, "permissions") or []:
        resource = _field(entry, "resource")
        actions = _field(entry, "actions") or ()
        if resource and resource not in grants:
            grants[resource] = frozenset(actions)
    return grants


def has_permission(user: Any, resource: Optional[str], action: Optional[str]) -> bool:
    """Decide whether ``user`` may perform ``action`` on ``resource``.

    Resolution order, first match wins:

    1. no user, or a blocked / pending_approval account: deny
    2. platform_owner: allow
    3. mirror_admin flag: allow
    4. explicit grant for the resource containing the action: allow, else deny

    Unknown or empty resources and actions are denied rather than raised.
    """
    if user is None:
        return False
    if not resource or resource not in RESOURCES:
        return False
    if not action or action not in ALL_ACTIONS:
        return False

    try:
        if _field(user, "status", "active") in INACTIVE_USER_STATUSES:
            return False
        if _field(user, "role") == "platform_owner":
            return True
        if _field(user, "mirror_admin", False):
            return True
        granted = _permission_map(user).get(resource)
    except (AttributeError, TypeError):
        logger.warning("Malformed user object passed to permission check: %r", user)
        return False
    return bool(granted) and action in granted


def permission_matrix(user: Any) -> Dict[str, List[str]]:
    """Allowed actions for every resource, in canonical action order."""
    matrix: Dict[str, List[str]] = {}
    for resource in RESOURCES:
        allowed = [action for action in ACTIONS if has_permission(user, resource, action)]
        if allowed:
            matrix[resource] = allowed
    return matrix


def default_permissions_for_role(role: str) -> List[Permission]:
    grants = ROLE_DEFAULT_GRANTS.get(role, {})
    return [Permission(resource=resource, actions=list(actions)) for resource, actions in grants.items()]


def mirror_admin_permissions() -> List[Permission]:
    return [Permission(resource=resource, actions=list(ACTIONS)) for resource in RESOURCES]


def creatable_roles(actor_role: Optional[str]) -> tuple:
    return CREATABLE_ROLES.get(actor_role or "", ())


def can_create_role(actor_role: Optional[str], role: str) -> bool:
    return role in creatable_roles(actor_role)


def can_chat(initiator_role: str, target_role: str) -> bool:
    # Staff talk to anyone; everyone else only talks to staff
    if initiator_role in STAFF_ROLES:
        return True
    return target_role in STAFF_ROLES


def visible_users(actor: User, users: Iterable[User]) -> List[User]:
    if actor.role == "platform_owner":
        return list(users)
    if actor.role in ("software_tenant", "partner"):
        return [user for user in users if user.parent_id == actor.id]
    return []


def can_view_property(user: User, prop: Property) -> bool:
    if not user.allowed_profile_types:
        return True
    return prop.profile_type in user.allowed_profile_types


def visible_properties(user: User, properties: Iterable[Property]) -> List[Property]:
    return [prop for prop in properties if can_view_property(user, prop)]
