from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from email_validator import EmailNotValidError, validate_email

from ..models.models import Permission, User, new_id
from .audit import audit_log
from .permissions import can_create_role, default_permissions_for_role, mirror_admin_permissions, visible_users
from .store import AppState

logger = logging.getLogger(__name__)


@dataclass
class AccountResult:
    user: Optional[User] = None
    errors: Dict[str, str] = field(default_factory=dict)


def _normalize_email(value: str) -> str:
    return validate_email(value, check_deliverability=False).normalized


def validate_account_fields(
    state: AppState,
    data: Mapping[str, Any],
    existing_id: Optional[str] = None,
) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if not (data.get("name") or "").strip():
        errors["name"] = "Name is required."

    email = (data.get("email") or "").strip()
    if not email:
        errors["email"] = "Email is required."
    else:
        try:
            email = _normalize_email(email)
        except EmailNotValidError:
            errors["email"] = "Invalid email."
        else:
            duplicate = next(
                (
                    user
                    for user in state.users
                    if user.email.lower() == email.lower() and user.id != existing_id
                ),
                None,
            )
            if duplicate:
                errors["email"] = "This email is already in use."
    return errors


def _resolve_permissions(data: Mapping[str, Any], role: str) -> List[Permission]:
    if data.get("mirror_admin"):
        return mirror_admin_permissions()
    if data.get("permissions"):
        return [Permission.model_validate(entry) for entry in data["permissions"]]
    return default_permissions_for_role(role)


def create_account(state: AppState, data: Mapping[str, Any], actor: User) -> AccountResult:
    errors = validate_account_fields(state, data)
    role = data.get("role") or "internal_user"
    if not can_create_role(actor.role, role):
        errors["role"] = f"You cannot create {role} accounts."
    if errors:
        return AccountResult(errors=errors)

    user = User(
        id=new_id("user"),
        name=data["name"].strip(),
        email=_normalize_email(data["email"].strip()),
        role=role,
        status="active" if actor.role == "platform_owner" else "pending_approval",
        permissions=_resolve_permissions(data, role),
        allowed_profile_types=data.get("allowed_profile_types"),
        mirror_admin=bool(data.get("mirror_admin")),
        parent_id=actor.id,
        company_name=data.get("company_name"),
    )
    state.users.add(user)
    audit_log(
        state,
        actor_user_id=actor.id,
        action="users.create",
        target_entity_type="User",
        target_entity_id=user.id,
        after={"email": user.email, "role": user.role, "status": user.status},
    )
    logger.info("User %s created by %s with status %s", user.id, actor.id, user.status)
    return AccountResult(user=user)


def managed_account(state: AppState, user_id: str, actor: User) -> Optional[User]:
    """Target account, or None when it is missing or outside the actor's hierarchy."""
    return next((user for user in visible_users(actor, state.users) if user.id == user_id), None)


def _set_status(state: AppState, user_id: str, status: str, actor: User, action: str) -> Optional[User]:
    user = managed_account(state, user_id, actor)
    if not user:
        return None
    updated = user.model_copy(update={"status": status})
    state.users.replace(updated)
    audit_log(
        state,
        actor_user_id=actor.id,
        action=action,
        target_entity_type="User",
        target_entity_id=user.id,
        before={"status": user.status},
        after={"status": status},
    )
    return updated


def approve_account(state: AppState, user_id: str, actor: User) -> Optional[User]:
    return _set_status(state, user_id, "active", actor, "users.approve")


def block_account(state: AppState, user_id: str, actor: User) -> Optional[User]:
    return _set_status(state, user_id, "blocked", actor, "users.block")


def set_account_permissions(
    state: AppState,
    user_id: str,
    permissions: List[Mapping[str, Any]],
    mirror_admin: bool,
    actor: User,
) -> Optional[User]:
    user = managed_account(state, user_id, actor)
    if not user:
        return None
    payload = {**user.model_dump(), "mirror_admin": mirror_admin}
    payload["permissions"] = mirror_admin_permissions() if mirror_admin else list(permissions)
    updated = User.model_validate(payload)
    state.users.replace(updated)
    audit_log(
        state,
        actor_user_id=actor.id,
        action="users.permissions",
        target_entity_type="User",
        target_entity_id=user.id,
        before=[entry.model_dump() for entry in user.permissions],
        after=[entry.model_dump() for entry in updated.permissions],
    )
    return updated
