from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..api.dependencies import get_state
from ..auth.jwt import require_permission
from ..core.errors import FieldValidationError
from ..models.models import User
from ..schemas.schemas import UserCreate, UserPermissionsUpdate
from ..services.accounts import approve_account, block_account, create_account, set_account_permissions
from ..services.permissions import visible_users
from ..services.store import AppState

router = APIRouter()


def _found_or_404(user: Optional[User]) -> User:
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/", response_model=List[User])
def list_users(
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("users", "view")),
) -> List[User]:
    return visible_users(actor, state.users)


@router.post("/", response_model=User, status_code=201)
def create_user(
    payload: UserCreate,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("users", "create")),
) -> User:
    result = create_account(state, payload.model_dump(), actor)
    if result.errors:
        raise FieldValidationError(result.errors)
    return result.user


@router.post("/{user_id}/approve", response_model=User)
def approve_user(
    user_id: str,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("users", "edit")),
) -> User:
    return _found_or_404(approve_account(state, user_id, actor))


@router.post("/{user_id}/block", response_model=User)
def block_user(
    user_id: str,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("users", "edit")),
) -> User:
    if user_id == actor.id:
        raise HTTPException(status_code=400, detail="You cannot block your own account.")
    return _found_or_404(block_account(state, user_id, actor))


@router.put("/{user_id}/permissions", response_model=User)
def update_user_permissions(
    user_id: str,
    payload: UserPermissionsUpdate,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("users", "edit")),
) -> User:
    if user_id == actor.id and actor.role != "platform_owner":
        raise HTTPException(status_code=403, detail="You cannot change your own permissions.")
    grants = [grant.model_dump() for grant in payload.permissions]
    return _found_or_404(set_account_permissions(state, user_id, grants, payload.mirror_admin, actor))
