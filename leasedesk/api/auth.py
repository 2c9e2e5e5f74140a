from fastapi import APIRouter, Depends

from ..auth.jwt import get_current_user
from ..constants import ROLE_LABELS
from ..models.models import User
from ..schemas.schemas import CurrentUserRead
from ..services.permissions import permission_matrix

router = APIRouter()


@router.get("/me", response_model=CurrentUserRead)
def read_current_user(current_user: User = Depends(get_current_user)) -> CurrentUserRead:
    return CurrentUserRead(
        user=current_user,
        role_label=ROLE_LABELS.get(current_user.role, current_user.role),
        permissions=permission_matrix(current_user),
    )
