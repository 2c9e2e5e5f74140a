from fastapi import APIRouter, Depends, HTTPException

from ..api.dependencies import get_state
from ..auth.jwt import require_permission
from ..models.models import User
from ..schemas.schemas import PartnerEarningsRead, PartnerPortalRead
from ..services.store import AppState
from ..services.task_board import partner_for_user
from ..services.tasks import partner_earnings, partner_tasks

router = APIRouter()


@router.get("/partner", response_model=PartnerPortalRead)
def partner_portal(
    state: AppState = Depends(get_state),
    user: User = Depends(require_permission("portal", "view")),
) -> PartnerPortalRead:
    """Task board and earnings for the partner tied to the signed-in account."""
    partner = partner_for_user(state, user)
    if not partner:
        raise HTTPException(status_code=404, detail="Partner profile not found")

    tasks = sorted(partner_tasks(partner, state.tasks), key=lambda task: task.date)
    return PartnerPortalRead(
        partner_id=partner.id,
        partner_name=partner.name,
        pending=[task for task in tasks if task.status == "pending"],
        in_progress=[task for task in tasks if task.status == "in_progress"],
        completed=[task for task in tasks if task.status == "completed"],
        earnings=PartnerEarningsRead.model_validate(partner_earnings(tasks)),
    )
