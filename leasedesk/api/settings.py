from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..api.dependencies import get_state
from ..auth.jwt import require_permission
from ..models.models import FinancialSettings, ServiceRate, User
from ..schemas.schemas import FinancialSettingsUpdate, ServiceRateCreate, ServiceRateUpdate
from ..services.financial import create_service_rate, update_financial_settings, update_service_rate
from ..services.store import AppState

router = APIRouter()


@router.get("/financial", response_model=FinancialSettings)
def read_financial_settings(
    state: AppState = Depends(get_state),
    _: User = Depends(require_permission("settings", "view")),
) -> FinancialSettings:
    return state.financial_settings


@router.put("/financial", response_model=FinancialSettings)
def write_financial_settings(
    payload: FinancialSettingsUpdate,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("settings", "edit")),
) -> FinancialSettings:
    return update_financial_settings(state, payload.model_dump(exclude_unset=True), actor)


@router.get("/service-rates", response_model=List[ServiceRate])
def list_service_rates(
    state: AppState = Depends(get_state),
    _: User = Depends(require_permission("settings", "view")),
) -> List[ServiceRate]:
    return sorted(state.service_rates, key=lambda rate: rate.service_name.lower())


@router.post("/service-rates", response_model=ServiceRate, status_code=201)
def add_service_rate(
    payload: ServiceRateCreate,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("settings", "create")),
) -> ServiceRate:
    return create_service_rate(state, payload.model_dump(), actor)


@router.patch("/service-rates/{rate_id}", response_model=ServiceRate)
def edit_service_rate_endpoint(
    rate_id: str,
    payload: ServiceRateUpdate,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("settings", "edit")),
) -> ServiceRate:
    rate = update_service_rate(state, rate_id, payload.model_dump(exclude_unset=True), actor)
    if rate is None:
        raise HTTPException(status_code=404, detail="Service rate not found")
    return rate
