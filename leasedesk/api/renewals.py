from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..api.dependencies import get_state, get_today
from ..auth.jwt import require_permission
from ..models.models import Document, RenewalBucket, Tenant, User
from ..schemas.schemas import (
    BulkStatusResult,
    BulkStatusUpdate,
    NegotiationClose,
    NegotiationUpdate,
    RenewalRecordRead,
    RenewalSummary,
)
from ..services.negotiations import (
    bulk_update_status,
    close_tenant_negotiation,
    renewal_queue,
    save_negotiation,
)
from ..services.renewals import RenewalFilters, summarize_buckets
from ..services.store import AppState

router = APIRouter()


def _tenant_or_404(tenant: Optional[Tenant]) -> Tenant:
    if tenant is None:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant


@router.get("/", response_model=List[RenewalRecordRead])
def list_renewals(
    bucket: Optional[RenewalBucket] = Query(None),
    owner_id: Optional[str] = Query(None),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
    state: AppState = Depends(get_state),
    today: date = Depends(get_today),
    viewer: User = Depends(require_permission("renewals", "view")),
) -> List[RenewalRecordRead]:
    filters = RenewalFilters(bucket=bucket, owner_id=owner_id, start=start, end=end, search=search)
    return [RenewalRecordRead.model_validate(record) for record in renewal_queue(state, today, filters, viewer)]


@router.get("/summary", response_model=RenewalSummary)
def renewal_summary(
    owner_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    state: AppState = Depends(get_state),
    today: date = Depends(get_today),
    viewer: User = Depends(require_permission("renewals", "view")),
) -> RenewalSummary:
    records = renewal_queue(state, today, RenewalFilters(owner_id=owner_id, search=search), viewer)
    return RenewalSummary(counts=summarize_buckets(records), total=len(records))


@router.patch("/{tenant_id}/negotiation", response_model=Tenant)
def update_tenant_negotiation(
    tenant_id: str,
    payload: NegotiationUpdate,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("renewals", "edit")),
) -> Tenant:
    updated = save_negotiation(
        state,
        tenant_id,
        actor,
        status=payload.status,
        suggested_price=payload.suggested_price,
        note=payload.note,
    )
    return _tenant_or_404(updated)


@router.post("/{tenant_id}/close", response_model=Tenant)
def close_tenant_renewal(
    tenant_id: str,
    payload: NegotiationClose,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("renewals", "edit")),
) -> Tenant:
    contract = Document(name=payload.contract.name, url=payload.contract.url) if payload.contract else None
    updated = close_tenant_negotiation(
        state,
        tenant_id,
        actor,
        new_value=payload.new_value,
        new_start=payload.new_start,
        new_end=payload.new_end,
        contract_doc=contract,
    )
    return _tenant_or_404(updated)


@router.post("/bulk-status", response_model=BulkStatusResult)
def bulk_negotiation_status(
    payload: BulkStatusUpdate,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("renewals", "edit")),
) -> BulkStatusResult:
    result = bulk_update_status(state, payload.tenant_ids, payload.status, actor)
    return BulkStatusResult(
        updated=[tenant.id for tenant in result.updated],
        missing=result.missing,
        skipped=result.skipped,
    )
