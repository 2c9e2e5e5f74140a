from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from ..models.models import Document, NegotiationLogEntry, Property, Tenant, User
from .audit import audit_log
from .permissions import can_view_property, visible_properties
from .renewals import (
    BulkUpdateResult,
    NegotiationError,
    RenewalFilters,
    RenewalRecord,
    build_renewal_records,
    close_negotiation,
    filter_renewals,
    is_renewal_candidate,
    update_negotiation,
)
from .store import AppState

logger = logging.getLogger(__name__)


def _properties_for(state: AppState, viewer: Optional[User]) -> Dict[str, Property]:
    properties = state.properties.list()
    if viewer is not None:
        properties = visible_properties(viewer, properties)
    return {prop.id: prop for prop in properties}


def renewal_queue(
    state: AppState,
    today: date,
    filters: Optional[RenewalFilters] = None,
    viewer: Optional[User] = None,
) -> List[RenewalRecord]:
    """Renewal records sorted by days left, limited to the properties ``viewer`` may see."""
    records = build_renewal_records(
        state.tenants.list(),
        _properties_for(state, viewer),
        state.owners.as_dict(),
        today,
        state.financial_settings.price_review_threshold_pct,
    )
    return filter_renewals(records, filters or RenewalFilters())


def _visible_tenant(state: AppState, tenant_id: str, actor: User) -> Optional[Tenant]:
    tenant = state.tenants.get(tenant_id)
    if not tenant:
        return None
    prop = state.properties.get(tenant.property_id)
    if prop is not None and not can_view_property(actor, prop):
        return None
    return tenant


def _require_candidate(state: AppState, tenant: Tenant) -> None:
    prop = state.properties.get(tenant.property_id)
    if not is_renewal_candidate(tenant, prop):
        raise NegotiationError(
            "Tenant is not eligible for renewal",
            {"tenant_id": "Only active long-term leases can be negotiated."},
        )


def save_negotiation(
    state: AppState,
    tenant_id: str,
    actor: User,
    *,
    status: Optional[str] = None,
    suggested_price: Any = None,
    note: Optional[str] = None,
) -> Optional[Tenant]:
    tenant = _visible_tenant(state, tenant_id, actor)
    if not tenant:
        return None
    _require_candidate(state, tenant)

    log = None
    if note and note.strip():
        log = NegotiationLogEntry(action="Update", note=note.strip(), user=actor.name)
    updated = update_negotiation(tenant, status=status, suggested_price=suggested_price, log=log)
    state.tenants.replace(updated)
    audit_log(
        state,
        actor_user_id=actor.id,
        action="renewals.update",
        target_entity_type="Tenant",
        target_entity_id=tenant.id,
        before={"negotiation_status": tenant.negotiation_status},
        after={"negotiation_status": updated.negotiation_status, "suggested_price": updated.suggested_renewal_price},
    )
    return updated


def close_tenant_negotiation(
    state: AppState,
    tenant_id: str,
    actor: User,
    *,
    new_value: Any,
    new_start: str,
    new_end: str,
    contract_doc: Optional[Document],
) -> Optional[Tenant]:
    tenant = _visible_tenant(state, tenant_id, actor)
    if not tenant:
        return None
    _require_candidate(state, tenant)

    updated = close_negotiation(tenant, new_value, new_start, new_end, contract_doc, actor_name=actor.name)
    state.tenants.replace(updated)
    audit_log(
        state,
        actor_user_id=actor.id,
        action="renewals.close",
        target_entity_type="Tenant",
        target_entity_id=tenant.id,
        before={"lease_start": tenant.lease_start, "lease_end": tenant.lease_end, "rent_value": tenant.rent_value},
        after={"lease_start": updated.lease_start, "lease_end": updated.lease_end, "rent_value": updated.rent_value},
    )
    logger.info("Negotiation closed for tenant %s, lease now ends %s", tenant.id, updated.lease_end)
    return updated


def bulk_update_status(state: AppState, tenant_ids: Iterable[str], status: str, actor: User) -> BulkUpdateResult:
    result = BulkUpdateResult()
    for tenant_id in tenant_ids:
        try:
            updated = save_negotiation(state, tenant_id, actor, status=status)
        except NegotiationError as exc:
            result.skipped[tenant_id] = str(exc)
            continue
        if updated is None:
            result.missing.append(tenant_id)
        else:
            result.updated.append(updated)
    return result
