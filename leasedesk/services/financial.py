from __future__ import annotations

from typing import Any, Mapping, Optional

from ..models.models import FinancialSettings, ServiceRate, User
from .audit import audit_log
from .store import AppState
from .tasks import build_service_rate, edit_service_rate


def update_financial_settings(state: AppState, changes: Mapping[str, Any], actor: User) -> FinancialSettings:
    """Replace global margins; stored task billable amounts keep their snapshot."""
    previous = state.financial_settings
    updated = FinancialSettings.model_validate({**previous.model_dump(), **dict(changes)})
    state.financial_settings = updated
    audit_log(
        state,
        actor_user_id=actor.id,
        action="settings.financial",
        target_entity_type="FinancialSettings",
        before=previous.model_dump(),
        after=updated.model_dump(),
    )
    return updated


def create_service_rate(state: AppState, data: Mapping[str, Any], actor: User) -> ServiceRate:
    rate = state.service_rates.add(build_service_rate(data))
    audit_log(
        state,
        actor_user_id=actor.id,
        action="settings.service_rates.create",
        target_entity_type="ServiceRate",
        target_entity_id=rate.id,
        after=rate.model_dump(),
    )
    return rate


def update_service_rate(
    state: AppState,
    rate_id: str,
    changes: Mapping[str, Any],
    actor: User,
) -> Optional[ServiceRate]:
    rate = state.service_rates.get(rate_id)
    if not rate:
        return None
    updated = edit_service_rate(rate, **dict(changes))
    state.service_rates.replace(updated)
    audit_log(
        state,
        actor_user_id=actor.id,
        action="settings.service_rates.update",
        target_entity_type="ServiceRate",
        target_entity_id=rate.id,
        before=rate.model_dump(),
        after=updated.model_dump(),
    )
    return updated
