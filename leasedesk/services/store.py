from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Generic, Iterator, List, Optional, TypeVar

from ..config import settings
from ..models.models import (
    AuditLog,
    Entity,
    FinancialSettings,
    LedgerEntry,
    Owner,
    Partner,
    Property,
    ServiceRate,
    Task,
    Tenant,
    User,
)

EntityT = TypeVar("EntityT", bound=Entity)


class EntityStore(Generic[EntityT]):
    """Id-keyed collection of immutable records.

    ``replace`` swaps the whole record in a single assignment, so a failed
    update never leaves a half-written entity behind.
    """

    def __init__(self, items: Optional[List[EntityT]] = None) -> None:
        self._items: Dict[str, EntityT] = {}
        for item in items or []:
            self.add(item)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[EntityT]:
        return iter(list(self._items.values()))

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._items

    def list(self) -> List[EntityT]:
        return list(self._items.values())

    def as_dict(self) -> Dict[str, EntityT]:
        return dict(self._items)

    def get(self, entity_id: Optional[str]) -> Optional[EntityT]:
        if not entity_id:
            return None
        return self._items.get(entity_id)

    def add(self, entity: EntityT) -> EntityT:
        if entity.id in self._items:
            raise KeyError(f"Duplicate id {entity.id}")
        self._items[entity.id] = entity
        return entity

    def replace(self, entity: EntityT) -> Optional[EntityT]:
        if entity.id not in self._items:
            return None
        self._items[entity.id] = entity
        return entity

    def delete(self, entity_id: str) -> Optional[EntityT]:
        return self._items.pop(entity_id, None)


def default_financial_settings() -> FinancialSettings:
    return FinancialSettings(
        labor_margin_pct=settings.default_labor_margin_pct,
        material_margin_pct=settings.default_material_margin_pct,
        price_review_threshold_pct=settings.price_review_threshold_pct,
        approval_cost_threshold=settings.approval_cost_threshold,
        approval_task_types=settings.approval_task_types,
    )


@dataclass
class AppState:
    users: EntityStore[User] = field(default_factory=EntityStore)
    owners: EntityStore[Owner] = field(default_factory=EntityStore)
    properties: EntityStore[Property] = field(default_factory=EntityStore)
    partners: EntityStore[Partner] = field(default_factory=EntityStore)
    tenants: EntityStore[Tenant] = field(default_factory=EntityStore)
    tasks: EntityStore[Task] = field(default_factory=EntityStore)
    service_rates: EntityStore[ServiceRate] = field(default_factory=EntityStore)
    ledger_entries: EntityStore[LedgerEntry] = field(default_factory=EntityStore)
    audit_logs: EntityStore[AuditLog] = field(default_factory=EntityStore)
    financial_settings: FinancialSettings = field(default_factory=default_financial_settings)


app_state = AppState()
