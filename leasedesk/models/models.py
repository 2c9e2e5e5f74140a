from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

UserRole = Literal[
    "platform_owner",
    "software_tenant",
    "internal_user",
    "property_owner",
    "partner",
    "partner_employee",
    "tenant",
]
UserStatus = Literal["active", "pending_approval", "blocked"]
Resource = Literal[
    "dashboard",
    "properties",
    "short_term",
    "renewals",
    "market_analysis",
    "condominiums",
    "tenants",
    "owners",
    "partners",
    "calendar",
    "tasks",
    "workflows",
    "financial",
    "messages",
    "users",
    "settings",
    "audit_logs",
    "publicity",
    "portal",
]
Action = Literal["view", "create", "edit", "delete"]
ProfileType = Literal["long_term", "short_term"]
TaskStatus = Literal["pending", "in_progress", "approved", "pending_approval", "completed"]
TaskType = Literal["cleaning", "maintenance", "inspection"]
TaskPriority = Literal["low", "medium", "high", "critical"]
Recurrence = Literal["none", "daily", "weekly", "monthly", "yearly"]
EvidenceType = Literal["arrival", "completion", "other"]
NegotiationStatus = Literal["negotiating", "owner_contacted", "tenant_contacted", "vacating", "closed"]
TenantStatus = Literal["active", "past", "prospect"]
PartnerType = Literal["cleaning", "maintenance", "agent"]
RenewalBucket = Literal["renewed", "critical", "upcoming", "year", "safe"]


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Entity(BaseModel):
    """Base for stored records; instances are replaced, never mutated in place."""

    model_config = ConfigDict(frozen=True)

    id: str


class Permission(BaseModel):
    model_config = ConfigDict(frozen=True)

    resource: Resource
    actions: List[Action] = []

    @field_validator("actions")
    @classmethod
    def _dedupe_actions(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))


class User(Entity):
    name: str
    email: str
    role: UserRole
    status: UserStatus = "active"
    permissions: List[Permission] = []
    allowed_profile_types: Optional[List[ProfileType]] = None
    mirror_admin: bool = False
    parent_id: Optional[str] = None
    company_name: Optional[str] = None

    @field_validator("permissions")
    @classmethod
    def _merge_duplicate_resources(cls, value: List[Permission]) -> List[Permission]:
        merged: Dict[str, List[str]] = {}
        for permission in value:
            actions = merged.setdefault(permission.resource, [])
            actions.extend(action for action in permission.actions if action not in actions)
        return [Permission(resource=resource, actions=actions) for resource, actions in merged.items()]

    def permission_map(self) -> Dict[str, FrozenSet[str]]:
        return {permission.resource: frozenset(permission.actions) for permission in self.permissions}


class Owner(Entity):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class Property(Entity):
    name: str
    address: Optional[str] = None
    owner_id: Optional[str] = None
    profile_type: ProfileType = "long_term"
    status: str = "vacant"
    condominium_id: Optional[str] = None


class Partner(Entity):
    name: str
    email: Optional[str] = None
    type: PartnerType = "maintenance"
    status: Literal["active", "inactive"] = "active"
    linked_property_ids: List[str] = []
    employee_ids: List[str] = []


class EvidenceLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    address: Optional[str] = None


class Evidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("ev"))
    url: str
    type: EvidenceType = "other"
    timestamp: datetime = Field(default_factory=utcnow)
    location: Optional[EvidenceLocation] = None
    notes: Optional[str] = None


class Task(Entity):
    title: str
    property_id: str
    type: TaskType
    assignee_id: str
    partner_employee_id: Optional[str] = None
    status: TaskStatus = "pending"
    priority: TaskPriority = "medium"
    date: str
    description: Optional[str] = None
    labor_cost: Decimal = Decimal("0")
    material_cost: Decimal = Decimal("0")
    team_member_payout: Optional[Decimal] = None
    billable_amount: Decimal = Decimal("0")
    images: List[str] = []
    evidence: List[Evidence] = []
    recurrence: Recurrence = "none"
    back_to_back: bool = False
    last_notified: Optional[datetime] = None


class Document(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("doc"))
    name: str
    url: str
    type: str = "contract"
    uploaded_at: datetime = Field(default_factory=utcnow)


class NegotiationLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("log"))
    date: datetime = Field(default_factory=utcnow)
    action: str
    note: str = ""
    user: Optional[str] = None


class Tenant(Entity):
    name: str
    email: Optional[str] = None
    property_id: Optional[str] = None
    lease_start: Optional[str] = None
    lease_end: Optional[str] = None
    rent_value: Decimal = Decimal("0")
    status: TenantStatus = "active"
    negotiation_status: Optional[NegotiationStatus] = None
    suggested_renewal_price: Optional[Decimal] = None
    negotiation_logs: List[NegotiationLogEntry] = []
    documents: List[Document] = []


class ServiceRate(Entity):
    service_name: str
    category: Optional[str] = None
    partner_id: Optional[str] = None
    service_price: Decimal = Decimal("0")
    partner_payment: Decimal = Decimal("0")
    product_price: Decimal = Decimal("0")
    pm_value: Decimal = Decimal("0")
    last_updated: datetime = Field(default_factory=utcnow)


class FinancialSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    labor_margin_pct: Decimal = Decimal("0")
    material_margin_pct: Decimal = Decimal("0")
    price_review_threshold_pct: Decimal = Decimal("10")
    approval_cost_threshold: Optional[Decimal] = None
    approval_task_types: List[TaskType] = ["maintenance"]


class LedgerEntry(Entity):
    property_id: str
    date: datetime = Field(default_factory=utcnow)
    type: Literal["income", "expense"]
    category: str
    amount: Decimal
    description: str
    reference_id: Optional[str] = None
    status: Literal["pending", "paid"] = "pending"
    payee: Optional[str] = None


class AuditLog(Entity):
    timestamp: datetime = Field(default_factory=utcnow)
    actor_user_id: Optional[str] = None
    action: str
    target_entity_type: Optional[str] = None
    target_entity_id: Optional[str] = None
    before: Optional[Any] = None
    after: Optional[Any] = None
