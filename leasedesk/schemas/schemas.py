from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.models import (
    Action,
    AuditLog,
    EvidenceLocation,
    EvidenceType,
    NegotiationStatus,
    ProfileType,
    Recurrence,
    Resource,
    Task,
    TaskPriority,
    TaskType,
    User,
    UserRole,
)


class PermissionGrant(BaseModel):
    resource: Resource
    actions: List[Action] = []


class UserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: UserRole = "internal_user"
    permissions: List[PermissionGrant] = []
    allowed_profile_types: Optional[List[ProfileType]] = None
    mirror_admin: bool = False
    company_name: Optional[str] = None


class UserPermissionsUpdate(BaseModel):
    permissions: List[PermissionGrant] = []
    mirror_admin: bool = False


class CurrentUserRead(BaseModel):
    user: User
    role_label: str
    permissions: Dict[str, List[str]]


class TaskCreate(BaseModel):
    # Required fields are validated by the task service so blanks come back as field errors
    title: Optional[str] = None
    property_id: Optional[str] = None
    type: TaskType = "maintenance"
    assignee_id: Optional[str] = None
    partner_employee_id: Optional[str] = None
    priority: TaskPriority = "medium"
    date: Optional[str] = None
    description: Optional[str] = None
    labor_cost: Optional[Decimal] = None
    material_cost: Optional[Decimal] = None
    team_member_payout: Optional[Decimal] = None
    images: List[str] = []
    recurrence: Recurrence = "none"
    back_to_back: bool = False
    service_rate_id: Optional[str] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    property_id: Optional[str] = None
    type: Optional[TaskType] = None
    assignee_id: Optional[str] = None
    partner_employee_id: Optional[str] = None
    priority: Optional[TaskPriority] = None
    date: Optional[str] = None
    description: Optional[str] = None
    labor_cost: Optional[Decimal] = None
    material_cost: Optional[Decimal] = None
    team_member_payout: Optional[Decimal] = None
    recurrence: Optional[Recurrence] = None
    back_to_back: Optional[bool] = None


class TaskStatusUpdate(BaseModel):
    status: str


class TaskImageCreate(BaseModel):
    url: str = Field(min_length=1)


class EvidenceCreate(BaseModel):
    url: str = Field(min_length=1)
    type: EvidenceType = "other"
    location: Optional[EvidenceLocation] = None
    notes: Optional[str] = None


class RenewalRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tenant_id: str
    tenant_name: str
    property_id: str
    property_name: str
    owner_id: Optional[str]
    owner_name: Optional[str]
    lease_end: Optional[str]
    days_left: int
    bucket: str
    negotiation_status: str
    rent_value: Decimal
    suggested_renewal_price: Optional[Decimal]
    needs_price_review: bool


class RenewalSummary(BaseModel):
    counts: Dict[str, int]
    total: int


class NegotiationUpdate(BaseModel):
    status: Optional[NegotiationStatus] = None
    suggested_price: Optional[Decimal] = None
    note: Optional[str] = None


class ContractDocumentCreate(BaseModel):
    name: str = Field(min_length=1)
    url: str = Field(min_length=1)


class NegotiationClose(BaseModel):
    new_value: Optional[Decimal] = None
    new_start: Optional[str] = None
    new_end: Optional[str] = None
    contract: Optional[ContractDocumentCreate] = None


class BulkStatusUpdate(BaseModel):
    tenant_ids: List[str] = Field(min_length=1)
    status: NegotiationStatus


class BulkStatusResult(BaseModel):
    updated: List[str]
    missing: List[str]
    skipped: Dict[str, str]


class FinancialSettingsUpdate(BaseModel):
    labor_margin_pct: Optional[Decimal] = Field(default=None, ge=0)
    material_margin_pct: Optional[Decimal] = Field(default=None, ge=0)
    price_review_threshold_pct: Optional[Decimal] = Field(default=None, ge=0)
    approval_cost_threshold: Optional[Decimal] = Field(default=None, ge=0)
    approval_task_types: Optional[List[TaskType]] = None


class ServiceRateCreate(BaseModel):
    service_name: str = Field(min_length=1)
    category: Optional[str] = None
    partner_id: Optional[str] = None
    service_price: Decimal = Decimal("0")
    partner_payment: Decimal = Decimal("0")
    product_price: Decimal = Decimal("0")
    pm_value: Optional[Decimal] = None


class ServiceRateUpdate(BaseModel):
    service_name: Optional[str] = None
    category: Optional[str] = None
    service_price: Optional[Decimal] = None
    partner_payment: Optional[Decimal] = None
    product_price: Optional[Decimal] = None
    pm_value: Optional[Decimal] = None


class PartnerEarningsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    completed_count: int
    revenue: Decimal
    payouts: Decimal
    profit: Decimal


class PartnerPortalRead(BaseModel):
    partner_id: str
    partner_name: str
    pending: List[Task]
    in_progress: List[Task]
    completed: List[Task]
    earnings: PartnerEarningsRead


class AuditLogList(BaseModel):
    items: List[AuditLog]
    total: int

