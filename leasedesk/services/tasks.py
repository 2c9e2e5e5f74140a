from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..constants import PARTNER_TYPE_FOR_TASK, TASK_STATUSES
from ..models.models import (
    Evidence,
    FinancialSettings,
    Partner,
    Property,
    ServiceRate,
    Task,
    new_id,
    utcnow,
)
from ..utils.dates import is_valid_iso_date

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

TASK_TRANSITIONS: Dict[str, set[str]] = {
    "pending": {"in_progress"},
    "in_progress": {"approved", "pending_approval"},
    "approved": {"completed"},
    "pending_approval": {"completed"},
    "completed": set(),
}

REQUIRED_TASK_FIELDS = {
    "title": "Title is required.",
    "property_id": "Select a property.",
    "assignee_id": "Select an assignee.",
    "date": "Select a date.",
}

COST_FIELDS = ("labor_cost", "material_cost")


class TaskTransitionError(ValueError):
    """Raised when a status change is not allowed from the task's current state."""


def _as_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def derive_billable(
    labor_cost: Any,
    material_cost: Any,
    labor_margin_pct: Any,
    material_margin_pct: Any,
) -> Decimal:
    labor = _as_decimal(labor_cost) * (Decimal("1") + _as_decimal(labor_margin_pct) / Decimal("100"))
    material = _as_decimal(material_cost) * (Decimal("1") + _as_decimal(material_margin_pct) / Decimal("100"))
    return (labor + material).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class ApprovalPolicy:
    """Decides when a task has to go through ``pending_approval`` instead of ``approved``."""

    cost_threshold: Optional[Decimal] = None
    task_types: frozenset = frozenset({"maintenance"})

    @classmethod
    def from_settings(cls, financial: FinancialSettings) -> "ApprovalPolicy":
        return cls(
            cost_threshold=financial.approval_cost_threshold,
            task_types=frozenset(financial.approval_task_types),
        )

    def requires_sign_off(self, task: Task) -> bool:
        if self.cost_threshold is None:
            return False
        if task.type not in self.task_types:
            return False
        return _as_decimal(task.billable_amount) >= self.cost_threshold


def can_transition(from_status: str, to_status: str) -> bool:
    if from_status not in TASK_TRANSITIONS or to_status not in TASK_TRANSITIONS:
        return False
    if from_status == to_status:
        return True
    return to_status in TASK_TRANSITIONS[from_status]


def review_state_for(task: Task, policy: Optional[ApprovalPolicy] = None) -> str:
    if policy and policy.requires_sign_off(task):
        return "pending_approval"
    return "approved"


def transition_task(task: Task, to_status: str, policy: Optional[ApprovalPolicy] = None) -> Task:
    if to_status not in TASK_STATUSES:
        raise TaskTransitionError(
            f"Invalid status '{to_status}'. Must be one of: {', '.join(TASK_STATUSES)}"
        )
    if task.status == to_status:
        return task
    if not can_transition(task.status, to_status):
        raise TaskTransitionError(f"Cannot move task from {task.status} to {to_status}")
    if to_status == "approved" and policy and policy.requires_sign_off(task):
        raise TaskTransitionError("Task requires sign-off; move it to pending_approval instead")
    logger.debug("Task %s: %s -> %s", task.id, task.status, to_status)
    return task.model_copy(update={"status": to_status})


def apply_cost_edit(
    task: Task,
    financial: FinancialSettings,
    *,
    labor_cost: Any = None,
    material_cost: Any = None,
) -> Task:
    """Replace cost inputs and snapshot the billable amount with today's margins."""
    labor = task.labor_cost if labor_cost is None else _as_decimal(labor_cost)
    material = task.material_cost if material_cost is None else _as_decimal(material_cost)
    billable = derive_billable(labor, material, financial.labor_margin_pct, financial.material_margin_pct)
    return task.model_copy(update={"labor_cost": labor, "material_cost": material, "billable_amount": billable})


def derive_pm_value(service_price: Any, partner_payment: Any) -> Decimal:
    return _as_decimal(service_price) - _as_decimal(partner_payment)


def edit_service_rate(rate: ServiceRate, **changes: Any) -> ServiceRate:
    """Apply field edits to a rate.

    ``pm_value`` follows ``service_price - partner_payment`` only when one of
    those two fields is edited; an explicit ``pm_value`` in ``changes`` wins.
    """
    update: Dict[str, Any] = dict(changes)
    for key in ("service_price", "partner_payment", "product_price", "pm_value"):
        if key in update:
            update[key] = _as_decimal(update[key])
    if "pm_value" not in update and ("service_price" in update or "partner_payment" in update):
        update["pm_value"] = derive_pm_value(
            update.get("service_price", rate.service_price),
            update.get("partner_payment", rate.partner_payment),
        )
    update["last_updated"] = utcnow()
    return rate.model_copy(update=update)


def build_service_rate(data: Mapping[str, Any]) -> ServiceRate:
    payload = dict(data)
    payload.setdefault("id", new_id("rate"))
    if payload.get("pm_value") is None:
        payload["pm_value"] = derive_pm_value(payload.get("service_price"), payload.get("partner_payment"))
    return ServiceRate.model_validate(payload)


def apply_service_rate_template(fields: Mapping[str, Any], rate: ServiceRate) -> Dict[str, Any]:
    draft = dict(fields)
    draft["title"] = rate.service_name
    draft["labor_cost"] = rate.partner_payment
    draft["material_cost"] = rate.product_price
    return draft


def match_service_rate(rates: Iterable[ServiceRate], task_type: str) -> Optional[ServiceRate]:
    needle = (task_type or "").lower()
    if not needle:
        return None
    for rate in rates:
        name = rate.service_name.lower()
        if needle in name or name in needle:
            return rate
    return None


def validate_task_fields(
    data: Mapping[str, Any],
    properties: Optional[Mapping[str, Property]] = None,
    partners: Optional[Mapping[str, Partner]] = None,
) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for name, message in REQUIRED_TASK_FIELDS.items():
        value = data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors[name] = message

    if "date" not in errors and not is_valid_iso_date(data.get("date")):
        errors["date"] = "Enter a valid date."
    if properties is not None and "property_id" not in errors and data["property_id"] not in properties:
        errors["property_id"] = "Property not found."
    if partners is not None and "assignee_id" not in errors and data["assignee_id"] not in partners:
        errors["assignee_id"] = "Assignee not found."

    for name in COST_FIELDS + ("team_member_payout",):
        value = data.get(name)
        if value in (None, ""):
            continue
        try:
            amount = _as_decimal(value)
        except ArithmeticError:
            errors[name] = "Enter a number."
            continue
        if amount < 0:
            errors[name] = "Must not be negative."
    return errors


@dataclass
class TaskSaveResult:
    task: Optional[Task] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.task is not None and not self.errors


def build_task(
    data: Mapping[str, Any],
    financial: FinancialSettings,
    *,
    properties: Optional[Mapping[str, Property]] = None,
    partners: Optional[Mapping[str, Partner]] = None,
    rates: Iterable[ServiceRate] = (),
) -> TaskSaveResult:
    errors = validate_task_fields(data, properties, partners)
    if errors:
        return TaskSaveResult(errors=errors)

    payload = {key: value for key, value in data.items() if value is not None}
    if not payload.get("labor_cost"):
        rate = match_service_rate(rates, payload.get("type", ""))
        if rate:
            payload["labor_cost"] = rate.partner_payment
    payload.setdefault("id", new_id("task"))
    payload["status"] = "pending"
    payload["billable_amount"] = derive_billable(
        payload.get("labor_cost"),
        payload.get("material_cost"),
        financial.labor_margin_pct,
        financial.material_margin_pct,
    )
    return TaskSaveResult(task=Task.model_validate(payload))


def update_task(
    task: Task,
    changes: Mapping[str, Any],
    financial: FinancialSettings,
    *,
    properties: Optional[Mapping[str, Property]] = None,
    partners: Optional[Mapping[str, Partner]] = None,
) -> TaskSaveResult:
    """Apply an edit form to a task.

    The billable amount is re-derived only when a cost field is part of the
    edit; otherwise the stored snapshot is kept.
    """
    merged = {**task.model_dump(), **dict(changes)}
    errors = validate_task_fields(merged, properties, partners)
    if errors:
        return TaskSaveResult(errors=errors)

    # Status only moves through transition_task
    merged["id"] = task.id
    merged["status"] = task.status
    updated = Task.model_validate(merged)
    if any(name in changes for name in COST_FIELDS):
        updated = apply_cost_edit(updated, financial)
    return TaskSaveResult(task=updated)


def add_task_image(task: Task, image_url: str) -> Task:
    return task.model_copy(update={"images": [*task.images, image_url]})


def add_task_evidence(task: Task, evidence: Evidence) -> Task:
    return task.model_copy(update={"evidence": [*task.evidence, evidence]})


def notify_supplier(task: Task, now: Optional[datetime] = None) -> Task:
    return task.model_copy(update={"last_notified": now or utcnow()})


def partner_tasks(partner: Partner, tasks: Iterable[Task]) -> List[Task]:
    """Tasks assigned to the partner plus unassigned work on its linked properties."""
    linked = set(partner.linked_property_ids)
    selected = []
    for task in tasks:
        if task.assignee_id == partner.id:
            selected.append(task)
        elif (
            not task.assignee_id
            and task.property_id in linked
            and PARTNER_TYPE_FOR_TASK.get(task.type) == partner.type
        ):
            selected.append(task)
    return selected


@dataclass(frozen=True)
class PartnerEarnings:
    completed_count: int
    revenue: Decimal
    payouts: Decimal
    profit: Decimal


def task_amount(task: Task) -> Decimal:
    return task.billable_amount or task.labor_cost


def partner_earnings(tasks: Iterable[Task]) -> PartnerEarnings:
    completed = [task for task in tasks if task.status == "completed"]
    revenue = sum((task_amount(task) for task in completed), Decimal("0"))
    payouts = sum((task.team_member_payout or Decimal("0") for task in completed), Decimal("0"))
    return PartnerEarnings(
        completed_count=len(completed),
        revenue=revenue,
        payouts=payouts,
        profit=revenue - payouts,
    )
