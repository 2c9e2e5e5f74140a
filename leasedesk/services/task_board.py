from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from ..constants import PARTNER_LOCKED_TASK_FIELDS
from ..models.models import Evidence, Partner, Task, User
from .audit import audit_log
from .ledger import build_completion_entry, should_post_completion
from .permissions import can_view_property, has_permission
from .store import AppState
from .tasks import (
    ApprovalPolicy,
    TaskSaveResult,
    add_task_evidence,
    add_task_image,
    build_task,
    notify_supplier,
    partner_tasks,
    transition_task,
    update_task,
)

logger = logging.getLogger(__name__)


def partner_for_user(state: AppState, user: User) -> Optional[Partner]:
    partner = state.partners.get(user.id)
    if partner:
        return partner
    email = (user.email or "").lower()
    return next((item for item in state.partners if (item.email or "").lower() == email), None)


def _property_visible(state: AppState, user: User, task: Task) -> bool:
    prop = state.properties.get(task.property_id)
    return prop is None or can_view_property(user, prop)


def tasks_for_user(state: AppState, user: User, status: Optional[str] = None) -> List[Task]:
    tasks = [task for task in state.tasks if _property_visible(state, user, task)]
    if user.role == "partner":
        partner = partner_for_user(state, user)
        tasks = partner_tasks(partner, tasks) if partner else []
    elif user.role == "partner_employee":
        tasks = [task for task in tasks if task.partner_employee_id == user.id]
    if status:
        tasks = [task for task in tasks if task.status == status]
    return sorted(tasks, key=lambda task: task.date)


def create_task(state: AppState, data: Mapping[str, Any], actor: User) -> TaskSaveResult:
    result = build_task(
        data,
        state.financial_settings,
        properties=state.properties.as_dict(),
        partners=state.partners.as_dict(),
        rates=state.service_rates.list(),
    )
    if result.errors:
        logger.info("Task rejected with field errors: %s", sorted(result.errors))
        return result

    task = state.tasks.add(result.task)
    audit_log(
        state,
        actor_user_id=actor.id,
        action="tasks.create",
        target_entity_type="Task",
        target_entity_id=task.id,
        after={"title": task.title, "property_id": task.property_id, "billable_amount": task.billable_amount},
    )
    return result


def edit_task(state: AppState, task_id: str, changes: Mapping[str, Any], actor: User) -> Optional[TaskSaveResult]:
    task = state.tasks.get(task_id)
    if not task:
        return None
    result = update_task(
        task,
        changes,
        state.financial_settings,
        properties=state.properties.as_dict(),
        partners=state.partners.as_dict(),
    )
    if result.errors:
        return result

    state.tasks.replace(result.task)
    audit_log(
        state,
        actor_user_id=actor.id,
        action="tasks.update",
        target_entity_type="Task",
        target_entity_id=task.id,
        before={"billable_amount": task.billable_amount},
        after={"billable_amount": result.task.billable_amount, "changes": sorted(changes)},
    )
    return result


def change_task_status(state: AppState, task_id: str, status: str, actor: User) -> Optional[Task]:
    """Move a task to ``status``; raises TaskTransitionError for illegal moves."""
    task = state.tasks.get(task_id)
    if not task:
        return None
    policy = ApprovalPolicy.from_settings(state.financial_settings)
    updated = transition_task(task, status, policy)
    if updated is task:
        return task

    state.tasks.replace(updated)
    audit_log(
        state,
        actor_user_id=actor.id,
        action="tasks.status",
        target_entity_type="Task",
        target_entity_id=task.id,
        before={"status": task.status},
        after={"status": updated.status},
    )

    if should_post_completion(task, updated):
        entry = state.ledger_entries.add(
            build_completion_entry(updated, state.partners.get(updated.assignee_id))
        )
        logger.info("Posted %s expense %s for completed task %s", entry.amount, entry.id, task.id)
        audit_log(
            state,
            actor_user_id=actor.id,
            action="financial.auto_post",
            target_entity_type="LedgerEntry",
            target_entity_id=entry.id,
            after={"amount": entry.amount, "reference_id": task.id},
        )
    return updated


def attach_image(state: AppState, task_id: str, image_url: str, actor: User) -> Optional[Task]:
    task = state.tasks.get(task_id)
    if not task:
        return None
    updated = add_task_image(task, image_url)
    state.tasks.replace(updated)
    audit_log(state, actor.id, "tasks.images.add", "Task", task.id, after={"url": image_url})
    return updated


def attach_evidence(state: AppState, task_id: str, evidence: Evidence, actor: User) -> Optional[Task]:
    task = state.tasks.get(task_id)
    if not task:
        return None
    updated = add_task_evidence(task, evidence)
    state.tasks.replace(updated)
    audit_log(state, actor.id, "tasks.evidence.add", "Task", task.id, after={"evidence_id": evidence.id})
    return updated


def notify_task_supplier(state: AppState, task_id: str, actor: User) -> Optional[Task]:
    task = state.tasks.get(task_id)
    if not task:
        return None
    updated = notify_supplier(task)
    state.tasks.replace(updated)
    audit_log(state, actor.id, "tasks.notify", "Task", task.id, after={"last_notified": updated.last_notified})
    logger.info("Supplier %s notified about task %s", task.assignee_id, task.id)
    return updated


def can_manage_task(state: AppState, user: User, task: Task) -> bool:
    """Partners and their staff may only touch their own tasks."""
    if not has_permission(user, "tasks", "edit"):
        return False
    if not _property_visible(state, user, task):
        return False
    if user.role == "partner":
        partner = partner_for_user(state, user)
        return partner is not None and task.assignee_id == partner.id
    if user.role == "partner_employee":
        return task.partner_employee_id == user.id
    return True


def locked_task_fields(user: User, changes: Mapping[str, Any]) -> List[str]:
    locked = PARTNER_LOCKED_TASK_FIELDS.get(user.role, ())
    return sorted(name for name in changes if name in locked)
