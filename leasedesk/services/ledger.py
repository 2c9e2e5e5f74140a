from __future__ import annotations

from typing import Optional

from ..models.models import LedgerEntry, Partner, Task, new_id
from .tasks import task_amount


def expense_category(task: Task) -> str:
    return "Cleaning" if task.type == "cleaning" else "Maintenance"


def should_post_completion(previous: Task, updated: Task) -> bool:
    return updated.status == "completed" and previous.status != "completed" and task_amount(updated) > 0


def build_completion_entry(task: Task, payee: Optional[Partner] = None) -> LedgerEntry:
    return LedgerEntry(
        id=new_id("ledger"),
        property_id=task.property_id,
        type="expense",
        category=expense_category(task),
        amount=task_amount(task),
        description=f"Task Completed: {task.title}",
        reference_id=task.id,
        status="pending",
        payee=payee.name if payee else task.assignee_id,
    )
