from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..api.dependencies import get_state
from ..auth.jwt import require_permission
from ..core.errors import FieldValidationError
from ..models.models import Evidence, Task, TaskStatus, User
from ..schemas.schemas import EvidenceCreate, TaskCreate, TaskImageCreate, TaskStatusUpdate, TaskUpdate
from ..services.permissions import can_view_property
from ..services.store import AppState
from ..services.task_board import (
    attach_evidence,
    attach_image,
    can_manage_task,
    change_task_status,
    create_task,
    edit_task,
    locked_task_fields,
    notify_task_supplier,
    tasks_for_user,
)
from ..services.tasks import apply_service_rate_template

router = APIRouter()


def _get_task_or_404(state: AppState, task_id: str) -> Task:
    task = state.tasks.get(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def _get_managed_task(state: AppState, task_id: str, user: User) -> Task:
    task = _get_task_or_404(state, task_id)
    if not can_manage_task(state, user, task):
        raise HTTPException(status_code=403, detail="Operation not permitted for your account")
    return task


@router.get("/", response_model=List[Task])
def list_tasks(
    status: Optional[TaskStatus] = Query(None),
    state: AppState = Depends(get_state),
    user: User = Depends(require_permission("tasks", "view")),
) -> List[Task]:
    return tasks_for_user(state, user, status)


@router.post("/", response_model=Task, status_code=201)
def create_task_endpoint(
    payload: TaskCreate,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("tasks", "create")),
) -> Task:
    data = payload.model_dump(exclude={"service_rate_id"})
    if payload.service_rate_id:
        rate = state.service_rates.get(payload.service_rate_id)
        if not rate:
            raise FieldValidationError({"service_rate_id": "Service rate not found."})
        data = apply_service_rate_template(data, rate)

    prop = state.properties.get(data.get("property_id") or "")
    if prop is not None and not can_view_property(actor, prop):
        raise FieldValidationError({"property_id": "Property not found."})

    result = create_task(state, data, actor)
    if result.errors:
        raise FieldValidationError(result.errors)
    return result.task


@router.patch("/{task_id}", response_model=Task)
def update_task_endpoint(
    task_id: str,
    payload: TaskUpdate,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("tasks", "edit")),
) -> Task:
    _get_managed_task(state, task_id, actor)
    changes = payload.model_dump(exclude_unset=True)
    locked = locked_task_fields(actor, changes)
    if locked:
        raise HTTPException(status_code=403, detail=f"Only staff can change: {', '.join(locked)}")
    target = state.properties.get(changes.get("property_id") or "")
    if target is not None and not can_view_property(actor, target):
        raise FieldValidationError({"property_id": "Property not found."})
    result = edit_task(state, task_id, changes, actor)
    if result.errors:
        raise FieldValidationError(result.errors)
    return result.task


@router.post("/{task_id}/status", response_model=Task)
def update_task_status(
    task_id: str,
    payload: TaskStatusUpdate,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("tasks", "edit")),
) -> Task:
    _get_managed_task(state, task_id, actor)
    return change_task_status(state, task_id, payload.status, actor)


@router.post("/{task_id}/images", response_model=Task)
def add_task_image(
    task_id: str,
    payload: TaskImageCreate,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("tasks", "edit")),
) -> Task:
    _get_managed_task(state, task_id, actor)
    return attach_image(state, task_id, payload.url, actor)


@router.post("/{task_id}/evidence", response_model=Task, status_code=201)
def add_task_evidence(
    task_id: str,
    payload: EvidenceCreate,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("tasks", "edit")),
) -> Task:
    _get_managed_task(state, task_id, actor)
    evidence = Evidence(**payload.model_dump())
    return attach_evidence(state, task_id, evidence, actor)


@router.post("/{task_id}/notify", response_model=Task)
def notify_task(
    task_id: str,
    state: AppState = Depends(get_state),
    actor: User = Depends(require_permission("tasks", "edit")),
) -> Task:
    _get_managed_task(state, task_id, actor)
    return notify_task_supplier(state, task_id, actor)
