# app/api/routes_warehouse_tasks.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_roles
from app.core.rbac import ADMIN, EDITORS
from app.models.user import User
from app.schemas.warehouse import (
    MovementOut,
    TaskCancel,
    TaskCreate,
    TaskDetailOut,
    TaskItemComplete,
    TaskOut,
    TaskUpdate,
)
from app.services import warehouse_tasks as task_service
from app.utils.resp import ok

router = APIRouter(prefix="/warehouse-tasks", tags=["Warehouse tasks"])


def _detail(db: Session, task) -> TaskDetailOut:
    out = TaskDetailOut.model_validate(task)
    out.movements = [MovementOut.model_validate(m) for m in task_service.task_movements(db, task.id)]
    return out


@router.get("")
def list_tasks(
    warehouse_id: Optional[int] = Query(None),
    type: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    assigned_to_id: Optional[int] = Query(None),
    order_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = task_service.list_tasks(
        db,
        warehouse_id=warehouse_id,
        type=type.upper() if type else None,
        status=status.upper() if status else None,
        assigned_to_id=assigned_to_id,
        order_id=order_id,
    )
    return ok([TaskOut.model_validate(t) for t in rows])


@router.get("/{task_id}")
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(_detail(db, task_service.get_task(db, task_id)))


@router.post("", status_code=201)
def create_task(
    payload: TaskCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(TaskOut.model_validate(task_service.create_task(db, payload)), status_code=201)


@router.put("/{task_id}")
def update_task(
    task_id: int,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(TaskOut.model_validate(task_service.update_task(db, task_id, payload)))


@router.post("/{task_id}/start")
def start_task(
    task_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(TaskOut.model_validate(task_service.start_task(db, task_id, user=user)))


@router.post("/{task_id}/items/{item_id}/complete")
def complete_task_item(
    task_id: int,
    item_id: int,
    payload: TaskItemComplete,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(_detail(db, task_service.complete_item(db, task_id, item_id, payload, user=user)))


@router.post("/{task_id}/cancel")
def cancel_task(
    task_id: int,
    payload: TaskCancel,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(TaskOut.model_validate(task_service.cancel_task(db, task_id, payload)))


@router.delete("/{task_id}")
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ADMIN)),
):
    task_service.delete_task(db, task_id)
    return ok({"id": task_id, "deleted": True})
