# app/services/warehouse_tasks.py
"""
Warehouse tasks: a numbered work order with items. Completing an item moves
stock according to the task type:

  RECEIVING  -> INBOUND     (into the target location)
  SHIPPING   -> OUTBOUND    (out of the source location)
  INVENTORY  -> ADJUSTMENT  (counted quantity replaces what is on hand)
  others     -> TRANSFER    (source to target)

The task turns COMPLETED once every item is.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session, joinedload, selectinload

from app.models.order import Order
from app.models.user import User
from app.models.warehouse import Product, StockMovement, StorageLocation, TaskItem, Warehouse, WarehouseTask
from app.schemas.warehouse import TaskCancel, TaskCreate, TaskItemComplete, TaskUpdate
from app.services import stock as stock_service

logger = logging.getLogger(__name__)

MOVEMENT_FOR_TASK = {
    "RECEIVING": "INBOUND",
    "SHIPPING": "OUTBOUND",
    "INVENTORY": "ADJUSTMENT",
}
CLOSED_STATUSES = ("COMPLETED", "CANCELLED")


def generate_task_number(db: Session, on: Optional[date] = None) -> str:
    """WT-YYYYMMDD-NNNN, sequential per day."""
    prefix = f"WT-{(on or datetime.utcnow().date()).strftime('%Y%m%d')}-"
    last = (
        db.query(WarehouseTask.task_number)
        .filter(WarehouseTask.task_number.like(f"{prefix}%"))
        .order_by(WarehouseTask.task_number.desc())
        .first()
    )
    seq = int(last[0].rsplit("-", 1)[-1]) + 1 if last else 1
    return f"{prefix}{seq:04d}"


def _query(db: Session):
    return db.query(WarehouseTask).options(
        joinedload(WarehouseTask.warehouse),
        selectinload(WarehouseTask.items),
    )


def get_task(db: Session, task_id: int) -> WarehouseTask:
    t = _query(db).filter(WarehouseTask.id == int(task_id)).first()
    if not t:
        raise HTTPException(status_code=404, detail="Task not found")
    return t


def task_movements(db: Session, task_id: int) -> List[StockMovement]:
    return (
        stock_service.movement_query(db)
        .filter(StockMovement.task_id == int(task_id))
        .order_by(StockMovement.created_at.asc(), StockMovement.id.asc())
        .all()
    )


def list_tasks(
    db: Session,
    *,
    warehouse_id: Optional[int] = None,
    type: Optional[str] = None,
    status: Optional[str] = None,
    assigned_to_id: Optional[int] = None,
    order_id: Optional[int] = None,
) -> List[WarehouseTask]:
    q = _query(db)
    if warehouse_id:
        q = q.filter(WarehouseTask.warehouse_id == warehouse_id)
    if type:
        q = q.filter(WarehouseTask.type == type)
    if status:
        q = q.filter(WarehouseTask.status == status)
    if assigned_to_id:
        q = q.filter(WarehouseTask.assigned_to_id == assigned_to_id)
    if order_id:
        q = q.filter(WarehouseTask.order_id == order_id)
    return q.order_by(WarehouseTask.created_at.desc(), WarehouseTask.id.desc()).all()


def create_task(db: Session, inp: TaskCreate) -> WarehouseTask:
    if not db.get(Warehouse, inp.warehouse_id):
        raise HTTPException(status_code=404, detail="Warehouse not found")
    if inp.order_id and not db.get(Order, inp.order_id):
        raise HTTPException(status_code=404, detail="Order not found")
    for it in inp.items:
        if it.product_id and not db.get(Product, it.product_id):
            raise HTTPException(status_code=404, detail=f"Product {it.product_id} not found")

    task = WarehouseTask(
        task_number=generate_task_number(db),
        warehouse_id=inp.warehouse_id,
        order_id=inp.order_id,
        type=inp.type,
        priority=inp.priority,
        assigned_to_id=inp.assigned_to_id,
        planned_date=inp.planned_date,
        notes=inp.notes,
    )
    task.items = [TaskItem(**it.model_dump()) for it in inp.items]
    try:
        db.add(task)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Task %s (%s) created with %d items", task.task_number, task.type, len(inp.items))
    return get_task(db, task.id)


def _stamp_status(task: WarehouseTask, status: str) -> None:
    task.status = status
    now = datetime.utcnow()
    if status == "IN_PROGRESS" and task.started_at is None:
        task.started_at = now
    elif status == "COMPLETED":
        task.completed_at = now


def update_task(db: Session, task_id: int, inp: TaskUpdate) -> WarehouseTask:
    task = get_task(db, task_id)
    data = inp.model_dump(exclude_unset=True)
    status = data.pop("status", None)
    for k, v in data.items():
        if v is None and k == "priority":
            continue
        setattr(task, k, v)
    if status:
        _stamp_status(task, status)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return get_task(db, task.id)


def start_task(db: Session, task_id: int, *, user: User) -> WarehouseTask:
    task = get_task(db, task_id)
    if task.status != "NEW":
        raise HTTPException(status_code=400, detail=f"Task is {task.status}; only NEW tasks can be started")
    task.assigned_to_id = user.id
    _stamp_status(task, "IN_PROGRESS")
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Task %s started by user %s", task.task_number, user.id)
    return get_task(db, task.id)


def _location(db: Session, location_id: Optional[int], role: str) -> StorageLocation:
    if not location_id:
        raise HTTPException(status_code=400, detail=f"Task item has no {role} location")
    loc = db.get(StorageLocation, int(location_id))
    if not loc:
        raise HTTPException(status_code=404, detail="Storage location not found")
    return loc


def _move_item(db: Session, task: WarehouseTask, item: TaskItem, qty: int, *, user: User) -> None:
    movement_type = MOVEMENT_FOR_TASK.get(task.type, "TRANSFER")
    common = dict(product_id=item.product_id, movement_type=movement_type, task_id=task.id, order_id=task.order_id)

    if movement_type == "ADJUSTMENT":
        loc = _location(db, item.to_location_id or item.from_location_id, "counted")
        row = stock_service.lock_stock(db, item.product_id, loc.id, "", create=True)
        if qty < (row.reserved_qty or 0):
            raise HTTPException(status_code=400, detail="Counted quantity is below the reserved quantity")
        diff = qty - row.quantity
        stock_service.set_quantity(row, qty)
        stock_service.refresh_location_status(db, loc)
        stock_service.record_movement(db, user=user, to_location_id=loc.id, quantity=diff, **common)
        return

    src = _location(db, item.from_location_id, "source") if movement_type != "INBOUND" else None
    dst = _location(db, item.to_location_id, "target") if movement_type != "OUTBOUND" else None
    if src is not None and dst is not None and src.id == dst.id:
        raise HTTPException(status_code=400, detail="Source and destination locations must differ")
    if src is not None:
        stock_service.remove_stock(db, product_id=item.product_id, location=src, quantity=qty)
    if dst is not None:
        stock_service.add_stock(db, product_id=item.product_id, location=dst, quantity=qty)
    stock_service.record_movement(
        db, user=user,
        from_location_id=src.id if src else None,
        to_location_id=dst.id if dst else None,
        quantity=qty,
        **common,
    )


def complete_item(db: Session, task_id: int, item_id: int, inp: TaskItemComplete, *, user: User) -> WarehouseTask:
    task = get_task(db, task_id)
    if task.status in CLOSED_STATUSES:
        raise HTTPException(status_code=400, detail=f"Task is {task.status}")
    item = next((i for i in task.items if i.id == int(item_id)), None)
    if item is None:
        raise HTTPException(status_code=404, detail="Task item not found")
    if item.is_completed:
        raise HTTPException(status_code=400, detail="Task item already completed")

    qty = inp.actual_qty if inp.actual_qty is not None else item.expected_qty
    try:
        if inp.to_location_id:
            item.to_location_id = inp.to_location_id
        item.actual_qty = qty
        item.is_completed = True
        if item.product_id and (qty > 0 or task.type == "INVENTORY"):
            _move_item(db, task, item, qty, user=user)
        if task.status == "NEW":
            _stamp_status(task, "IN_PROGRESS")
        if all(i.is_completed for i in task.items):
            _stamp_status(task, "COMPLETED")
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Task %s item %s completed (qty %s)", task.task_number, item.id, qty)
    return get_task(db, task.id)


def cancel_task(db: Session, task_id: int, inp: TaskCancel) -> WarehouseTask:
    task = get_task(db, task_id)
    if task.status == "COMPLETED":
        raise HTTPException(status_code=400, detail="Completed tasks cannot be cancelled")
    task.status = "CANCELLED"
    if inp.reason:
        task.notes = f"Cancelled: {inp.reason}"
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Task %s cancelled", task.task_number)
    return get_task(db, task.id)


def delete_task(db: Session, task_id: int) -> None:
    task = get_task(db, task_id)
    number = task.task_number
    try:
        db.query(StockMovement).filter(StockMovement.task_id == task.id).update(
            {StockMovement.task_id: None}, synchronize_session=False
        )
        db.delete(task)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Task %s deleted", number)
