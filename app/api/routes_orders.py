# app/api/routes_orders.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_roles
from app.core.rbac import EDITORS
from app.models.user import User
from app.schemas.order import (
    OrderCreate,
    OrderDetailOut,
    OrderItemsReplace,
    OrderOut,
    OrderStatusUpdate,
)
from app.services import orders as order_service
from app.utils.resp import ok, page_meta

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.get("")
def list_orders(
    q: Optional[str] = Query(None, description="Order number contains"),
    status: Optional[str] = Query(None),
    client_id: Optional[int] = Query(None),
    manager_id: Optional[int] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows, total = order_service.list_orders(
        db,
        q=q,
        status=status.upper() if status else None,
        client_id=client_id,
        manager_id=manager_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return ok([OrderOut.model_validate(o) for o in rows], meta=page_meta(page, limit, total))


@router.get("/{ref}")
def get_order(
    ref: str,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(OrderDetailOut.model_validate(order_service.get_order_by_ref(db, ref)))


@router.post("", status_code=201)
def create_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    order = order_service.create_order(db, payload, user=user)
    return ok(OrderDetailOut.model_validate(order), status_code=201)


@router.patch("/{order_id}/status")
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(OrderDetailOut.model_validate(order_service.set_status(db, order_id, payload.status)))


@router.put("/{order_id}/items")
def replace_order_items(
    order_id: int,
    payload: OrderItemsReplace,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(OrderDetailOut.model_validate(order_service.replace_items(db, order_id, payload.items)))


@router.post("/{order_id}/recalculate")
def recalculate_order(
    order_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(OrderDetailOut.model_validate(order_service.recalculate(db, order_id)))


@router.delete("/{order_id}")
def delete_order(
    order_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    order_service.delete_order(db, order_id)
    return ok({"id": order_id, "deleted": True})
