# app/services/orders.py
from __future__ import annotations

import logging
import secrets
import string
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple

from fastapi import HTTPException
from sqlalchemy.orm import Session, joinedload, selectinload

from app.models.client import Client
from app.models.order import Order, OrderItem
from app.models.user import User
from app.schemas.order import OrderCreate, OrderItemIn
from app.services.money import D, money2
from app.services.order_costing import lock_order, recalculate_order_cost

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
_SUFFIX_LEN = 6


def generate_order_number(db: Session, on: Optional[date] = None) -> str:
    """
    ORD-YYMMDD-XXXXXX with a random suffix; retried on the rare collision.
    """
    d = on or datetime.utcnow().date()
    for _ in range(10):
        suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LEN))
        number = f"ORD-{d.strftime('%y%m%d')}-{suffix}"
        if not db.query(Order.id).filter(Order.order_number == number).first():
            return number
    raise HTTPException(status_code=500, detail="Could not allocate order number")


def _item_rows(items: Sequence[OrderItemIn]) -> List[OrderItem]:
    return [
        OrderItem(
            sku=it.sku.strip(),
            name=it.name.strip(),
            quantity=int(it.quantity),
            weight=D(it.weight),
            volume=D(it.volume),
            unit_cost=money2(it.unit_cost),
            unit_price=money2(it.unit_price),
        )
        for it in items
    ]


def get_order_by_ref(db: Session, ref: str) -> Order:
    """
    'ref' is either the numeric id or the order number.
    """
    q = db.query(Order).options(
        joinedload(Order.client),
        joinedload(Order.manager),
        selectinload(Order.items),
    )
    ref = (ref or "").strip()
    if ref.isdigit():
        order = q.filter(Order.id == int(ref)).first()
    else:
        order = q.filter(Order.order_number == ref).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def create_order(db: Session, inp: OrderCreate, *, user: Optional[User] = None) -> Order:
    if not db.get(Client, int(inp.client_id)):
        raise HTTPException(status_code=404, detail="Client not found")

    manager_id = inp.manager_id or (user.id if user else None)
    if inp.manager_id and not db.get(User, int(inp.manager_id)):
        raise HTTPException(status_code=404, detail="Manager not found")

    order_date = inp.order_date or datetime.utcnow()
    order = Order(
        order_number=generate_order_number(db, order_date.date()),
        client_id=inp.client_id,
        manager_id=manager_id,
        status=inp.status or "NEW",
        shipping_address=inp.shipping_address,
        order_date=order_date,
        notes=inp.notes,
    )
    order.items = _item_rows(inp.items)

    try:
        db.add(order)
        db.flush()
        recalculate_order_cost(
            db,
            order.id,
            total_income=money2(inp.total_income) if inp.total_income is not None else None,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Order %s created for client %s (%d items)", order.order_number, order.client_id, len(inp.items))
    return get_order_by_ref(db, str(order.id))


def replace_items(db: Session, order_id: int, items: Sequence[OrderItemIn]) -> Order:
    try:
        lock_order(db, order_id)
        db.query(OrderItem).filter(OrderItem.order_id == order_id).delete(synchronize_session=False)
        for row in _item_rows(items):
            row.order_id = order_id
            db.add(row)
        recalculate_order_cost(db, order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()
    logger.info("Order %s items replaced (%d rows)", order_id, len(items))
    return get_order_by_ref(db, str(order_id))


def set_status(db: Session, order_id: int, status: str) -> Order:
    try:
        order = lock_order(db, order_id)
        order.status = status
        now = datetime.utcnow()
        if status == "SHIPPED" and not order.shipped_date:
            order.shipped_date = now
        if status == "DELIVERED":
            order.shipped_date = order.shipped_date or now
            order.delivered_date = order.delivered_date or now
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Order %s status -> %s", order_id, status)
    return get_order_by_ref(db, str(order_id))


def recalculate(db: Session, order_id: int) -> Order:
    """Rebuild the cached money fields on demand (repair after manual edits)."""
    try:
        lock_order(db, order_id)
        recalculate_order_cost(db, order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Order %s recalculated", order_id)
    return get_order_by_ref(db, str(order_id))


def delete_order(db: Session, order_id: int) -> None:
    order = db.get(Order, int(order_id))
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    number = order.order_number
    try:
        db.delete(order)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Order %s deleted", number)


def list_orders(
    db: Session,
    *,
    q: Optional[str] = None,
    status: Optional[str] = None,
    client_id: Optional[int] = None,
    manager_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Order], int]:
    query = db.query(Order)
    if q:
        query = query.filter(Order.order_number.ilike(f"%{q.strip()}%"))
    if status:
        query = query.filter(Order.status == status)
    if client_id:
        query = query.filter(Order.client_id == client_id)
    if manager_id:
        query = query.filter(Order.manager_id == manager_id)
    if date_from:
        query = query.filter(Order.order_date >= date_from)
    if date_to:
        query = query.filter(Order.order_date <= date_to)

    total = query.count()
    rows = (
        query.options(joinedload(Order.client), joinedload(Order.manager))
        .order_by(Order.order_date.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total
