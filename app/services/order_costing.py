# app/services/order_costing.py
"""
Order cost / profit cache.

recalculate_order_cost is the only writer of Order.estimated_cost,
actual_cost, total_income, profit and margin_percent. Callers lock the order
with lock_order() before touching child rows and commit once afterwards, so
two recalculations of the same order never interleave.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.order import Order, OrderItem
from app.models.order_expense import OrderExpense
from app.services.money import D, money2, margin_percent

logger = logging.getLogger(__name__)


def effective_amount(expense: OrderExpense) -> Decimal:
    """
    A realized (non-zero) actual amount wins over the planned line total.
    """
    actual = D(expense.actual_amount)
    return actual if actual != 0 else D(expense.total_amount)


def lock_order(db: Session, order_id: int) -> Order:
    order = (
        db.query(Order)
        .filter(Order.id == order_id)
        .with_for_update()
        .first()
    )
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def compute_order_totals(
    expenses: Iterable[OrderExpense],
    items: Iterable[OrderItem],
    previous_income,
) -> dict:
    expenses_total = sum((effective_amount(e) for e in expenses), Decimal("0"))

    items_cost = Decimal("0")
    items_revenue = Decimal("0")
    for it in items:
        qty = D(it.quantity)
        items_cost += D(it.unit_cost) * qty
        items_revenue += D(it.unit_price) * qty

    actual_cost = expenses_total + items_cost
    total_income = items_revenue if items_revenue > 0 else D(previous_income)
    profit = total_income - actual_cost

    return {
        "estimated_cost": money2(expenses_total),
        "actual_cost": money2(actual_cost),
        "total_income": money2(total_income),
        "profit": money2(profit),
        "margin_percent": margin_percent(profit, total_income),
    }


def recalculate_order_cost(
    db: Session,
    order_id: int,
    *,
    total_income: Optional[Decimal] = None,
) -> Order:
    """
    Recompute the order's cached money fields from its child rows.

    total_income replaces the stored income when items carry no sale price
    (order creation, income operations). Does not commit.
    """
    db.flush()
    order = lock_order(db, order_id)

    expenses = db.query(OrderExpense).filter(OrderExpense.order_id == order_id).all()
    items = db.query(OrderItem).filter(OrderItem.order_id == order_id).all()

    previous = total_income if total_income is not None else order.total_income
    totals = compute_order_totals(expenses, items, previous)

    for k, v in totals.items():
        setattr(order, k, v)
    db.flush()

    logger.debug(
        "Order %s recalculated: actual_cost=%s income=%s profit=%s margin=%s",
        order.order_number, totals["actual_cost"], totals["total_income"],
        totals["profit"], totals["margin_percent"],
    )
    return order
