# app/services/order_expenses.py
from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Sequence

from fastapi import HTTPException
from sqlalchemy.orm import Session, selectinload

from app.models.order import Order, OrderItem
from app.models.order_expense import OrderExpense, ExpenseTemplate
from app.models.vendor import VendorService
from app.schemas.order_expense import OrderExpenseCreate, OrderExpenseUpdate
from app.services.money import D, money2, round1, line_total
from app.services.order_costing import effective_amount, lock_order, recalculate_order_cost
from app.services.quantity_formula import resolve_quantity

logger = logging.getLogger(__name__)

EXPENSE_CATEGORIES: Dict[str, str] = OrderedDict([
    ("PACKAGING", "Packaging"),
    ("LABOR", "Labor"),
    ("RENT", "Rent"),
    ("LOGISTICS", "Logistics"),
    ("MATERIALS", "Materials"),
    ("OTHER", "Other"),
])

DEFAULT_DESCRIPTION = "Expense"


def list_categories() -> List[Dict[str, str]]:
    return [{"value": k, "label": v} for k, v in EXPENSE_CATEGORIES.items()]


def _get_service(db: Session, service_id: int) -> VendorService:
    svc = db.get(VendorService, int(service_id))
    if not svc:
        raise HTTPException(status_code=404, detail="Vendor service not found")
    return svc


def _get_expense(db: Session, expense_id: int) -> OrderExpense:
    exp = db.get(OrderExpense, int(expense_id))
    if not exp:
        raise HTTPException(status_code=404, detail="Expense not found")
    return exp


def _build_expense(db: Session, order_id: int, inp: OrderExpenseCreate, *, planned_from_input: bool) -> OrderExpense:
    unit_price = inp.unit_price
    original_price = None
    vendor_id = inp.vendor_id

    if inp.vendor_service_id:
        svc = _get_service(db, inp.vendor_service_id)
        if unit_price is None:
            unit_price = svc.price
        original_price = money2(svc.price)
        vendor_id = vendor_id or svc.vendor_id

    qty = D(inp.quantity) if inp.quantity is not None else Decimal("1")
    total = line_total(qty, unit_price)
    planned = total
    if planned_from_input and inp.planned_amount is not None:
        planned = money2(inp.planned_amount)

    return OrderExpense(
        order_id=order_id,
        category=inp.category or "OTHER",
        subcategory=inp.subcategory,
        vendor_id=vendor_id,
        vendor_service_id=inp.vendor_service_id,
        description=(inp.description or "").strip() or DEFAULT_DESCRIPTION,
        unit=inp.unit or "PIECE",
        quantity=qty,
        unit_price=money2(unit_price),
        total_amount=total,
        planned_amount=planned,
        actual_amount=Decimal("0.00"),
        is_price_locked=bool(inp.is_price_locked),
        price_locked_at=datetime.utcnow() if inp.is_price_locked else None,
        original_price=original_price,
        status="PLANNED",
        notes=inp.notes,
    )


# ---------------------------------------------------------------------------
# single-row CRUD
# ---------------------------------------------------------------------------

def create_expense(db: Session, order_id: int, inp: OrderExpenseCreate) -> OrderExpense:
    try:
        lock_order(db, order_id)
        exp = _build_expense(db, order_id, inp, planned_from_input=True)
        db.add(exp)
        recalculate_order_cost(db, order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(exp)
    logger.info("Expense %s added to order %s (%s, total=%s)", exp.id, order_id, exp.category, exp.total_amount)
    return exp


def update_expense(db: Session, expense_id: int, inp: OrderExpenseUpdate) -> OrderExpense:
    exp = _get_expense(db, expense_id)
    order_id = exp.order_id
    data = inp.model_dump(exclude_unset=True)

    try:
        lock_order(db, order_id)
        db.refresh(exp)

        qty = D(data["quantity"]) if data.get("quantity") is not None else D(exp.quantity)
        price = data["unit_price"] if data.get("unit_price") is not None else exp.unit_price

        # rebinding to another service takes a fresh price snapshot
        new_service_id = data.get("vendor_service_id")
        if new_service_id is not None and new_service_id != exp.vendor_service_id:
            svc = _get_service(db, new_service_id)
            exp.original_price = money2(svc.price)
            if data.get("unit_price") is None:
                price = svc.price
            if data.get("vendor_id") is None:
                exp.vendor_id = svc.vendor_id

        total = line_total(qty, price)

        for field in ("category", "subcategory", "vendor_id", "vendor_service_id",
                      "unit", "status", "notes"):
            if field in data and data[field] is not None:
                setattr(exp, field, data[field])
        if "description" in data:
            exp.description = (data["description"] or "").strip() or DEFAULT_DESCRIPTION
        if data.get("actual_amount") is not None:
            exp.actual_amount = money2(data["actual_amount"])

        if "is_price_locked" in data and data["is_price_locked"] is not None:
            locking = bool(data["is_price_locked"])
            if locking and not exp.is_price_locked:
                exp.price_locked_at = datetime.utcnow()
            exp.is_price_locked = locking

        exp.quantity = qty
        exp.unit_price = money2(price)
        exp.total_amount = total
        exp.planned_amount = (
            money2(data["planned_amount"]) if data.get("planned_amount") is not None else total
        )

        recalculate_order_cost(db, order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(exp)
    logger.info("Expense %s updated (order %s, total=%s)", exp.id, order_id, exp.total_amount)
    return exp


def delete_expense(db: Session, expense_id: int) -> int:
    exp = _get_expense(db, expense_id)
    order_id = exp.order_id
    try:
        lock_order(db, order_id)
        db.delete(exp)
        recalculate_order_cost(db, order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Expense %s deleted from order %s", expense_id, order_id)
    return order_id


# ---------------------------------------------------------------------------
# batch operations (one recalculation each)
# ---------------------------------------------------------------------------

def bulk_create_expenses(db: Session, order_id: int, items: Sequence[OrderExpenseCreate]) -> List[OrderExpense]:
    if not items:
        raise HTTPException(status_code=400, detail="Expenses list is empty")

    try:
        lock_order(db, order_id)
        created = [_build_expense(db, order_id, inp, planned_from_input=False) for inp in items]
        db.add_all(created)
        recalculate_order_cost(db, order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    for exp in created:
        db.refresh(exp)
    logger.info("Bulk-created %d expenses on order %s", len(created), order_id)
    return created


def clone_expenses(db: Session, order_id: int, source_order_id: int) -> List[OrderExpense]:
    try:
        lock_order(db, order_id)
        source = (
            db.query(OrderExpense)
            .filter(OrderExpense.order_id == int(source_order_id))
            .order_by(OrderExpense.id.asc())
            .all()
        )
        if not source:
            raise HTTPException(status_code=404, detail="No expenses found in source order")

        created: List[OrderExpense] = []
        for src in source:
            price = src.unit_price
            original_price = None
            if src.vendor_service_id:
                svc = db.get(VendorService, src.vendor_service_id)
                if svc:
                    price = svc.price
                    original_price = money2(svc.price)

            total = line_total(src.quantity, price)
            created.append(OrderExpense(
                order_id=order_id,
                category=src.category,
                subcategory=src.subcategory,
                vendor_id=src.vendor_id,
                vendor_service_id=src.vendor_service_id,
                description=src.description,
                unit=src.unit,
                quantity=D(src.quantity),
                unit_price=money2(price),
                total_amount=total,
                planned_amount=total,
                actual_amount=Decimal("0.00"),
                is_price_locked=False,
                original_price=original_price,
                status="PLANNED",
                notes=src.notes,
            ))
        db.add_all(created)
        recalculate_order_cost(db, order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    for exp in created:
        db.refresh(exp)
    logger.info("Cloned %d expenses from order %s to order %s", len(created), source_order_id, order_id)
    return created


def order_formula_variables(items: Sequence[OrderItem]) -> Dict[str, Decimal]:
    return {
        "itemsCount": Decimal(len(items)),
        "totalWeight": sum((D(i.weight) * D(i.quantity) for i in items), Decimal("0")),
        "totalVolume": sum((D(i.volume) * D(i.quantity) for i in items), Decimal("0")),
    }


def apply_template(db: Session, order_id: int, template_id: int) -> List[OrderExpense]:
    try:
        lock_order(db, order_id)
        template = (
            db.query(ExpenseTemplate)
            .options(selectinload(ExpenseTemplate.items))
            .filter(ExpenseTemplate.id == int(template_id))
            .first()
        )
        if not template:
            raise HTTPException(status_code=404, detail="Template not found")

        items = db.query(OrderItem).filter(OrderItem.order_id == order_id).all()
        variables = order_formula_variables(items)

        created: List[OrderExpense] = []
        for ti in sorted(template.items, key=lambda x: (x.sort_order, x.id)):
            qty = resolve_quantity(ti.quantity_formula, variables, ti.default_quantity)

            svc = ti.vendor_service
            price = svc.price if svc else ti.default_price
            total = line_total(qty, price)

            created.append(OrderExpense(
                order_id=order_id,
                category=ti.category,
                subcategory=ti.subcategory,
                vendor_id=svc.vendor_id if svc else None,
                vendor_service_id=ti.vendor_service_id if svc else None,
                description=ti.description,
                unit=ti.unit,
                quantity=qty,
                unit_price=money2(price),
                total_amount=total,
                planned_amount=total,
                actual_amount=Decimal("0.00"),
                is_price_locked=False,
                original_price=money2(svc.price) if svc else None,
                status="PLANNED",
            ))
        db.add_all(created)
        recalculate_order_cost(db, order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    for exp in created:
        db.refresh(exp)
    logger.info("Template %s applied to order %s (%d expenses)", template_id, order_id, len(created))
    return created


# ---------------------------------------------------------------------------
# reads
# ---------------------------------------------------------------------------

def _require_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, int(order_id))
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def list_order_expenses(db: Session, order_id: int) -> List[OrderExpense]:
    _require_order(db, order_id)
    return (
        db.query(OrderExpense)
        .options(selectinload(OrderExpense.vendor), selectinload(OrderExpense.vendor_service))
        .filter(OrderExpense.order_id == int(order_id))
        .order_by(OrderExpense.category.asc(), OrderExpense.created_at.asc(), OrderExpense.id.asc())
        .all()
    )


def summarize_expenses(expenses: Sequence[OrderExpense]) -> Dict[str, Any]:
    by_category: Dict[str, Dict[str, Any]] = {}
    total_planned = Decimal("0")
    total_actual = Decimal("0")

    for e in expenses:
        planned = D(e.planned_amount)
        eff = effective_amount(e)
        total_planned += planned
        total_actual += eff

        g = by_category.setdefault(e.category, {
            "category": e.category,
            "label": EXPENSE_CATEGORIES.get(e.category, e.category),
            "count": 0,
            "planned": Decimal("0"),
            "actual": Decimal("0"),
        })
        g["count"] += 1
        g["planned"] += planned
        g["actual"] += eff

    groups = []
    for g in by_category.values():
        g["planned"] = money2(g["planned"])
        g["actual"] = money2(g["actual"])
        groups.append(g)

    return {
        "total_planned": money2(total_planned),
        "total_actual": money2(total_actual),
        "count": len(expenses),
        "by_category": groups,
    }


def price_changes(db: Session, order_id: int) -> Dict[str, Any]:
    """
    Unlocked, service-bound expenses whose service price moved since the
    line was created.
    """
    _require_order(db, order_id)
    rows = (
        db.query(OrderExpense)
        .options(selectinload(OrderExpense.vendor_service))
        .filter(OrderExpense.order_id == int(order_id))
        .filter(OrderExpense.is_price_locked.is_(False))
        .filter(OrderExpense.vendor_service_id.isnot(None))
        .filter(OrderExpense.original_price.isnot(None))
        .order_by(OrderExpense.id.asc())
        .all()
    )

    changes: List[Dict[str, Any]] = []
    total_impact = Decimal("0")
    for e in rows:
        svc = e.vendor_service
        if not svc:
            continue
        original = money2(e.original_price)
        current = money2(svc.price)
        if current == original:
            continue

        diff = current - original
        diff_pct = round1(diff / original * 100) if original != 0 else None
        impact = money2(diff * D(e.quantity))
        total_impact += impact

        changes.append({
            "expense_id": e.id,
            "description": e.description,
            "vendor_service_id": svc.id,
            "service_name": svc.name,
            "original_price": original,
            "current_price": current,
            "difference": money2(diff),
            "difference_percent": diff_pct,
            "quantity": D(e.quantity),
            "potential_impact": impact,
        })

    return {
        "changes": changes,
        "summary": {
            "count": len(changes),
            "total_impact": money2(total_impact),
        },
    }
