# app/api/routes_order_expenses.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_roles
from app.core.rbac import EDITORS
from app.models.user import User
from app.schemas.order_expense import (
    ExpenseTemplateOut,
    OrderExpenseBulkCreate,
    OrderExpenseCreate,
    OrderExpenseOut,
    OrderExpenseUpdate,
)
from app.services import expense_templates as template_service
from app.services import order_expenses as expense_service
from app.utils.resp import ok

router = APIRouter(prefix="/order-expenses", tags=["Order expenses"])


def _out(rows) -> List[OrderExpenseOut]:
    return [OrderExpenseOut.model_validate(e) for e in rows]


@router.get("/categories")
def expense_categories(user: User = Depends(current_user)):
    return ok(expense_service.list_categories())


@router.get("/templates")
def active_templates(
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = template_service.list_templates(db, active_only=True)
    return ok([ExpenseTemplateOut.model_validate(t) for t in rows])


@router.get("/order/{order_id}")
def list_order_expenses(
    order_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = expense_service.list_order_expenses(db, order_id)
    return ok({
        "expenses": _out(rows),
        "summary": expense_service.summarize_expenses(rows),
    })


@router.get("/order/{order_id}/price-changes")
def order_price_changes(
    order_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(expense_service.price_changes(db, order_id))


@router.post("/order/{order_id}", status_code=201)
def create_order_expense(
    order_id: int,
    payload: OrderExpenseCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    exp = expense_service.create_expense(db, order_id, payload)
    return ok(OrderExpenseOut.model_validate(exp), status_code=201)


@router.post("/order/{order_id}/bulk", status_code=201)
def bulk_create_order_expenses(
    order_id: int,
    payload: OrderExpenseBulkCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    rows = expense_service.bulk_create_expenses(db, order_id, payload.expenses)
    return ok(_out(rows), meta={"count": len(rows)}, status_code=201)


@router.post("/order/{order_id}/clone/{source_order_id}", status_code=201)
def clone_order_expenses(
    order_id: int,
    source_order_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    rows = expense_service.clone_expenses(db, order_id, source_order_id)
    return ok(_out(rows), meta={"count": len(rows)}, status_code=201)


@router.post("/order/{order_id}/apply-template/{template_id}", status_code=201)
def apply_expense_template(
    order_id: int,
    template_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    rows = expense_service.apply_template(db, order_id, template_id)
    return ok(_out(rows), meta={"count": len(rows)}, status_code=201)


@router.put("/{expense_id}")
def update_order_expense(
    expense_id: int,
    payload: OrderExpenseUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    exp = expense_service.update_expense(db, expense_id, payload)
    return ok(OrderExpenseOut.model_validate(exp))


@router.delete("/{expense_id}")
def delete_order_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    order_id = expense_service.delete_expense(db, expense_id)
    return ok({"id": expense_id, "order_id": order_id, "deleted": True})
