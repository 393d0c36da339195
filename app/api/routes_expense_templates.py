# app/api/routes_expense_templates.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_roles
from app.core.rbac import EDITORS
from app.models.user import User
from app.schemas.order_expense import (
    ExpenseTemplateCreate,
    ExpenseTemplateOut,
    ExpenseTemplateUpdate,
)
from app.services import expense_templates as template_service
from app.utils.resp import ok

router = APIRouter(prefix="/expense-templates", tags=["Expense templates"])


@router.get("")
def list_expense_templates(
    q: Optional[str] = Query(None),
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = template_service.list_templates(db, active_only=active_only, q=q)
    return ok([ExpenseTemplateOut.model_validate(t) for t in rows])


@router.get("/{template_id}")
def get_expense_template(
    template_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(ExpenseTemplateOut.model_validate(template_service.get_template(db, template_id)))


@router.post("", status_code=201)
def create_expense_template(
    payload: ExpenseTemplateCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    t = template_service.create_template(db, payload)
    return ok(ExpenseTemplateOut.model_validate(t), status_code=201)


@router.put("/{template_id}")
def update_expense_template(
    template_id: int,
    payload: ExpenseTemplateUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    t = template_service.update_template(db, template_id, payload)
    return ok(ExpenseTemplateOut.model_validate(t))


@router.delete("/{template_id}")
def delete_expense_template(
    template_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    template_service.delete_template(db, template_id)
    return ok({"id": template_id, "deleted": True})


@router.post("/{template_id}/duplicate", status_code=201)
def duplicate_expense_template(
    template_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    t = template_service.duplicate_template(db, template_id)
    return ok(ExpenseTemplateOut.model_validate(t), status_code=201)
