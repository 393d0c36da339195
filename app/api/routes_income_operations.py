# app/api/routes_income_operations.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_roles
from app.core.rbac import ADMIN, EDITORS
from app.models.user import User
from app.schemas.operations import (
    IncomeOperationCreate,
    IncomeOperationOut,
    IncomeOperationUpdate,
    IncomePaymentIn,
)
from app.services import operations as op_service
from app.utils.resp import ok

router = APIRouter(prefix="/income-operations", tags=["Income operations"])


@router.get("/order/{order_id}")
def list_order_income_operations(
    order_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = op_service.list_income_operations(db, order_id)
    return ok([IncomeOperationOut.model_validate(r) for r in rows])


@router.post("", status_code=201)
def create_income_operation(
    payload: IncomeOperationCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    op = op_service.create_income_operation(db, payload)
    return ok(IncomeOperationOut.model_validate(op), status_code=201)


@router.post("/{op_id}/payment")
def register_income_payment(
    op_id: int,
    payload: IncomePaymentIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    op = op_service.register_payment(db, op_id, payload)
    return ok(IncomeOperationOut.model_validate(op))


@router.put("/{op_id}")
def update_income_operation(
    op_id: int,
    payload: IncomeOperationUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    op = op_service.update_income_operation(db, op_id, payload)
    return ok(IncomeOperationOut.model_validate(op))


@router.delete("/{op_id}")
def delete_income_operation(
    op_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ADMIN)),
):
    op_service.delete_income_operation(db, op_id)
    return ok({"id": op_id, "deleted": True})
