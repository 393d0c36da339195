# app/api/routes_cost_operations.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_roles
from app.core.rbac import ADMIN, EDITORS
from app.models.user import User
from app.schemas.operations import CostOperationCreate, CostOperationOut, CostOperationUpdate
from app.services import operations as op_service
from app.utils.resp import ok

router = APIRouter(prefix="/cost-operations", tags=["Cost operations"])


@router.get("/order/{order_id}")
def list_order_cost_operations(
    order_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = op_service.list_cost_operations(db, order_id)
    return ok([CostOperationOut.model_validate(r) for r in rows])


@router.post("", status_code=201)
def create_cost_operation(
    payload: CostOperationCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    op = op_service.create_cost_operation(db, payload)
    return ok(CostOperationOut.model_validate(op), status_code=201)


@router.put("/{op_id}")
def update_cost_operation(
    op_id: int,
    payload: CostOperationUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    op = op_service.update_cost_operation(db, op_id, payload)
    return ok(CostOperationOut.model_validate(op))


@router.delete("/{op_id}")
def delete_cost_operation(
    op_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ADMIN)),
):
    op_service.delete_cost_operation(db, op_id)
    return ok({"id": op_id, "deleted": True})
