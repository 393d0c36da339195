# app/services/operations.py
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import List

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.operations import CostOperation, IncomeOperation
from app.models.vendor import VendorService
from app.schemas.operations import (
    CostOperationCreate,
    CostOperationUpdate,
    IncomeOperationCreate,
    IncomeOperationUpdate,
    IncomePaymentIn,
)
from app.services.money import D, money2
from app.services.order_costing import lock_order, recalculate_order_cost

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# cost operations (vendor charges)
# ---------------------------------------------------------------------------

def list_cost_operations(db: Session, order_id: int) -> List[CostOperation]:
    return (
        db.query(CostOperation)
        .filter(CostOperation.order_id == int(order_id))
        .order_by(CostOperation.operation_date.asc(), CostOperation.id.asc())
        .all()
    )


def _get_cost_operation(db: Session, op_id: int) -> CostOperation:
    op = db.get(CostOperation, int(op_id))
    if not op:
        raise HTTPException(status_code=404, detail="Cost operation not found")
    return op


def create_cost_operation(db: Session, inp: CostOperationCreate) -> CostOperation:
    try:
        lock_order(db, inp.order_id)
        svc = db.get(VendorService, int(inp.vendor_service_id))
        if not svc:
            raise HTTPException(status_code=404, detail="Vendor service not found")

        # price snapshot; later service price changes do not touch this row
        unit_price = money2(svc.price)
        calculated = money2(D(inp.quantity) * unit_price)
        actual = money2(inp.actual_amount) if inp.actual_amount is not None else calculated

        op = CostOperation(
            order_id=inp.order_id,
            vendor_id=svc.vendor_id,
            vendor_service_id=svc.id,
            operation_type=inp.operation_type or "CHARGE",
            quantity=D(inp.quantity),
            unit_price=unit_price,
            calculated_amount=calculated,
            actual_amount=actual,
            description=inp.description,
            operation_date=inp.operation_date or datetime.utcnow(),
        )
        db.add(op)
        recalculate_order_cost(db, inp.order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(op)
    logger.info("Cost operation %s on order %s: %s x %s = %s", op.id, op.order_id, op.quantity, unit_price, actual)
    return op


def update_cost_operation(db: Session, op_id: int, inp: CostOperationUpdate) -> CostOperation:
    op = _get_cost_operation(db, op_id)
    data = inp.model_dump(exclude_unset=True)
    try:
        lock_order(db, op.order_id)
        if data.get("quantity") is not None:
            op.quantity = D(data["quantity"])
            op.calculated_amount = money2(D(op.quantity) * D(op.unit_price))
            op.actual_amount = op.calculated_amount
        if data.get("actual_amount") is not None:
            op.actual_amount = money2(data["actual_amount"])
        for field in ("operation_type", "description", "operation_date"):
            if field in data and data[field] is not None:
                setattr(op, field, data[field])
        recalculate_order_cost(db, op.order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(op)
    logger.info("Cost operation %s updated", op.id)
    return op


def delete_cost_operation(db: Session, op_id: int) -> None:
    op = _get_cost_operation(db, op_id)
    order_id = op.order_id
    try:
        lock_order(db, order_id)
        db.delete(op)
        recalculate_order_cost(db, order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Cost operation %s deleted from order %s", op_id, order_id)


# ---------------------------------------------------------------------------
# income operations (client invoices / payments)
# ---------------------------------------------------------------------------

def paid_total(db: Session, order_id: int) -> Decimal:
    db.flush()
    v = (
        db.query(func.coalesce(func.sum(IncomeOperation.paid_amount), 0))
        .filter(IncomeOperation.order_id == int(order_id))
        .scalar()
    )
    return money2(v)


def _recalculate_with_income(db: Session, order_id: int) -> None:
    recalculate_order_cost(db, order_id, total_income=paid_total(db, order_id))


def list_income_operations(db: Session, order_id: int) -> List[IncomeOperation]:
    return (
        db.query(IncomeOperation)
        .filter(IncomeOperation.order_id == int(order_id))
        .order_by(IncomeOperation.created_at.asc(), IncomeOperation.id.asc())
        .all()
    )


def _get_income_operation(db: Session, op_id: int) -> IncomeOperation:
    op = db.get(IncomeOperation, int(op_id))
    if not op:
        raise HTTPException(status_code=404, detail="Income operation not found")
    return op


def create_income_operation(db: Session, inp: IncomeOperationCreate) -> IncomeOperation:
    try:
        order = lock_order(db, inp.order_id)
        paid = money2(inp.paid_amount)
        op = IncomeOperation(
            order_id=order.id,
            client_id=order.client_id,
            invoice_amount=money2(inp.invoice_amount),
            paid_amount=paid,
            payment_method=inp.payment_method,
            payment_date=inp.payment_date or (datetime.utcnow() if paid > 0 else None),
            description=inp.description,
        )
        db.add(op)
        _recalculate_with_income(db, order.id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(op)
    logger.info("Income operation %s on order %s: invoice=%s paid=%s", op.id, op.order_id, op.invoice_amount, op.paid_amount)
    return op


def register_payment(db: Session, op_id: int, inp: IncomePaymentIn) -> IncomeOperation:
    op = _get_income_operation(db, op_id)
    try:
        lock_order(db, op.order_id)
        db.refresh(op)
        op.paid_amount = money2(D(op.paid_amount) + D(inp.amount))
        op.payment_date = inp.payment_date or datetime.utcnow()
        if inp.payment_method:
            op.payment_method = inp.payment_method
        _recalculate_with_income(db, op.order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(op)
    logger.info("Payment %s registered on income operation %s (paid=%s)", inp.amount, op.id, op.paid_amount)
    return op


def update_income_operation(db: Session, op_id: int, inp: IncomeOperationUpdate) -> IncomeOperation:
    op = _get_income_operation(db, op_id)
    data = inp.model_dump(exclude_unset=True)
    try:
        lock_order(db, op.order_id)
        for field in ("invoice_amount", "paid_amount"):
            if data.get(field) is not None:
                setattr(op, field, money2(data[field]))
        for field in ("payment_method", "payment_date", "description"):
            if field in data:
                setattr(op, field, data[field])
        _recalculate_with_income(db, op.order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(op)
    logger.info("Income operation %s updated", op.id)
    return op


def delete_income_operation(db: Session, op_id: int) -> None:
    op = _get_income_operation(db, op_id)
    order_id = op.order_id
    try:
        lock_order(db, order_id)
        db.delete(op)
        _recalculate_with_income(db, order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Income operation %s deleted from order %s", op_id, order_id)
