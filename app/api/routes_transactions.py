# app/api/routes_transactions.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_roles
from app.core.rbac import ADMIN, LEDGER_READERS
from app.models.user import User
from app.schemas.ledger import TransactionCreate, TransactionOut, TransactionReverseIn
from app.services import ledger as ledger_service
from app.utils.resp import ok, page_meta

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.get("")
def list_transactions(
    account_id: Optional[int] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*LEDGER_READERS)),
):
    rows, total = ledger_service.list_transactions(
        db,
        account_id=account_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return ok([TransactionOut.model_validate(t) for t in rows], meta=page_meta(page, limit, total))


@router.post("", status_code=201)
def create_transaction(
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ADMIN)),
):
    tx = ledger_service.post_transaction(
        db,
        debit_account_id=payload.debit_account_id,
        credit_account_id=payload.credit_account_id,
        amount=payload.amount,
        description=payload.description,
        transaction_date=payload.transaction_date,
        cost_operation_id=payload.cost_operation_id,
        income_operation_id=payload.income_operation_id,
        user_id=user.id,
    )
    return ok(TransactionOut.model_validate(tx), status_code=201)


@router.post("/{transaction_id}/reverse", status_code=201)
def reverse_transaction(
    transaction_id: int,
    payload: Optional[TransactionReverseIn] = Body(None),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ADMIN)),
):
    tx = ledger_service.reverse_transaction(
        db,
        transaction_id,
        description=payload.description if payload else None,
        user_id=user.id,
    )
    return ok(TransactionOut.model_validate(tx), status_code=201)
