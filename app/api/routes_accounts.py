# app/api/routes_accounts.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_roles
from app.core.config import settings
from app.core.rbac import ADMIN, LEDGER_READERS
from app.models.ledger import Account
from app.models.user import User
from app.schemas.ledger import AccountCreate, AccountOut, AccountUpdate
from app.services import ledger as ledger_service
from app.utils.resp import ok, err

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.get("")
def list_accounts(
    type: Optional[str] = Query(None, description="ASSET | LIABILITY | REVENUE | EXPENSE | EQUITY"),
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*LEDGER_READERS)),
):
    query = db.query(Account)
    if type:
        query = query.filter(Account.type == type.upper())
    if is_active is not None:
        query = query.filter(Account.is_active.is_(is_active))
    rows = query.order_by(Account.code.asc()).all()
    return ok([AccountOut.model_validate(a) for a in rows])


@router.get("/{account_id}")
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*LEDGER_READERS)),
):
    a = db.get(Account, account_id)
    if not a:
        return err("Account not found", 404)
    return ok(AccountOut.model_validate(a))


@router.get("/{account_id}/balance-sheet")
def account_balance_sheet(
    account_id: int,
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*LEDGER_READERS)),
):
    return ok(ledger_service.account_balance_sheet(db, account_id, date_from=date_from, date_to=date_to))


@router.post("", status_code=201)
def create_account(
    payload: AccountCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ADMIN)),
):
    a = ledger_service.create_account(db, payload.model_dump(), currency=settings.DEFAULT_CURRENCY)
    return ok(AccountOut.model_validate(a), status_code=201)


@router.put("/{account_id}")
def update_account(
    account_id: int,
    payload: AccountUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ADMIN)),
):
    a = db.get(Account, account_id)
    if not a:
        return err("Account not found", 404)

    try:
        for k, v in payload.model_dump(exclude_unset=True).items():
            if k in ("name", "is_active") and v is None:
                continue
            setattr(a, k, v)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(a)
    logger.info("Account %s updated by %s", a.code, user.email)
    return ok(AccountOut.model_validate(a))
