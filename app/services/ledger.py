# app/services/ledger.py
"""
Double-entry postings over the chart of accounts.

add_posting() and reverse_transaction() are the only writers of
Account.balance. Both lock the two accounts (ascending id, to avoid deadlocks
between opposite postings), insert the FinTransaction and apply the balance
deltas in one database transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from app.models.ledger import Account, FinTransaction
from app.services.money import D, money2

logger = logging.getLogger(__name__)

DEBIT_POSITIVE = {"ASSET", "EXPENSE"}
CREDIT_POSITIVE = {"LIABILITY", "REVENUE", "EQUITY"}


def debit_delta(account_type: str, amount) -> Decimal:
    return D(amount) if account_type in DEBIT_POSITIVE else -D(amount)


def credit_delta(account_type: str, amount) -> Decimal:
    return D(amount) if account_type in CREDIT_POSITIVE else -D(amount)


def _lock_accounts(db: Session, debit_id: int, credit_id: int) -> Tuple[Account, Account]:
    rows = (
        db.query(Account)
        .filter(Account.id.in_([debit_id, credit_id]))
        .order_by(Account.id.asc())
        .with_for_update()
        .all()
    )
    by_id = {a.id: a for a in rows}
    debit = by_id.get(debit_id)
    credit = by_id.get(credit_id)
    if not debit:
        raise HTTPException(status_code=404, detail="Debit account not found")
    if not credit:
        raise HTTPException(status_code=404, detail="Credit account not found")
    return debit, credit


def _apply(debit: Account, credit: Account, amount: Decimal) -> None:
    debit.balance = money2(D(debit.balance) + debit_delta(debit.type, amount))
    credit.balance = money2(D(credit.balance) + credit_delta(credit.type, amount))


def add_posting(
    db: Session,
    *,
    debit_account_id: int,
    credit_account_id: int,
    amount,
    description: Optional[str] = None,
    transaction_date: Optional[datetime] = None,
    cost_operation_id: Optional[int] = None,
    income_operation_id: Optional[int] = None,
    user_id: Optional[int] = None,
) -> FinTransaction:
    """
    Validate, lock, insert and apply one posting inside the caller's
    transaction. Flushes, does not commit.
    """
    amt = money2(amount)
    if amt <= 0:
        raise HTTPException(status_code=400, detail="Amount must be greater than 0")
    if int(debit_account_id) == int(credit_account_id):
        raise HTTPException(status_code=400, detail="Debit and credit accounts must differ")

    debit, credit = _lock_accounts(db, int(debit_account_id), int(credit_account_id))
    tx = FinTransaction(
        debit_account_id=debit.id,
        credit_account_id=credit.id,
        amount=amt,
        description=description,
        transaction_date=transaction_date or datetime.utcnow(),
        cost_operation_id=cost_operation_id,
        income_operation_id=income_operation_id,
        created_by_id=user_id,
    )
    db.add(tx)
    _apply(debit, credit, amt)
    db.flush()
    logger.info("Posted tx %s: Dr %s / Cr %s %s", tx.id, debit.code, credit.code, amt)
    return tx


def post_transaction(db: Session, **kwargs) -> FinTransaction:
    """add_posting() committed as its own transaction."""
    try:
        tx = add_posting(db, **kwargs)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(tx)
    return tx


def reverse_transaction(
    db: Session,
    transaction_id: int,
    *,
    description: Optional[str] = None,
    user_id: Optional[int] = None,
) -> FinTransaction:
    original = db.get(FinTransaction, int(transaction_id))
    if not original:
        raise HTTPException(status_code=404, detail="Transaction not found")

    try:
        # swapped: the old credit account is debited and vice versa
        debit, credit = _lock_accounts(db, original.credit_account_id, original.debit_account_id)
        amt = money2(original.amount)

        tx = FinTransaction(
            debit_account_id=debit.id,
            credit_account_id=credit.id,
            amount=amt,
            description=description or f"Reversal of transaction {original.id}",
            transaction_date=datetime.utcnow(),
            cost_operation_id=original.cost_operation_id,
            income_operation_id=original.income_operation_id,
            reversal_of_id=original.id,
            created_by_id=user_id,
        )
        db.add(tx)

        # inverse of the original's deltas
        orig_debit, orig_credit = credit, debit
        orig_debit.balance = money2(D(orig_debit.balance) - debit_delta(orig_debit.type, amt))
        orig_credit.balance = money2(D(orig_credit.balance) - credit_delta(orig_credit.type, amt))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(tx)
    logger.info("Reversed tx %s with tx %s", original.id, tx.id)
    return tx


def list_transactions(
    db: Session,
    *,
    account_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = 1,
    limit: int = 50,
) -> Tuple[List[FinTransaction], int]:
    q = db.query(FinTransaction)
    if account_id:
        q = q.filter(or_(
            FinTransaction.debit_account_id == account_id,
            FinTransaction.credit_account_id == account_id,
        ))
    if date_from:
        q = q.filter(FinTransaction.transaction_date >= date_from)
    if date_to:
        q = q.filter(FinTransaction.transaction_date <= date_to)

    total = q.count()
    rows = (
        q.options(joinedload(FinTransaction.debit_account), joinedload(FinTransaction.credit_account))
        .order_by(FinTransaction.transaction_date.desc(), FinTransaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def account_balance_sheet(
    db: Session,
    account_id: int,
    *,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Debit / credit turnover of one account over a period.
    opening is the current running balance. closing applies the turnovers
    with the account type's sign convention, the same deltas add_posting() uses.
    """
    account = db.get(Account, int(account_id))
    if not account:
        raise HTTPException(status_code=404, detail="Account not found")

    def _turnover(col) -> Decimal:
        q = db.query(func.coalesce(func.sum(FinTransaction.amount), 0)).filter(col == account.id)
        if date_from:
            q = q.filter(FinTransaction.transaction_date >= date_from)
        if date_to:
            q = q.filter(FinTransaction.transaction_date <= date_to)
        return money2(q.scalar())

    debit_turnover = _turnover(FinTransaction.debit_account_id)
    credit_turnover = _turnover(FinTransaction.credit_account_id)
    opening = money2(account.balance)

    return {
        "account": {
            "id": account.id,
            "code": account.code,
            "name": account.name,
            "type": account.type,
        },
        "period": {"date_from": date_from, "date_to": date_to},
        "opening_balance": opening,
        "debit_turnover": debit_turnover,
        "credit_turnover": credit_turnover,
        "closing_balance": money2(
            opening
            + debit_delta(account.type, debit_turnover)
            + credit_delta(account.type, credit_turnover)
        ),
    }


def create_account(db: Session, data: Dict[str, Any], *, currency: str) -> Account:
    code = (data.get("code") or "").strip()
    if db.query(Account.id).filter(Account.code == code).first():
        raise HTTPException(status_code=409, detail=f"Account code {code} already exists")

    acc = Account(
        code=code,
        name=data["name"].strip(),
        type=data["type"],
        balance=Decimal("0.00"),
        currency=data.get("currency") or currency,
        description=data.get("description"),
        is_active=data.get("is_active", True),
    )
    try:
        db.add(acc)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(acc)
    logger.info("Account %s (%s) created", acc.code, acc.type)
    return acc
