# app/models/ledger.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, Text, Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from app.db.base import Base

ACCOUNT_TYPES = ("ASSET", "LIABILITY", "REVENUE", "EXPENSE", "EQUITY")


class Account(Base):
    """
    Chart-of-accounts entry with a running balance.
    balance is written only by app.services.ledger (post / reverse).
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(20), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)  # see ACCOUNT_TYPES
    balance = Column(Numeric(16, 2), nullable=False, default=Decimal("0.00"))
    currency = Column(String(8), nullable=False, default="RUB")
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class FinTransaction(Base):
    """
    Append-only double-entry posting. Reversal inserts a new row with
    reversal_of_id pointing at the original.
    """
    __tablename__ = "fin_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_fin_transactions_amount_positive"),
        CheckConstraint("debit_account_id <> credit_account_id", name="ck_fin_transactions_distinct_accounts"),
        Index("ix_fin_transactions_date", "transaction_date"),
    )

    id = Column(Integer, primary_key=True)
    debit_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    credit_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    amount = Column(Numeric(16, 2), nullable=False)

    cost_operation_id = Column(
        Integer, ForeignKey("cost_operations.id", ondelete="SET NULL"), nullable=True
    )
    income_operation_id = Column(
        Integer, ForeignKey("income_operations.id", ondelete="SET NULL"), nullable=True
    )
    reversal_of_id = Column(Integer, ForeignKey("fin_transactions.id"), nullable=True, index=True)

    description = Column(Text, nullable=True)
    transaction_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    debit_account = relationship("Account", foreign_keys=[debit_account_id])
    credit_account = relationship("Account", foreign_keys=[credit_account_id])
    cost_operation = relationship("CostOperation")
    income_operation = relationship("IncomeOperation")
    reversal_of = relationship("FinTransaction", remote_side=[id])
