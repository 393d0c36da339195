# app/schemas/ledger.py
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.types import Money

AccountType = Literal["ASSET", "LIABILITY", "REVENUE", "EXPENSE", "EQUITY"]


class AccountCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=255)
    type: AccountType
    currency: str | None = None
    description: str | None = None
    is_active: bool = True


class AccountUpdate(BaseModel):
    # type and balance are fixed once postings exist
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    is_active: bool | None = None


class AccountOut(BaseModel):
    id: int
    code: str
    name: str
    type: str
    balance: Money
    currency: str
    description: str | None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AccountBrief(BaseModel):
    id: int
    code: str
    name: str
    type: str

    model_config = ConfigDict(from_attributes=True)


class TransactionCreate(BaseModel):
    debit_account_id: int
    credit_account_id: int
    # sign / zero checks are domain rules (400), not schema rules
    amount: Money
    description: str | None = None
    transaction_date: datetime | None = None
    cost_operation_id: int | None = None
    income_operation_id: int | None = None


class TransactionReverseIn(BaseModel):
    description: str | None = None


class TransactionOut(BaseModel):
    id: int
    debit_account_id: int
    credit_account_id: int
    amount: Money
    description: str | None
    transaction_date: datetime
    cost_operation_id: int | None
    income_operation_id: int | None
    reversal_of_id: int | None
    created_by_id: int | None
    created_at: datetime

    debit_account: AccountBrief | None = None
    credit_account: AccountBrief | None = None

    model_config = ConfigDict(from_attributes=True)
