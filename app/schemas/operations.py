# app/schemas/operations.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.types import Money, Number

OperationType = Literal["CHARGE", "REFUND", "ADJUSTMENT"]


class CostOperationCreate(BaseModel):
    order_id: int
    vendor_service_id: int
    quantity: Number = Field(..., gt=0)
    # overrides quantity x snapshot price when the vendor bills differently
    actual_amount: Money | None = Field(None, ge=0)
    operation_type: OperationType = "CHARGE"
    description: str | None = None
    operation_date: datetime | None = None


class CostOperationUpdate(BaseModel):
    quantity: Number | None = Field(None, gt=0)
    actual_amount: Money | None = Field(None, ge=0)
    operation_type: OperationType | None = None
    description: str | None = None
    operation_date: datetime | None = None


class CostOperationOut(BaseModel):
    id: int
    order_id: int
    vendor_id: int
    vendor_service_id: int
    operation_type: str
    quantity: Number
    unit_price: Money
    calculated_amount: Money
    actual_amount: Money
    description: str | None
    operation_date: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class IncomeOperationCreate(BaseModel):
    order_id: int
    invoice_amount: Money = Field(..., gt=0)
    paid_amount: Money = Field(Decimal("0"), ge=0)
    payment_method: str | None = None
    payment_date: datetime | None = None
    description: str | None = None


class IncomeOperationUpdate(BaseModel):
    invoice_amount: Money | None = Field(None, gt=0)
    paid_amount: Money | None = Field(None, ge=0)
    payment_method: str | None = None
    payment_date: datetime | None = None
    description: str | None = None


class IncomePaymentIn(BaseModel):
    amount: Money = Field(..., gt=0)
    payment_method: str | None = None
    payment_date: datetime | None = None


class IncomeOperationOut(BaseModel):
    id: int
    order_id: int
    client_id: int
    invoice_amount: Money
    paid_amount: Money
    payment_method: str | None
    payment_date: datetime | None
    description: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
