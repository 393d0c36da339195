# app/schemas/order_expense.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.types import Money, Number

ExpenseCategory = Literal["PACKAGING", "LABOR", "RENT", "LOGISTICS", "MATERIALS", "OTHER"]
ExpenseStatus = Literal["PLANNED", "CONFIRMED", "PAID", "CANCELLED"]
ServiceUnit = Literal["PIECE", "KG", "CUBIC_METER", "ORDER", "PALLET", "DAY", "MONTH"]


class OrderExpenseCreate(BaseModel):
    category: ExpenseCategory = "OTHER"
    subcategory: str | None = None
    vendor_id: int | None = None
    vendor_service_id: int | None = None
    description: str | None = None
    unit: ServiceUnit = "PIECE"

    quantity: Number | None = Field(None, gt=0)
    # defaults to the bound vendor service price
    unit_price: Money | None = Field(None, ge=0)
    planned_amount: Money | None = Field(None, ge=0)

    is_price_locked: bool = False
    notes: str | None = None


class OrderExpenseUpdate(BaseModel):
    category: ExpenseCategory | None = None
    subcategory: str | None = None
    vendor_id: int | None = None
    vendor_service_id: int | None = None
    description: str | None = None
    unit: ServiceUnit | None = None

    quantity: Number | None = Field(None, gt=0)
    unit_price: Money | None = Field(None, ge=0)
    planned_amount: Money | None = Field(None, ge=0)
    actual_amount: Money | None = Field(None, ge=0)

    is_price_locked: bool | None = None
    status: ExpenseStatus | None = None
    notes: str | None = None


class OrderExpenseBulkCreate(BaseModel):
    expenses: List[OrderExpenseCreate] = Field(default_factory=list)


class VendorBrief(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class VendorServiceBrief(BaseModel):
    id: int
    name: str
    type: str
    unit: str
    price: Money

    model_config = ConfigDict(from_attributes=True)


class OrderExpenseOut(BaseModel):
    id: int
    order_id: int
    category: str
    subcategory: str | None
    vendor_id: int | None
    vendor_service_id: int | None
    description: str
    unit: str

    quantity: Number
    unit_price: Money
    total_amount: Money
    planned_amount: Money
    actual_amount: Money

    is_price_locked: bool
    price_locked_at: datetime | None
    original_price: Money | None

    status: str
    notes: str | None
    created_at: datetime
    updated_at: datetime

    vendor: VendorBrief | None = None
    vendor_service: VendorServiceBrief | None = None

    model_config = ConfigDict(from_attributes=True)


# ---------------- templates ----------------

class ExpenseTemplateItemIn(BaseModel):
    category: ExpenseCategory = "OTHER"
    subcategory: str | None = None
    description: str = Field(..., min_length=1, max_length=500)
    vendor_service_id: int | None = None
    unit: ServiceUnit = "PIECE"
    default_quantity: Number = Field(Decimal("1"), gt=0)
    default_price: Money = Field(Decimal("0"), ge=0)
    quantity_formula: str | None = Field(None, max_length=255)
    is_required: bool = True
    sort_order: int | None = None


class ExpenseTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    product_category: str | None = None
    min_weight: Number | None = Field(None, ge=0)
    max_weight: Number | None = Field(None, ge=0)
    delivery_method: str | None = None
    region: str | None = None
    is_active: bool = True
    items: List[ExpenseTemplateItemIn] = Field(default_factory=list)


class ExpenseTemplateUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    product_category: str | None = None
    min_weight: Number | None = Field(None, ge=0)
    max_weight: Number | None = Field(None, ge=0)
    delivery_method: str | None = None
    region: str | None = None
    is_active: bool | None = None
    # when present, replaces all items
    items: List[ExpenseTemplateItemIn] | None = None


class ExpenseTemplateItemOut(BaseModel):
    id: int
    category: str
    subcategory: str | None
    description: str
    vendor_service_id: int | None
    unit: str
    default_quantity: Number
    default_price: Money
    quantity_formula: str | None
    is_required: bool
    sort_order: int

    vendor_service: VendorServiceBrief | None = None

    model_config = ConfigDict(from_attributes=True)


class ExpenseTemplateOut(BaseModel):
    id: int
    name: str
    description: str | None
    product_category: str | None
    min_weight: Number | None
    max_weight: Number | None
    delivery_method: str | None
    region: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    items: List[ExpenseTemplateItemOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
