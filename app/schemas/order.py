# app/schemas/order.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.types import Money, Number

OrderStatus = Literal[
    "NEW", "CONFIRMED", "IN_PROGRESS", "SHIPPED",
    "DELIVERED", "CANCELLED", "RETURNED",
]


class OrderItemIn(BaseModel):
    sku: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(1, gt=0)
    weight: Number = Field(Decimal("0"), ge=0)
    volume: Number = Field(Decimal("0"), ge=0)
    unit_cost: Money = Field(Decimal("0"), ge=0)
    unit_price: Money = Field(Decimal("0"), ge=0)


class OrderCreate(BaseModel):
    client_id: int
    manager_id: int | None = None
    status: OrderStatus = "NEW"
    shipping_address: str | None = None
    order_date: datetime | None = None
    notes: str | None = None

    # used as income until items carry a sale price
    total_income: Money | None = Field(None, ge=0)

    items: List[OrderItemIn] = Field(default_factory=list)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemsReplace(BaseModel):
    items: List[OrderItemIn] = Field(default_factory=list)


class OrderItemOut(BaseModel):
    id: int
    sku: str
    name: str
    quantity: int
    weight: Number
    volume: Number
    unit_cost: Money
    unit_price: Money

    model_config = ConfigDict(from_attributes=True)


class PartyBrief(BaseModel):
    id: int
    name: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ManagerBrief(BaseModel):
    id: int
    email: str
    full_name: str

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    order_number: str
    client_id: int
    manager_id: int | None
    status: str
    shipping_address: str | None

    estimated_cost: Money
    actual_cost: Money
    total_income: Money
    profit: Money
    margin_percent: Number

    order_date: datetime
    shipped_date: datetime | None
    delivered_date: datetime | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    client: PartyBrief | None = None
    manager: ManagerBrief | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderDetailOut(OrderOut):
    items: List[OrderItemOut] = Field(default_factory=list)
