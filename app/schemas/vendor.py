# app/schemas/vendor.py
from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.types import Money

VendorStatus = Literal["ACTIVE", "INACTIVE", "BLOCKED"]
ServiceType = Literal[
    "STORAGE", "PICKING", "PACKING", "SHIPPING",
    "RECEIVING", "LABELING", "RETURNS", "OTHER",
]
ServiceUnit = Literal["PIECE", "KG", "CUBIC_METER", "ORDER", "PALLET", "DAY", "MONTH"]


class VendorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    legal_name: str | None = None
    inn: str | None = None
    kpp: str | None = None
    address: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    status: VendorStatus = "ACTIVE"
    notes: str | None = None


class VendorUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    legal_name: str | None = None
    inn: str | None = None
    kpp: str | None = None
    address: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    status: VendorStatus | None = None
    notes: str | None = None


class VendorOut(BaseModel):
    id: int
    name: str
    legal_name: str | None
    inn: str | None
    kpp: str | None
    address: str | None
    contact_name: str | None
    contact_phone: str | None
    contact_email: str | None
    status: str
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VendorServiceCreate(BaseModel):
    vendor_id: int
    name: str = Field(..., min_length=1, max_length=255)
    type: ServiceType
    unit: ServiceUnit
    price: Money = Field(..., ge=0)
    currency: str | None = None
    min_quantity: Money | None = Field(None, ge=0)
    max_quantity: Money | None = Field(None, ge=0)
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    is_active: bool = True
    notes: str | None = None


class VendorServiceUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    type: ServiceType | None = None
    unit: ServiceUnit | None = None
    price: Money | None = Field(None, ge=0)
    currency: str | None = None
    min_quantity: Money | None = Field(None, ge=0)
    max_quantity: Money | None = Field(None, ge=0)
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    is_active: bool | None = None
    notes: str | None = None


class PriceHistoryOut(BaseModel):
    id: int
    old_price: Money
    new_price: Money
    changed_at: datetime
    changed_by_id: int | None

    model_config = ConfigDict(from_attributes=True)


class VendorServiceOut(BaseModel):
    id: int
    vendor_id: int
    name: str
    type: str
    unit: str
    price: Money
    currency: str
    min_quantity: Money | None
    max_quantity: Money | None
    valid_from: datetime
    valid_to: datetime | None
    is_active: bool
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VendorServiceDetailOut(VendorServiceOut):
    vendor: VendorOut | None = None
    price_history: List[PriceHistoryOut] = Field(default_factory=list)


class VendorDetailOut(VendorOut):
    services: List[VendorServiceOut] = Field(default_factory=list)
