# app/schemas/client.py
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.schemas.types import Money


class ClientBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    company_name: str | None = None
    inn: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    tariff_rate: Money | None = Field(None, ge=0)
    notes: str | None = None
    is_active: bool = True


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    company_name: str | None = None
    inn: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    tariff_rate: Money | None = Field(None, ge=0)
    notes: str | None = None
    is_active: bool | None = None


class ClientOut(BaseModel):
    id: int
    name: str
    company_name: str | None
    inn: str | None
    email: str | None
    phone: str | None
    address: str | None
    tariff_rate: Money | None
    notes: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
