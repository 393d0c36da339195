# app/schemas/user.py
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, EmailStr, Field

UserRole = Literal["ADMIN", "MANAGER", "ANALYST"]


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field(..., min_length=1, max_length=120)
    role: UserRole = "MANAGER"
    phone: str | None = Field(None, max_length=50)


class UserUpdate(BaseModel):
    # password: None => keep the current hash
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=6, max_length=128)
    first_name: str | None = Field(None, min_length=1, max_length=120)
    last_name: str | None = Field(None, min_length=1, max_length=120)
    role: UserRole | None = None
    phone: str | None = Field(None, max_length=50)
    is_active: bool | None = None
