# app/api/routes_users.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_roles
from app.core.rbac import ADMIN
from app.models.user import User
from app.schemas.auth import UserOut
from app.schemas.user import UserCreate, UserUpdate
from app.services import users as user_service
from app.utils.resp import ok

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("")
def list_users(
    role: Optional[str] = Query(None, description="ADMIN | MANAGER | ANALYST"),
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    me: User = Depends(require_roles(ADMIN)),
):
    rows = user_service.list_users(db, role=role.upper() if role else None, is_active=is_active)
    return ok([UserOut.model_validate(u) for u in rows])


@router.get("/{user_id}")
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_roles(ADMIN)),
):
    return ok(UserOut.model_validate(user_service.get_user(db, user_id)))


@router.post("", status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    me: User = Depends(require_roles(ADMIN)),
):
    u = user_service.create_user(db, payload)
    return ok(UserOut.model_validate(u), status_code=201)


@router.put("/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(require_roles(ADMIN)),
):
    return ok(UserOut.model_validate(user_service.update_user(db, user_id, payload, actor=me)))


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_roles(ADMIN)),
):
    user_service.delete_user(db, user_id, actor=me)
    return ok({"id": user_id, "deleted": True})
