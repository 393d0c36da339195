# app/services/users.py
from __future__ import annotations

import logging
from typing import List

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.security import hash_password
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


def _norm_email(email: str) -> str:
    return email.strip().lower()


def _ensure_email_free(db: Session, email: str, *, exclude_id: int | None = None) -> None:
    query = db.query(User.id).filter(User.email == email)
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=409, detail="Email already exists")


def get_user(db: Session, user_id: int) -> User:
    u = db.get(User, int(user_id))
    if not u:
        raise HTTPException(status_code=404, detail="User not found")
    return u


def list_users(db: Session, *, role: str | None = None, is_active: bool | None = None) -> List[User]:
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


def create_user(db: Session, inp: UserCreate) -> User:
    email = _norm_email(inp.email)
    _ensure_email_free(db, email)

    u = User(
        email=email,
        password_hash=hash_password(inp.password),
        first_name=inp.first_name.strip(),
        last_name=inp.last_name.strip(),
        role=inp.role,
        phone=inp.phone,
        is_active=True,
    )
    try:
        db.add(u)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(u)
    logger.info("User %s created with role %s", u.email, u.role)
    return u


def update_user(db: Session, user_id: int, inp: UserUpdate, *, actor: User) -> User:
    u = get_user(db, user_id)
    data = inp.model_dump(exclude_unset=True)

    if data.get("email") is not None:
        email = _norm_email(data["email"])
        _ensure_email_free(db, email, exclude_id=u.id)
        u.email = email

    if u.id == actor.id:
        # an admin cannot lock themselves out
        if data.get("is_active") is False:
            raise HTTPException(status_code=400, detail="Cannot deactivate your own account")
        if data.get("role") not in (None, u.role):
            raise HTTPException(status_code=400, detail="Cannot change your own role")

    try:
        if data.get("password"):
            u.password_hash = hash_password(data["password"])
        for k in ("first_name", "last_name"):
            if data.get(k) is not None:
                setattr(u, k, data[k].strip())
        for k in ("role", "is_active"):
            if data.get(k) is not None:
                setattr(u, k, data[k])
        if "phone" in data:
            u.phone = data["phone"]
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(u)
    logger.info("User %s updated by %s", u.id, actor.id)
    return u


def delete_user(db: Session, user_id: int, *, actor: User) -> None:
    u = get_user(db, user_id)
    if u.id == actor.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")

    email = u.email
    try:
        db.delete(u)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("User %s deleted by %s", email, actor.id)
