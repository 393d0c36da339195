# app/api/routes_clients.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_roles
from app.core.rbac import EDITORS
from app.models.client import Client
from app.models.order import Order
from app.models.user import User
from app.schemas.client import ClientCreate, ClientOut, ClientUpdate
from app.utils.resp import ok, err, page_meta

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


@router.get("")
def list_clients(
    q: Optional[str] = Query(None, description="Search name / company / email / tax id"),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    query = db.query(Client)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(or_(
            Client.name.ilike(like),
            Client.company_name.ilike(like),
            Client.email.ilike(like),
            Client.inn.ilike(like),
        ))
    if is_active is not None:
        query = query.filter(Client.is_active.is_(is_active))

    total = query.count()
    rows = query.order_by(Client.name.asc()).offset((page - 1) * limit).limit(limit).all()
    return ok([ClientOut.model_validate(c) for c in rows], meta=page_meta(page, limit, total))


@router.get("/{client_id}")
def get_client(
    client_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    c = db.get(Client, client_id)
    if not c:
        return err("Client not found", 404)

    orders_count = db.query(Order.id).filter(Order.client_id == c.id).count()
    data = ClientOut.model_validate(c).model_dump()
    data["orders_count"] = orders_count
    return ok(data)


@router.post("", status_code=201)
def create_client(
    payload: ClientCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    c = Client(**payload.model_dump())
    c.name = c.name.strip()
    try:
        db.add(c)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(c)
    logger.info("Client %s created by %s", c.id, user.email)
    return ok(ClientOut.model_validate(c), status_code=201)


@router.put("/{client_id}")
def update_client(
    client_id: int,
    payload: ClientUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    c = db.get(Client, client_id)
    if not c:
        return err("Client not found", 404)

    data = payload.model_dump(exclude_unset=True)
    try:
        for k, v in data.items():
            if k in ("name", "is_active") and v is None:
                continue
            setattr(c, k, v)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(c)
    logger.info("Client %s updated by %s", c.id, user.email)
    return ok(ClientOut.model_validate(c))


@router.delete("/{client_id}")
def delete_client(
    client_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    c = db.get(Client, client_id)
    if not c:
        return err("Client not found", 404)

    if db.query(Order.id).filter(Order.client_id == c.id).first():
        return err("Client has orders and cannot be deleted; deactivate instead", 409)

    try:
        db.delete(c)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Client %s deleted by %s", client_id, user.email)
    return ok({"id": client_id, "deleted": True})
