# app/api/routes_vendors.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from app.api.deps import get_db, current_user, require_roles
from app.core.rbac import ADMIN, EDITORS
from app.models.operations import CostOperation
from app.models.user import User
from app.models.vendor import Vendor
from app.schemas.vendor import VendorCreate, VendorDetailOut, VendorOut, VendorUpdate
from app.utils.resp import ok, err, page_meta

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vendors", tags=["Vendors"])


@router.get("")
def list_vendors(
    q: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="ACTIVE | INACTIVE | BLOCKED"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    query = db.query(Vendor)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(or_(Vendor.name.ilike(like), Vendor.legal_name.ilike(like), Vendor.inn.ilike(like)))
    if status:
        query = query.filter(Vendor.status == status.upper())

    total = query.count()
    rows = query.order_by(Vendor.name.asc()).offset((page - 1) * limit).limit(limit).all()
    return ok([VendorOut.model_validate(v) for v in rows], meta=page_meta(page, limit, total))


@router.get("/{vendor_id}")
def get_vendor(
    vendor_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    v = (
        db.query(Vendor)
        .options(selectinload(Vendor.services))
        .filter(Vendor.id == vendor_id)
        .first()
    )
    if not v:
        return err("Vendor not found", 404)
    return ok(VendorDetailOut.model_validate(v))


@router.post("", status_code=201)
def create_vendor(
    payload: VendorCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    v = Vendor(**payload.model_dump())
    v.name = v.name.strip()
    try:
        db.add(v)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(v)
    logger.info("Vendor %s created by %s", v.id, user.email)
    return ok(VendorOut.model_validate(v), status_code=201)


@router.put("/{vendor_id}")
def update_vendor(
    vendor_id: int,
    payload: VendorUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    v = db.get(Vendor, vendor_id)
    if not v:
        return err("Vendor not found", 404)

    try:
        for k, val in payload.model_dump(exclude_unset=True).items():
            if k in ("name", "status") and val is None:
                continue
            setattr(v, k, val)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(v)
    logger.info("Vendor %s updated by %s", v.id, user.email)
    return ok(VendorOut.model_validate(v))


@router.delete("/{vendor_id}")
def delete_vendor(
    vendor_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ADMIN)),
):
    v = db.get(Vendor, vendor_id)
    if not v:
        return err("Vendor not found", 404)

    if db.query(CostOperation.id).filter(CostOperation.vendor_id == v.id).first():
        return err("Vendor has cost operations and cannot be deleted; block it instead", 409)

    try:
        db.delete(v)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Vendor %s deleted by %s", vendor_id, user.email)
    return ok({"id": vendor_id, "deleted": True})
