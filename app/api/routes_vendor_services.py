# app/api/routes_vendor_services.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_roles
from app.core.config import settings
from app.core.rbac import ADMIN, EDITORS
from app.models.user import User
from app.models.vendor import VendorService
from app.schemas.vendor import (
    VendorServiceCreate,
    VendorServiceDetailOut,
    VendorServiceOut,
    VendorServiceUpdate,
)
from app.services import vendor_services as svc_service
from app.utils.resp import ok

router = APIRouter(prefix="/vendor-services", tags=["Vendor services"])


@router.get("")
def list_vendor_services(
    vendor_id: Optional[int] = Query(None),
    type: Optional[str] = Query(None, description="STORAGE | PICKING | ..."),
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    query = db.query(VendorService)
    if vendor_id:
        query = query.filter(VendorService.vendor_id == vendor_id)
    if type:
        query = query.filter(VendorService.type == type.upper())
    if is_active is not None:
        query = query.filter(VendorService.is_active.is_(is_active))

    rows = query.order_by(VendorService.vendor_id.asc(), VendorService.type.asc(), VendorService.name.asc()).all()
    return ok([VendorServiceOut.model_validate(s) for s in rows])


@router.get("/{service_id}")
def get_vendor_service(
    service_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(VendorServiceDetailOut.model_validate(svc_service.get_service(db, service_id)))


@router.post("", status_code=201)
def create_vendor_service(
    payload: VendorServiceCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    s = svc_service.create_service(db, payload, default_currency=settings.DEFAULT_CURRENCY)
    return ok(VendorServiceDetailOut.model_validate(s), status_code=201)


@router.put("/{service_id}")
def update_vendor_service(
    service_id: int,
    payload: VendorServiceUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    s = svc_service.update_service(db, service_id, payload, user_id=user.id)
    return ok(VendorServiceDetailOut.model_validate(s))


@router.delete("/{service_id}")
def delete_vendor_service(
    service_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ADMIN)),
):
    svc_service.delete_service(db, service_id)
    return ok({"id": service_id, "deleted": True})
