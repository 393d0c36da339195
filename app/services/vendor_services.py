# app/services/vendor_services.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session, joinedload, selectinload

from app.models.vendor import PriceHistory, Vendor, VendorService
from app.schemas.vendor import VendorServiceCreate, VendorServiceUpdate
from app.services.money import money2

logger = logging.getLogger(__name__)


def get_service(db: Session, service_id: int) -> VendorService:
    svc = (
        db.query(VendorService)
        .options(joinedload(VendorService.vendor), selectinload(VendorService.price_history))
        .filter(VendorService.id == int(service_id))
        .first()
    )
    if not svc:
        raise HTTPException(status_code=404, detail="Vendor service not found")
    return svc


def create_service(db: Session, inp: VendorServiceCreate, *, default_currency: str) -> VendorService:
    if not db.get(Vendor, int(inp.vendor_id)):
        raise HTTPException(status_code=404, detail="Vendor not found")

    data = inp.model_dump()
    data["price"] = money2(data["price"])
    data["currency"] = data.get("currency") or default_currency
    if data.get("valid_from") is None:
        data.pop("valid_from")

    svc = VendorService(**data)
    try:
        db.add(svc)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Vendor service %s created (vendor %s, %s %s @ %s)", svc.id, svc.vendor_id, svc.type, svc.unit, svc.price)
    return get_service(db, svc.id)


def update_service(
    db: Session,
    service_id: int,
    inp: VendorServiceUpdate,
    *,
    user_id: Optional[int] = None,
) -> VendorService:
    """
    Appends a PriceHistory row whenever the price actually changes.
    """
    svc = get_service(db, service_id)
    data = inp.model_dump(exclude_unset=True)

    try:
        new_price = data.pop("price", None)
        if new_price is not None:
            new_price = money2(new_price)
            old_price = money2(svc.price)
            if new_price != old_price:
                db.add(PriceHistory(
                    vendor_service_id=svc.id,
                    old_price=old_price,
                    new_price=new_price,
                    changed_by_id=user_id,
                ))
                svc.price = new_price
                logger.info("Vendor service %s price %s -> %s", svc.id, old_price, new_price)

        for k, v in data.items():
            if k in ("name", "type", "unit", "is_active", "currency", "valid_from") and v is None:
                continue
            setattr(svc, k, v)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()
    return get_service(db, service_id)


def delete_service(db: Session, service_id: int) -> None:
    svc = get_service(db, service_id)
    try:
        db.delete(svc)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Vendor service %s deleted", service_id)
