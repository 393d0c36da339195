# app/services/warehouses.py
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.models.warehouse import ProductStock, StockMovement, StorageLocation, Warehouse, WarehouseTask
from app.schemas.warehouse import LocationCreate, LocationUpdate, WarehouseCreate, WarehouseUpdate

logger = logging.getLogger(__name__)


def _norm_code(code: str) -> str:
    return code.strip().upper()


def _ensure_code_free(db: Session, code: str, *, exclude_id: Optional[int] = None) -> None:
    q = db.query(Warehouse.id).filter(Warehouse.code == code)
    if exclude_id:
        q = q.filter(Warehouse.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=409, detail="Warehouse code already exists")


def _ensure_location_code_free(db: Session, warehouse_id: int, code: str, *, exclude_id: Optional[int] = None) -> None:
    q = db.query(StorageLocation.id).filter(
        StorageLocation.warehouse_id == warehouse_id,
        StorageLocation.code == code,
    )
    if exclude_id:
        q = q.filter(StorageLocation.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=409, detail="Location code already exists in this warehouse")


# ---------------------------------------------------------------------------
# warehouses
# ---------------------------------------------------------------------------

def list_warehouses(db: Session, *, status: Optional[str] = None, type: Optional[str] = None) -> List[Warehouse]:
    q = db.query(Warehouse).options(selectinload(Warehouse.locations), selectinload(Warehouse.tasks))
    if status:
        q = q.filter(Warehouse.status == status)
    if type:
        q = q.filter(Warehouse.type == type)
    return q.order_by(Warehouse.name.asc(), Warehouse.id.asc()).all()


def get_warehouse(db: Session, warehouse_id: int) -> Warehouse:
    w = db.get(Warehouse, int(warehouse_id))
    if not w:
        raise HTTPException(status_code=404, detail="Warehouse not found")
    return w


def create_warehouse(db: Session, inp: WarehouseCreate) -> Warehouse:
    code = _norm_code(inp.code)
    _ensure_code_free(db, code)
    w = Warehouse(
        name=inp.name.strip(),
        code=code,
        address=inp.address,
        type=inp.type,
        description=inp.description,
    )
    try:
        db.add(w)
        db.commit()
        db.refresh(w)
    except Exception:
        db.rollback()
        raise
    logger.info("Warehouse %s created", w.code)
    return w


def update_warehouse(db: Session, warehouse_id: int, inp: WarehouseUpdate) -> Warehouse:
    w = get_warehouse(db, warehouse_id)
    data = inp.model_dump(exclude_unset=True)
    if data.get("code") is not None:
        data["code"] = _norm_code(data["code"])
        _ensure_code_free(db, data["code"], exclude_id=w.id)
    for k, v in data.items():
        if v is None and k in ("name", "code", "type", "status"):
            continue
        setattr(w, k, v)
    try:
        db.commit()
        db.refresh(w)
    except Exception:
        db.rollback()
        raise
    return w


def delete_warehouse(db: Session, warehouse_id: int) -> None:
    w = get_warehouse(db, warehouse_id)
    if db.query(WarehouseTask.id).filter(WarehouseTask.warehouse_id == w.id).first():
        raise HTTPException(status_code=409, detail="Warehouse has tasks and cannot be deleted")
    for loc in w.locations:
        _ensure_location_empty(db, loc)
    try:
        for loc in w.locations:
            _detach_movements(db, loc.id)
        db.delete(w)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Warehouse %s deleted", w.code)


# ---------------------------------------------------------------------------
# locations
# ---------------------------------------------------------------------------

def get_location(db: Session, location_id: int) -> StorageLocation:
    loc = db.get(StorageLocation, int(location_id))
    if not loc:
        raise HTTPException(status_code=404, detail="Storage location not found")
    return loc


def list_locations(
    db: Session,
    warehouse_id: int,
    *,
    status: Optional[str] = None,
    zone: Optional[str] = None,
) -> List[StorageLocation]:
    get_warehouse(db, warehouse_id)
    q = db.query(StorageLocation).filter(StorageLocation.warehouse_id == int(warehouse_id))
    if status:
        q = q.filter(StorageLocation.status == status)
    if zone:
        q = q.filter(StorageLocation.zone == zone)
    return q.order_by(StorageLocation.code.asc()).all()


def create_location(db: Session, warehouse_id: int, inp: LocationCreate) -> StorageLocation:
    w = get_warehouse(db, warehouse_id)
    code = _norm_code(inp.code)
    _ensure_location_code_free(db, w.id, code)
    data = inp.model_dump()
    data["code"] = code
    loc = StorageLocation(warehouse_id=w.id, **data)
    try:
        db.add(loc)
        db.commit()
        db.refresh(loc)
    except Exception:
        db.rollback()
        raise
    logger.info("Location %s created in warehouse %s", loc.code, w.code)
    return loc


def update_location(db: Session, location_id: int, inp: LocationUpdate) -> StorageLocation:
    loc = get_location(db, location_id)
    data = inp.model_dump(exclude_unset=True)
    if data.get("code") is not None:
        data["code"] = _norm_code(data["code"])
        _ensure_location_code_free(db, loc.warehouse_id, data["code"], exclude_id=loc.id)
    for k, v in data.items():
        if v is None and k in ("code", "type", "status"):
            continue
        setattr(loc, k, v)
    try:
        db.commit()
        db.refresh(loc)
    except Exception:
        db.rollback()
        raise
    return loc


def _ensure_location_empty(db: Session, loc: StorageLocation) -> None:
    held = (
        db.query(func.coalesce(func.sum(ProductStock.quantity), 0))
        .filter(ProductStock.location_id == loc.id)
        .scalar()
    )
    if int(held or 0) > 0:
        raise HTTPException(status_code=409, detail=f"Location {loc.code} still holds stock")


def _detach_movements(db: Session, location_id: int) -> None:
    # the journal outlives the cell it mentions
    db.query(StockMovement).filter(StockMovement.from_location_id == location_id).update(
        {StockMovement.from_location_id: None}, synchronize_session=False
    )
    db.query(StockMovement).filter(StockMovement.to_location_id == location_id).update(
        {StockMovement.to_location_id: None}, synchronize_session=False
    )


def delete_location(db: Session, location_id: int) -> None:
    loc = get_location(db, location_id)
    _ensure_location_empty(db, loc)
    try:
        _detach_movements(db, loc.id)
        db.delete(loc)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Location %s deleted", loc.code)
