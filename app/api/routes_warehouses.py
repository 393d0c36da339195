# app/api/routes_warehouses.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_roles
from app.core.rbac import ADMIN, EDITORS
from app.models.user import User
from app.schemas.warehouse import (
    LocationCreate,
    LocationOut,
    LocationUpdate,
    WarehouseCreate,
    WarehouseDetailOut,
    WarehouseOut,
    WarehouseUpdate,
)
from app.services import warehouses as warehouse_service
from app.utils.resp import ok

router = APIRouter(prefix="/warehouses", tags=["Warehouses"])


@router.get("")
def list_warehouses(
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = warehouse_service.list_warehouses(
        db,
        status=status.upper() if status else None,
        type=type.upper() if type else None,
    )
    return ok([WarehouseOut.model_validate(w) for w in rows])


@router.get("/locations/{location_id}")
def get_location(
    location_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(LocationOut.model_validate(warehouse_service.get_location(db, location_id)))


@router.put("/locations/{location_id}")
def update_location(
    location_id: int,
    payload: LocationUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(LocationOut.model_validate(warehouse_service.update_location(db, location_id, payload)))


@router.delete("/locations/{location_id}")
def delete_location(
    location_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    warehouse_service.delete_location(db, location_id)
    return ok({"id": location_id, "deleted": True})


@router.get("/{warehouse_id}")
def get_warehouse(
    warehouse_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(WarehouseDetailOut.model_validate(warehouse_service.get_warehouse(db, warehouse_id)))


@router.post("", status_code=201)
def create_warehouse(
    payload: WarehouseCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    w = warehouse_service.create_warehouse(db, payload)
    return ok(WarehouseDetailOut.model_validate(w), status_code=201)


@router.put("/{warehouse_id}")
def update_warehouse(
    warehouse_id: int,
    payload: WarehouseUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(WarehouseDetailOut.model_validate(warehouse_service.update_warehouse(db, warehouse_id, payload)))


@router.delete("/{warehouse_id}")
def delete_warehouse(
    warehouse_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ADMIN)),
):
    warehouse_service.delete_warehouse(db, warehouse_id)
    return ok({"id": warehouse_id, "deleted": True})


@router.get("/{warehouse_id}/locations")
def list_locations(
    warehouse_id: int,
    status: Optional[str] = Query(None),
    zone: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = warehouse_service.list_locations(db, warehouse_id, status=status.upper() if status else None, zone=zone)
    return ok([LocationOut.model_validate(loc) for loc in rows])


@router.post("/{warehouse_id}/locations", status_code=201)
def create_location(
    warehouse_id: int,
    payload: LocationCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    loc = warehouse_service.create_location(db, warehouse_id, payload)
    return ok(LocationOut.model_validate(loc), status_code=201)
