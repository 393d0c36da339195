# app/api/routes_stock_movements.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_roles
from app.core.rbac import EDITORS
from app.models.user import User
from app.schemas.warehouse import InboundIn, MovementOut, TransferIn, WriteOffIn
from app.services import stock as stock_service
from app.utils.resp import ok

router = APIRouter(prefix="/stock-movements", tags=["Stock movements"])


@router.get("")
def list_movements(
    product_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None),
    movement_type: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = stock_service.list_movements(
        db,
        product_id=product_id,
        location_id=location_id,
        warehouse_id=warehouse_id,
        movement_type=movement_type.upper() if movement_type else None,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
    )
    return ok([MovementOut.model_validate(m) for m in rows])


@router.get("/stats")
def movement_stats(
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    return ok(stock_service.movement_stats(db, date_from=date_from, date_to=date_to))


@router.get("/product/{product_id}")
def product_movements(
    product_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = stock_service.list_movements(db, product_id=product_id, limit=50)
    return ok([MovementOut.model_validate(m) for m in rows])


@router.get("/location/{location_id}")
def location_movements(
    location_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = stock_service.list_movements(db, location_id=location_id, limit=50)
    return ok([MovementOut.model_validate(m) for m in rows])


@router.post("", status_code=201)
def receive_stock(
    payload: InboundIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(MovementOut.model_validate(stock_service.receive(db, payload, user=user)), status_code=201)


@router.post("/transfer", status_code=201)
def transfer_stock(
    payload: TransferIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(MovementOut.model_validate(stock_service.transfer(db, payload, user=user)), status_code=201)


@router.post("/write-off", status_code=201)
def write_off_stock(
    payload: WriteOffIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(MovementOut.model_validate(stock_service.write_off(db, payload, user=user)), status_code=201)
