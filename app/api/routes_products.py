# app/api/routes_products.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user, require_roles
from app.core.rbac import ADMIN, EDITORS
from app.models.user import User
from app.schemas.warehouse import (
    MovementOut,
    ProductCreate,
    ProductDetailOut,
    ProductOut,
    ProductUpdate,
    StockAdjust,
    StockOut,
)
from app.services import products as product_service
from app.services import stock as stock_service
from app.utils.resp import ok, page_meta

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("")
def list_products(
    search: Optional[str] = Query(None, description="SKU, name or barcode contains"),
    category: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows, total = product_service.list_products(
        db, search=search, category=category, is_active=is_active, page=page, limit=limit,
    )
    return ok([ProductOut.model_validate(p) for p in rows], meta=page_meta(page, limit, total))


@router.get("/stocks")
def list_stocks(
    product_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    rows = stock_service.list_stocks(db, product_id=product_id, warehouse_id=warehouse_id)
    return ok([StockOut.model_validate(s) for s in rows])


@router.get("/lookup/{code}")
def lookup_product(
    code: str,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    product, stocks = product_service.lookup(db, code)
    return ok({
        "product": ProductOut.model_validate(product),
        "stocks": [StockOut.model_validate(s) for s in stocks],
    })


@router.get("/{product_id}")
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    product, movements = product_service.product_detail(db, product_id)
    out = ProductDetailOut.model_validate(product)
    out.recent_movements = [MovementOut.model_validate(m) for m in movements]
    return ok(out)


@router.get("/{product_id}/stock")
def get_product_stock(
    product_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    product_service.get_product(db, product_id)
    return ok([StockOut.model_validate(s) for s in stock_service.list_stocks(db, product_id=product_id)])


@router.post("", status_code=201)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(ProductOut.model_validate(product_service.create_product(db, payload)), status_code=201)


@router.put("/{product_id}")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(ProductOut.model_validate(product_service.update_product(db, product_id, payload)))


@router.post("/{product_id}/adjust")
def adjust_stock(
    product_id: int,
    payload: StockAdjust,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EDITORS)),
):
    return ok(MovementOut.model_validate(stock_service.adjust(db, product_id, payload, user=user)))


@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ADMIN)),
):
    product_service.delete_product(db, product_id)
    return ok({"id": product_id, "deleted": True})
