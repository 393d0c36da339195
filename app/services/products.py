# app/services/products.py
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from app.models.warehouse import Product, ProductStock, StockMovement, StorageLocation
from app.schemas.warehouse import ProductCreate, ProductUpdate
from app.services import stock as stock_service

logger = logging.getLogger(__name__)


def _ensure_unique(db: Session, *, sku: Optional[str], barcode: Optional[str], exclude_id: Optional[int] = None) -> None:
    if sku:
        q = db.query(Product.id).filter(Product.sku == sku)
        if exclude_id:
            q = q.filter(Product.id != exclude_id)
        if q.first():
            raise HTTPException(status_code=409, detail="SKU already exists")
    if barcode:
        q = db.query(Product.id).filter(Product.barcode == barcode)
        if exclude_id:
            q = q.filter(Product.id != exclude_id)
        if q.first():
            raise HTTPException(status_code=409, detail="Barcode already exists")


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def _with_stocks(q):
    return q.options(
        selectinload(Product.stocks)
        .selectinload(ProductStock.location)
        .selectinload(StorageLocation.warehouse)
    )


def list_products(
    db: Session,
    *,
    search: Optional[str] = None,
    category: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = 1,
    limit: int = 50,
) -> Tuple[List[Product], int]:
    q = db.query(Product)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Product.sku.ilike(like), Product.name.ilike(like), Product.barcode.ilike(like)))
    if category:
        q = q.filter(Product.category == category)
    if is_active is not None:
        q = q.filter(Product.is_active.is_(is_active))
    total = q.count()
    rows = (
        _with_stocks(q)
        .order_by(Product.name.asc(), Product.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def get_product(db: Session, product_id: int) -> Product:
    p = _with_stocks(db.query(Product)).filter(Product.id == int(product_id)).first()
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    return p


def lookup(db: Session, code: str) -> Tuple[Product, List[ProductStock]]:
    """Find by SKU or barcode; only stock rows with something available."""
    code = code.strip()
    p = _with_stocks(db.query(Product)).filter(or_(Product.sku == code, Product.barcode == code)).first()
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    return p, [s for s in p.stocks if s.available_qty > 0]


def create_product(db: Session, inp: ProductCreate) -> Product:
    sku = inp.sku.strip()
    barcode = _clean(inp.barcode)
    _ensure_unique(db, sku=sku, barcode=barcode)
    data = inp.model_dump()
    data.update(sku=sku, barcode=barcode, name=inp.name.strip())
    p = Product(**data)
    try:
        db.add(p)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Product %s created", p.sku)
    return get_product(db, p.id)


def update_product(db: Session, product_id: int, inp: ProductUpdate) -> Product:
    p = get_product(db, product_id)
    data = inp.model_dump(exclude_unset=True)
    if "sku" in data and data["sku"] is not None:
        data["sku"] = data["sku"].strip()
    if "barcode" in data:
        data["barcode"] = _clean(data["barcode"])
    _ensure_unique(db, sku=data.get("sku"), barcode=data.get("barcode"), exclude_id=p.id)
    for k, v in data.items():
        if v is None and k not in ("barcode", "description", "category", "image_url"):
            continue
        setattr(p, k, v)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return get_product(db, p.id)


def delete_product(db: Session, product_id: int) -> None:
    p = get_product(db, product_id)
    if db.query(StockMovement.id).filter(StockMovement.product_id == p.id).first():
        raise HTTPException(status_code=409, detail="Product has stock movements; deactivate it instead")
    try:
        db.delete(p)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Product %s deleted", p.sku)


def product_detail(db: Session, product_id: int) -> Tuple[Product, List[StockMovement]]:
    p = get_product(db, product_id)
    return p, stock_service.list_movements(db, product_id=p.id, limit=50)
