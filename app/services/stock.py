# app/services/stock.py
"""
Stock levels and the movement journal.

Every change to ProductStock goes through _change_stock() together with a
StockMovement row, in the caller's database transaction. Write-offs with a
unit cost also post Dr 91.2 / Cr 41 through the ledger.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from app.models.ledger import Account
from app.models.user import User
from app.models.warehouse import Product, ProductStock, StockMovement, StorageLocation
from app.schemas.warehouse import InboundIn, StockAdjust, TransferIn, WriteOffIn
from app.services import ledger
from app.services.money import money2

logger = logging.getLogger(__name__)

WRITE_OFF_DEBIT = "91.2"
WRITE_OFF_CREDIT = "41"


def _batch(value: Optional[str]) -> str:
    return (value or "").strip()


def _require_product(db: Session, product_id: int) -> Product:
    p = db.get(Product, int(product_id))
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    return p


def _require_location(db: Session, location_id: int) -> StorageLocation:
    loc = db.get(StorageLocation, int(location_id))
    if not loc:
        raise HTTPException(status_code=404, detail="Storage location not found")
    return loc


def lock_stock(db: Session, product_id: int, location_id: int, batch: str, *, create: bool) -> Optional[ProductStock]:
    stock = (
        db.query(ProductStock)
        .filter(
            ProductStock.product_id == product_id,
            ProductStock.location_id == location_id,
            ProductStock.batch_number == batch,
        )
        .with_for_update()
        .first()
    )
    if stock is None and create:
        stock = ProductStock(
            product_id=product_id,
            location_id=location_id,
            batch_number=batch,
            quantity=0,
            reserved_qty=0,
            available_qty=0,
        )
        db.add(stock)
        db.flush()
    return stock


def set_quantity(stock: ProductStock, quantity: int) -> None:
    stock.quantity = quantity
    stock.reserved_qty = min(stock.reserved_qty or 0, quantity)
    stock.available_qty = stock.quantity - stock.reserved_qty
    stock.last_movement_at = datetime.utcnow()


def refresh_location_status(db: Session, location: StorageLocation) -> None:
    if location.status == "BLOCKED":
        return
    db.flush()
    held = (
        db.query(func.coalesce(func.sum(ProductStock.quantity), 0))
        .filter(ProductStock.location_id == location.id)
        .scalar()
    )
    location.status = "OCCUPIED" if int(held or 0) > 0 else "FREE"


def add_stock(
    db: Session,
    *,
    product_id: int,
    location: StorageLocation,
    quantity: int,
    batch: str = "",
) -> ProductStock:
    stock = lock_stock(db, product_id, location.id, batch, create=True)
    set_quantity(stock, stock.quantity + quantity)
    refresh_location_status(db, location)
    return stock


def remove_stock(
    db: Session,
    *,
    product_id: int,
    location: StorageLocation,
    quantity: int,
    batch: str = "",
    from_available: bool = True,
) -> ProductStock:
    """
    from_available: only unreserved units may leave (transfers, shipping).
    Write-offs may eat into reserved units.
    """
    stock = lock_stock(db, product_id, location.id, batch, create=False)
    have = 0 if stock is None else (stock.available_qty if from_available else stock.quantity)
    if have < quantity:
        raise HTTPException(status_code=400, detail=f"Insufficient stock at {location.code}: {have} < {quantity}")
    set_quantity(stock, stock.quantity - quantity)
    refresh_location_status(db, location)
    return stock


def record_movement(db: Session, *, user: Optional[User] = None, **fields: Any) -> StockMovement:
    fields["batch_number"] = _batch(fields.get("batch_number"))
    m = StockMovement(created_by_id=getattr(user, "id", None), **fields)
    db.add(m)
    return m


# ---------------------------------------------------------------------------
# operations
# ---------------------------------------------------------------------------

def receive(db: Session, inp: InboundIn, *, user: Optional[User] = None) -> StockMovement:
    try:
        _require_product(db, inp.product_id)
        loc = _require_location(db, inp.to_location_id)
        batch = _batch(inp.batch_number)
        add_stock(db, product_id=inp.product_id, location=loc, quantity=inp.quantity, batch=batch)
        m = record_movement(
            db, user=user,
            product_id=inp.product_id,
            to_location_id=loc.id,
            quantity=inp.quantity,
            movement_type=inp.movement_type,
            batch_number=batch,
            reason=inp.reason,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Received %s x product %s into location %s", inp.quantity, inp.product_id, loc.code)
    return get_movement(db, m.id)


def transfer(db: Session, inp: TransferIn, *, user: Optional[User] = None) -> StockMovement:
    if inp.from_location_id == inp.to_location_id:
        raise HTTPException(status_code=400, detail="Source and destination locations must differ")
    try:
        _require_product(db, inp.product_id)
        src = _require_location(db, inp.from_location_id)
        dst = _require_location(db, inp.to_location_id)
        batch = _batch(inp.batch_number)
        remove_stock(db, product_id=inp.product_id, location=src, quantity=inp.quantity, batch=batch)
        add_stock(db, product_id=inp.product_id, location=dst, quantity=inp.quantity, batch=batch)
        m = record_movement(
            db, user=user,
            product_id=inp.product_id,
            from_location_id=src.id,
            to_location_id=dst.id,
            quantity=inp.quantity,
            movement_type="TRANSFER",
            batch_number=batch,
            reason=inp.reason,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Moved %s x product %s %s -> %s", inp.quantity, inp.product_id, src.code, dst.code)
    return get_movement(db, m.id)


def _write_off_accounts(db: Session):
    rows = {a.code: a for a in db.query(Account).filter(Account.code.in_([WRITE_OFF_DEBIT, WRITE_OFF_CREDIT]))}
    return rows.get(WRITE_OFF_DEBIT), rows.get(WRITE_OFF_CREDIT)


def write_off(db: Session, inp: WriteOffIn, *, user: Optional[User] = None) -> StockMovement:
    try:
        product = _require_product(db, inp.product_id)
        loc = _require_location(db, inp.location_id)
        batch = _batch(inp.batch_number)
        remove_stock(db, product_id=product.id, location=loc, quantity=inp.quantity, batch=batch,
                     from_available=False)

        fin_tx_id = None
        amount = money2(product.unit_cost) * inp.quantity
        if amount > 0:
            debit, credit = _write_off_accounts(db)
            if debit and credit:
                tx = ledger.add_posting(
                    db,
                    debit_account_id=debit.id,
                    credit_account_id=credit.id,
                    amount=amount,
                    description=f"Write-off: {product.name} x{inp.quantity}. {inp.reason}",
                    user_id=getattr(user, "id", None),
                )
                fin_tx_id = tx.id
            else:
                logger.warning("Accounts %s / %s missing; write-off of product %s not posted",
                               WRITE_OFF_DEBIT, WRITE_OFF_CREDIT, product.id)

        m = record_movement(
            db, user=user,
            product_id=product.id,
            from_location_id=loc.id,
            quantity=inp.quantity,
            movement_type="WRITE_OFF",
            batch_number=batch,
            reason=inp.reason,
            fin_transaction_id=fin_tx_id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Wrote off %s x product %s at %s", inp.quantity, inp.product_id, loc.code)
    return get_movement(db, m.id)


def adjust(db: Session, product_id: int, inp: StockAdjust, *, user: Optional[User] = None) -> StockMovement:
    """
    Set the counted quantity for one product batch in one location. The
    movement carries the signed difference.
    """
    try:
        _require_product(db, product_id)
        loc = _require_location(db, inp.location_id)
        batch = _batch(inp.batch_number)
        stock = lock_stock(db, int(product_id), loc.id, batch, create=True)
        if inp.quantity < (stock.reserved_qty or 0):
            raise HTTPException(status_code=400, detail="Quantity cannot go below the reserved quantity")
        diff = inp.quantity - stock.quantity
        set_quantity(stock, inp.quantity)
        refresh_location_status(db, loc)
        m = record_movement(
            db, user=user,
            product_id=int(product_id),
            to_location_id=loc.id,
            quantity=diff,
            movement_type="ADJUSTMENT",
            batch_number=batch,
            reason=inp.reason,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Adjusted product %s at %s by %s", product_id, loc.code, diff)
    return get_movement(db, m.id)


# ---------------------------------------------------------------------------
# reads
# ---------------------------------------------------------------------------

def movement_query(db: Session):
    return db.query(StockMovement).options(
        joinedload(StockMovement.product),
        joinedload(StockMovement.from_location).joinedload(StorageLocation.warehouse),
        joinedload(StockMovement.to_location).joinedload(StorageLocation.warehouse),
        joinedload(StockMovement.task),
    )


def get_movement(db: Session, movement_id: int) -> StockMovement:
    m = movement_query(db).filter(StockMovement.id == int(movement_id)).first()
    if not m:
        raise HTTPException(status_code=404, detail="Movement not found")
    return m


def list_movements(
    db: Session,
    *,
    product_id: Optional[int] = None,
    location_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    movement_type: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    limit: int = 100,
) -> List[StockMovement]:
    q = movement_query(db)
    if product_id:
        q = q.filter(StockMovement.product_id == product_id)
    if location_id:
        q = q.filter(or_(
            StockMovement.from_location_id == location_id,
            StockMovement.to_location_id == location_id,
        ))
    if warehouse_id:
        in_warehouse = db.query(StorageLocation.id).filter(StorageLocation.warehouse_id == warehouse_id)
        q = q.filter(or_(
            StockMovement.from_location_id.in_(in_warehouse),
            StockMovement.to_location_id.in_(in_warehouse),
        ))
    if movement_type:
        q = q.filter(StockMovement.movement_type == movement_type)
    if date_from:
        q = q.filter(StockMovement.created_at >= date_from)
    if date_to:
        q = q.filter(StockMovement.created_at <= date_to)
    return q.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).limit(limit).all()


def movement_stats(
    db: Session,
    *,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    q = db.query(StockMovement.movement_type, func.count(StockMovement.id), func.coalesce(func.sum(StockMovement.quantity), 0))
    if date_from:
        q = q.filter(StockMovement.created_at >= date_from)
    if date_to:
        q = q.filter(StockMovement.created_at <= date_to)
    by_type = [
        {"movement_type": t, "count": int(c), "quantity": int(s or 0)}
        for t, c, s in q.group_by(StockMovement.movement_type).order_by(StockMovement.movement_type.asc()).all()
    ]

    now = now or datetime.utcnow()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    today_count = (
        db.query(func.count(StockMovement.id))
        .filter(StockMovement.created_at >= midnight, StockMovement.created_at < midnight + timedelta(days=1))
        .scalar()
    )
    return {"by_type": by_type, "today_count": int(today_count or 0)}


def list_stocks(
    db: Session,
    *,
    product_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    available_only: bool = False,
) -> List[ProductStock]:
    q = (
        db.query(ProductStock)
        .join(Product, Product.id == ProductStock.product_id)
        .join(StorageLocation, StorageLocation.id == ProductStock.location_id)
        .options(
            joinedload(ProductStock.product),
            joinedload(ProductStock.location).joinedload(StorageLocation.warehouse),
        )
    )
    if product_id:
        q = q.filter(ProductStock.product_id == product_id)
    if warehouse_id:
        q = q.filter(StorageLocation.warehouse_id == warehouse_id)
    if available_only:
        q = q.filter(ProductStock.available_qty > 0)
    return q.order_by(Product.name.asc(), StorageLocation.code.asc(), ProductStock.batch_number.asc()).all()
