# app/services/expense_templates.py
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from fastapi import HTTPException
from sqlalchemy.orm import Session, selectinload

from app.models.order_expense import ExpenseTemplate, ExpenseTemplateItem
from app.models.vendor import VendorService
from app.schemas.order_expense import (
    ExpenseTemplateCreate,
    ExpenseTemplateItemIn,
    ExpenseTemplateUpdate,
)
from app.services.money import D, money2

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (copy)"


def _template_query(db: Session):
    return db.query(ExpenseTemplate).options(
        selectinload(ExpenseTemplate.items).selectinload(ExpenseTemplateItem.vendor_service)
    )


def get_template(db: Session, template_id: int) -> ExpenseTemplate:
    t = _template_query(db).filter(ExpenseTemplate.id == int(template_id)).first()
    if not t:
        raise HTTPException(status_code=404, detail="Template not found")
    return t


def list_templates(db: Session, *, active_only: bool = False, q: Optional[str] = None) -> List[ExpenseTemplate]:
    query = _template_query(db)
    if active_only:
        query = query.filter(ExpenseTemplate.is_active.is_(True))
    if q:
        query = query.filter(ExpenseTemplate.name.ilike(f"%{q.strip()}%"))
    return query.order_by(ExpenseTemplate.name.asc()).all()


def _ensure_unique_name(db: Session, name: str, *, exclude_id: Optional[int] = None) -> None:
    query = db.query(ExpenseTemplate.id).filter(ExpenseTemplate.name == name)
    if exclude_id:
        query = query.filter(ExpenseTemplate.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=409, detail=f"Template '{name}' already exists")


def _item_rows(db: Session, items: Sequence[ExpenseTemplateItemIn]) -> List[ExpenseTemplateItem]:
    rows: List[ExpenseTemplateItem] = []
    for idx, it in enumerate(items):
        if it.vendor_service_id and not db.get(VendorService, int(it.vendor_service_id)):
            raise HTTPException(status_code=404, detail=f"Vendor service {it.vendor_service_id} not found")
        rows.append(ExpenseTemplateItem(
            category=it.category,
            subcategory=it.subcategory,
            description=it.description.strip(),
            vendor_service_id=it.vendor_service_id,
            unit=it.unit,
            default_quantity=D(it.default_quantity),
            default_price=money2(it.default_price),
            quantity_formula=(it.quantity_formula or "").strip() or None,
            is_required=it.is_required,
            sort_order=it.sort_order if it.sort_order is not None else idx,
        ))
    return rows


def create_template(db: Session, inp: ExpenseTemplateCreate) -> ExpenseTemplate:
    name = inp.name.strip()
    _ensure_unique_name(db, name)

    t = ExpenseTemplate(
        name=name,
        description=inp.description,
        product_category=inp.product_category,
        min_weight=inp.min_weight,
        max_weight=inp.max_weight,
        delivery_method=inp.delivery_method,
        region=inp.region,
        is_active=inp.is_active,
    )
    try:
        t.items = _item_rows(db, inp.items)
        db.add(t)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Expense template %s created (%d items)", t.id, len(inp.items))
    return get_template(db, t.id)


def update_template(db: Session, template_id: int, inp: ExpenseTemplateUpdate) -> ExpenseTemplate:
    t = get_template(db, template_id)
    data = inp.model_dump(exclude_unset=True, exclude={"items"})

    if data.get("name"):
        data["name"] = data["name"].strip()
        _ensure_unique_name(db, data["name"], exclude_id=t.id)

    try:
        for k, v in data.items():
            if k in ("name", "is_active") and v is None:
                continue
            setattr(t, k, v)
        if inp.items is not None:
            # full replacement; delete-orphan removes the old rows
            t.items = _item_rows(db, inp.items)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()
    logger.info("Expense template %s updated", template_id)
    return get_template(db, template_id)


def delete_template(db: Session, template_id: int) -> None:
    t = get_template(db, template_id)
    try:
        db.delete(t)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Expense template %s deleted", template_id)


def duplicate_template(db: Session, template_id: int) -> ExpenseTemplate:
    src = get_template(db, template_id)

    name = f"{src.name}{COPY_SUFFIX}"
    n = 2
    while db.query(ExpenseTemplate.id).filter(ExpenseTemplate.name == name).first():
        name = f"{src.name} (copy {n})"
        n += 1

    copy = ExpenseTemplate(
        name=name,
        description=src.description,
        product_category=src.product_category,
        min_weight=src.min_weight,
        max_weight=src.max_weight,
        delivery_method=src.delivery_method,
        region=src.region,
        is_active=src.is_active,
        items=[
            ExpenseTemplateItem(
                category=i.category,
                subcategory=i.subcategory,
                description=i.description,
                vendor_service_id=i.vendor_service_id,
                unit=i.unit,
                default_quantity=i.default_quantity,
                default_price=i.default_price,
                quantity_formula=i.quantity_formula,
                is_required=i.is_required,
                sort_order=i.sort_order,
            )
            for i in src.items
        ],
    )
    try:
        db.add(copy)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Expense template %s duplicated as %s", template_id, copy.id)
    return get_template(db, copy.id)
