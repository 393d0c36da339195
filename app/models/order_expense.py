# app/models/order_expense.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, Text, Index
)
from sqlalchemy.orm import relationship
from app.db.base import Base

EXPENSE_STATUSES = ("PLANNED", "CONFIRMED", "PAID", "CANCELLED")


class OrderExpense(Base):
    """
    Expense line attached to an order (planned vs actual).

    original_price is the vendor service price captured when the line was
    created; price-change checks compare it against the current service price.
    """
    __tablename__ = "order_expenses"
    __table_args__ = (
        Index("ix_order_expenses_order_category", "order_id", "category"),
    )

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    category = Column(String(20), nullable=False, default="OTHER")  # PACKAGING|LABOR|RENT|LOGISTICS|MATERIALS|OTHER
    subcategory = Column(String(100), nullable=True)

    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True, index=True)
    vendor_service_id = Column(
        Integer, ForeignKey("vendor_services.id", ondelete="SET NULL"), nullable=True
    )

    description = Column(String(500), nullable=False, default="Expense")
    unit = Column(String(20), nullable=False, default="PIECE")

    quantity = Column(Numeric(14, 3), nullable=False, default=Decimal("1"))
    unit_price = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    planned_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    actual_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    is_price_locked = Column(Boolean, nullable=False, default=False)
    price_locked_at = Column(DateTime, nullable=True)
    original_price = Column(Numeric(14, 2), nullable=True)

    status = Column(String(20), nullable=False, default="PLANNED")
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    order = relationship("Order", back_populates="expenses")
    vendor = relationship("Vendor")
    vendor_service = relationship("VendorService")


class ExpenseTemplate(Base):
    __tablename__ = "expense_templates"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)

    # matching hints for the UI
    product_category = Column(String(100), nullable=True)
    min_weight = Column(Numeric(12, 3), nullable=True)
    max_weight = Column(Numeric(12, 3), nullable=True)
    delivery_method = Column(String(100), nullable=True)
    region = Column(String(100), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship(
        "ExpenseTemplateItem",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="ExpenseTemplateItem.sort_order",
    )


class ExpenseTemplateItem(Base):
    __tablename__ = "expense_template_items"

    id = Column(Integer, primary_key=True)
    template_id = Column(
        Integer, ForeignKey("expense_templates.id", ondelete="CASCADE"), nullable=False, index=True
    )

    category = Column(String(20), nullable=False, default="OTHER")
    subcategory = Column(String(100), nullable=True)
    description = Column(String(500), nullable=False)
    vendor_service_id = Column(
        Integer, ForeignKey("vendor_services.id", ondelete="SET NULL"), nullable=True
    )
    unit = Column(String(20), nullable=False, default="PIECE")

    default_quantity = Column(Numeric(14, 3), nullable=False, default=Decimal("1"))
    default_price = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    # e.g. "itemsCount * 2" or "totalWeight / 10"
    quantity_formula = Column(String(255), nullable=True)

    is_required = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)

    template = relationship("ExpenseTemplate", back_populates="items")
    vendor_service = relationship("VendorService")
