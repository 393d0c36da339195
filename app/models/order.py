# app/models/order.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, ForeignKey, Text, Index
)
from sqlalchemy.orm import relationship
from app.db.base import Base

ORDER_STATUSES = ("NEW", "CONFIRMED", "IN_PROGRESS", "SHIPPED",
                  "DELIVERED", "CANCELLED", "RETURNED")


class Order(Base):
    """
    Client order; the unit against which cost and profit are tracked.

    estimated_cost / actual_cost / total_income / profit / margin_percent are a
    cache over child rows. They are written only by
    app.services.order_costing.recalculate_order_cost.
    """
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_client_date", "client_id", "order_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(32), unique=True, nullable=False, index=True)

    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    manager_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    status = Column(String(20), nullable=False, default="NEW", index=True)
    shipping_address = Column(String(500), nullable=True)

    estimated_cost = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    actual_cost = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total_income = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    profit = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    margin_percent = Column(Numeric(9, 2), nullable=False, default=Decimal("0.00"))

    order_date = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    shipped_date = Column(DateTime, nullable=True)
    delivered_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    client = relationship("Client", back_populates="orders")
    manager = relationship("User", back_populates="managed_orders")

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
    )
    expenses = relationship(
        "OrderExpense",
        back_populates="order",
        cascade="all, delete-orphan",
    )
    cost_operations = relationship(
        "CostOperation",
        back_populates="order",
        cascade="all, delete-orphan",
    )
    income_operations = relationship(
        "IncomeOperation",
        back_populates="order",
        cascade="all, delete-orphan",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    sku = Column(String(100), nullable=False)
    name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    # per unit
    weight = Column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    volume = Column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    unit_cost = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    unit_price = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    order = relationship("Order", back_populates="items")
